"""
Core module - Configuration, timing and video I/O.
"""

from flowtrail.core.config import (
    TrackerConfig,
    load_config,
    save_config,
    get_env_config,
    apply_env_config,
)
from flowtrail.core.timing import FrameTimer
from flowtrail.core.video import VideoReader, VideoWriter, VideoProperties

__all__ = [
    "TrackerConfig",
    "load_config",
    "save_config",
    "get_env_config",
    "apply_env_config",
    "FrameTimer",
    "VideoReader",
    "VideoWriter",
    "VideoProperties",
]
