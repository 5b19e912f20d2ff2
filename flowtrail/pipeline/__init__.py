"""
Pipeline module - Running the tracking controller over video files.
"""

from flowtrail.pipeline.processor import FlowTrailProcessor, run_video

__all__ = [
    "FlowTrailProcessor",
    "run_video",
]
