"""
flowtrail - Optical flow point tracking with motion trails
==========================================================

Detects corner features, follows them from frame to frame with pyramidal
Lucas-Kanade optical flow and draws each point's motion trail. When every
point is lost, a fresh set is acquired on the next frame.

Main modules:
- flowtrail.tracking: Lifecycle controller and detection/tracking services
- flowtrail.outputs: Output handlers (preview video, clean video, CSV)
- flowtrail.pipeline: Running the controller over video files
- flowtrail.core: Configuration, timing and video I/O

Quick start:
    >>> from flowtrail import FlowTrailController
    >>> controller = FlowTrailController()
    >>> annotated = controller.advance(frame)
"""

__version__ = "0.1.0"

from flowtrail.core.config import TrackerConfig
from flowtrail.tracking import FlowTrailController, TrackState, TrackEvent
from flowtrail.outputs import OutputManager, OutputSpec

__all__ = [
    "__version__",
    "TrackerConfig",
    "FlowTrailController",
    "TrackState",
    "TrackEvent",
    "OutputManager",
    "OutputSpec",
]
