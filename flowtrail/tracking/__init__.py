"""
Tracking module - Point acquisition, optical flow and motion trails.

This module provides:
- FlowTrailController: acquire/advance state machine drawing motion trails
- FeatureDetector / PointTracker: service protocols used by the controller
- GoodFeaturesDetector / LucasKanadeTracker: OpenCV implementations

Example:
    >>> from flowtrail.tracking import FlowTrailController
    >>> controller = FlowTrailController()
    >>> for frame_num, frame in reader:
    ...     annotated = controller.advance(frame)
"""

from flowtrail.tracking.collaborators import (
    FeatureDetector,
    PointTracker,
    GoodFeaturesDetector,
    LucasKanadeTracker,
)
from flowtrail.tracking.lifecycle import (
    FlowTrailController,
    TrackState,
    TrackEvent,
    TrackedPoint,
    TrailMask,
    AdvanceStats,
)

__all__ = [
    "FeatureDetector",
    "PointTracker",
    "GoodFeaturesDetector",
    "LucasKanadeTracker",
    "FlowTrailController",
    "TrackState",
    "TrackEvent",
    "TrackedPoint",
    "TrailMask",
    "AdvanceStats",
]
