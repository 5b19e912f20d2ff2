"""
Feature detection and point tracking services used by the controller.

The controller only depends on the two protocols defined here. The
OpenCV-backed implementations wrap Shi-Tomasi corner detection and
pyramidal Lucas-Kanade optical flow.
"""

from typing import Protocol, Sequence, runtime_checkable

import cv2
import numpy as np

Point = tuple[float, float]


@runtime_checkable
class FeatureDetector(Protocol):
    """Locates salient trackable points in a single grayscale image."""

    def detect(
        self,
        gray: np.ndarray,
        max_count: int,
        quality_level: float,
        min_distance: float,
    ) -> list[Point]:
        """Return between 0 and max_count points. Never returns None."""
        ...


@runtime_checkable
class PointTracker(Protocol):
    """Estimates where known points moved between two grayscale images."""

    def track(
        self,
        reference_gray: np.ndarray,
        current_gray: np.ndarray,
        prior_points: Sequence[Point],
    ) -> list[tuple[Point, bool]] | None:
        """
        Return one (new_point, valid) pair per prior point, in order,
        or None when no correspondence at all could be produced.
        """
        ...


def points_to_array(points: Sequence[Point]) -> np.ndarray:
    """Convert a point list to the Nx1x2 float32 layout OpenCV expects."""
    if len(points) == 0:
        return np.empty((0, 1, 2), dtype=np.float32)
    return np.asarray(points, dtype=np.float32).reshape(-1, 1, 2)


def array_to_points(array: np.ndarray | None) -> list[Point]:
    """Convert an OpenCV point array (any Nx..x2 layout) to a list of tuples."""
    if array is None or len(array) == 0:
        return []
    return [(float(x), float(y)) for x, y in array.reshape(-1, 2)]


class GoodFeaturesDetector:
    """
    Shi-Tomasi corner detector.

    Attributes:
        block_size: Neighbourhood size for the corner response
        mask: Optional uint8 mask restricting where corners are searched
    """

    def __init__(self, block_size: int = 7, mask: np.ndarray | None = None):
        self.block_size = block_size
        self.mask = mask

    def detect(
        self,
        gray: np.ndarray,
        max_count: int,
        quality_level: float,
        min_distance: float,
    ) -> list[Point]:
        if max_count <= 0:
            return []

        corners = cv2.goodFeaturesToTrack(
            gray,
            maxCorners=max_count,
            qualityLevel=quality_level,
            minDistance=min_distance,
            mask=self.mask,
            blockSize=self.block_size,
        )
        # goodFeaturesToTrack returns None when nothing passes the threshold
        return array_to_points(corners)[:max_count]


class LucasKanadeTracker:
    """
    Pyramidal Lucas-Kanade optical flow tracker.

    A point is valid when the flow status is set and, if
    ``drop_out_of_frame`` is enabled, its new location lies inside the image.
    """

    def __init__(
        self,
        win_size: tuple[int, int] = (15, 15),
        max_level: int = 2,
        criteria_count: int = 10,
        criteria_eps: float = 0.03,
        drop_out_of_frame: bool = True,
    ):
        self.lk_params = {
            "winSize": tuple(win_size),
            "maxLevel": max_level,
            "criteria": (
                cv2.TERM_CRITERIA_EPS | cv2.TERM_CRITERIA_COUNT,
                criteria_count,
                criteria_eps,
            ),
        }
        self.drop_out_of_frame = drop_out_of_frame

    def track(
        self,
        reference_gray: np.ndarray,
        current_gray: np.ndarray,
        prior_points: Sequence[Point],
    ) -> list[tuple[Point, bool]] | None:
        if len(prior_points) == 0:
            return None

        prev = points_to_array(prior_points)
        curr, status, _ = cv2.calcOpticalFlowPyrLK(
            reference_gray, current_gray, prev, None, **self.lk_params
        )
        if curr is None or status is None:
            return None

        valid = status.ravel() == 1
        if self.drop_out_of_frame:
            h, w = current_gray.shape[:2]
            xy = curr.reshape(-1, 2)
            in_bounds = (
                (xy[:, 0] >= 0) & (xy[:, 0] < w) &
                (xy[:, 1] >= 0) & (xy[:, 1] < h)
            )
            valid = valid & in_bounds

        return [
            (point, bool(ok))
            for point, ok in zip(array_to_points(curr), valid)
        ]


def detector_from_config(config) -> GoodFeaturesDetector:
    """Build the default detector from a TrackerConfig."""
    return GoodFeaturesDetector(block_size=config.block_size)


def tracker_from_config(config) -> LucasKanadeTracker:
    """Build the default tracker from a TrackerConfig."""
    return LucasKanadeTracker(
        win_size=config.win_size,
        max_level=config.max_level,
        criteria_count=config.criteria_count,
        criteria_eps=config.criteria_eps,
    )
