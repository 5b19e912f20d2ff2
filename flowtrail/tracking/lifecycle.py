"""
Tracked-point lifecycle controller.

This module provides the FlowTrailController class, which owns a set of
tracked points across a video stream. Each call to ``advance`` either
acquires a fresh point set or moves the current one forward with optical
flow, drawing the motion trails of every surviving point.
"""

import logging
from dataclasses import dataclass
from enum import Enum
import cv2
import numpy as np

from flowtrail.core.config import TrackerConfig
from flowtrail.core.timing import FrameTimer
from flowtrail.tracking.collaborators import (
    FeatureDetector,
    Point,
    PointTracker,
    detector_from_config,
    tracker_from_config,
)

logger = logging.getLogger(__name__)

Color = tuple[int, int, int]


class TrackState(Enum):
    """Controller state."""
    UNINITIALIZED = "uninitialized"
    TRACKING = "tracking"


class TrackEvent(Enum):
    """What happened during one advance() call."""
    ACQUIRED = "acquired"
    ACQUISITION_EMPTY = "acquisition_empty"
    TRACKED = "tracked"
    TRACK_LOST = "track_lost"


@dataclass(frozen=True)
class TrackedPoint:
    """A point location paired with the display color it keeps for life."""
    point: Point
    color: Color


@dataclass
class AdvanceStats:
    """Statistics from one advance() call."""
    frame: int
    state: TrackState
    event: TrackEvent
    tracked: int
    lost: int
    total: int

    def to_dict(self) -> dict:
        """Convert to a flat dictionary for data outputs."""
        return {
            "frame": self.frame,
            "state": self.state.value,
            "event": self.event.value,
            "tracked": self.tracked,
            "lost": self.lost,
            "total": self.total,
        }


def to_gray(frame: np.ndarray) -> np.ndarray:
    """Convert a BGR, BGRA or single-channel frame to grayscale."""
    if frame.ndim == 2:
        return frame.copy()
    if frame.shape[2] == 1:
        return frame[:, :, 0].copy()
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)


def _pixel(point: Point) -> tuple[int, int]:
    x, y = point
    return int(x), int(y)


def draw_color(image: np.ndarray, color: Color) -> Color | int:
    """
    Color value to draw a BGR color into image.

    Single-channel images get the color's luminance, never below 1, so
    every trail stays visible regardless of its blue component.
    """
    if image.ndim == 3 and image.shape[2] > 1:
        return color
    b, g, r = color
    return max(1, int(round(0.114 * b + 0.587 * g + 0.299 * r)))


class TrailMask:
    """
    Persistent overlay accumulating motion segments between acquisitions.

    The mask has the same shape and dtype as the frames it is composited
    onto, and is combined with a saturating add.
    """

    def __init__(self, shape: tuple[int, ...], dtype=np.uint8):
        self.image = np.zeros(shape, dtype=dtype)
        self.segment_count = 0

    @classmethod
    def like(cls, frame: np.ndarray) -> "TrailMask":
        """Create a blank mask matching a frame."""
        return cls(frame.shape, frame.dtype)

    @property
    def shape(self) -> tuple[int, ...]:
        return self.image.shape

    def draw_segment(
        self,
        start: Point,
        end: Point,
        color: Color,
        thickness: int = 2,
    ) -> None:
        """Draw a line from start to end into the mask."""
        cv2.line(
            self.image, _pixel(start), _pixel(end),
            draw_color(self.image, color), thickness,
        )
        self.segment_count += 1

    def composite(self, frame: np.ndarray) -> np.ndarray:
        """Return frame with the accumulated trails added on top."""
        return cv2.add(frame, self.image)


class FlowTrailController:
    """
    Per-frame acquire/advance state machine for a set of tracked points.

    In UNINITIALIZED the next frame is used to detect a new point set. In
    TRACKING the point set is followed into the next frame; points the
    tracker marks invalid are dropped along with their colors. A total
    tracking failure, or a step where no point survives, sends the
    controller back to UNINITIALIZED so the following frame reacquires.

    Attributes:
        config: Detection, flow and drawing parameters
        detector: Feature detector service
        tracker: Point tracker service
        timer: Per-frame timing of advance()
        frame_count: Number of advance() calls since the last reset

    Example:
        >>> controller = FlowTrailController()
        >>> for frame_num, frame in reader:
        ...     annotated = controller.advance(frame)
        ...     stats = controller.last_stats
    """

    def __init__(
        self,
        detector: FeatureDetector | None = None,
        tracker: PointTracker | None = None,
        config: TrackerConfig | None = None,
        rng: np.random.Generator | None = None,
    ):
        """
        Initialize the controller.

        Args:
            detector: Feature detector (default: Shi-Tomasi from config)
            tracker: Point tracker (default: Lucas-Kanade from config)
            config: Tracker configuration (default: TrackerConfig())
            rng: Random generator for point colors (default: seeded from config)
        """
        self.config = config or TrackerConfig()
        self.detector = detector or detector_from_config(self.config)
        self.tracker = tracker or tracker_from_config(self.config)
        self._rng = rng or np.random.default_rng(self.config.seed)
        self.timer = FrameTimer("advance", interval=self.config.timer_interval)

        self._state = TrackState.UNINITIALIZED
        self._reference: np.ndarray | None = None
        self._tracked: list[TrackedPoint] = []
        self._mask: TrailMask | None = None
        self.frame_count = 0
        self.last_stats: AdvanceStats | None = None

    @property
    def state(self) -> TrackState:
        return self._state

    @property
    def tracked_points(self) -> tuple[TrackedPoint, ...]:
        return tuple(self._tracked)

    @property
    def points(self) -> list[Point]:
        return [tp.point for tp in self._tracked]

    @property
    def colors(self) -> list[Color]:
        return [tp.color for tp in self._tracked]

    @property
    def reference_frame(self) -> np.ndarray | None:
        return None if self._reference is None else self._reference.copy()

    @property
    def trail_mask(self) -> np.ndarray | None:
        return None if self._mask is None else self._mask.image.copy()

    def advance(self, frame: np.ndarray) -> np.ndarray:
        """
        Process the next frame.

        Args:
            frame: Video frame (BGR, BGRA, or grayscale as HxW or HxWx1)

        Returns:
            Annotated copy of the frame, same shape as the input. The
            first frame after an acquisition is returned unannotated.
        """
        # HxWx1 frames are handled as HxW and restored on the way out
        single_channel = frame.ndim == 3 and frame.shape[2] == 1
        if single_channel:
            frame = frame[:, :, 0]

        self.frame_count += 1
        self.timer.start()
        try:
            if self._state is TrackState.TRACKING and self._tracked:
                result = self._track(frame)
            else:
                if self._state is TrackState.TRACKING:
                    logger.debug(
                        "Frame %d: no points to follow, reacquiring", self.frame_count
                    )
                result = self._acquire(frame)
        finally:
            self.timer.stop()

        return result[:, :, np.newaxis] if single_channel else result

    def reset(self) -> None:
        """Drop all tracking state and return to UNINITIALIZED."""
        self._drop_tracking()
        self._mask = None
        self.frame_count = 0
        self.last_stats = None
        self.timer.reset()

    def _drop_tracking(self) -> None:
        self._state = TrackState.UNINITIALIZED
        self._reference = None
        self._tracked = []

    def _random_colors(self, count: int) -> list[Color]:
        values = self._rng.integers(0, 255, size=(count, 3))
        return [tuple(int(c) for c in row) for row in values]

    def _acquire(self, frame: np.ndarray) -> np.ndarray:
        gray = to_gray(frame)
        cfg = self.config
        detected = list(self.detector.detect(
            gray, cfg.max_corners, cfg.quality_level, cfg.min_distance
        ))[:cfg.max_corners]

        colors = self._random_colors(len(detected))
        self._tracked = [
            TrackedPoint((float(x), float(y)), color)
            for (x, y), color in zip(detected, colors)
        ]
        self._reference = gray
        self._mask = TrailMask.like(frame)
        self._state = TrackState.TRACKING

        if detected:
            event = TrackEvent.ACQUIRED
            logger.debug("Frame %d: acquired %d points", self.frame_count, len(detected))
        else:
            event = TrackEvent.ACQUISITION_EMPTY
            logger.info("Frame %d: detector found no points", self.frame_count)

        self.last_stats = AdvanceStats(
            frame=self.frame_count,
            state=self._state,
            event=event,
            tracked=0,
            lost=0,
            total=len(self._tracked),
        )
        return frame.copy()

    def _track(self, frame: np.ndarray) -> np.ndarray:
        gray = to_gray(frame)
        prior = self._tracked
        result = self.tracker.track(self._reference, gray, self.points)

        if result is None:
            return self._lose(frame, lost=len(prior), reason="tracker failure")

        if len(result) != len(prior):
            raise ValueError(
                f"Tracker returned {len(result)} results for {len(prior)} points"
            )

        # Points and colors are filtered together so they cannot fall out of step
        survivors: list[TrackedPoint] = []
        movements: list[tuple[Point, Point, Color]] = []
        for old, (new, valid) in zip(prior, result):
            if not valid:
                continue
            new_point = (float(new[0]), float(new[1]))
            survivors.append(TrackedPoint(new_point, old.color))
            movements.append((old.point, new_point, old.color))

        if not survivors:
            return self._lose(frame, lost=len(prior), reason="no surviving points")

        cfg = self.config
        output = frame.copy()
        for start, end, color in movements:
            self._mask.draw_segment(start, end, color, cfg.line_thickness)
            cv2.circle(
                output, _pixel(end), cfg.marker_radius,
                draw_color(output, color), -1,
            )

        self._tracked = survivors
        self._reference = gray

        self.last_stats = AdvanceStats(
            frame=self.frame_count,
            state=self._state,
            event=TrackEvent.TRACKED,
            tracked=len(survivors),
            lost=len(prior) - len(survivors),
            total=len(survivors),
        )
        return self._mask.composite(output)

    def _lose(self, frame: np.ndarray, lost: int, reason: str) -> np.ndarray:
        logger.info(
            "Frame %d: track lost (%s), reacquiring on next frame",
            self.frame_count, reason,
        )
        self._drop_tracking()
        self.last_stats = AdvanceStats(
            frame=self.frame_count,
            state=self._state,
            event=TrackEvent.TRACK_LOST,
            tracked=0,
            lost=lost,
            total=0,
        )
        # Trails stay visible on the frame where the loss is detected
        return self._mask.composite(frame.copy())
