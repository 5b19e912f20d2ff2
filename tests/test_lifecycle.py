"""
Tests for the tracked-point lifecycle controller.
"""

import numpy as np
import pytest

from flowtrail.core.config import TrackerConfig
from flowtrail.tracking import (
    FlowTrailController,
    TrackEvent,
    TrackState,
    TrailMask,
)


class FakeDetector:
    """Returns queued point batches, then empty lists."""

    def __init__(self, *batches):
        self.batches = [list(b) for b in batches]
        self.calls = []

    def detect(self, gray, max_count, quality_level, min_distance):
        self.calls.append((gray.shape, max_count, quality_level, min_distance))
        return self.batches.pop(0) if self.batches else []


class FakeTracker:
    """Returns queued results; a callable result is invoked with the prior points."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def track(self, reference_gray, current_gray, prior_points):
        self.calls.append(list(prior_points))
        result = self.results.pop(0)
        if callable(result):
            return result(prior_points)
        return result


class ZeroBlueRng:
    """Color source giving every point a color with no blue component."""

    def integers(self, low, high, size):
        return np.tile([0, 200, 100], (size[0], 1))


def shift_all(dx, dy):
    def _shift(prior):
        return [((x + dx, y + dy), True) for x, y in prior]
    return _shift


def blank(h=64, w=64):
    return np.zeros((h, w, 3), dtype=np.uint8)


def make_controller(detector, tracker, **config):
    config.setdefault("seed", 7)
    return FlowTrailController(
        detector=detector, tracker=tracker, config=TrackerConfig(**config)
    )


class TestInitialization:
    """First frame handling."""

    def test_starts_uninitialized(self):
        """A new controller has no points, reference or mask."""
        controller = make_controller(FakeDetector(), FakeTracker())
        assert controller.state is TrackState.UNINITIALIZED
        assert controller.points == []
        assert controller.reference_frame is None
        assert controller.trail_mask is None
        assert controller.last_stats is None

    def test_first_frame_acquires(self):
        """The first frame moves to TRACKING and is returned unannotated."""
        detector = FakeDetector([(10, 10), (20, 20), (30, 5)])
        controller = make_controller(detector, FakeTracker())
        frame = np.full((48, 64, 3), 40, dtype=np.uint8)

        out = controller.advance(frame)

        assert controller.state is TrackState.TRACKING
        assert np.array_equal(out, frame)
        assert out is not frame
        assert len(controller.points) == 3
        assert controller.reference_frame.shape == (48, 64)
        assert controller.trail_mask.shape == frame.shape
        assert not controller.trail_mask.any()
        assert controller.last_stats.event is TrackEvent.ACQUIRED

    def test_detector_receives_config(self):
        """Detection parameters come from the configuration."""
        detector = FakeDetector([(1, 1)])
        controller = make_controller(
            detector, FakeTracker(),
            max_corners=25, quality_level=0.1, min_distance=4.0,
        )
        controller.advance(blank(32, 40))
        assert detector.calls == [((32, 40), 25, 0.1, 4.0)]

    def test_point_count_capped_by_max_corners(self):
        """Extra detections beyond max_corners are ignored."""
        detector = FakeDetector([(i, i) for i in range(10)])
        controller = make_controller(detector, FakeTracker(), max_corners=4)
        controller.advance(blank())
        assert controller.points == [(0.0, 0.0), (1.0, 1.0), (2.0, 2.0), (3.0, 3.0)]

    def test_fewer_points_than_requested(self):
        """Fewer detections than max_corners are accepted as-is."""
        detector = FakeDetector([(5, 6), (7, 8)])
        controller = make_controller(detector, FakeTracker(), max_corners=100)
        controller.advance(blank())
        assert controller.points == [(5.0, 6.0), (7.0, 8.0)]
        assert len(controller.colors) == 2

    def test_grayscale_frames(self):
        """Single-channel frames are supported."""
        detector = FakeDetector([(10, 10)])
        tracker = FakeTracker([((12, 10), True)])
        controller = make_controller(detector, tracker)
        frame = np.zeros((32, 32), dtype=np.uint8)

        controller.advance(frame)
        out = controller.advance(frame)

        assert out.shape == (32, 32)
        assert controller.trail_mask.shape == (32, 32)
        assert controller.points == [(12.0, 10.0)]

    def test_single_channel_3d_frames(self):
        """HxWx1 frames are tracked and returned in the same shape."""
        detector = FakeDetector([(10, 10)])
        tracker = FakeTracker([((14, 10), True)])
        controller = make_controller(detector, tracker)
        frame = np.zeros((32, 32, 1), dtype=np.uint8)

        out1 = controller.advance(frame)
        out2 = controller.advance(frame)

        assert out1.shape == (32, 32, 1)
        assert out2.shape == (32, 32, 1)
        assert controller.reference_frame.shape == (32, 32)
        assert controller.points == [(14.0, 10.0)]
        assert out2[10, 12, 0] > 0

    def test_grayscale_trail_visible_without_blue(self):
        """Trails on grayscale frames do not depend on the blue channel."""
        detector = FakeDetector([(10, 10)])
        tracker = FakeTracker([((20, 10), True)])
        controller = FlowTrailController(
            detector=detector, tracker=tracker,
            config=TrackerConfig(marker_radius=1),
            rng=ZeroBlueRng(),
        )
        frame = np.zeros((32, 32), dtype=np.uint8)

        controller.advance(frame)
        assert controller.colors == [(0, 200, 100)]
        out = controller.advance(frame)

        assert controller.trail_mask[10, 15] > 0
        assert out[10, 15] > 0
        assert out[10, 20] > 0


class TestTracking:
    """Tracking steps."""

    def test_concrete_scenario(self):
        """Acquire two points, lose one, then lose the track entirely."""
        detector = FakeDetector([(10, 10), (20, 20)])
        tracker = FakeTracker(
            [((11, 11), True), ((0, 0), False)],
            None,
        )
        controller = make_controller(detector, tracker)
        frame = blank()

        # Frame 1
        out1 = controller.advance(frame)
        assert np.array_equal(out1, frame)
        assert controller.state is TrackState.TRACKING
        assert controller.points == [(10.0, 10.0), (20.0, 20.0)]
        assert len(controller.colors) == 2
        first_color = controller.colors[0]

        # Frame 2
        controller.advance(frame)
        assert tracker.calls[0] == [(10.0, 10.0), (20.0, 20.0)]
        assert controller.points == [(11.0, 11.0)]
        assert controller.colors == [first_color]
        mask = controller.trail_mask
        assert tuple(int(c) for c in mask[10, 10]) == first_color
        assert tuple(int(c) for c in mask[11, 11]) == first_color
        assert not mask[20, 20].any()
        stats = controller.last_stats
        assert (stats.tracked, stats.lost, stats.total) == (1, 1, 1)

        # Frame 3
        out3 = controller.advance(frame)
        assert controller.state is TrackState.UNINITIALIZED
        assert controller.last_stats.event is TrackEvent.TRACK_LOST
        assert tuple(int(c) for c in out3[10, 10]) == first_color
        assert np.array_equal(out3, mask)

    def test_alignment_invariant(self):
        """Points and colors stay the same length through every step."""
        detector = FakeDetector([(x, 10) for x in range(5, 60, 10)])
        tracker = FakeTracker(
            lambda prior: [((x, y + 1), i % 2 == 0) for i, (x, y) in enumerate(prior)],
            lambda prior: [((x, y + 1), i != 0) for i, (x, y) in enumerate(prior)],
            shift_all(1, 0),
        )
        controller = make_controller(detector, tracker)
        controller.advance(blank())
        for _ in range(3):
            controller.advance(blank())
            assert controller.state is TrackState.TRACKING
            assert len(controller.points) == len(controller.colors)
            assert len(controller.tracked_points) == len(controller.points)
        assert len(controller.points) == 2

    def test_color_stability(self):
        """A surviving point draws every trail segment in its original color."""
        detector = FakeDetector([(10, 10), (10, 40)])
        steps = 5
        tracker = FakeTracker(*[shift_all(3, 0) for _ in range(steps)])
        controller = make_controller(detector, tracker, line_thickness=1)
        controller.advance(blank())
        colors = controller.colors

        for _ in range(steps):
            controller.advance(blank())
            assert controller.colors == colors

        mask = controller.trail_mask
        for k in range(steps + 1):
            assert tuple(int(c) for c in mask[10, 10 + 3 * k]) == colors[0]
            assert tuple(int(c) for c in mask[40, 10 + 3 * k]) == colors[1]

    def test_reference_frame_replaced(self):
        """Each successful step keeps the current frame as the new reference."""
        detector = FakeDetector([(10, 10)])
        tracker = FakeTracker(shift_all(1, 1))
        controller = make_controller(detector, tracker)
        controller.advance(blank())
        second = np.full((64, 64, 3), 90, dtype=np.uint8)
        controller.advance(second)
        assert np.all(controller.reference_frame == 90)

    def test_markers_drawn_on_output(self):
        """The output frame carries a marker at each new location."""
        detector = FakeDetector([(30, 30)])
        tracker = FakeTracker(shift_all(2, 0))
        controller = make_controller(detector, tracker, marker_radius=4)
        controller.advance(blank())
        out = controller.advance(blank())
        # Marker pixel away from the trail line
        assert out[28, 32].any()

    def test_input_frame_not_modified(self):
        """advance() never draws into the caller's frame."""
        detector = FakeDetector([(10, 10)])
        tracker = FakeTracker(shift_all(5, 5))
        controller = make_controller(detector, tracker)
        frame = blank()
        controller.advance(frame)
        controller.advance(frame)
        assert not frame.any()

    def test_tracker_length_mismatch(self):
        """A tracker result not aligned with the prior points is rejected."""
        detector = FakeDetector([(10, 10), (20, 20)])
        tracker = FakeTracker([((11, 11), True)])
        controller = make_controller(detector, tracker)
        controller.advance(blank())
        with pytest.raises(ValueError):
            controller.advance(blank())


class TestRecovery:
    """Track loss and reacquisition."""

    def test_total_loss_then_reacquire(self):
        """After a loss the next frame behaves like the very first one."""
        detector = FakeDetector([(10, 10)], [(30, 30), (40, 40)])
        tracker = FakeTracker(shift_all(2, 0), None)
        controller = make_controller(detector, tracker)
        controller.advance(blank())
        controller.advance(blank())
        lost_frame = controller.advance(blank())

        assert controller.state is TrackState.UNINITIALIZED
        assert lost_frame.any()
        # Mask survives until reacquisition
        assert controller.trail_mask.any()

        frame = np.full((64, 64, 3), 5, dtype=np.uint8)
        out = controller.advance(frame)
        assert np.array_equal(out, frame)
        assert controller.state is TrackState.TRACKING
        assert controller.points == [(30.0, 30.0), (40.0, 40.0)]
        assert controller.last_stats.event is TrackEvent.ACQUIRED
        assert not controller.trail_mask.any()
        assert len(detector.calls) == 2

    def test_no_survivors_treated_as_loss(self):
        """All points invalid in one step resets like a total failure."""
        detector = FakeDetector([(10, 10), (20, 20)], [(5, 5)])
        tracker = FakeTracker([((0, 0), False), ((0, 0), False)])
        controller = make_controller(detector, tracker)
        controller.advance(blank())
        controller.advance(blank())

        assert controller.state is TrackState.UNINITIALIZED
        assert controller.last_stats.event is TrackEvent.TRACK_LOST
        assert controller.last_stats.lost == 2
        assert controller.points == []

        controller.advance(blank())
        assert controller.state is TrackState.TRACKING
        assert controller.points == [(5.0, 5.0)]

    def test_empty_acquisition(self):
        """An empty detection enters TRACKING with no points and reacquires next call."""
        detector = FakeDetector([], [(12, 12)])
        tracker = FakeTracker()
        controller = make_controller(detector, tracker)

        controller.advance(blank())
        assert controller.state is TrackState.TRACKING
        assert controller.points == []
        assert controller.colors == []
        assert controller.last_stats.event is TrackEvent.ACQUISITION_EMPTY

        controller.advance(blank())
        assert tracker.calls == []
        assert len(detector.calls) == 2
        assert controller.points == [(12.0, 12.0)]
        assert controller.last_stats.event is TrackEvent.ACQUIRED

    def test_reset(self):
        """reset() returns to a pristine controller."""
        detector = FakeDetector([(10, 10)])
        controller = make_controller(detector, FakeTracker())
        controller.advance(blank())
        controller.reset()
        assert controller.state is TrackState.UNINITIALIZED
        assert controller.trail_mask is None
        assert controller.frame_count == 0
        assert controller.timer.count == 0


class TestTrailMask:
    """Tests for the trail overlay."""

    def test_composite_saturates(self):
        """Compositing adds with saturation instead of wrapping."""
        mask = TrailMask((8, 8, 3))
        mask.draw_segment((0, 0), (7, 0), (200, 200, 200), thickness=1)
        frame = np.full((8, 8, 3), 100, dtype=np.uint8)
        out = mask.composite(frame)
        assert tuple(out[0, 3]) == (255, 255, 255)
        assert tuple(out[5, 5]) == (100, 100, 100)
        assert mask.segment_count == 1

    def test_grayscale_segment_uses_luminance(self):
        """A color with zero blue still draws on a single-channel mask."""
        mask = TrailMask((8, 8))
        mask.draw_segment((1, 4), (6, 4), (0, 200, 100), 1)
        assert mask.image[4, 3] == round(0.587 * 200 + 0.299 * 100)

    def test_grayscale_black_color_still_drawn(self):
        mask = TrailMask((8, 8))
        mask.draw_segment((1, 4), (6, 4), (0, 0, 0), 1)
        assert mask.image[4, 3] == 1

    def test_like_frame(self):
        """A mask created from a frame matches its shape and dtype."""
        mask = TrailMask.like(np.zeros((10, 20, 3), dtype=np.uint8))
        assert mask.shape == (10, 20, 3)
        assert mask.image.dtype == np.uint8


class TestTiming:
    """The controller feeds its frame timer."""

    def test_timer_counts_advances(self):
        detector = FakeDetector([(10, 10)])
        tracker = FakeTracker(shift_all(1, 0), shift_all(1, 0))
        controller = make_controller(detector, tracker)
        for _ in range(3):
            controller.advance(blank())
        assert controller.timer.count == 3
        assert controller.frame_count == 3
        assert controller.last_stats.frame == 3
