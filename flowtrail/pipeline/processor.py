"""
Drives a FlowTrailController over a video and feeds the outputs.
"""

import logging
from pathlib import Path
from typing import Callable

import numpy as np

from flowtrail.core.config import TrackerConfig
from flowtrail.core.video import VideoReader
from flowtrail.outputs.manager import OutputManager
from flowtrail.tracking.lifecycle import AdvanceStats, FlowTrailController

logger = logging.getLogger(__name__)


class FlowTrailProcessor:
    """
    Runs frames through a controller and forwards each result to outputs.

    Usable as a context manager; leaving the block finalizes the outputs.
    """

    def __init__(
        self,
        controller: FlowTrailController | None = None,
        outputs: OutputManager | None = None,
    ):
        self.controller = controller or FlowTrailController()
        self.outputs = outputs
        self.stats: list[AdvanceStats] = []

    def open(self, video_props: dict) -> None:
        """Open every output for a video of the given size and rate."""
        if self.outputs:
            self.outputs.initialize_all(video_props)

    def process_frame(self, frame_num: int, frame: np.ndarray) -> np.ndarray:
        """Advance the controller one frame and return the annotated frame."""
        annotated = self.controller.advance(frame)
        stats = self.controller.last_stats
        self.stats.append(stats)

        if self.outputs:
            self.outputs.process_frame(frame_num, frame, {
                'annotated': annotated,
                'tracked_points': self.controller.tracked_points,
                'stats': stats,
                'timer': self.controller.timer,
            })

        return annotated

    def close(self) -> list[Path]:
        """Finalize outputs and return the paths they wrote."""
        if not self.outputs:
            return []
        self.outputs.finalize_all()
        return self.outputs.get_output_paths()

    def __enter__(self) -> "FlowTrailProcessor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


def run_video(
    input_path: str | Path,
    config: TrackerConfig | None = None,
    output_specs: list[str] | None = None,
    first_frame: int = 1,
    last_frame: int | None = None,
    on_frame: Callable[[int, np.ndarray, AdvanceStats], bool | None] | None = None,
) -> FlowTrailProcessor:
    """
    Track points through a video file.

    Args:
        input_path: Video to read
        config: Tracker configuration
        output_specs: Output specification strings (see OutputSpec)
        first_frame: First frame to process (1-indexed)
        last_frame: Last frame to process (None = end of video)
        on_frame: Called with (frame_num, annotated, stats) after each
            frame; returning False stops processing

    Returns:
        The closed processor, holding per-frame stats
    """
    outputs = None
    if output_specs:
        outputs = OutputManager(str(input_path))
        for spec in output_specs:
            outputs.add_output(spec)

    processor = FlowTrailProcessor(
        controller=FlowTrailController(config=config),
        outputs=outputs,
    )

    with VideoReader(input_path, first_frame, last_frame) as reader, processor:
        processor.open(reader.properties.to_dict())
        for frame_num, frame in reader:
            annotated = processor.process_frame(frame_num, frame)
            if on_frame is not None and on_frame(
                frame_num, annotated, processor.controller.last_stats
            ) is False:
                logger.info("Stopped at frame %d", frame_num)
                break

    return processor
