"""
Video output handlers.

- PreviewOutput: Annotated frames with motion trails
- CleanVideoOutput: The input frames, untouched
"""

import cv2
import numpy as np

from flowtrail.core.video import VideoProperties, VideoWriter
from flowtrail.outputs.base import BaseOutput, OutputSpec


class _VideoFileOutput(BaseOutput):
    """Shared writer lifecycle for outputs producing an mp4."""

    extension = "mp4"

    def __init__(self, spec: OutputSpec, input_path: str):
        super().__init__(spec, input_path)
        self.writer: VideoWriter | None = None

    def initialize(self, video_props: dict) -> None:
        props = VideoProperties(
            width=video_props['width'],
            height=video_props['height'],
            fps=video_props['fps'],
        )
        self.writer = VideoWriter(self.output_path, props).open()

    def finalize(self) -> None:
        if self.writer:
            self.writer.close()
            self.writer = None


class PreviewOutput(_VideoFileOutput):
    """
    Outputs the controller's annotated frames.

    Options:
        filename: Output filename (default: input_preview.mp4)
        stats: 'true' to overlay frame number, point count and timing
    """

    suffix = "_preview"

    def __init__(self, spec: OutputSpec, input_path: str):
        super().__init__(spec, input_path)
        self.show_stats = spec.get_bool('stats', False)

    def _draw_stats(self, vis: np.ndarray, frame_num: int, tracking_data: dict) -> np.ndarray:
        stats = tracking_data.get('stats')
        timer = tracking_data.get('timer')

        parts = [f"Frame: {frame_num}"]
        if stats is not None:
            parts.append(f"{stats.state.value} pts={stats.total}")
        if timer is not None:
            parts.append(timer.summary())

        cv2.putText(
            vis, "  ".join(parts),
            (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 255, 255), 2
        )
        return vis

    def process_frame(
        self,
        frame_num: int,
        frame: np.ndarray,
        tracking_data: dict,
    ) -> None:
        if self.writer is None:
            return

        annotated = tracking_data.get('annotated')
        output_frame = frame if annotated is None else annotated
        if self.show_stats:
            output_frame = self._draw_stats(output_frame.copy(), frame_num, tracking_data)

        self.writer.write(output_frame)


class CleanVideoOutput(_VideoFileOutput):
    """
    Outputs the input frames without any overlays.

    Options:
        filename: Output filename (default: input_clean.mp4)
    """

    suffix = "_clean"

    def process_frame(
        self,
        frame_num: int,
        frame: np.ndarray,
        tracking_data: dict,
    ) -> None:
        if self.writer is not None:
            self.writer.write(frame)
