"""
Frame sources and sinks backed by OpenCV.

VideoReader yields ``(frame_num, frame)`` pairs over a 1-indexed range;
VideoWriter accepts BGR or grayscale frames.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import cv2
import numpy as np


@dataclass
class VideoProperties:
    """Frame size, rate and length of a clip."""
    width: int
    height: int
    fps: float
    frame_count: int = 0

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "frame_count": self.frame_count,
        }


class VideoReader:
    """
    Reads frames ``first_frame..last_frame`` from a video file.

    Example:
        with VideoReader("input.mp4", first_frame=10) as reader:
            for frame_num, frame in reader:
                controller.advance(frame)
    """

    def __init__(
        self,
        path: str | Path,
        first_frame: int = 1,
        last_frame: int | None = None,
    ):
        if first_frame < 1:
            raise ValueError(f"first_frame must be >= 1, got {first_frame}")
        self.path = Path(path)
        self.first_frame = first_frame
        self.last_frame = last_frame
        self._cap: cv2.VideoCapture | None = None
        self._props: VideoProperties | None = None

    @property
    def properties(self) -> VideoProperties:
        if self._props is None:
            raise RuntimeError("Video not opened. Call open() first.")
        return self._props

    def open(self) -> "VideoReader":
        if not self.path.exists():
            raise FileNotFoundError(f"Video file not found: {self.path}")

        cap = cv2.VideoCapture(str(self.path))
        if not cap.isOpened():
            raise RuntimeError(f"Failed to open video: {self.path}")

        self._cap = cap
        self._props = VideoProperties(
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=cap.get(cv2.CAP_PROP_FPS),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT)),
        )
        if self.first_frame > 1:
            cap.set(cv2.CAP_PROP_POS_FRAMES, self.first_frame - 1)
        return self

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __iter__(self) -> Iterator[tuple[int, np.ndarray]]:
        if self._cap is None:
            self.open()

        frame_num = self.first_frame
        # frame_count can be 0 for streams; read until the capture runs dry
        while self.last_frame is None or frame_num <= self.last_frame:
            ok, frame = self._cap.read()
            if not ok:
                return
            yield frame_num, frame
            frame_num += 1

    def __enter__(self) -> "VideoReader":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


class VideoWriter:
    """Writes frames to a video file with cv2.VideoWriter."""

    def __init__(self, path: str | Path, props: VideoProperties, fourcc: str = "mp4v"):
        self.path = Path(path)
        self.props = props
        self.fourcc = fourcc
        self._writer: cv2.VideoWriter | None = None

    def open(self) -> "VideoWriter":
        writer = cv2.VideoWriter(
            str(self.path),
            cv2.VideoWriter_fourcc(*self.fourcc),
            self.props.fps or 30.0,
            (self.props.width, self.props.height),
        )
        if not writer.isOpened():
            raise RuntimeError(f"Failed to open video writer: {self.path}")
        self._writer = writer
        return self

    def write(self, frame: np.ndarray) -> None:
        if self._writer is None:
            raise RuntimeError("Writer not opened. Call open() first.")
        if frame.ndim == 2 or frame.shape[2] == 1:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        self._writer.write(frame)

    def close(self) -> None:
        if self._writer is not None:
            self._writer.release()
            self._writer = None
