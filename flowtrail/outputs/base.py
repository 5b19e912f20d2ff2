"""
Output specification parsing and the output handler interface.

Outputs are requested on the command line as ``type=key=value:key=value``,
for example ``preview=filename=run1.mp4:stats=true``.
"""

from abc import ABC, abstractmethod
from pathlib import Path

import numpy as np


class OutputSpec:
    """
    A parsed ``type=key=value:...`` output request.

    A token without ``=`` continues the previous value, so paths that
    contain ``:`` survive intact.

    Example:
        >>> spec = OutputSpec("csv=filename=C:/runs/a.csv")
        >>> spec.output_type, spec.get('filename')
        ('csv', 'C:/runs/a.csv')
    """

    def __init__(self, spec_string: str):
        if not spec_string or not spec_string.strip():
            raise ValueError("Empty output specification")

        output_type, _, rest = spec_string.partition('=')
        self.output_type = output_type.strip().lower()
        self.options: dict[str, str] = {}

        key = None
        for token in rest.split(':') if rest else []:
            if '=' in token:
                key, value = token.split('=', 1)
                key = key.strip().lower()
                self.options[key] = value.strip()
            elif key is not None:
                self.options[key] += ':' + token

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.options.get(key.lower(), default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        val = self.get(key)
        if val is None:
            return default
        return val.lower() in ('true', 'yes', '1', 'on')

    def __repr__(self) -> str:
        return f"OutputSpec(type={self.output_type}, options={self.options})"


class BaseOutput(ABC):
    """
    Receives every processed frame of a run.

    Subclasses set ``suffix`` and ``extension`` for the default file name
    (``<input stem><suffix>.<extension>``, overridden by ``filename=``).

    ``tracking_data`` passed to process_frame carries:
        annotated: the frame returned by the controller
        tracked_points: tuple of TrackedPoint after the advance
        stats: AdvanceStats of the advance
        timer: the controller's FrameTimer
    """

    suffix = ""
    extension = ""

    def __init__(self, spec: OutputSpec, input_path: str):
        self.spec = spec
        filename = spec.get('filename')
        if filename:
            self.output_path = Path(filename)
        else:
            stem = Path(input_path).stem
            self.output_path = Path(f"{stem}{self.suffix}.{self.extension}")

    @abstractmethod
    def initialize(self, video_props: dict) -> None:
        """Open files or writers; video_props has 'width', 'height', 'fps'."""

    @abstractmethod
    def process_frame(
        self,
        frame_num: int,
        frame: np.ndarray,
        tracking_data: dict,
    ) -> None:
        """Handle one input frame and its tracking results."""

    @abstractmethod
    def finalize(self) -> None:
        """Release anything initialize() opened. Safe to call twice."""
