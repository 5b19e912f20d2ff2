"""
Registry of output types and the manager that fans frames out to them.
"""

from pathlib import Path
from typing import Type

import numpy as np

from flowtrail.outputs.base import BaseOutput, OutputSpec
from flowtrail.outputs.video import PreviewOutput, CleanVideoOutput
from flowtrail.outputs.data import CSVOutput


OUTPUT_TYPES: dict[str, Type[BaseOutput]] = {
    'preview': PreviewOutput,
    'video': CleanVideoOutput,
    'csv': CSVOutput,
}


def register_output_type(name: str, output_class: Type[BaseOutput]) -> None:
    """Make ``output_class`` available under ``name`` in output specs."""
    OUTPUT_TYPES[name.lower()] = output_class


class OutputManager:
    """
    Owns the outputs requested for one run.

    Example:
        >>> manager = OutputManager("input.mp4")
        >>> manager.add_output("preview=stats=true")
        >>> manager.initialize_all(video_props)
    """

    def __init__(self, input_path: str):
        self.input_path = input_path
        self.outputs: list[BaseOutput] = []

    def add_output(self, spec_string: str) -> BaseOutput:
        """
        Create an output from a specification string.

        Raises:
            ValueError: If the output type is unknown
        """
        spec = OutputSpec(spec_string)
        output_class = OUTPUT_TYPES.get(spec.output_type)
        if output_class is None:
            raise ValueError(
                f"Unknown output type: {spec.output_type}. "
                f"Available: {sorted(OUTPUT_TYPES)}"
            )

        output = output_class(spec, self.input_path)
        self.outputs.append(output)
        return output

    def initialize_all(self, video_props: dict) -> None:
        """
        Initialize every output.

        If one fails, the outputs opened before it are finalized and the
        error is re-raised.
        """
        opened: list[BaseOutput] = []
        try:
            for output in self.outputs:
                output.initialize(video_props)
                opened.append(output)
        except Exception:
            for output in opened:
                output.finalize()
            raise

    def process_frame(
        self,
        frame_num: int,
        frame: np.ndarray,
        tracking_data: dict,
    ) -> None:
        for output in self.outputs:
            output.process_frame(frame_num, frame, tracking_data)

    def finalize_all(self) -> None:
        for output in self.outputs:
            output.finalize()

    def get_output_paths(self) -> list[Path]:
        return [output.output_path for output in self.outputs]

    def __len__(self) -> int:
        return len(self.outputs)
