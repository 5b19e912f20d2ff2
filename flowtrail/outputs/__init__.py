"""
Output handlers module.

- PreviewOutput: Annotated video with motion trails
- CleanVideoOutput: Input frames without overlays
- CSVOutput: Active point set per frame as CSV

Example:
    >>> from flowtrail.outputs import OutputManager
    >>> manager = OutputManager("input.mp4")
    >>> manager.add_output("preview=filename=preview.mp4:stats=true")
    >>> manager.add_output("csv")
"""

from flowtrail.outputs.base import OutputSpec, BaseOutput
from flowtrail.outputs.video import PreviewOutput, CleanVideoOutput
from flowtrail.outputs.data import CSVOutput
from flowtrail.outputs.manager import OutputManager, register_output_type

__all__ = [
    "OutputSpec",
    "BaseOutput",
    "PreviewOutput",
    "CleanVideoOutput",
    "CSVOutput",
    "OutputManager",
    "register_output_type",
]
