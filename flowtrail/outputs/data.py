"""
Data output handlers.

Provides output handlers that produce data files:
- CSVOutput: Per-point tracking data as CSV
"""

import csv

import numpy as np

from flowtrail.outputs.base import BaseOutput, OutputSpec


CSV_COLUMNS = ['frame', 'state', 'event', 'index', 'x', 'y', 'b', 'g', 'r']


class CSVOutput(BaseOutput):
    """
    Outputs the active point set after every frame as CSV.

    Columns: frame, state, event, index, x, y, b, g, r

    Frames with no active points produce a single row with empty
    point columns so state changes remain visible.

    Options:
        filename: Output filename (default: input.csv)
    """

    extension = "csv"

    def __init__(self, spec: OutputSpec, input_path: str):
        super().__init__(spec, input_path)
        self.file = None
        self.writer = None

    def initialize(self, video_props: dict) -> None:
        self.file = open(self.output_path, 'w', newline='')
        self.writer = csv.writer(self.file)
        self.writer.writerow(CSV_COLUMNS)

    def process_frame(
        self,
        frame_num: int,
        frame: np.ndarray,
        tracking_data: dict,
    ) -> None:
        if self.writer is None:
            return

        stats = tracking_data.get('stats')
        state = stats.state.value if stats is not None else ''
        event = stats.event.value if stats is not None else ''
        tracked_points = tracking_data.get('tracked_points') or ()

        if not tracked_points:
            self.writer.writerow([frame_num, state, event, '', '', '', '', '', ''])
            return

        for index, tp in enumerate(tracked_points):
            x, y = tp.point
            b, g, r = tp.color
            self.writer.writerow([
                frame_num, state, event, index, f"{x:.3f}", f"{y:.3f}", b, g, r
            ])

    def finalize(self) -> None:
        if self.file:
            self.file.close()
            self.file = None
            self.writer = None
