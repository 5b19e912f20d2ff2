#!/usr/bin/env python3
"""
Minimal Example: flowtrail API Usage
====================================

Shows the essential API calls without extra boilerplate.
Equivalent to: flowtrail track input.mp4 -n 100 -out preview=stats=true -out csv
"""

import sys

from flowtrail import FlowTrailController, TrackerConfig, TrackEvent
from flowtrail.core.video import VideoReader
from flowtrail.outputs import OutputManager


input_video = sys.argv[1] if len(sys.argv) > 1 else "input.mp4"

config = TrackerConfig(max_corners=100, quality_level=0.3, min_distance=7, seed=0)
controller = FlowTrailController(config=config)

outputs = OutputManager(input_video)
outputs.add_output("preview=stats=true")
outputs.add_output("csv")

with VideoReader(input_video) as reader:
    outputs.initialize_all(reader.properties.to_dict())

    for frame_num, frame in reader:
        annotated = controller.advance(frame)
        stats = controller.last_stats
        if stats.event is TrackEvent.TRACK_LOST:
            print(f"Frame {frame_num}: lost all points, reacquiring")

        outputs.process_frame(frame_num, frame, {
            'annotated': annotated,
            'tracked_points': controller.tracked_points,
            'stats': stats,
            'timer': controller.timer,
        })

outputs.finalize_all()
print("Outputs:", outputs.get_output_paths())
print(controller.timer.summary())
