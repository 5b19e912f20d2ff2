"""
flowtrail Command Line Interface

Usage:
    flowtrail <command> [options]

Commands:
    track       Track points through a video and draw their trails
    config      Write a default configuration file
    version     Show version information

Examples:
    flowtrail track input.mp4 -out preview -out csv
    flowtrail track input.mp4 -c tracker.json -n 50 --display
    flowtrail config --create tracker.json
"""

import sys
import argparse
import logging

from flowtrail import __version__


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog='flowtrail',
        description='Optical flow point tracking with motion trails',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        '-V', '--version',
        action='version',
        version=f'flowtrail {__version__}',
    )
    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase log verbosity (-v info, -vv debug)',
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # Track command
    track_parser = subparsers.add_parser(
        'track',
        help='Track points through a video and draw their trails',
    )
    track_parser.add_argument('input', help='Input video file')
    track_parser.add_argument(
        '-out', '--output',
        action='append',
        dest='outputs',
        metavar='SPEC',
        help='Output specification (can be used multiple times)',
    )
    track_parser.add_argument(
        '-c', '--config',
        default=None,
        help='Tracker configuration file (JSON)',
    )
    track_parser.add_argument(
        '-n', '--max-corners',
        type=int,
        default=None,
        help='Maximum number of points to acquire (default: 100)',
    )
    track_parser.add_argument(
        '--quality',
        type=float,
        default=None,
        dest='quality_level',
        help='Corner quality threshold (default: 0.3)',
    )
    track_parser.add_argument(
        '--min-distance',
        type=float,
        default=None,
        help='Minimum distance between acquired points (default: 7)',
    )
    track_parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Seed for trail colors',
    )
    track_parser.add_argument(
        '-fs', '--first-frame',
        type=int,
        default=1,
        help='First frame to process (default: 1)',
    )
    track_parser.add_argument(
        '-fe', '--frame-end',
        type=int,
        default=None,
        help='Last frame to process (default: end of video)',
    )
    track_parser.add_argument(
        '--display',
        action='store_true',
        help='Show annotated frames in a window (press q to stop)',
    )
    track_parser.add_argument(
        '-q', '--quiet',
        action='store_true',
        help='Suppress progress output',
    )

    # Config command
    config_parser = subparsers.add_parser(
        'config',
        help='Write a default configuration file',
    )
    config_parser.add_argument(
        '--create',
        metavar='PATH',
        default='flowtrail.json',
        help='Output path (default: flowtrail.json)',
    )

    subparsers.add_parser('version', help='Show version information')

    return parser


def setup_logging(verbosity: int) -> None:
    """Configure root logging from the -v count."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def resolve_config(args):
    """Merge config file, environment and command-line overrides."""
    from flowtrail.core.config import TrackerConfig, apply_env_config, load_config

    config = load_config(args.config) if args.config else TrackerConfig()
    config = apply_env_config(config)
    return config.with_overrides(
        max_corners=args.max_corners,
        quality_level=args.quality_level,
        min_distance=args.min_distance,
        seed=args.seed,
    )


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == 'track':
        return run_track(args)
    elif args.command == 'config':
        return run_config(args)
    elif args.command == 'version':
        print(f"flowtrail {__version__}")
        return 0
    else:
        parser.print_help()
        return 1


def run_track(args):
    """Run point tracking command."""
    from flowtrail.pipeline import run_video
    from flowtrail.tracking import TrackEvent

    try:
        config = resolve_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"Tracking points in {args.input}")

    display = None
    if args.display:
        import cv2
        display = cv2

    def on_frame(frame_num, annotated, stats):
        if not args.quiet:
            marker = " (lost)" if stats.event is TrackEvent.TRACK_LOST else ""
            print(f"\rFrame {frame_num}: {stats.total} points{marker}   ", end='')
        if display is not None:
            display.imshow('flowtrail', annotated)
            if display.waitKey(1) & 0xFF == ord('q'):
                return False
        return True

    try:
        processor = run_video(
            args.input,
            config=config,
            output_specs=args.outputs,
            first_frame=args.first_frame,
            last_frame=args.frame_end,
            on_frame=on_frame,
        )
    except (FileNotFoundError, RuntimeError, ValueError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    finally:
        if display is not None:
            display.destroyAllWindows()

    if not args.quiet:
        lost = sum(1 for s in processor.stats if s.event is TrackEvent.TRACK_LOST)
        print(f"\nDone! {len(processor.stats)} frames, {lost} track losses")
        if processor.outputs:
            for path in processor.outputs.get_output_paths():
                print(f"  wrote {path}")
    return 0


def run_config(args):
    """Write a default configuration file."""
    from flowtrail.core.config import TrackerConfig

    TrackerConfig().save(args.create)
    print(f"Created configuration: {args.create}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
