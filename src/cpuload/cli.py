"""Command-line entry point for cpuload."""

import argparse
import logging
import sys

from cpuload.controller import LoadController
from cpuload.errors import ConfigurationError, MeasurementError
from cpuload.logging_setup import setup_logging
from cpuload.models import (
    DEFAULT_BAR_LENGTH,
    DEFAULT_DURATION_SECONDS,
    DEFAULT_TARGET_PERCENT,
    DEFAULT_UPDATE_INTERVAL,
    RunConfig,
)
from cpuload.renderer import Renderer
from cpuload.sampler import PROC_STAT_PATH, ProcStatSource, PsutilSource, Sampler

log = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INVALID = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="cpuload",
        description="Simulate a target CPU load and monitor it live.",
    )
    ap.add_argument('-t', '--target-load', type=int, default=DEFAULT_TARGET_PERCENT, help='Target CPU load percentage (0-100)')
    ap.add_argument('-d', '--duration', type=int, default=DEFAULT_DURATION_SECONDS, help='Duration of the test in seconds')
    ap.add_argument('-l', '--bar-length', type=int, default=DEFAULT_BAR_LENGTH, help='Length of the progress/load bars in characters')
    ap.add_argument('-i', '--update-interval', type=float, default=DEFAULT_UPDATE_INTERVAL, help='Display update interval in seconds')
    ap.add_argument('--source', choices=['procstat', 'psutil'], default='procstat', help='Where CPU tick counters are read from')
    ap.add_argument('--stat-path', default=PROC_STAT_PATH, help='Path of the stat file for the procstat source')
    ap.add_argument('--tui', action='store_true', default=False, help='Show the Textual dashboard instead of the inline display')
    ap.add_argument('--no-color', action='store_true', default=False, help='Disable ANSI colors in the inline display')
    ap.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], default='WARNING', help='Logging level')
    ap.add_argument('--log-file', default=None, help='Also write DEBUG logs to this rotating file')
    return ap


def config_from_args(args: argparse.Namespace) -> RunConfig:
    return RunConfig(
        target_percent=args.target_load,
        duration_seconds=args.duration,
        bar_length=args.bar_length,
        update_interval=args.update_interval,
    ).validate()


def source_from_args(args: argparse.Namespace) -> ProcStatSource | PsutilSource:
    if args.source == 'psutil':
        return PsutilSource()
    return ProcStatSource(args.stat_path)


def run_inline(config: RunConfig, source, color: bool = True) -> int:
    renderer = Renderer(sys.stdout, color=color)
    controller = LoadController(config, Sampler(source), renderer)
    try:
        controller.run()
    except MeasurementError:
        return EXIT_FAILURE
    finally:
        renderer.show_cursor()
    return EXIT_SUCCESS


def run_tui(config: RunConfig, source) -> int:
    # Textual is only imported when the dashboard is requested
    from cpuload.app import run_dashboard

    result = run_dashboard(config, source)
    if isinstance(result, MeasurementError):
        print(f"Error reading CPU stats: {result}", file=sys.stderr)
        return EXIT_FAILURE
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    """Entry point for cpuload; returns the process exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, args.log_file, tui=args.tui)

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        log.debug("Invalid %s", e.field)
        print(f"Configuration Error ({e.field}): {e}", file=sys.stderr)
        return EXIT_INVALID

    source = source_from_args(args)
    try:
        if args.tui:
            return run_tui(config, source)
        return run_inline(config, source, color=not args.no_color)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
