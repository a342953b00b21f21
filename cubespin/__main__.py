"""Replay a recorded touch trace and print the orientation of every frame."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from cubespin.app.app_settings_manager import AppSettingsManager
from cubespin.app.logging_setup import LogSystem, apply_logging_policy
from cubespin.controllers.orientation_controller import DecayMode, OrientationController
from cubespin.replay import DEFAULT_FRAME_INTERVAL, TraceError, format_record, load_trace, replay
from cubespin.utils.json_loader import SettingsError

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="cubespin",
        description="Replay a JSON touch trace through the orientation controller.",
    )
    parser.add_argument(
        "trace",
        type=Path,
        help="Trace file ({\"events\": [...]})",
    )
    parser.add_argument(
        "--frame-interval",
        type=float,
        default=DEFAULT_FRAME_INTERVAL,
        help="Seconds between rendered frames",
    )
    parser.add_argument(
        "--decay-mode",
        choices=[m.value for m in DecayMode],
        default=None,
        help="Override the configured fling decay mode",
    )
    parser.add_argument(
        "--damping",
        type=float,
        default=None,
        help="Override the configured fling damping (0..1)",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help="Treat an unreadable trace as empty instead of failing",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logs = LogSystem("cubespin")
    try:
        logs.enable_crash_log()
        settings = AppSettingsManager()
        apply_logging_policy(logs, settings)

        overrides = {}
        if args.decay_mode is not None:
            overrides["decay_mode"] = DecayMode(args.decay_mode)
        if args.damping is not None:
            overrides["fling_damping"] = args.damping
        controller = OrientationController.from_settings(settings, **overrides)

        try:
            steps = load_trace(args.trace, strict=not args.lenient)
        except (SettingsError, TraceError) as e:
            logger.error("Cannot replay %s: %s", args.trace, e)
            print(f"[ERROR] {e}", file=sys.stderr)
            return 1

        for record in replay(controller, steps, frame_interval=args.frame_interval):
            print(format_record(record))
        logger.info("Replay finished: %s", args.trace)
        return 0
    finally:
        logs.stop()


if __name__ == "__main__":
    sys.exit(main())
