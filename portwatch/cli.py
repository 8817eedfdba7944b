"""portwatch: CPU and memory usage of the process listening on a port.

Usage:
    uv run portwatch --port 3000
    uv run portwatch --port 3000 --watch --interval 2
    uv run portwatch --port 3000 --system --insight-cmd "llm -s 'explain this'"
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from portwatch.config import dump_default_config, load_config
from portwatch.dashboard import run_watch
from portwatch.errors import PortwatchError
from portwatch.log import setup_logger
from portwatch.render import MB
from portwatch.resolve import find_pid_by_port
from portwatch.sampler import Sampler
from portwatch.snapshot import CommandInsight, run_snapshot

logger = logging.getLogger(__name__)


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid port: {value!r}") from e
    if not 1 <= port <= 65535:
        raise argparse.ArgumentTypeError(f"port must be between 1 and 65535 (got {port})")
    return port


def _positive_float(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from e
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"interval must be positive (got {value})")
    return seconds


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="portwatch",
        description="Show CPU & memory usage of the process running on a port.",
    )
    parser.add_argument(
        "--port", "-p",
        type=_port,
        help="TCP port the target process listens on",
    )
    parser.add_argument(
        "--watch", "-w", action="store_true",
        help="Watch CPU & memory usage live (q or c to quit)",
    )
    parser.add_argument(
        "--interval", "-i",
        type=_positive_float,
        default=None,
        help="Seconds between refreshes in --watch mode (default: 1)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--print-config", action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument(
        "--system", action="store_true",
        help="Also show a system overview (single-snapshot mode)",
    )
    parser.add_argument(
        "--insight-cmd",
        metavar="CMD",
        default=None,
        help="Pipe the snapshot to CMD on stdin and print its output",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Append debug logs to PATH",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Log debug messages to stderr (single-snapshot mode)",
    )
    return parser


def _fail(message: str) -> int:
    print(f"portwatch: error: {message}", file=sys.stderr)
    return 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.print_config:
        print(dump_default_config(), end="")
        return 0
    if args.port is None:
        parser.error("the following arguments are required: --port/-p")

    config = load_config(args.config)
    log_file = args.log_file or (Path(config["logging"]["file"]) if config["logging"]["file"] else None)
    level = "DEBUG" if args.verbose else str(config["logging"]["level"]).upper()
    setup_logger("portwatch", level, log_file, console=not args.watch)

    try:
        pid = find_pid_by_port(args.port)
        sampler = Sampler(
            pid,
            settle=config["sampling"]["settle_ms"] / 1000.0,
            clamp=config["sampling"]["cpu_clamp"],
        )

        if not args.watch:
            insight = CommandInsight(args.insight_cmd) if args.insight_cmd else None
            run_snapshot(sampler, args.port, show_system=args.system, insight=insight)
            return 0

        interval = args.interval if args.interval is not None else float(config["interval"])
        outcome = run_watch(
            sampler,
            args.port,
            interval=interval,
            memory_scale=config["display"]["memory_scale_mb"] * MB,
            poll_slice=config["display"]["poll_slice_ms"] / 1000.0,
        )
    except PortwatchError as e:
        return _fail(str(e))
    except KeyboardInterrupt:
        return 0

    if outcome.exit_code != 0:
        return _fail(outcome.message)
    print(f"portwatch: {outcome.message} after {outcome.samples} sample(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
