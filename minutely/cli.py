"""Command line entry point for the minutely scheduler."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from .config import DriftPolicy, MinutelyConfig, SchedulerConfig
from .config_loader import load_config, parse_drift_policy
from .logging_setup import setup_logging
from .services import (
    AsyncioTimerFacility,
    DispatchReport,
    MinuteScheduler,
    milliseconds_until_next_minute,
    next_minute_boundary,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run callbacks on every wall-clock minute")
    sub = parser.add_subparsers(dest="command", required=True)

    boundary = sub.add_parser(
        "next-boundary",
        help="Print the delay until the next minute boundary",
    )
    boundary.add_argument(
        "--at",
        type=datetime.fromisoformat,
        default=None,
        help="ISO timestamp to compute from instead of the current time",
    )

    run = sub.add_parser(
        "run",
        help="Run a minute scheduler and print one JSON line per tick",
    )
    run.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to the YAML configuration file",
    )
    run.add_argument(
        "--ticks",
        type=int,
        default=None,
        help="Exit after this many ticks (default: run until interrupted)",
    )
    run.add_argument(
        "--drift-policy",
        choices=[policy.value for policy in DriftPolicy],
        default=None,
        help="Override the configured drift policy",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "next-boundary":
        return _command_next_boundary(args)
    if args.command == "run":
        return _command_run(args)

    parser.error("unknown command")
    return 1


def _command_next_boundary(args: argparse.Namespace) -> int:
    now = args.at or datetime.now()
    output = {
        "now": now.isoformat(),
        "milliseconds": milliseconds_until_next_minute(now),
        "boundary": next_minute_boundary(now).isoformat(),
    }
    print(json.dumps(output))
    return 0


def _command_run(args: argparse.Namespace) -> int:
    config = load_config(args.config) if args.config else MinutelyConfig()
    if args.drift_policy:
        config.scheduler.drift_policy = parse_drift_policy(args.drift_policy)
    if args.ticks is not None and args.ticks < 1:
        print("--ticks must be at least 1", file=sys.stderr)
        return 2

    setup_logging(config.logging)
    try:
        asyncio.run(_run_scheduler(config.scheduler, args.ticks))
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        print("Interrupted, stopping scheduler", file=sys.stderr)
    return 0


async def _run_scheduler(config: SchedulerConfig, ticks: Optional[int]) -> None:
    finished = asyncio.Event()
    timers = AsyncioTimerFacility()

    def print_report(report: DispatchReport) -> None:
        print(
            json.dumps(
                {
                    "tick_time": report.tick_time.isoformat(),
                    "fired_at": timers.now().isoformat(),
                    "callbacks": len(report.results),
                    "failed": report.failed,
                }
            ),
            flush=True,
        )

    with MinuteScheduler(timers, config, report_sink=print_report) as scheduler:

        def count_tick() -> None:
            if ticks is not None and scheduler.tick_count + 1 >= ticks:
                scheduler.stop()
                finished.set()

        scheduler.register_callback(count_tick)
        if not scheduler.running:
            scheduler.start()
        await finished.wait()
