"""CLI entrypoint: load flow files, start their triggers and wait."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence

from pydantic import ValidationError

from m7m import __version__
from m7m.config import RunnerSettings
from m7m.errors import FlowDefinitionError
from m7m.flows.registry import FlowRegistry
from m7m.flows.runner import FlowRunner
from m7m.flows.triggers import TriggerHandle
from m7m.logging import configure_logging

logger = logging.getLogger(__name__)

# How often the main thread wakes up while waiting, so Ctrl-C is noticed.
_JOIN_POLL_SECONDS = 0.5


def _parse_names(value: str | None) -> list[str]:
    if value is None:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="m7m",
        description="Run declarative automation flows defined in YAML files",
    )
    parser.add_argument("--version", action="version", version=f"m7m {__version__}")
    parser.add_argument(
        "files",
        nargs="+",
        metavar="FILE",
        help="Flow definition files (YAML, one flow per document)",
    )
    parser.add_argument(
        "-o",
        "--only",
        default=None,
        help="Comma-separated names of the flows to run (default: all)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override M7M_LOG_LEVEL (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def wait_for(handles: Sequence[TriggerHandle]) -> None:
    """Block until every trigger thread has finished."""

    for handle in handles:
        while handle.is_alive():
            handle.join(_JOIN_POLL_SECONDS)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {"log_level": args.log_level} if args.log_level else {}
    try:
        settings = RunnerSettings(**overrides)
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 1

    configure_logging(settings.log_level, settings.log_format)

    try:
        registry = FlowRegistry.from_paths(args.files)
        runners = [FlowRunner(flow, settings) for flow in registry.select(_parse_names(args.only))]
    except FlowDefinitionError as e:
        logger.error("Could not load flows: %s", e)
        print(f"Could not load flows: {e}", file=sys.stderr)
        return 1

    handles = [h for h in (runner.schedule() for runner in runners) if h is not None]
    if not handles:
        logger.error("No valid flow found in arguments.")
        print("No valid flow found in arguments.", file=sys.stderr)
        return 2

    logger.info("Flows scheduled", extra={"flows": [h.name for h in handles]})
    try:
        wait_for(handles)
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping triggers")
        for handle in handles:
            handle.stop()
        return 130

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
