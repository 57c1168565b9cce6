#!/usr/bin/env python3
"""Programmatic flow run example.

This demonstrates using the flow components directly:

* load settings from `.env`
* load the flows of a YAML file
* run one of them a single time and print what its memory notifiers captured

The trigger declared in the file is ignored; the flow runs exactly once.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from m7m.config import RunnerSettings
from m7m.flows.loader import load_flows
from m7m.flows.runner import FlowRunner, RunOutcome
from m7m.logging import configure_logging


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one flow once (programmatic example).")
    parser.add_argument("file", type=Path, help="Flow definition file")
    parser.add_argument("--name", default=None, help="Flow to run (default: the first one)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = RunnerSettings()
    configure_logging(settings.log_level, "text")

    flows = load_flows(args.file)
    if args.name is not None:
        flows = [f for f in flows if f.name == args.name]
    if not flows:
        print("No matching flow found.")
        return 2

    runner = FlowRunner(flows[0], settings)
    outcome = runner.run_once()

    print(f"Flow {runner.label}: {outcome.value}")
    for message in runner.message_log.messages():
        print(f"  captured: {message}")
    return 0 if outcome is not RunOutcome.FAILED else 1


if __name__ == "__main__":
    raise SystemExit(main())
