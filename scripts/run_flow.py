#!/usr/bin/env python3
"""Flow runner: execute a .flow.json against the live desktop."""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from deskflow import CancelToken, DeskFlowEngine, EngineConfig, FlowLoader, configure_logging
from deskflow.drivers.uia import UIADriver
from deskflow.models import StepReport

ICONS = {"passed": "✓", "failed": "✗", "error": "!", "skipped": "-", "cancelled": "x"}


def print_progress(number: int, total: int, report: StepReport) -> None:
    icon = ICONS.get(report.status, "?")
    label = report.description or report.action.value
    print(f"  {icon} [{number}/{total}] {label} ({report.elapsed_ms}ms)")
    if report.error:
        print(f"      Error: {report.error}")


async def run(flow_path: Path, save: bool, as_json: bool) -> int:
    config = EngineConfig.from_env()
    configure_logging(config.log_level, config.log_format)
    flow = FlowLoader.load_path(flow_path)

    cancel = CancelToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel.cancel)
    except NotImplementedError:
        # Windows event loops have no signal handlers; Ctrl+C interrupts instead.
        pass

    driver = UIADriver()
    try:
        async with DeskFlowEngine(driver, config) as engine:
            validation = engine.validate(flow)
            for warning in validation.warnings:
                print(f"  warning: {warning}")

            print(f"\n▶ Running flow: {flow.test_name} ({len(flow.steps)} steps)\n")
            report = await engine.run(
                flow, cancel=cancel, on_step_complete=print_progress, save_report=save
            )
    finally:
        driver.close()

    if as_json:
        print(json.dumps(report.model_dump(mode="json", by_alias=True), indent=2))
    else:
        print(f"\n{'=' * 60}")
        print(f"  {report.summary}")
        print(f"  Duration: {report.total_time_ms}ms")
        print(f"{'=' * 60}")
    return 0 if report.result == "passed" else 1


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a DeskFlow .flow.json file")
    parser.add_argument("flow", type=Path, help="Path to a .flow.json file")
    parser.add_argument("--save", action="store_true", help="Write the report to the reports dir")
    parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    args = parser.parse_args()

    if not args.flow.exists():
        print(f"Flow file not found: {args.flow}")
        sys.exit(2)
    sys.exit(asyncio.run(run(args.flow, args.save, args.json)))


if __name__ == "__main__":
    main()
