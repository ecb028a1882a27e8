"""Execution report summary and on-disk storage."""

from __future__ import annotations

import json
import re
from pathlib import Path

from deskflow.logger import get_logger
from deskflow.models import ExecutionReport

log = get_logger(__name__)

REPORT_FILE = "report.json"


def safe_name(name: str) -> str:
    """File-safe form of a flow name: ``"Calc: Add"`` -> ``"calc_add"``."""
    return re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_") or "flow"


def build_summary(report: ExecutionReport) -> str:
    """One-line human summary, e.g. ``"FAILED: 3/5 passed, 1 failed, 1 skipped (first failure at step 4)"``."""
    total = len(report.steps)
    parts = [f"{report.passed_count}/{total} passed"]
    if report.failed_count:
        parts.append(f"{report.failed_count} failed")
    if report.skipped_count:
        parts.append(f"{report.skipped_count} skipped")
    if report.cancelled_count:
        parts.append(f"{report.cancelled_count} cancelled")
    summary = f"{report.result.upper()}: " + ", ".join(parts)
    if report.degraded:
        summary += " (degraded)"
    if report.failed_step is not None:
        summary += f" (first failure at step {report.failed_step})"
    return summary


class ReportWriter:
    """Writes reports to ``<reports_dir>/<name>_<timestamp>/report.json``."""

    def __init__(self, reports_dir: Path) -> None:
        self.reports_dir = Path(reports_dir)

    def save(self, report: ExecutionReport) -> Path:
        stamp = report.started_at.strftime("%Y%m%d_%H%M%S")
        folder = self.reports_dir / f"{safe_name(report.test_name)}_{stamp}"
        folder.mkdir(parents=True, exist_ok=True)
        path = folder / REPORT_FILE
        path.write_text(
            json.dumps(report.model_dump(mode="json", by_alias=True), indent=2),
            encoding="utf-8",
        )
        log.info("report_saved", test_name=report.test_name, path=str(path))
        return path

    def list_reports(self) -> list[Path]:
        """Saved report files, newest first."""
        if not self.reports_dir.exists():
            return []
        return sorted(
            self.reports_dir.glob(f"*/{REPORT_FILE}"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )

    @staticmethod
    def load(path: Path) -> ExecutionReport:
        return ExecutionReport.model_validate_json(Path(path).read_text(encoding="utf-8"))
