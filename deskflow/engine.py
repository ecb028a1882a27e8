"""DeskFlowEngine: main entry point for desktop flow automation."""

from __future__ import annotations

import platform
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from deskflow.actionability import ActionabilityChecker
from deskflow.actions import ActionContext
from deskflow.assertions import AssertionEvaluator
from deskflow.cache import SelectorCache
from deskflow.config import EngineConfig
from deskflow.driver import AccessibilityDriver
from deskflow.executor import ActionExecutor
from deskflow.flow import StepCallback, StepOrchestrator
from deskflow.hints import DomainHintStore
from deskflow.logger import get_logger
from deskflow.models import ExecutionReport, Flow
from deskflow.polling import CancelToken
from deskflow.report import ReportWriter, build_summary
from deskflow.resolver import SelectorResolver
from deskflow.validator import FlowValidator, ValidationResult

log = get_logger(__name__)


class DeskFlowEngine:
    """Wires the pipeline around one accessibility driver.

    The selector cache and the domain hint store are created here once and
    shared by every run of this engine.
    """

    def __init__(
        self,
        driver: AccessibilityDriver,
        config: EngineConfig | None = None,
    ) -> None:
        self.driver = driver
        self.config = config or EngineConfig()
        timing = self.config.timing

        # Shared state
        self.cache = SelectorCache(ttl_ms=timing.selector_cache_ttl_ms)
        self.hints = DomainHintStore(self.config.hints_path)

        # Pipeline
        self.resolver = SelectorResolver(
            driver,
            cache=self.cache,
            poll_interval_ms=timing.selector_poll_interval_ms,
            strict=self.config.strict_selectors,
        )
        self.evaluator = AssertionEvaluator(
            driver,
            poll_interval_ms=timing.selector_poll_interval_ms,
            not_exists_grace_ms=self.config.not_exists_grace_ms,
        )
        self.executor = ActionExecutor(
            ActionContext(
                driver=driver,
                resolver=self.resolver,
                evaluator=self.evaluator,
                timing=timing,
                hints=self.hints,
                screenshots_dir=Path(self.config.screenshots_dir),
            )
        )
        self.orchestrator = StepOrchestrator(
            self.resolver,
            self.executor,
            self.evaluator,
            ActionabilityChecker(driver, timing),
            timing,
        )
        self.validator = FlowValidator()
        self.reports = ReportWriter(self.config.reports_dir)

    # --- Lifecycle ---

    async def __aenter__(self) -> DeskFlowEngine:
        log.info("engine_started", driver=self.driver.name)
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Flush learned hints and stop the background writer."""
        self.hints.close()
        self.cache.clear()
        log.info("engine_stopped")

    # --- Execution ---

    def validate(self, flow: Flow) -> ValidationResult:
        return self.validator.validate(flow)

    async def run(
        self,
        flow: Flow,
        cancel: CancelToken | None = None,
        on_step_complete: StepCallback | None = None,
        save_report: bool = False,
    ) -> ExecutionReport:
        """Validate and execute a flow.

        An invalid flow, or one targeting a process outside
        ``config.allowed_processes``, is not executed; the report has result
        ``error`` and says why in its summary.
        """
        validation = self.validate(flow)
        blocked = self._disallowed_processes(flow)
        if not validation.is_valid:
            report = self._rejected(flow, validation)
        elif blocked:
            report = self._blocked(flow, blocked)
        else:
            report = await self.orchestrator.run(flow, cancel, on_step_complete)
        self._stamp(report)

        if save_report:
            self.reports.save(report)
        return report

    # --- Private helpers ---

    def _disallowed_processes(self, flow: Flow) -> list[str]:
        """Target processes the allowlist rejects. Empty allowlist allows all."""
        allowed = self.config.allowed_processes
        if not allowed or not flow.target_app:
            return []
        targets = [p.strip() for p in flow.target_app.split(",") if p.strip()]
        if any(process_allowed(t, allowed) for t in targets):
            return []
        return targets

    def _stamp(self, report: ExecutionReport) -> None:
        report.backend_used = self.driver.name
        report.backend_version = self.driver.version
        report.machine_name = platform.node()
        report.os_version = platform.platform()

    @staticmethod
    def _rejected(flow: Flow, validation: ValidationResult) -> ExecutionReport:
        now = datetime.now(tz=timezone.utc)
        report = ExecutionReport(
            test_name=flow.test_name,
            result="error",
            started_at=now,
            finished_at=now,
        )
        report.summary = (
            f"{build_summary(report)}; flow validation failed: " + "; ".join(validation.errors)
        )
        log.warning("flow_rejected", test_name=flow.test_name, errors=len(validation.errors))
        return report

    def _blocked(self, flow: Flow, targets: list[str]) -> ExecutionReport:
        now = datetime.now(tz=timezone.utc)
        allowed = ", ".join(self.config.allowed_processes)
        report = ExecutionReport(
            test_name=flow.test_name,
            result="error",
            started_at=now,
            finished_at=now,
            summary=f"Blocked by process allowlist: '{flow.target_app}' not in [{allowed}]",
        )
        log.warning("flow_blocked", test_name=flow.test_name, targets=targets, allowed=allowed)
        return report


def process_allowed(process: str, allowed: list[str]) -> bool:
    """Case-insensitive match; a trailing ``*`` in an entry matches a prefix."""
    name = process.strip().lower().removesuffix(".exe")
    for entry in allowed:
        pattern = entry.strip().lower()
        if pattern.endswith("*"):
            if name.startswith(pattern[:-1]):
                return True
        elif name == pattern.removesuffix(".exe"):
            return True
    return False
