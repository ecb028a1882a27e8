"""Flow loader and step orchestrator."""

from __future__ import annotations

import asyncio
import inspect
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from deskflow.actionability import ActionabilityChecker
from deskflow.assertions import AssertionEvaluator
from deskflow.config import TimingSettings
from deskflow.exceptions import FlowCancelledError, FlowNotFoundError, FlowValidationError
from deskflow.executor import ActionExecutor
from deskflow.logger import get_logger
from deskflow.models import (
    ASSERTION_ACTIONS,
    ExecutionReport,
    Flow,
    FlowStep,
    StepAction,
    StepReport,
    WindowInfo,
)
from deskflow.polling import CancelToken, sleep
from deskflow.report import build_summary, safe_name
from deskflow.resolver import SelectorResolver

log = get_logger(__name__)

StepCallback = Callable[[int, int, StepReport], "Awaitable[None] | None"]

FLOW_SUFFIX = ".flow.json"


class FlowLoader:
    """Loads and validates .flow.json files."""

    def __init__(self, flows_dir: Path) -> None:
        self.flows_dir = Path(flows_dir)
        self._cache: dict[str, Flow] = {}

    def load(self, flow_id: str) -> Flow:
        """Load a flow by ID, using cache if available."""
        if flow_id in self._cache:
            return self._cache[flow_id]
        return self.reload(flow_id)

    def reload(self, flow_id: str) -> Flow:
        """Load a flow from disk, bypassing cache."""
        path = self._find_flow_file(flow_id)
        flow = self.load_path(path, flow_id)
        self._cache[flow_id] = flow
        log.info("flow_loaded", flow_id=flow_id, path=str(path))
        return flow

    @staticmethod
    def load_path(path: Path, flow_id: str | None = None) -> Flow:
        """Parse one flow file. Unknown actions are rejected here."""
        flow_id = flow_id or Path(path).name.removesuffix(FLOW_SUFFIX)
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
            return Flow.model_validate(data)
        except FileNotFoundError as exc:
            raise FlowNotFoundError(flow_id) from exc
        except json.JSONDecodeError as exc:
            raise FlowValidationError(flow_id, f"Invalid JSON: {exc}") from exc
        except Exception as exc:
            raise FlowValidationError(flow_id, str(exc)) from exc

    def load_all(self) -> dict[str, Flow]:
        """Load all flows from the flows directory."""
        flows: dict[str, Flow] = {}
        for path in sorted(self.flows_dir.rglob(f"*{FLOW_SUFFIX}")):
            flow_id = path.name.removesuffix(FLOW_SUFFIX)
            try:
                flow = self.load_path(path, flow_id)
            except FlowValidationError as exc:
                log.warning("flow_load_failed", path=str(path), error=str(exc))
                continue
            flows[flow_id] = flow
            self._cache[flow_id] = flow
        return flows

    def save(self, flow: Flow, flow_id: str | None = None) -> Path:
        """Write a flow as camelCase JSON."""
        flow_id = flow_id or safe_name(flow.test_name)
        self.flows_dir.mkdir(parents=True, exist_ok=True)
        path = self.flows_dir / f"{flow_id}{FLOW_SUFFIX}"
        path.write_text(
            flow.model_dump_json(indent=2, by_alias=True, exclude_none=True),
            encoding="utf-8",
        )
        self._cache[flow_id] = flow
        log.info("flow_saved", flow_id=flow_id, path=str(path))
        return path

    def _find_flow_file(self, flow_id: str) -> Path:
        """Find the flow file by ID."""
        direct = self.flows_dir / f"{flow_id}{FLOW_SUFFIX}"
        if direct.exists():
            return direct
        for path in self.flows_dir.rglob(f"{flow_id}{FLOW_SUFFIX}"):
            return path
        raise FlowNotFoundError(flow_id)


@dataclass
class _WindowContext:
    """Window identity carried from one step to the next."""

    app: str | None = None
    title: str | None = None
    # First window resolved while the flow's target lock is on
    locked: WindowInfo | None = None


# Actions that never need a target window.
_WINDOWLESS = {StepAction.LAUNCH, StepAction.NAVIGATE, StepAction.SCREENSHOT}


def needs_window(step: FlowStep) -> bool:
    if step.action in _WINDOWLESS:
        return False
    if step.action == StepAction.WAIT and not step.selector:
        return False
    return True


class StepOrchestrator:
    """Executes a flow step by step and folds the outcomes into a report.

    Steps run strictly in order. A failed step is recorded and the flow goes
    on, unless the step is required. Cancellation stops the run after one
    ``cancelled`` entry; running out of flow budget marks the remaining steps
    skipped.
    """

    def __init__(
        self,
        resolver: SelectorResolver,
        executor: ActionExecutor,
        evaluator: AssertionEvaluator,
        actionability: ActionabilityChecker,
        timing: TimingSettings | None = None,
    ) -> None:
        self.resolver = resolver
        self.executor = executor
        self.evaluator = evaluator
        self.actionability = actionability
        self.timing = timing or TimingSettings()

    async def run(
        self,
        flow: Flow,
        cancel: CancelToken | None = None,
        on_step_complete: StepCallback | None = None,
    ) -> ExecutionReport:
        """Execute all steps in a flow."""
        started_at = datetime.now(tz=timezone.utc)
        start = time.monotonic()
        steps = flow.ordered_steps()
        total = len(steps)
        budget_ms = flow.timeout_seconds * 1000 if flow.timeout_seconds > 0 else None

        log.info("flow_started", test_name=flow.test_name, steps=total)

        reports: list[StepReport] = []
        context = _WindowContext()
        cancelled = False
        over_budget = False

        for index, step in enumerate(steps):
            if cancel is not None and cancel.cancelled:
                report = _entry(step, "cancelled", error=cancel.reason or "Execution cancelled")
                reports.append(report)
                await self._notify(on_step_complete, index + 1, total, report)
                cancelled = True
                break

            remaining_ms = None
            if budget_ms is not None:
                remaining_ms = budget_ms - (time.monotonic() - start) * 1000
                if remaining_ms <= 0:
                    over_budget = True
                    await self._skip_rest(
                        steps, index, _budget_reason(flow), reports, on_step_complete
                    )
                    break

            step_start = time.monotonic()
            try:
                report = await asyncio.wait_for(
                    self._run_step(step, flow, context, cancel),
                    timeout=remaining_ms / 1000 if remaining_ms is not None else None,
                )
            except asyncio.TimeoutError:
                over_budget = True
                report = _entry(
                    step,
                    "error",
                    error=f"Flow timeout of {flow.timeout_seconds}s exceeded",
                    elapsed_ms=_ms_since(step_start),
                )
                reports.append(report)
                await self._notify(on_step_complete, index + 1, total, report)
                await self._skip_rest(
                    steps, index + 1, _budget_reason(flow), reports, on_step_complete
                )
                break

            reports.append(report)
            log.info(
                "step_completed",
                step=step.order,
                action=step.action.value,
                status=report.status,
                elapsed_ms=report.elapsed_ms,
            )
            await self._notify(on_step_complete, index + 1, total, report)

            if report.status == "cancelled":
                cancelled = True
                break
            if report.status in ("failed", "error") and step.required:
                log.warning("required_step_failed", step=step.order, error=report.error)
                await self._skip_rest(
                    steps,
                    index + 1,
                    f"Skipped: required step {step.order} failed",
                    reports,
                    on_step_complete,
                )
                break

            if index < total - 1:
                delay_ms = step.delay_after_ms or self.timing.inter_step_delay_ms
                try:
                    await sleep(delay_ms, cancel)
                except FlowCancelledError:
                    continue

        report = _build_report(flow, reports, started_at, start, cancelled, over_budget)
        log.info(
            "flow_finished",
            test_name=flow.test_name,
            result=report.result,
            degraded=report.degraded,
            total_time_ms=report.total_time_ms,
        )
        return report

    async def _run_step(
        self,
        step: FlowStep,
        flow: Flow,
        context: _WindowContext,
        cancel: CancelToken | None,
    ) -> StepReport:
        """Run one step. Every exception is converted to a report entry."""
        start = time.monotonic()
        report = _entry(step, "passed")
        try:
            window = None
            if needs_window(step):
                app = step.app or flow.target_app
                title = step.window_title or flow.window_title
                if not app and not title:
                    app, title = context.app, context.title

                timeout_ms = max(step.timeout_ms, self.timing.window_find_timeout_ms)
                window = await self.resolver.find_window(
                    app,
                    title,
                    timeout_ms,
                    self.timing.window_find_poll_interval_ms,
                    cancel,
                )
                if window is None and step.action != StepAction.ASSERT_NOT_EXISTS:
                    report.status = "failed"
                    report.error = (
                        f"Target window not found after {timeout_ms}ms "
                        f"(app='{app or ''}', title='{title or ''}')"
                    )
                    return _finish(report, start)
                if window is not None:
                    if flow.target_lock:
                        violation = _check_target_lock(context, window)
                        if violation is not None:
                            log.error(
                                "target_lock_violation",
                                test_name=flow.test_name,
                                step=step.order,
                                violation=violation,
                            )
                            report.status = "failed"
                            report.error = f"Target lock violation: {violation}"
                            return _finish(report, start)
                    if app:
                        context.app = app
                    if window.title:
                        context.title = window.title

            match = None
            if step.selector and not step.is_assertion and window is not None:
                match = await self.resolver.resolve(
                    window, step.selector, step.timeout_ms, step.exact, cancel
                )
                if match is None and step.action != StepAction.WAIT:
                    report.status = "failed"
                    report.error = f"Element '{step.selector}' not found within {step.timeout_ms}ms"
                    report.actual = "not found"
                    return _finish(report, start)
                if match is not None:
                    report.element = match.snapshot
                    report.resolved_to = match.snapshot.describe()
                    report.retry_count = match.retry_count

                    blocked = await self.actionability.check(step.action, match, cancel)
                    if blocked is not None:
                        report.status = "failed"
                        report.error = blocked.error
                        return _finish(report, start)

            result = await self.executor.execute(step, match, window, cancel)
            report.error = result.error
            report.expected = result.expected
            report.actual = result.actual if result.actual is not None else report.actual
            report.diagnostics = result.diagnostics
            report.screenshot = result.artifact_path
            report.retry_count = max(report.retry_count, result.retry_count)
            if not result.success:
                report.status = "error" if result.error_kind == "platform" else "failed"
                return _finish(report, start)

            for assertion in step.assertions:
                outcome = await self.evaluator.evaluate(assertion, window, self.resolver, cancel)
                report.assertion_results.append(outcome)
                if not outcome.passed and report.status == "passed":
                    report.status = "failed"
                    report.error = f"Post-assertion failed: {outcome.error}"
                    report.expected = outcome.expected
                    report.actual = outcome.actual

        except FlowCancelledError as exc:
            report.status = "cancelled"
            report.error = str(exc)
        except Exception as exc:
            log.error(
                "step_error",
                step=step.order,
                action=step.action.value,
                error=f"{type(exc).__name__}: {exc}",
            )
            report.status = "error"
            report.error = f"{type(exc).__name__}: {exc}"
        return _finish(report, start)

    async def _skip_rest(
        self,
        steps: list[FlowStep],
        start: int,
        reason: str,
        reports: list[StepReport],
        on_step_complete: StepCallback | None,
    ) -> None:
        """Record steps from ``start`` on as skipped, notifying for each."""
        for index in range(start, len(steps)):
            report = _entry(steps[index], "skipped", error=reason)
            reports.append(report)
            await self._notify(on_step_complete, index + 1, len(steps), report)

    @staticmethod
    async def _notify(
        callback: StepCallback | None, number: int, total: int, report: StepReport
    ) -> None:
        if callback is None:
            return
        try:
            outcome = callback(number, total, report)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as exc:
            log.warning("step_callback_failed", step=report.step, error=str(exc))


def _budget_reason(flow: Flow) -> str:
    return f"Skipped: flow timeout of {flow.timeout_seconds}s exceeded"


def _check_target_lock(context: _WindowContext, window: WindowInfo) -> str | None:
    """Pin the first window; describe how a later one differs, if it does."""
    locked = context.locked
    if locked is None:
        context.locked = window
        log.info("target_lock_captured", handle=window.handle, pid=window.pid, title=window.title)
        return None
    if window.handle != locked.handle:
        return f"window handle changed (expected {locked.handle:#x}, got {window.handle:#x})"
    if window.pid != locked.pid:
        return f"process id changed (expected {locked.pid}, got {window.pid})"
    return None


def _entry(step: FlowStep, status: str, **kwargs) -> StepReport:
    return StepReport(
        step=step.order,
        action=step.action,
        selector=step.selector,
        description=step.description,
        required=step.required,
        status=status,
        **kwargs,
    )


def _finish(report: StepReport, start: float) -> StepReport:
    report.elapsed_ms = _ms_since(start)
    return report


def _ms_since(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _decides_failure(report: StepReport) -> bool:
    return (
        report.required
        or report.action in ASSERTION_ACTIONS
        or any(not a.passed for a in report.assertion_results)
    )


def _build_report(
    flow: Flow,
    steps: list[StepReport],
    started_at: datetime,
    start: float,
    cancelled: bool,
    over_budget: bool,
) -> ExecutionReport:
    failed = [s for s in steps if s.status in ("failed", "error")]
    if cancelled or over_budget or any(s.status == "error" for s in steps):
        result = "error"
    elif any(s.status == "failed" and _decides_failure(s) for s in steps):
        result = "failed"
    else:
        result = "passed"

    report = ExecutionReport(
        test_name=flow.test_name,
        result=result,
        degraded=result == "passed" and bool(failed),
        failed_step=failed[0].step if failed else None,
        total_time_ms=_ms_since(start),
        started_at=started_at,
        finished_at=datetime.now(tz=timezone.utc),
        steps=steps,
    )
    report.summary = build_summary(report)
    return report
