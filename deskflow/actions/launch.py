"""Launch action: start a process and wait until its UI is usable."""

from __future__ import annotations

from deskflow.actions import ActionContext, BaseAction, _missing
from deskflow.exceptions import ElementUnavailableError
from deskflow.logger import get_logger
from deskflow.models import ActionResult, FlowStep, ProcessInfo, SelectorMatch, WindowInfo
from deskflow.polling import poll_until, sleep

log = get_logger(__name__)


class LaunchAction(BaseAction):
    """Start ``process_path`` and wait through three readiness layers.

    1. OS input-idle signal (best effort).
    2. Main window present with non-empty bounds.
    3. Window element tree has at least one child.

    A process that is handed off or exits immediately gets a short grace
    delay instead.
    """

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if not step.process_path:
            return _missing(step, "processPath")

        path = step.process_path.strip()
        timing = ctx.timing
        process = await ctx.driver.launch(path)

        if process is None or await ctx.driver.process_exited(process):
            log.debug("launch_handed_off", path=path)
            await sleep(timing.launch_exit_grace_ms, ctx.cancel)
            return ActionResult.ok(f"Launched '{path}' (process handed off or exited)")

        idle = await ctx.driver.wait_for_input_idle(process, timing.input_idle_timeout_ms)
        log.debug("launch_input_idle", path=path, idle=idle)

        found = await poll_until(
            lambda: self._ready_window(ctx, process),
            interval_ms=timing.launch_poll_interval_ms,
            timeout_ms=timing.launch_window_timeout_ms,
            cancel=ctx.cancel,
        )
        if not found.found:
            log.debug("launch_window_not_detected", path=path, waited_ms=found.elapsed_ms)
            await sleep(timing.launch_exit_grace_ms, ctx.cancel)
            return ActionResult.ok(
                f"Launched '{path}' (pid {process.pid}); window not detected after {found.elapsed_ms}ms"
            )

        main: WindowInfo = found.value
        tree = await poll_until(
            lambda: self._tree_ready(ctx, main),
            interval_ms=timing.launch_poll_interval_ms,
            timeout_ms=timing.launch_tree_ready_ms,
            cancel=ctx.cancel,
        )
        log.info(
            "app_launched",
            path=path,
            pid=process.pid,
            window=main.title,
            tree_ready=tree.found,
        )
        return ActionResult.ok(
            f"Launched '{path}' (pid {process.pid}); window '{main.title}' ready"
            + ("" if tree.found else ", element tree still empty")
        )

    @staticmethod
    async def _ready_window(ctx: ActionContext, process: ProcessInfo) -> WindowInfo | None:
        if await ctx.driver.process_exited(process):
            return None
        main = await ctx.driver.main_window(process)
        if main is None or main.bounds is None or main.bounds.is_empty:
            return None
        return main

    @staticmethod
    async def _tree_ready(ctx: ActionContext, window: WindowInfo) -> bool | None:
        try:
            return True if await ctx.driver.child_count(window) > 0 else None
        except ElementUnavailableError:
            return None

