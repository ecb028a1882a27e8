"""Navigate action: open a URL and wait for the browser window."""

from __future__ import annotations

import shutil
from pathlib import Path
from urllib.parse import urlsplit

from deskflow.actions import ActionContext, BaseAction, _missing
from deskflow.hints import domain_hint_candidates
from deskflow.logger import get_logger
from deskflow.models import ActionResult, FlowStep, SelectorMatch, WindowInfo
from deskflow.polling import poll_until, sleep

log = get_logger(__name__)

# Browser aliases -> (executable name, well-known install paths).
KNOWN_BROWSERS: dict[str, tuple[str, tuple[str, ...]]] = {
    "chrome": (
        "chrome.exe",
        (
            r"C:\Program Files\Google\Chrome\Application\chrome.exe",
            r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
        ),
    ),
    "msedge": (
        "msedge.exe",
        (
            r"C:\Program Files (x86)\Microsoft\Edge\Application\msedge.exe",
            r"C:\Program Files\Microsoft\Edge\Application\msedge.exe",
        ),
    ),
    "firefox": (
        "firefox.exe",
        (
            r"C:\Program Files\Mozilla Firefox\firefox.exe",
            r"C:\Program Files (x86)\Mozilla Firefox\firefox.exe",
        ),
    ),
    "brave": (
        "brave.exe",
        (
            r"C:\Program Files\BraveSoftware\Brave-Browser\Application\brave.exe",
            r"C:\Program Files (x86)\BraveSoftware\Brave-Browser\Application\brave.exe",
        ),
    ),
}

BROWSER_ALIASES: dict[str, str] = {
    "chrome": "chrome",
    "google chrome": "chrome",
    "googlechrome": "chrome",
    "msedge": "msedge",
    "edge": "msedge",
    "microsoft edge": "msedge",
    "firefox": "firefox",
    "mozilla firefox": "firefox",
    "brave": "brave",
    "brave browser": "brave",
}


def resolve_browser_executable(app: str) -> str | None:
    """Map a browser name to an executable path.

    Direct executables and paths are returned as given. Known browsers are
    looked up in their install locations, then on PATH. Anything else yields
    None and the URL is opened with the default handler.
    """
    name = app.strip()
    lowered = name.lower()
    if lowered.endswith(".exe") or "/" in name or "\\" in name:
        return name

    key = BROWSER_ALIASES.get(lowered)
    if key is None:
        return None
    exe_name, known_paths = KNOWN_BROWSERS[key]
    for candidate in known_paths:
        if Path(candidate).exists():
            return candidate
    return shutil.which(exe_name) or shutil.which(exe_name.removesuffix(".exe"))


class NavigateAction(BaseAction):
    """Open a URL in a browser and wait for a window whose title matches."""

    async def execute(
        self,
        step: FlowStep,
        match: SelectorMatch | None,
        window: WindowInfo | None,
        ctx: ActionContext,
    ) -> ActionResult:
        if not step.url:
            return _missing(step, "a URL")
        url = step.url.strip()

        executable = resolve_browser_executable(step.app) if step.app else None
        await ctx.driver.open_url(url, executable)
        log.info("url_opened", url=url, browser=executable or "default")

        hints = domain_hint_candidates(url, ctx.hints)
        diagnostics = f"Opened {url}"
        if hints:
            max_wait_ms = max(step.timeout_ms, ctx.timing.navigate_max_wait_ms)
            outcome = await poll_until(
                lambda: self._find_titled_window(ctx, hints),
                interval_ms=ctx.timing.navigate_poll_interval_ms,
                timeout_ms=max_wait_ms,
                cancel=ctx.cancel,
            )
            if outcome.found:
                title = outcome.value.title
                diagnostics += f"; window '{title}' appeared after {outcome.elapsed_ms}ms"
                self._learn(ctx, url, title)
            else:
                wanted = "' or '".join(hints)
                diagnostics += f"; no window with '{wanted}' in its title after {max_wait_ms}ms, continuing"
                log.debug("navigate_window_not_found", url=url, hints=hints, waited_ms=max_wait_ms)

        await sleep(ctx.timing.navigate_post_render_delay_ms, ctx.cancel)
        return ActionResult.ok(diagnostics)

    @staticmethod
    async def _find_titled_window(ctx: ActionContext, hints: list[str]) -> WindowInfo | None:
        """First window matching the best hint that matches anything."""
        windows = await ctx.driver.list_windows()
        for hint in hints:
            wanted = hint.lower()
            for candidate in windows:
                if wanted in candidate.title.lower():
                    return candidate
        return None

    @staticmethod
    def _learn(ctx: ActionContext, url: str, title: str) -> None:
        if ctx.hints is None:
            return
        try:
            host = urlsplit(url if "://" in url else f"https://{url}").hostname
        except ValueError:
            return
        if host:
            ctx.hints.learn(host, title)
