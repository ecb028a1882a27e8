"""Selector resolution: DSL parsing, candidate scoring, retry and caching.

Selector format is ``Role#Identifier``:

* ``Button#Save``       a Button whose automation id or name is "Save"
* ``TextBox#Search``    an Edit control with automation id "Search"
* ``#num4Button``       any role with the given automation id
* ``Save``              no ``#``: identifier only, any role
"""

from __future__ import annotations

from dataclasses import dataclass

from deskflow.cache import CacheKey, SelectorCache
from deskflow.driver import AccessibilityDriver, ElementHandle
from deskflow.exceptions import ElementUnavailableError, SelectorSyntaxError
from deskflow.logger import get_logger
from deskflow.models import ElementSnapshot, SelectorMatch, WindowInfo
from deskflow.polling import CancelToken, poll_until

log = get_logger(__name__)

SCORE_AUTOMATION_ID = 100
SCORE_NAME_EXACT = 80
SCORE_NAME_PREFIX = 50
BONUS_VISIBLE = 20
BONUS_ENABLED = 10
BONUS_AREA = 5

# DSL role names -> canonical platform roles.
ROLE_ALIASES: dict[str, str] = {
    "button": "Button",
    "toggle": "Button",
    "textbox": "Edit",
    "edit": "Edit",
    "textblock": "Text",
    "text": "Text",
    "label": "Text",
    "checkbox": "CheckBox",
    "radiobutton": "RadioButton",
    "combobox": "ComboBox",
    "listitem": "ListItem",
    "list": "List",
    "menuitem": "MenuItem",
    "menu": "Menu",
    "tabitem": "TabItem",
    "treeitem": "TreeItem",
    "hyperlink": "Hyperlink",
    "link": "Hyperlink",
    "image": "Image",
    "slider": "Slider",
    "progressbar": "ProgressBar",
    "datagrid": "DataGrid",
    "pane": "Pane",
    "group": "Group",
    "scrollbar": "ScrollBar",
    "toolbar": "ToolBar",
    "statusbar": "StatusBar",
    "window": "Window",
    "document": "Document",
}


@dataclass(frozen=True)
class ParsedSelector:
    """Selector split into an optional role and an identifier."""

    role: str | None
    identifier: str


def parse_selector(selector: str) -> ParsedSelector:
    """Split a selector on its first ``#``.

    A role that is not a known control type is dropped, so the identifier is
    matched against elements of any role.

    Raises:
        SelectorSyntaxError: If the selector or its identifier is empty.
    """
    if not selector or not selector.strip():
        raise SelectorSyntaxError(selector or "", "selector cannot be empty")
    role, sep, identifier = selector.partition("#")
    if not sep:
        role, identifier = "", selector
    identifier = identifier.strip()
    if not identifier:
        raise SelectorSyntaxError(selector, "identifier after '#' cannot be empty")
    role = role.strip()
    if not role:
        return ParsedSelector(role=None, identifier=identifier)
    canonical = ROLE_ALIASES.get(role.lower())
    if canonical is None:
        # Unknown role: match elements of any role
        log.debug("selector_role_ignored", selector=selector, role=role)
    return ParsedSelector(role=canonical, identifier=identifier)


def score_candidate(snapshot: ElementSnapshot, identifier: str, exact: bool = False) -> int:
    """Score how well an element matches an identifier. 0 means no match."""
    wanted = identifier.lower()
    automation_id = (snapshot.automation_id or "").lower()
    name = (snapshot.name or "").lower()

    if automation_id and automation_id == wanted:
        score = SCORE_AUTOMATION_ID
    elif name and name == wanted:
        score = SCORE_NAME_EXACT
    elif not exact and name and (name.startswith(wanted + " ") or name.startswith(wanted + "(")):
        score = SCORE_NAME_PREFIX
    else:
        return 0

    if not snapshot.offscreen:
        score += BONUS_VISIBLE
    if snapshot.enabled:
        score += BONUS_ENABLED
    if snapshot.bounds is not None and snapshot.bounds.area > 0:
        score += BONUS_AREA
    return score


def _rank(score: int, snapshot: ElementSnapshot) -> tuple[int, bool, bool, int]:
    area = snapshot.bounds.area if snapshot.bounds else 0
    return (score, not snapshot.offscreen, snapshot.enabled, area)


class SelectorResolver:
    """Resolves selectors to live elements within a window."""

    def __init__(
        self,
        driver: AccessibilityDriver,
        cache: SelectorCache | None = None,
        poll_interval_ms: int = 150,
        strict: bool = False,
    ) -> None:
        self.driver = driver
        self.cache = cache if cache is not None else SelectorCache()
        self.poll_interval_ms = poll_interval_ms
        self.strict = strict
        self.traversals = 0

    async def resolve(
        self,
        window: WindowInfo,
        selector: str,
        timeout_ms: int,
        exact: bool = False,
        cancel: CancelToken | None = None,
    ) -> SelectorMatch | None:
        """Resolve with retry until found or ``timeout_ms`` elapses.

        Returns:
            The best match, or None on timeout.

        Raises:
            SelectorSyntaxError: If the selector is malformed.
            FlowCancelledError: If ``cancel`` fires while polling.
        """
        parsed = parse_selector(selector)
        key: CacheKey = (window.handle, selector, exact)

        cached = await self._cached(key)
        if cached is not None:
            log.debug("selector_cache_hit", selector=selector, window=window.handle)
            return cached

        outcome = await poll_until(
            lambda: self._scan(window, parsed, selector, exact),
            interval_ms=self.poll_interval_ms,
            timeout_ms=timeout_ms,
            cancel=cancel,
        )
        if outcome.value is None:
            log.debug(
                "selector_not_found",
                selector=selector,
                timeout_ms=timeout_ms,
                attempts=outcome.attempts,
            )
            return None

        match = outcome.value.model_copy(update={"retry_count": outcome.retry_count})
        self.cache.put(key, match)
        log.debug(
            "selector_resolved",
            selector=selector,
            elapsed_ms=outcome.elapsed_ms,
            retries=outcome.retry_count,
            score=match.score,
        )
        return match

    async def resolve_once(
        self, window: WindowInfo, selector: str, exact: bool = False
    ) -> SelectorMatch | None:
        """Single traversal, no waiting and no cache read."""
        parsed = parse_selector(selector)
        match = await self._scan(window, parsed, selector, exact)
        if match is not None:
            self.cache.put((window.handle, selector, exact), match)
        return match

    async def find_window(
        self,
        target_app: str | None,
        window_title: str | None,
        timeout_ms: int,
        poll_interval_ms: int = 150,
        cancel: CancelToken | None = None,
    ) -> WindowInfo | None:
        """Poll for a window by process name(s) and/or title substring."""
        outcome = await poll_until(
            lambda: self._find_window_once(target_app, window_title),
            interval_ms=poll_interval_ms,
            timeout_ms=timeout_ms,
            cancel=cancel,
        )
        return outcome.value

    async def read_text(self, element: ElementHandle) -> str:
        """Element text: structured value first, then display name."""
        value = await self.driver.read_value(element)
        if value is not None:
            return value
        snapshot = await self.driver.snapshot(element)
        return snapshot.name or ""

    # --- Private helpers ---

    async def _cached(self, key: CacheKey) -> SelectorMatch | None:
        match = self.cache.get(key)
        if match is None:
            return None
        try:
            snapshot = await self.driver.snapshot(match.element)
        except ElementUnavailableError:
            self.cache.evict(key)
            return None
        return match.model_copy(
            update={"snapshot": snapshot, "retry_count": 0, "from_cache": True}
        )

    async def _find_window_once(
        self, target_app: str | None, window_title: str | None
    ) -> WindowInfo | None:
        names = [n.strip() for n in (target_app or "").split(",") if n.strip()]
        title = window_title.strip() if window_title and window_title.strip() else None

        for name in names:
            window = await self.driver.find_window(name, title)
            if window is not None:
                return window
        if title:
            window = await self.driver.find_window(None, title)
            if window is not None:
                return window
            # Title never matched: fall back to any window of the named process.
            for name in names:
                window = await self.driver.find_window(name, None)
                if window is not None:
                    return window
        return None

    async def _scan(
        self, window: WindowInfo, parsed: ParsedSelector, selector: str, exact: bool
    ) -> SelectorMatch | None:
        """One tree traversal; returns the best-scoring candidate."""
        self.traversals += 1
        try:
            elements = await self.driver.find_elements(window, parsed.role)
        except ElementUnavailableError:
            return None

        best: tuple[tuple[int, bool, bool, int], ElementHandle, ElementSnapshot] | None = None
        matched = 0
        for element in elements:
            try:
                snapshot = await self.driver.snapshot(element)
            except ElementUnavailableError:
                continue
            score = score_candidate(snapshot, parsed.identifier, exact)
            if score <= 0:
                continue
            matched += 1
            rank = _rank(score, snapshot)
            if best is None or rank > best[0]:
                best = (rank, element, snapshot)

        if best is None:
            return None

        if matched > 1:
            log.warning(
                "selector_ambiguous",
                selector=selector,
                candidates=matched,
                chosen=best[2].describe(),
            )
            if self.strict:
                log.warning("selector_ambiguous_rejected", selector=selector)
                return None

        return SelectorMatch(
            snapshot=best[2], element=best[1], score=best[0][0], candidates=matched
        )
