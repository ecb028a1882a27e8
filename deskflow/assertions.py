"""Assertion evaluation against live UI state."""

from __future__ import annotations

from deskflow.driver import AccessibilityDriver
from deskflow.exceptions import CallerError, ElementUnavailableError, FlowCancelledError
from deskflow.logger import get_logger
from deskflow.models import Assertion, AssertionResult, AssertionType, WindowInfo
from deskflow.polling import CancelToken, poll_until
from deskflow.resolver import SelectorResolver

log = get_logger(__name__)


class AssertionEvaluator:
    """Evaluates assertions and returns a uniform result per kind.

    No kind raises for not-found or mismatch; those are failed results.
    Cancellation propagates. Anything unexpected becomes a ``platform``
    failure.
    """

    def __init__(
        self,
        driver: AccessibilityDriver,
        poll_interval_ms: int = 150,
        not_exists_grace_ms: int = 0,
    ) -> None:
        self.driver = driver
        self.poll_interval_ms = poll_interval_ms
        self.not_exists_grace_ms = not_exists_grace_ms

    async def evaluate(
        self,
        assertion: Assertion,
        window: WindowInfo | None,
        resolver: SelectorResolver,
        cancel: CancelToken | None = None,
    ) -> AssertionResult:
        handlers = {
            AssertionType.EXISTS: self._exists,
            AssertionType.NOT_EXISTS: self._not_exists,
            AssertionType.TEXT_CONTAINS: self._text,
            AssertionType.TEXT_EQUALS: self._text,
            AssertionType.WINDOW_TITLE: self._window_title,
            AssertionType.PROCESS_RUNNING: self._process_running,
        }
        try:
            result = await handlers[assertion.type](assertion, window, resolver, cancel)
        except FlowCancelledError:
            raise
        except CallerError as exc:
            result = _fail(assertion, str(exc), "caller_error")
        except ElementUnavailableError as exc:
            result = _fail(assertion, f"Element became unavailable: {exc}", "transient")
        except Exception as exc:
            log.error(
                "assertion_evaluation_error",
                type=assertion.type.value,
                error=f"{type(exc).__name__}: {exc}",
            )
            result = _fail(assertion, f"{type(exc).__name__}: {exc}", "platform")

        log.debug(
            "assertion_evaluated",
            type=assertion.type.value,
            passed=result.passed,
            retries=result.retry_count,
        )
        return result

    # --- Kinds ---

    async def _exists(
        self,
        assertion: Assertion,
        window: WindowInfo | None,
        resolver: SelectorResolver,
        cancel: CancelToken | None,
    ) -> AssertionResult:
        if not assertion.selector:
            return _fail(assertion, "'exists' assertion requires a selector", "caller_error")
        if window is None:
            return _fail(assertion, "no window context", "timeout", expected=assertion.selector)

        match = await resolver.resolve(
            window, assertion.selector, assertion.timeout_ms, assertion.exact, cancel
        )
        if match is None:
            return _fail(
                assertion,
                f"Element '{assertion.selector}' not found within {assertion.timeout_ms}ms",
                "timeout",
                expected=assertion.selector,
                actual="not found",
            )
        return _pass(
            assertion,
            expected=assertion.selector,
            actual=match.snapshot.describe(),
            retry_count=match.retry_count,
        )

    async def _not_exists(
        self,
        assertion: Assertion,
        window: WindowInfo | None,
        resolver: SelectorResolver,
        cancel: CancelToken | None,
    ) -> AssertionResult:
        # Nothing can be present without a window or a selector.
        if not assertion.selector or window is None:
            return _pass(assertion, expected="absent", actual="absent")

        selector = assertion.selector
        if self.not_exists_grace_ms <= 0:
            match = await resolver.resolve_once(window, selector, assertion.exact)
            if match is None:
                return _pass(assertion, expected="absent", actual="absent")
            return _fail(
                assertion,
                f"Element '{selector}' exists but should not",
                expected="absent",
                actual=match.snapshot.describe(),
            )

        last: list[str] = []

        async def absent() -> bool | None:
            found = await resolver.resolve_once(window, selector, assertion.exact)
            if found is None:
                return True
            last[:] = [found.snapshot.describe()]
            return None

        outcome = await poll_until(
            absent,
            interval_ms=self.poll_interval_ms,
            timeout_ms=self.not_exists_grace_ms,
            cancel=cancel,
        )
        if outcome.found:
            return _pass(
                assertion, expected="absent", actual="absent", retry_count=outcome.retry_count
            )
        return _fail(
            assertion,
            f"Element '{selector}' still present after {self.not_exists_grace_ms}ms",
            expected="absent",
            actual=last[0] if last else "present",
            retry_count=outcome.retry_count,
        )

    async def _text(
        self,
        assertion: Assertion,
        window: WindowInfo | None,
        resolver: SelectorResolver,
        cancel: CancelToken | None,
    ) -> AssertionResult:
        if not assertion.selector:
            return _fail(assertion, "text assertion requires a selector", "caller_error")
        if assertion.expected is None:
            return _fail(assertion, "text assertion requires an expected value", "caller_error")
        if window is None:
            return _fail(assertion, "no window context", "timeout", expected=assertion.expected)

        match = await resolver.resolve(
            window, assertion.selector, assertion.timeout_ms, False, cancel
        )
        if match is None:
            return _fail(
                assertion,
                f"Element '{assertion.selector}' not found within {assertion.timeout_ms}ms",
                "timeout",
                expected=assertion.expected,
                actual="not found",
            )

        actual = await resolver.read_text(match.element)
        equals = assertion.type == AssertionType.TEXT_EQUALS or assertion.exact
        if _compare(actual, assertion.expected, equals):
            return _pass(
                assertion,
                expected=assertion.expected,
                actual=actual,
                retry_count=match.retry_count,
            )
        verb = "equal" if equals else "contain"
        return _fail(
            assertion,
            f"Text '{actual}' does not {verb} '{assertion.expected}'",
            expected=assertion.expected,
            actual=actual,
            retry_count=match.retry_count,
        )

    async def _window_title(
        self,
        assertion: Assertion,
        window: WindowInfo | None,
        resolver: SelectorResolver,
        cancel: CancelToken | None,
    ) -> AssertionResult:
        expected = assertion.expected or ""
        if not expected:
            return _fail(assertion, "window assertion requires an expected title", "caller_error")
        if window is None:
            return _fail(assertion, "no window context", "timeout", expected=expected)

        actual = await self._current_title(window)
        if _compare(actual, expected, assertion.exact):
            return _pass(assertion, expected=expected, actual=actual)
        return _fail(
            assertion,
            f"Window title '{actual}' does not match '{expected}'",
            expected=expected,
            actual=actual,
        )

    async def _process_running(
        self,
        assertion: Assertion,
        window: WindowInfo | None,
        resolver: SelectorResolver,
        cancel: CancelToken | None,
    ) -> AssertionResult:
        name = (assertion.expected or "").strip()
        if not name:
            return _fail(assertion, "no process name specified", "caller_error")
        count = await self.driver.process_count(name)
        if count > 0:
            return _pass(assertion, expected=name, actual=f"{count} instance(s)")
        return _fail(assertion, f"Process '{name}' is not running", expected=name, actual="not running")

    async def _current_title(self, window: WindowInfo) -> str:
        """Re-read the title; fall back to the title seen at lookup."""
        for candidate in await self.driver.list_windows():
            if candidate.handle == window.handle:
                return candidate.title
        return window.title


def _compare(actual: str, expected: str, equals: bool) -> bool:
    if equals:
        return actual.strip().lower() == expected.strip().lower()
    return expected.lower() in actual.lower()


def _pass(assertion: Assertion, **kwargs) -> AssertionResult:
    return AssertionResult(
        type=assertion.type, passed=True, description=assertion.description, **kwargs
    )


def _fail(assertion: Assertion, error: str, kind=None, **kwargs) -> AssertionResult:
    return AssertionResult(
        type=assertion.type,
        passed=False,
        error=error,
        error_kind=kind,
        description=assertion.description,
        **kwargs,
    )
