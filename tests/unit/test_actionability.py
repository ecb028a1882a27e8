"""Tests for pre-action readiness checks."""

from unittest.mock import AsyncMock

from deskflow.actionability import REQUIRED_CHECKS, ActionabilityChecker, Check
from deskflow.exceptions import ElementUnavailableError
from deskflow.models import Bounds, ElementSnapshot, SelectorMatch, StepAction


def _match(element) -> SelectorMatch:
    return SelectorMatch(snapshot=ElementSnapshot(role=element.role), element=element)


class TestActionabilityChecker:
    async def test_ready_element_passes(self, driver, calc, timing) -> None:
        element = driver.elements[calc.handle][0]
        checker = ActionabilityChecker(driver, timing)
        assert await checker.check(StepAction.CLICK, _match(element)) is None

    async def test_empty_bounds_is_not_visible(self, driver, calc, timing) -> None:
        element = driver.add_element(calc, name="Hidden", bounds=Bounds(width=0, height=0))
        result = await ActionabilityChecker(driver, timing).check(StepAction.HOVER, _match(element))
        assert not result.success
        assert result.error_kind == "transient"
        assert "not visible" in result.error

    async def test_disabled(self, driver, calc, timing) -> None:
        element = driver.add_element(calc, name="Off", enabled=False)
        result = await ActionabilityChecker(driver, timing).check(StepAction.CLICK, _match(element))
        assert result.error == "Actionability check failed: Element is disabled"

    async def test_moving_element_is_unstable(self, driver, calc, timing) -> None:
        element = driver.add_element(calc, name="Animated", moving=True)
        result = await ActionabilityChecker(driver, timing).check(StepAction.CLICK, _match(element))
        assert "not stable" in result.error

    async def test_offscreen_does_not_receive_events(self, driver, calc, timing) -> None:
        element = driver.add_element(calc, name="Below", offscreen=True)
        result = await ActionabilityChecker(driver, timing).check(StepAction.CLICK, _match(element))
        assert "off-screen" in result.error

    async def test_read_only_cannot_be_typed(self, driver, calc, timing) -> None:
        element = driver.add_element(calc, role="Edit", name="Total", read_only=True)
        result = await ActionabilityChecker(driver, timing).check(StepAction.TYPE, _match(element))
        assert "read-only" in result.error

    async def test_editable_falls_back_without_value_pattern(self, driver, calc, timing) -> None:
        element = driver.add_element(calc, role="Edit", name="Notes", read_only=None)
        checker = ActionabilityChecker(driver, timing)
        assert await checker.check(StepAction.TYPE, _match(element)) is None

    async def test_actions_without_checks_skip_driver(self, driver, timing) -> None:
        driver.snapshot = AsyncMock()
        checker = ActionabilityChecker(driver, timing)
        match = SelectorMatch(snapshot=ElementSnapshot(), element=None)
        assert await checker.check(StepAction.SEND_KEYS, match) is None
        driver.snapshot.assert_not_called()

    async def test_vanished_element_is_transient(self, driver, calc, timing) -> None:
        element = driver.add_element(calc, name="Gone", alive=False)
        result = await ActionabilityChecker(driver, timing).check(StepAction.CLICK, _match(element))
        assert result.error_kind == "transient"

    async def test_scroll_only_needs_visibility(self, driver, calc, timing) -> None:
        element = driver.add_element(calc, role="List", name="Items", enabled=False, offscreen=True)
        assert REQUIRED_CHECKS[StepAction.SCROLL] == (Check.VISIBLE,)
        checker = ActionabilityChecker(driver, timing)
        assert await checker.check(StepAction.SCROLL, _match(element)) is None

    async def test_snapshot_failure_raises_through_driver(self, driver, calc, timing) -> None:
        element = driver.elements[calc.handle][0]
        driver.snapshot = AsyncMock(side_effect=ElementUnavailableError("stale"))
        result = await ActionabilityChecker(driver, timing).check(StepAction.TYPE, _match(element))
        assert result.error_kind == "transient"
