"""Tests for step actions."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from deskflow.actions import ActionContext
from deskflow.actions.asserts import AssertAction
from deskflow.actions.click import ClickAction
from deskflow.actions.focus_window import FocusWindowAction
from deskflow.actions.launch import LaunchAction
from deskflow.actions.navigate import NavigateAction, resolve_browser_executable
from deskflow.actions.registry import ACTION_REGISTRY, get_action
from deskflow.actions.screenshot import ScreenshotAction
from deskflow.actions.scroll import ScrollAction
from deskflow.actions.send_keys import SendKeysAction
from deskflow.actions.type import TypeAction
from deskflow.actions.wait import WaitAction
from deskflow.assertions import AssertionEvaluator
from deskflow.config import TimingSettings
from deskflow.hints import DomainHintStore, derive_domain_hint
from deskflow.models import (
    Bounds,
    ElementSnapshot,
    FlowStep,
    SelectorMatch,
    StepAction,
    WindowInfo,
)
from deskflow.resolver import SelectorResolver


def _ctx(driver, tmp_path: Path | None = None, hints: DomainHintStore | None = None) -> ActionContext:
    return ActionContext(
        driver=driver,
        resolver=SelectorResolver(driver, poll_interval_ms=10),
        evaluator=AssertionEvaluator(driver, poll_interval_ms=10),
        timing=TimingSettings.immediate(),
        hints=hints,
        screenshots_dir=(tmp_path or Path(".")) / "screenshots",
    )


def _match(element) -> SelectorMatch:
    return SelectorMatch(
        snapshot=ElementSnapshot(
            role=element.role,
            name=element.name,
            automation_id=element.automation_id,
            enabled=element.enabled,
        ),
        element=element,
    )


class TestRegistry:
    def test_every_action_is_registered(self) -> None:
        assert set(ACTION_REGISTRY) == set(StepAction)

    def test_assert_actions_share_handler(self) -> None:
        for action in (
            StepAction.ASSERT_EXISTS,
            StepAction.ASSERT_NOT_EXISTS,
            StepAction.ASSERT_TEXT,
            StepAction.ASSERT_WINDOW,
        ):
            assert isinstance(get_action(action), AssertAction)

    def test_get_action_returns_fresh_instance(self) -> None:
        assert isinstance(get_action(StepAction.CLICK), ClickAction)
        assert get_action(StepAction.CLICK) is not get_action(StepAction.CLICK)


class TestClickAction:
    async def test_clicks_element(self, driver, calc) -> None:
        element = driver.elements[calc.handle][0]
        step = FlowStep(action=StepAction.CLICK, selector="Button#num2Button")
        result = await ClickAction().execute(step, _match(element), calc, _ctx(driver))
        assert result.success
        assert driver.called("click") == [("click", element)]
        assert "Two" in result.diagnostics

    async def test_requires_element(self, driver, calc) -> None:
        step = FlowStep(action=StepAction.CLICK, selector="Button#num2Button")
        result = await ClickAction().execute(step, None, calc, _ctx(driver))
        assert not result.success
        assert result.error_kind == "caller_error"


class TestTypeAction:
    async def test_appends_to_existing_content(self, driver, calc) -> None:
        element = driver.add_element(calc, role="Edit", name="Input", value="AB")
        step = FlowStep(action=StepAction.TYPE, selector="Edit#Input", text="CD")
        result = await TypeAction().execute(step, _match(element), calc, _ctx(driver))
        assert result.success
        assert element.value == "ABCD"
        assert driver.called("click") == [("click", element)]

    async def test_types_into_focused_control_without_element(self, driver) -> None:
        step = FlowStep(action=StepAction.TYPE, text="hello")
        result = await TypeAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert driver.typed == "hello"
        assert driver.called("click") == []

    async def test_requires_text(self, driver) -> None:
        result = await TypeAction().execute(
            FlowStep(action=StepAction.TYPE), None, None, _ctx(driver)
        )
        assert result.error_kind == "caller_error"
        assert result.error == "'type' requires text."


class TestSendKeysAction:
    async def test_sends_chord(self, driver) -> None:
        step = FlowStep(action=StepAction.SEND_KEYS, keys="Ctrl+S")
        result = await SendKeysAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert driver.called("send_keys") == [("send_keys", "Ctrl+S")]

    async def test_requires_keys(self, driver) -> None:
        result = await SendKeysAction().execute(
            FlowStep(action=StepAction.SEND_KEYS), None, None, _ctx(driver)
        )
        assert result.error_kind == "caller_error"


class TestWaitAction:
    async def test_fixed_delay(self, driver) -> None:
        step = FlowStep(action=StepAction.WAIT, timeout_ms=10)
        result = await WaitAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert result.diagnostics == "Waited 10ms"

    async def test_element_arrived(self, driver, calc) -> None:
        element = driver.elements[calc.handle][1]
        step = FlowStep(action=StepAction.WAIT, selector="Button#plusButton")
        result = await WaitAction().execute(step, _match(element), calc, _ctx(driver))
        assert result.success

    async def test_element_never_arrived(self, driver, calc) -> None:
        step = FlowStep(action=StepAction.WAIT, selector="Button#ghost", timeout_ms=30)
        result = await WaitAction().execute(step, None, calc, _ctx(driver))
        assert not result.success
        assert result.error_kind == "timeout"


class TestFocusWindowAction:
    async def test_focuses(self, driver, calc) -> None:
        result = await FocusWindowAction().execute(
            FlowStep(action=StepAction.FOCUS_WINDOW), None, calc, _ctx(driver)
        )
        assert result.success
        assert driver.called("focus_window") == [("focus_window", calc.handle)]

    async def test_requires_window(self, driver) -> None:
        result = await FocusWindowAction().execute(
            FlowStep(action=StepAction.FOCUS_WINDOW), None, None, _ctx(driver)
        )
        assert result.error_kind == "caller_error"


class TestScrollAction:
    async def test_uses_element_scroll_capability(self, driver, calc) -> None:
        element = driver.add_element(calc, role="List", name="Items", scrollable=True)
        step = FlowStep(action=StepAction.SCROLL, selector="List#Items", direction="down")
        result = await ScrollAction().execute(step, _match(element), calc, _ctx(driver))
        assert result.success
        assert driver.called("scroll") == [("scroll", element, "down", 3)]
        assert driver.called("wheel") == []

    async def test_falls_back_to_wheel(self, driver, calc) -> None:
        element = driver.add_element(calc, role="Pane", name="Canvas")
        step = FlowStep(action=StepAction.SCROLL, selector="Pane#Canvas", direction="down")
        result = await ScrollAction().execute(step, _match(element), calc, _ctx(driver))
        assert result.success
        assert driver.called("wheel") == [("wheel", -360)]

    async def test_wheel_up_without_element(self, driver) -> None:
        step = FlowStep(action=StepAction.SCROLL, direction="UP", scroll_amount=2)
        result = await ScrollAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert driver.called("wheel") == [("wheel", 240)]

    async def test_horizontal_without_capability_is_noop(self, driver) -> None:
        step = FlowStep(action=StepAction.SCROLL, direction="left")
        result = await ScrollAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert "skipped" in result.diagnostics
        assert driver.called("wheel") == []

    @pytest.mark.parametrize("direction", [None, "sideways"])
    async def test_invalid_direction(self, driver, direction) -> None:
        step = FlowStep(action=StepAction.SCROLL, direction=direction)
        result = await ScrollAction().execute(step, None, None, _ctx(driver))
        assert result.error_kind == "caller_error"


class TestScreenshotAction:
    async def test_saves_artifact(self, driver, tmp_path) -> None:
        step = FlowStep(order=3, action=StepAction.SCREENSHOT)
        result = await ScreenshotAction().execute(step, None, None, _ctx(driver, tmp_path))
        assert result.success
        path = Path(result.artifact_path)
        assert path.parent == tmp_path / "screenshots"
        assert path.name.startswith("step3_")
        assert path.read_bytes() == b"PNG"

    async def test_capture_failure_does_not_fail_step(self, driver, tmp_path) -> None:
        driver.capture_screen = AsyncMock(side_effect=OSError("access denied"))
        step = FlowStep(order=1, action=StepAction.SCREENSHOT)
        result = await ScreenshotAction().execute(step, None, None, _ctx(driver, tmp_path))
        assert result.success
        assert result.artifact_path is None
        assert "access denied" in result.diagnostics


class TestResolveBrowserExecutable:
    def test_direct_path_is_kept(self) -> None:
        assert resolve_browser_executable(r"C:\Tools\browser.exe") == r"C:\Tools\browser.exe"
        assert resolve_browser_executable("msedge.exe") == "msedge.exe"

    def test_unknown_name(self) -> None:
        assert resolve_browser_executable("notepad") is None

    def test_alias_found_on_path(self, monkeypatch) -> None:
        monkeypatch.setattr(
            "deskflow.actions.navigate.shutil.which",
            lambda name: "/usr/bin/firefox" if name == "firefox" else None,
        )
        assert resolve_browser_executable("Mozilla Firefox") == "/usr/bin/firefox"


class TestNavigateAction:
    async def test_waits_for_window_and_learns_hint(self, driver) -> None:
        driver.url_titles["https://www.example.com"] = "Example Domain - Google Chrome"
        hints = DomainHintStore()
        step = FlowStep(action=StepAction.NAVIGATE, url="https://www.example.com", timeout_ms=50)
        result = await NavigateAction().execute(step, None, None, _ctx(driver, hints=hints))
        assert result.success
        assert "appeared" in result.diagnostics
        assert hints.get("example.com") == "Example Domain"

        again = await NavigateAction().execute(step, None, None, _ctx(driver, hints=hints))
        assert derive_domain_hint("https://www.example.com", hints) == "Example Domain"
        assert "Example Domain - Google Chrome" in again.diagnostics

    async def test_learned_hint_matches_unrelated_title(self, driver) -> None:
        hints = DomainHintStore()
        hints.learn("example.com", "Welcome Page - Google Chrome")
        driver.url_titles["https://example.com"] = "Welcome Page - Google Chrome"
        step = FlowStep(action=StepAction.NAVIGATE, url="https://example.com", timeout_ms=50)
        result = await NavigateAction().execute(step, None, None, _ctx(driver, hints=hints))
        assert "Welcome Page - Google Chrome" in result.diagnostics

    async def test_stale_learned_hint_is_replaced(self, driver) -> None:
        hints = DomainHintStore()
        hints.learn("example.com", "Old Landing - Google Chrome")
        driver.url_titles["https://example.com"] = "Example Domain - Google Chrome"
        step = FlowStep(action=StepAction.NAVIGATE, url="https://example.com", timeout_ms=50)
        result = await NavigateAction().execute(step, None, None, _ctx(driver, hints=hints))
        assert "window 'Example Domain - Google Chrome' appeared" in result.diagnostics
        assert "continuing" not in result.diagnostics
        assert hints.get("example.com") == "Example Domain"

    async def test_missing_window_is_not_a_failure(self, driver) -> None:
        step = FlowStep(action=StepAction.NAVIGATE, url="https://example.com", timeout_ms=30)
        result = await NavigateAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert "continuing" in result.diagnostics

    async def test_passes_browser_executable(self, driver) -> None:
        step = FlowStep(
            action=StepAction.NAVIGATE, url="example.com", app="msedge.exe", timeout_ms=20
        )
        await NavigateAction().execute(step, None, None, _ctx(driver))
        assert driver.called("open_url") == [("open_url", "example.com", "msedge.exe")]

    async def test_requires_url(self, driver) -> None:
        result = await NavigateAction().execute(
            FlowStep(action=StepAction.NAVIGATE), None, None, _ctx(driver)
        )
        assert result.error_kind == "caller_error"


class TestLaunchAction:
    def _window(self, width: int = 640) -> WindowInfo:
        return WindowInfo(handle=77, title="Notepad", bounds=Bounds(width=width, height=480))

    async def test_waits_for_main_window(self, driver) -> None:
        driver.launch_window = self._window()
        driver.launch_window_after = 2
        step = FlowStep(action=StepAction.LAUNCH, process_path="notepad.exe")
        result = await LaunchAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert "window 'Notepad' ready" in result.diagnostics
        assert driver.main_window_polls == 3
        assert driver.called("wait_for_input_idle") == [("wait_for_input_idle", 4242)]

    async def test_empty_bounds_are_not_ready(self, driver) -> None:
        driver.launch_window = self._window(width=0)
        step = FlowStep(action=StepAction.LAUNCH, process_path="notepad.exe")
        result = await LaunchAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert "window not detected" in result.diagnostics

    async def test_empty_element_tree(self, driver) -> None:
        driver.launch_window = self._window()
        driver.children = 0
        step = FlowStep(action=StepAction.LAUNCH, process_path="notepad.exe")
        result = await LaunchAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert "element tree still empty" in result.diagnostics

    async def test_handed_off_process(self, driver) -> None:
        driver.launch_result = None
        step = FlowStep(action=StepAction.LAUNCH, process_path="https-handler.exe")
        result = await LaunchAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert "handed off" in result.diagnostics
        assert driver.called("wait_for_input_idle") == []

    async def test_exited_process(self, driver) -> None:
        driver.exited = True
        step = FlowStep(action=StepAction.LAUNCH, process_path="stub.exe")
        result = await LaunchAction().execute(step, None, None, _ctx(driver))
        assert result.success
        assert driver.main_window_polls == 0

    async def test_requires_process_path(self, driver) -> None:
        result = await LaunchAction().execute(
            FlowStep(action=StepAction.LAUNCH), None, None, _ctx(driver)
        )
        assert result.error == "'launch' requires processPath."


class TestAssertAction:
    async def test_passing_assertion(self, driver, calc) -> None:
        step = FlowStep(action=StepAction.ASSERT_EXISTS, selector="Button#plusButton", timeout_ms=50)
        result = await AssertAction().execute(step, None, calc, _ctx(driver))
        assert result.success
        assert result.expected == "Button#plusButton"

    async def test_failing_text_carries_expected_and_actual(self, driver, calc) -> None:
        step = FlowStep(
            action=StepAction.ASSERT_TEXT,
            selector="Text#CalculatorResults",
            contains="Display is 4",
            timeout_ms=50,
        )
        result = await AssertAction().execute(step, None, calc, _ctx(driver))
        assert not result.success
        assert result.expected == "Display is 4"
        assert result.actual == "Display is 0"

    async def test_non_assertion_step(self, driver) -> None:
        result = await AssertAction().execute(
            FlowStep(action=StepAction.CLICK), None, None, _ctx(driver)
        )
        assert result.error_kind == "caller_error"
