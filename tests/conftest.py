"""Shared test fixtures for DeskFlow."""
import json
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from deskflow.config import EngineConfig, TimingSettings
from deskflow.driver import AccessibilityDriver
from deskflow.exceptions import ElementUnavailableError
from deskflow.models import Bounds, ElementSnapshot, ProcessInfo, WindowInfo

# Path to test fixtures
FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _bare(name: str) -> str:
    return name.strip().lower().removesuffix(".exe")


@dataclass(eq=False)
class FakeElement:
    """Scriptable element. ``appear_after`` hides it for that many scans."""

    role: str = "Button"
    name: str | None = None
    automation_id: str | None = None
    enabled: bool = True
    offscreen: bool = False
    bounds: Bounds | None = field(default_factory=lambda: Bounds(x=0, y=0, width=40, height=20))
    value: str | None = None
    read_only: bool | None = None
    scrollable: bool = False
    alive: bool = True
    appear_after: int = 0
    vanish_after: int | None = None
    moving: bool = False
    _moves: int = 0


class FakeDriver(AccessibilityDriver):
    """In-memory desktop: windows, elements and processes set up by tests."""

    def __init__(self) -> None:
        self.windows: list[WindowInfo] = []
        self.elements: dict[int, list[FakeElement]] = {}
        self.calls: list[tuple] = []
        self.scans = 0
        self.focused: FakeElement | None = None
        self.typed = ""
        self.processes: dict[str, int] = {}
        # launch behaviour
        self.launch_result: ProcessInfo | None = ProcessInfo(pid=4242, name="app.exe")
        self.launch_window: WindowInfo | None = None
        self.launch_window_after = 0
        self.input_idle = True
        self.exited = False
        self.main_window_polls = 0
        self.children = 1
        # navigate behaviour: url -> window title that appears when opened
        self.url_titles: dict[str, str] = {}
        self.next_handle = 1000

    @property
    def name(self) -> str:
        return "fake"

    @property
    def version(self) -> str:
        return "fake 1.0"

    # --- setup helpers ---

    def add_window(self, title: str, process_name: str = "app.exe", handle: int | None = None) -> WindowInfo:
        if handle is None:
            self.next_handle += 1
            handle = self.next_handle
        window = WindowInfo(
            handle=handle,
            title=title,
            process_name=process_name,
            pid=handle,
            bounds=Bounds(x=0, y=0, width=800, height=600),
        )
        self.windows.append(window)
        self.elements.setdefault(handle, [])
        return window

    def add_element(self, window: WindowInfo, **kwargs) -> FakeElement:
        element = FakeElement(**kwargs)
        self.elements.setdefault(window.handle, []).append(element)
        return element

    def remove_window(self, window: WindowInfo) -> None:
        self.windows = [w for w in self.windows if w.handle != window.handle]

    def called(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    # --- windows ---

    async def list_windows(self) -> list[WindowInfo]:
        return list(self.windows)

    async def find_window(self, process_name, title):
        for window in self.windows:
            if process_name and (window.process_name or "").lower().removesuffix(".exe") != (
                process_name.lower().removesuffix(".exe")
            ):
                continue
            if title and title.lower() not in window.title.lower():
                continue
            return window
        return None

    async def focus_window(self, window):
        self.calls.append(("focus_window", window.handle))

    async def child_count(self, window):
        return self.children

    # --- elements ---

    async def find_elements(self, window, role):
        self.scans += 1
        found = []
        for element in self.elements.get(window.handle, []):
            if self.scans <= element.appear_after:
                continue
            if element.vanish_after is not None and self.scans > element.vanish_after:
                continue
            if role is None or element.role == role:
                found.append(element)
        return found

    async def snapshot(self, element):
        if not element.alive:
            raise ElementUnavailableError("element is gone")
        bounds = element.bounds
        if element.moving and bounds is not None:
            element._moves += 1
            bounds = bounds.model_copy(update={"x": bounds.x + element._moves})
        return ElementSnapshot(
            role=element.role,
            name=element.name,
            automation_id=element.automation_id,
            enabled=element.enabled,
            offscreen=element.offscreen,
            bounds=bounds,
        )

    async def read_value(self, element):
        if not element.alive:
            raise ElementUnavailableError("element is gone")
        return element.value

    async def is_read_only(self, element):
        return element.read_only

    async def click(self, element):
        if not element.alive:
            raise ElementUnavailableError("element is gone")
        self.calls.append(("click", element))
        self.focused = element

    async def hover(self, element):
        self.calls.append(("hover", element))

    async def scroll(self, element, direction, amount):
        self.calls.append(("scroll", element, direction, amount))
        return element.scrollable

    # --- input ---

    async def wheel(self, delta):
        self.calls.append(("wheel", delta))

    async def send_char(self, char):
        self.typed += char
        if self.focused is not None:
            self.focused.value = (self.focused.value or "") + char

    async def send_keys(self, keys):
        self.calls.append(("send_keys", keys))

    # --- processes ---

    async def launch(self, path, args=None):
        self.calls.append(("launch", path))
        return self.launch_result

    async def wait_for_input_idle(self, process, timeout_ms):
        self.calls.append(("wait_for_input_idle", process.pid))
        return self.input_idle

    async def main_window(self, process):
        self.main_window_polls += 1
        if self.main_window_polls <= self.launch_window_after:
            return None
        return self.launch_window

    async def process_exited(self, process):
        return self.exited

    async def open_url(self, url, executable=None):
        self.calls.append(("open_url", url, executable))
        title = self.url_titles.get(url)
        if title is not None:
            self.add_window(title, process_name="chrome.exe")

    async def process_count(self, name):
        wanted = _bare(name)
        return sum(count for proc, count in self.processes.items() if _bare(proc) == wanted)

    async def capture_screen(self, path):
        Path(path).write_bytes(b"PNG")
        return path


@pytest.fixture
def fixtures_dir() -> Path:
    """Path to test fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def calc(driver: FakeDriver) -> WindowInfo:
    """A calculator-like window with a few buttons and a display."""
    window = driver.add_window("Calculator", process_name="CalculatorApp.exe")
    driver.add_element(window, role="Button", name="Two", automation_id="num2Button")
    driver.add_element(window, role="Button", name="Plus", automation_id="plusButton")
    driver.add_element(window, role="Button", name="Equals", automation_id="equalButton")
    driver.add_element(
        window, role="Text", name="Display is 0", automation_id="CalculatorResults"
    )
    return window


@pytest.fixture
def timing() -> TimingSettings:
    return TimingSettings.immediate()


@pytest.fixture
def engine_config(tmp_path, timing) -> EngineConfig:
    return EngineConfig(
        timing=timing,
        hints_path=tmp_path / "hints.json",
        screenshots_dir=tmp_path / "screenshots",
        reports_dir=tmp_path / "reports",
    )


@pytest.fixture
def sample_flow_data() -> dict:
    """Load the sample flow as a dict."""
    with open(FIXTURES_DIR / "calculator.flow.json") as f:
        return json.load(f)


@pytest.fixture
def sample_flow_path(tmp_path, sample_flow_data) -> Path:
    """Write the sample flow to a temp directory and return the directory path."""
    flows_dir = tmp_path / "flows"
    flows_dir.mkdir()
    with open(flows_dir / "calculator.flow.json", "w") as f:
        json.dump(sample_flow_data, f)
    return flows_dir
