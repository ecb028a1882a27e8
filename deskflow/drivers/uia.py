"""Windows UI Automation driver built on pywinauto's ``uia`` backend.

All UIA calls run on one dedicated worker thread that joins the COM
multithreaded apartment, so the event loop never blocks on the
accessibility tree.
"""

from __future__ import annotations

import asyncio
import os
import subprocess
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as package_version
from typing import Any, TypeVar

import comtypes
import psutil
import pywintypes
import win32api
import win32con
import win32event
from comtypes import COMError
from PIL import ImageGrab
from pywinauto import Desktop, keyboard, mouse
from pywinauto.controls.uiawrapper import UIAWrapper
from pywinauto.findwindows import ElementNotFoundError
from pywinauto.uia_defines import NoPatternInterfaceError

from deskflow.driver import AccessibilityDriver, ElementHandle
from deskflow.drivers.keys import escape_char, to_send_keys
from deskflow.exceptions import DriverError, ElementUnavailableError
from deskflow.logger import get_logger
from deskflow.models import Bounds, ElementSnapshot, ProcessInfo, WindowInfo

log = get_logger(__name__)

T = TypeVar("T")

_UNAVAILABLE = (COMError, ElementNotFoundError)


def _init_com() -> None:
    comtypes.CoInitializeEx(comtypes.COINIT_MULTITHREADED)


def _bounds(wrapper: UIAWrapper) -> Bounds:
    rect = wrapper.rectangle()
    return Bounds(x=rect.left, y=rect.top, width=rect.width(), height=rect.height())


def _process_name(pid: int | None) -> str | None:
    if not pid:
        return None
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return None


def _bare(name: str) -> str:
    return name.strip().lower().removesuffix(".exe")


class UIADriver(AccessibilityDriver):
    """Accessibility driver for Windows desktop applications."""

    def __init__(self) -> None:
        self._desktop = Desktop(backend="uia")
        self._worker = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="deskflow-uia", initializer=_init_com
        )
        self._launched: dict[int, subprocess.Popen] = {}

    @property
    def name(self) -> str:
        return "uia"

    @property
    def version(self) -> str:
        try:
            return f"pywinauto {package_version('pywinauto')}"
        except PackageNotFoundError:
            return "pywinauto"

    def close(self) -> None:
        self._worker.shutdown(wait=True)

    # --- Windows ---

    async def list_windows(self) -> list[WindowInfo]:
        return await self._call(self._list_windows)

    async def find_window(
        self, process_name: str | None, title: str | None
    ) -> WindowInfo | None:
        wanted_process = _bare(process_name) if process_name else None
        wanted_title = title.lower() if title else None
        for window in await self.list_windows():
            if wanted_process and _bare(window.process_name or "") != wanted_process:
                continue
            if wanted_title and wanted_title not in window.title.lower():
                continue
            return window
        return None

    async def focus_window(self, window: WindowInfo) -> None:
        await self._call(lambda: self._window(window).set_focus())

    async def child_count(self, window: WindowInfo) -> int:
        return await self._call(lambda: len(self._window(window).children()))

    # --- Elements ---

    async def find_elements(self, window: WindowInfo, role: str | None) -> list[ElementHandle]:
        return await self._call(self._descendants, window, role)

    async def snapshot(self, element: ElementHandle) -> ElementSnapshot:
        def read() -> ElementSnapshot:
            info = element.element_info
            return ElementSnapshot(
                role=info.control_type or "Unknown",
                name=info.name or None,
                automation_id=info.automation_id or None,
                enabled=bool(info.enabled),
                offscreen=not info.visible,
                bounds=_bounds(element),
            )

        return await self._call(read)

    async def read_value(self, element: ElementHandle) -> str | None:
        def read() -> str | None:
            try:
                return element.iface_value.CurrentValue
            except NoPatternInterfaceError:
                return None

        return await self._call(read)

    async def is_read_only(self, element: ElementHandle) -> bool | None:
        def read() -> bool | None:
            try:
                return bool(element.iface_value.CurrentIsReadOnly)
            except NoPatternInterfaceError:
                return None

        return await self._call(read)

    async def click(self, element: ElementHandle) -> None:
        def press() -> None:
            try:
                element.invoke()
            except NoPatternInterfaceError:
                element.click_input()

        await self._call(press)

    async def hover(self, element: ElementHandle) -> None:
        def move() -> None:
            center = element.rectangle().mid_point()
            mouse.move(coords=(center.x, center.y))

        await self._call(move)

    async def scroll(self, element: ElementHandle, direction: str, amount: int) -> bool:
        def scroll() -> bool:
            try:
                element.scroll(direction, "line", count=amount)
            except NoPatternInterfaceError:
                return False
            return True

        return await self._call(scroll)

    # --- Input ---

    async def wheel(self, delta: int) -> None:
        def spin() -> None:
            x, y = win32api.GetCursorPos()
            mouse.scroll(coords=(x, y), wheel_dist=delta // 120)

        await self._call(spin)

    async def send_char(self, char: str) -> None:
        await self._call(keyboard.send_keys, escape_char(char), pause=0)

    async def send_keys(self, keys: str) -> None:
        try:
            sequence = to_send_keys(keys)
        except ValueError as exc:
            raise DriverError(str(exc)) from exc
        await self._call(keyboard.send_keys, sequence, pause=0.02)

    # --- Processes ---

    async def launch(self, path: str, args: list[str] | None = None) -> ProcessInfo | None:
        def start() -> ProcessInfo | None:
            try:
                proc = subprocess.Popen([path, *(args or [])])
            except OSError:
                # Documents, shortcuts and app aliases need the shell.
                os.startfile(path)
                return None
            self._launched[proc.pid] = proc
            return ProcessInfo(pid=proc.pid, name=_process_name(proc.pid) or os.path.basename(path))

        return await asyncio.to_thread(start)

    async def wait_for_input_idle(self, process: ProcessInfo, timeout_ms: int) -> bool:
        def wait() -> bool:
            try:
                handle = win32api.OpenProcess(
                    win32con.PROCESS_QUERY_INFORMATION | win32con.SYNCHRONIZE, False, process.pid
                )
            except pywintypes.error:
                return False
            try:
                return win32event.WaitForInputIdle(handle, timeout_ms) == 0
            except pywintypes.error:
                return False
            finally:
                win32api.CloseHandle(handle)

        return await asyncio.to_thread(wait)

    async def main_window(self, process: ProcessInfo) -> WindowInfo | None:
        for window in await self.list_windows():
            if window.pid == process.pid and window.title:
                return window
        return None

    async def process_exited(self, process: ProcessInfo) -> bool:
        proc = self._launched.get(process.pid)
        if proc is not None:
            return proc.poll() is not None
        return not psutil.pid_exists(process.pid)

    async def open_url(self, url: str, executable: str | None = None) -> None:
        def start() -> None:
            if executable:
                subprocess.Popen([executable, url])
            else:
                os.startfile(url)

        await asyncio.to_thread(start)

    async def process_count(self, name: str) -> int:
        def count() -> int:
            wanted = _bare(name)
            total = 0
            for proc in psutil.process_iter(["name"]):
                if _bare(proc.info.get("name") or "") == wanted:
                    total += 1
            return total

        return await asyncio.to_thread(count)

    # --- Artifacts ---

    async def capture_screen(self, path: str) -> str | None:
        def grab() -> str | None:
            try:
                ImageGrab.grab(all_screens=True).save(path)
            except OSError as exc:
                log.warning("screen_capture_failed", path=path, error=str(exc))
                return None
            return path

        return await asyncio.to_thread(grab)

    # --- Private helpers ---

    async def _call(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._worker, lambda: self._guarded(fn, *args, **kwargs))

    @staticmethod
    def _guarded(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return fn(*args, **kwargs)
        except _UNAVAILABLE as exc:
            raise ElementUnavailableError(str(exc)) from exc

    def _list_windows(self) -> list[WindowInfo]:
        windows: list[WindowInfo] = []
        for wrapper in self._desktop.windows():
            try:
                pid = wrapper.process_id()
                windows.append(
                    WindowInfo(
                        handle=wrapper.handle,
                        title=wrapper.window_text() or "",
                        process_name=_process_name(pid),
                        pid=pid,
                        bounds=_bounds(wrapper),
                    )
                )
            except _UNAVAILABLE:
                continue
        return windows

    def _window(self, window: WindowInfo) -> UIAWrapper:
        return self._desktop.window(handle=window.handle).wrapper_object()

    def _descendants(self, window: WindowInfo, role: str | None) -> list[UIAWrapper]:
        root = self._window(window)
        if not role:
            return root.descendants()
        try:
            return root.descendants(control_type=role)
        except (KeyError, ValueError):
            # Not a UIA control type name: filter by the reported type instead.
            return [d for d in root.descendants() if d.element_info.control_type == role]
