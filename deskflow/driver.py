"""Accessibility driver interface.

The driver is the only platform dependency the engine calls through. It hands
out live element handles (opaque objects) that the engine uses within a
single call and snapshots immediately; any method taking a handle may raise
:class:`~deskflow.exceptions.ElementUnavailableError` once the platform has
invalidated it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from deskflow.models import ElementSnapshot, ProcessInfo, WindowInfo

ElementHandle = Any


class AccessibilityDriver(ABC):
    """Base class for platform accessibility backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Driver name for logging."""

    @property
    def version(self) -> str:
        """Version of the platform backend, recorded in reports."""
        return "unknown"

    # --- Windows ---

    @abstractmethod
    async def list_windows(self) -> list[WindowInfo]:
        """Enumerate top-level windows."""

    @abstractmethod
    async def find_window(
        self, process_name: str | None, title: str | None
    ) -> WindowInfo | None:
        """Find a window by process name and/or case-insensitive title substring."""

    @abstractmethod
    async def focus_window(self, window: WindowInfo) -> None:
        """Bring a window to the foreground."""

    @abstractmethod
    async def child_count(self, window: WindowInfo) -> int:
        """Number of direct children in the window's element tree."""

    # --- Elements ---

    @abstractmethod
    async def find_elements(
        self, window: WindowInfo, role: str | None
    ) -> list[ElementHandle]:
        """All descendants of ``window``, filtered by role when given."""

    @abstractmethod
    async def snapshot(self, element: ElementHandle) -> ElementSnapshot:
        """Copy an element's current properties."""

    @abstractmethod
    async def read_value(self, element: ElementHandle) -> str | None:
        """Structured value of the element, or None when it has none."""

    @abstractmethod
    async def is_read_only(self, element: ElementHandle) -> bool | None:
        """Whether a value-bearing element rejects input; None when unknown."""

    @abstractmethod
    async def click(self, element: ElementHandle) -> None:
        """Invoke the element's primary interaction."""

    @abstractmethod
    async def hover(self, element: ElementHandle) -> None:
        """Move the pointer over the element."""

    @abstractmethod
    async def scroll(self, element: ElementHandle, direction: str, amount: int) -> bool:
        """Scroll via the element's scroll capability. False when it has none."""

    # --- Input ---

    @abstractmethod
    async def wheel(self, delta: int) -> None:
        """Inject a mouse wheel delta at the pointer position."""

    @abstractmethod
    async def send_char(self, char: str) -> None:
        """Inject one character through low-level input."""

    @abstractmethod
    async def send_keys(self, keys: str) -> None:
        """Send a key sequence (e.g. ``Ctrl+S``, ``Enter``)."""

    # --- Processes ---

    @abstractmethod
    async def launch(self, path: str, args: list[str] | None = None) -> ProcessInfo | None:
        """Start a process. None when the OS handed it off (shell launch)."""

    @abstractmethod
    async def wait_for_input_idle(self, process: ProcessInfo, timeout_ms: int) -> bool:
        """Best-effort OS idle signal. False when unsupported for the process."""

    @abstractmethod
    async def main_window(self, process: ProcessInfo) -> WindowInfo | None:
        """Main window of a process, once it has one."""

    @abstractmethod
    async def process_exited(self, process: ProcessInfo) -> bool:
        """Whether a launched process has already exited."""

    @abstractmethod
    async def open_url(self, url: str, executable: str | None = None) -> None:
        """Open a URL with ``executable`` or the default handler."""

    @abstractmethod
    async def process_count(self, name: str) -> int:
        """Number of running processes with this name."""

    # --- Artifacts ---

    @abstractmethod
    async def capture_screen(self, path: str) -> str | None:
        """Save a screenshot to ``path``; return it, or None on failure."""
