"""Learned navigation hints: host -> window-title fragment."""

from __future__ import annotations

import ipaddress
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from urllib.parse import urlsplit

from deskflow.logger import get_logger
from deskflow.models import DomainHintState

log = get_logger(__name__)

MIN_HINT_LENGTH = 2

WELL_KNOWN_SITES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("youtube",), "YouTube"),
    (("google",), "Google"),
    (("github",), "GitHub"),
    (("stackoverflow",), "Stack Overflow"),
    (("bing",), "Bing"),
    (("reddit",), "Reddit"),
    (("twitter", "x.com"), "X"),
    (("facebook",), "Facebook"),
    (("linkedin",), "LinkedIn"),
    (("wikipedia",), "Wikipedia"),
)

_LOCAL_HOSTS = {"localhost", "0.0.0.0"}

_BROWSER_SUFFIX = re.compile(
    r"(\s+and\s+\d+\s+more\s+pages?)?"
    r"(\s*[-–—]\s*[^-–—]*?profile[^-–—]*)?"
    r"(\s*[-–—]\s*(personal|work))?"
    r"\s*[-–—]\s*"
    r"(google chrome|chromium|microsoft\u200b?\s*edge|mozilla firefox|firefox|"
    r"brave|opera|vivaldi|internet explorer|safari)\s*$",
    re.IGNORECASE,
)
_TITLE_SEPARATOR = re.compile(r"\s+(?:-|\||—|–|·|:)\s+")


def normalize_host(host: str) -> str:
    host = host.strip().lower().rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host


def extract_title_hint(title: str) -> str | None:
    """Reduce a raw browser window title to a short matchable fragment.

    ``"Example Domain - Google Chrome"`` -> ``"Example Domain"``.
    Returns None when nothing usable (2+ characters) remains.
    """
    cleaned = _BROWSER_SUFFIX.sub("", title.strip()).strip()
    if not cleaned:
        return None
    head = _TITLE_SEPARATOR.split(cleaned, maxsplit=1)[0].strip()
    if len(head) < MIN_HINT_LENGTH:
        return None
    return head


def _is_local(host: str) -> bool:
    if host in _LOCAL_HOSTS or host.endswith(".local"):
        return True
    try:
        return ipaddress.ip_address(host.strip("[]")).is_loopback
    except ValueError:
        return False


def derive_domain_hint(url: str, store: DomainHintStore | None = None) -> str:
    """Pick the title fragment to wait for after opening ``url``.

    Priority: learned hint, local host path/port, well-known site name,
    first label of the host.
    """
    candidates = domain_hint_candidates(url, store)
    return candidates[0] if candidates else ""


def domain_hint_candidates(url: str, store: DomainHintStore | None = None) -> list[str]:
    """All title fragments for ``url``, best first and without duplicates.

    The learned hint leads; the derived hint follows so a stale learned
    hint can still be recovered from.
    """
    try:
        parts = urlsplit(url if "://" in url else f"https://{url}")
        host = (parts.hostname or "").lower()
        port = parts.port
    except ValueError:
        return []
    if not host:
        return []

    candidates: list[str] = []
    if store is not None:
        learned = store.get(host)
        if learned:
            candidates.append(learned)

    derived = _derived_hint(host, parts.path, port)
    if derived.lower() not in (c.lower() for c in candidates):
        candidates.append(derived)
    return candidates


def _derived_hint(host: str, path: str, port: int | None) -> str:
    if _is_local(host):
        segment = next((s for s in path.split("/") if s), None)
        if segment:
            return segment
        if port:
            return str(port)
        return host

    for needles, friendly in WELL_KNOWN_SITES:
        if any(needle in host for needle in needles):
            return friendly

    return normalize_host(host).split(".")[0]


class DomainHintStore:
    """In-memory hint map with best-effort background persistence.

    The dict is the source of truth. Writes snapshot it under the lock and
    hand the JSON to a single background worker; persistence failures are
    logged and dropped.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path) if path else None
        self._hints: dict[str, str] = {}
        self._lock = threading.Lock()
        self._writer: ThreadPoolExecutor | None = None
        self._pending: list[Future] = []
        self._load()

    def get(self, host: str) -> str | None:
        key = normalize_host(host)
        with self._lock:
            return self._hints.get(key)

    def learn(self, host: str, observed_title: str) -> str | None:
        """Record the hint for ``host`` from a window title.

        Returns the stored hint when it changed, else None.
        """
        key = normalize_host(host)
        hint = extract_title_hint(observed_title)
        if not key or hint is None:
            return None

        with self._lock:
            if self._hints.get(key) == hint:
                return None
            self._hints[key] = hint
            snapshot = DomainHintState(hints=dict(self._hints))

        log.info("domain_hint_learned", host=key, hint=hint)
        self._schedule_write(snapshot)
        return hint

    def all(self) -> dict[str, str]:
        with self._lock:
            return dict(self._hints)

    def flush(self, timeout: float | None = 5.0) -> None:
        """Block until queued writes finish."""
        pending, self._pending = self._pending, []
        for future in pending:
            try:
                future.result(timeout=timeout)
            except Exception as exc:
                log.debug("domain_hint_flush_failed", error=str(exc))

    def close(self) -> None:
        self.flush()
        if self._writer is not None:
            self._writer.shutdown(wait=True)
            self._writer = None

    # --- Private helpers ---

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            state = DomainHintState.model_validate_json(self.path.read_text(encoding="utf-8"))
        except Exception as exc:
            log.debug("domain_hint_load_failed", path=str(self.path), error=str(exc))
            return
        self._hints = {normalize_host(h): v for h, v in state.hints.items()}

    def _schedule_write(self, state: DomainHintState) -> None:
        if self.path is None:
            return
        if self._writer is None:
            self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="deskflow-hints")
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(self._writer.submit(self._write, state))

    def _write(self, state: DomainHintState) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(state.model_dump_json(indent=2), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as exc:
            log.debug("domain_hint_write_failed", path=str(self.path), error=str(exc))
