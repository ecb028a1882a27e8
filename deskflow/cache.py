"""Short-lived cache of resolved selectors."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from deskflow.logger import get_logger
from deskflow.models import SelectorMatch

log = get_logger(__name__)

CacheKey = tuple[int, str, bool]


@dataclass
class _Entry:
    match: SelectorMatch
    expires_at: float


class SelectorCache:
    """TTL cache keyed by (window handle, selector, exact).

    Entries become invalid once the TTL elapses; a different window handle is
    a different key, so a recreated window never sees stale entries. Expired
    entries are evicted lazily on read, and swept in bulk once the cache grows
    past ``soft_limit``.
    """

    def __init__(self, ttl_ms: int = 5000, soft_limit: int = 128) -> None:
        self.ttl_ms = max(ttl_ms, 0)
        self.soft_limit = soft_limit
        self._entries: dict[CacheKey, _Entry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @property
    def enabled(self) -> bool:
        return self.ttl_ms > 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: CacheKey) -> SelectorMatch | None:
        if not self.enabled:
            return None
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.expires_at <= now:
                del self._entries[key]
                self.misses += 1
                return None
            self.hits += 1
            return entry.match

    def put(self, key: CacheKey, match: SelectorMatch) -> None:
        if not self.enabled:
            return
        now = time.monotonic()
        with self._lock:
            self._entries[key] = _Entry(match=match, expires_at=now + self.ttl_ms / 1000)
            if len(self._entries) > self.soft_limit:
                self._sweep(now)

    def evict(self, key: CacheKey) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_window(self, handle: int) -> int:
        """Drop every entry for one window; returns how many were dropped."""
        with self._lock:
            stale = [key for key in self._entries if key[0] == handle]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def _sweep(self, now: float) -> None:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug("selector_cache_swept", evicted=len(expired), size=len(self._entries))
