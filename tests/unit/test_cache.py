"""Tests for the selector cache."""

import time

from deskflow.cache import SelectorCache
from deskflow.models import ElementSnapshot, SelectorMatch


def _match(name: str = "Save") -> SelectorMatch:
    return SelectorMatch(snapshot=ElementSnapshot(role="Button", name=name), element=object())


class TestSelectorCache:
    def test_put_and_get(self) -> None:
        cache = SelectorCache(ttl_ms=1000)
        match = _match()
        cache.put((1, "Button#Save", False), match)
        assert cache.get((1, "Button#Save", False)) is match
        assert cache.hits == 1

    def test_key_includes_window_and_exact(self) -> None:
        cache = SelectorCache(ttl_ms=1000)
        cache.put((1, "Button#Save", False), _match())
        assert cache.get((2, "Button#Save", False)) is None
        assert cache.get((1, "Button#Save", True)) is None
        assert cache.misses == 2

    def test_entries_expire(self) -> None:
        cache = SelectorCache(ttl_ms=20)
        cache.put((1, "a", False), _match())
        time.sleep(0.04)
        assert cache.get((1, "a", False)) is None
        assert len(cache) == 0

    def test_zero_ttl_disables(self) -> None:
        cache = SelectorCache(ttl_ms=0)
        assert not cache.enabled
        cache.put((1, "a", False), _match())
        assert len(cache) == 0
        assert cache.get((1, "a", False)) is None

    def test_soft_limit_sweeps_expired(self) -> None:
        cache = SelectorCache(ttl_ms=20, soft_limit=2)
        cache.put((1, "a", False), _match())
        cache.put((1, "b", False), _match())
        time.sleep(0.04)
        cache.put((1, "c", False), _match())
        assert len(cache) == 1

    def test_invalidate_window(self) -> None:
        cache = SelectorCache(ttl_ms=1000)
        cache.put((1, "a", False), _match())
        cache.put((1, "b", False), _match())
        cache.put((2, "a", False), _match())
        assert cache.invalidate_window(1) == 2
        assert len(cache) == 1

    def test_evict_and_clear(self) -> None:
        cache = SelectorCache(ttl_ms=1000)
        cache.put((1, "a", False), _match())
        cache.put((1, "b", False), _match())
        cache.evict((1, "a", False))
        assert cache.get((1, "a", False)) is None
        cache.clear()
        assert len(cache) == 0
