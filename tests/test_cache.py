from __future__ import annotations

import pytest

from sailsim.analysis.cache import ContentCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_ttl_expiry() -> None:
    clock = FakeClock()
    cache: ContentCache[str] = ContentCache(ttl_s=0.5, clock=clock)
    cache.put("k", "v")
    clock.now = 0.4
    assert cache.get("k") == "v"
    clock.now = 0.6
    assert cache.get("k") is None
    assert "k" not in cache


def test_get_or_compute_runs_once() -> None:
    clock = FakeClock()
    cache: ContentCache[int] = ContentCache(ttl_s=1.0, clock=clock)
    calls = []

    def compute() -> int:
        calls.append(1)
        return 42

    assert cache.get_or_compute("a", compute) == 42
    assert cache.get_or_compute("a", compute) == 42
    assert len(calls) == 1


def test_oldest_entry_evicted() -> None:
    clock = FakeClock()
    cache: ContentCache[int] = ContentCache(ttl_s=10.0, clock=clock, max_entries=2)
    cache.put("a", 1)
    clock.now = 1.0
    cache.put("b", 2)
    clock.now = 2.0
    cache.put("c", 3)
    assert "a" not in cache
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_put_replaces_mapping() -> None:
    cache: ContentCache[int] = ContentCache(ttl_s=1.0, clock=FakeClock())
    cache.put("a", 1)
    before = cache._entries
    cache.put("b", 2)
    assert cache._entries is not before
    assert "b" not in before


def test_invalidate() -> None:
    cache: ContentCache[int] = ContentCache(ttl_s=1.0, clock=FakeClock())
    cache.put("a", 1)
    cache.put("b", 2)
    cache.invalidate("a")
    assert len(cache) == 1
    cache.invalidate()
    assert len(cache) == 0


def test_validation() -> None:
    with pytest.raises(ValueError):
        ContentCache(ttl_s=0.0)
    with pytest.raises(ValueError):
        ContentCache(ttl_s=1.0, max_entries=0)
