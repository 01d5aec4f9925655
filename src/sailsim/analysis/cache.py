"""TTL caches keyed by content hash.

Entries are never mutated; every update swaps in a new mapping so readers
holding the previous one keep a consistent view.
"""

from __future__ import annotations

import time
from typing import Callable, Generic, TypeVar

V = TypeVar("V")

DEFAULT_MAX_ENTRIES = 64


class ContentCache(Generic[V]):
    def __init__(
        self,
        ttl_s: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        if ttl_s <= 0.0:
            raise ValueError("ttl_s must be > 0")
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_s = ttl_s
        self.clock = clock
        self.max_entries = max_entries
        self._entries: dict[str, tuple[float, V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stamp, value = entry
        if self.clock() - stamp > self.ttl_s:
            self.invalidate(key)
            return None
        return value

    def put(self, key: str, value: V) -> V:
        now = self.clock()
        live = {k: e for k, e in self._entries.items() if now - e[0] <= self.ttl_s and k != key}
        while len(live) >= self.max_entries:
            oldest = min(live, key=lambda k: live[k][0])
            del live[oldest]
        live[key] = (now, value)
        self._entries = live
        return value

    def get_or_compute(self, key: str, compute: Callable[[], V]) -> V:
        hit = self.get(key)
        if hit is not None:
            return hit
        return self.put(key, compute())

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._entries = {}
            return
        self._entries = {k: e for k, e in self._entries.items() if k != key}


class TrajectoryCache(ContentCache["Trajectory"]):
    """Predicted trajectories keyed by their input hash."""


class IntersectionCache(ContentCache["IntersectionReport"]):
    """Intersection reports keyed by trajectory hash and query."""
