"""Single-value TTL cache.

Holds the last good snapshot so non-forced reads (page renders) do not hit
the data endpoint. Forced polls bypass it and refresh it.

Usage:
    _cache = SimpleCache(ttl=300)

    hit, data = _cache.get()
    if hit:
        return data

    data = await fetch()
    _cache.set(data)
"""

import time
from typing import Callable


class SimpleCache:
    """TTL-based single-value cache."""

    __slots__ = ("ttl", "data", "timestamp", "_clock")

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.data = None
        self.timestamp: float = 0.0
        self._clock = clock

    def get(self) -> tuple[bool, object]:
        """Return (hit, data)."""
        if self.data is None:
            return False, None
        if self._clock() - self.timestamp >= self.ttl:
            return False, None
        return True, self.data

    def set(self, data: object) -> None:
        self.data = data
        self.timestamp = self._clock()
