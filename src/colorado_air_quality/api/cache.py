from __future__ import annotations

from typing import Generic, Optional, TypeVar

from colorado_air_quality.utils.clock import Clock

V = TypeVar("V")


class TTLCache(Generic[V]):
    """In-process cache whose entries expire ``ttl_s`` seconds after being set."""

    def __init__(self, clock: Clock, ttl_s: float = 1800):
        self.ttl = ttl_s
        self._clock = clock
        self._store: dict[str, tuple[float, V]] = {}

    def get(self, key: str) -> Optional[V]:
        item = self._store.get(key)
        if not item:
            return None
        exp, val = item
        if exp <= self._clock.timestamp():
            self._store.pop(key, None)
            return None
        return val

    def set(self, key: str, value: V) -> None:
        self._store[key] = (self._clock.timestamp() + self.ttl, value)

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
