"""Async TTL cache for provider metadata and signing keys.

Hits are served without locking. A miss takes a lock scoped to its own key,
so a slow fetch for one tenant or endpoint never holds up another, and
concurrent misses for the same key share a single load.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

V = TypeVar("V")


@dataclass(frozen=True)
class _Entry(Generic[V]):
    value: V
    loaded_at: float


class AsyncTTLCache(Generic[V]):
    """Mapping from key to a loaded value with expiry and manual invalidation.

    ``ttl_seconds`` of ``0`` or less keeps entries until invalidated.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, _Entry[V]] = {}
        self._locks: dict[Hashable, asyncio.Lock] = {}

    def _fresh(self, key: Hashable) -> _Entry[V] | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._ttl > 0 and self._clock() - entry.loaded_at >= self._ttl:
            return None
        return entry

    async def get_or_load(
        self, key: Hashable, loader: Callable[[], Awaitable[V]]
    ) -> V:
        """Return the cached value for key, loading it on a miss."""
        entry = self._fresh(key)
        if entry is not None:
            return entry.value

        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            entry = self._fresh(key)
            if entry is not None:
                return entry.value
            value = await loader()
            self._entries[key] = _Entry(value=value, loaded_at=self._clock())
            return value

    def age(self, key: Hashable) -> float | None:
        """Seconds since key was loaded, or None if not cached."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        return self._clock() - entry.loaded_at

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one entry, or every entry when key is None."""
        if key is None:
            self._entries.clear()
        else:
            self._entries.pop(key, None)
