"""
In-process TTL cache shared by the upstream clients.

One instance is built at startup and handed to every client. Entries expire
after a fixed TTL (lazily, on read) and the least recently used entry is dropped
once the cache is full. Not shared across processes; a multi-instance
deployment gets one cache per instance.
"""
from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 1024


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float


@dataclass(frozen=True)
class CacheState:
    size: int
    max_entries: int
    ttl_seconds: float


def cache_key(upstream: str, operation: str, identifier: str | int | None = None) -> str:
    """
    Build a key like `tmdb:movie:27205`.

    Callers encode everything that changes the upstream response into the key.
    """

    parts = [upstream, operation]
    if identifier is not None:
        parts.append(str(identifier))
    return ":".join(parts)


class TTLCache:
    """
    Not thread-safe: all access happens on the event loop thread, so each
    get/set runs to completion between suspension points.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._ttl = float(ttl_seconds)
        self._max_entries = int(max_entries)
        self._clock = clock
        self._data: OrderedDict[str, CacheEntry] = OrderedDict()

    def get(self, key: str) -> Any | None:
        entry = self._data.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at > self._ttl:
            del self._data[key]
            return None
        self._data.move_to_end(key)
        return entry.value

    def set(self, key: str, value: Any) -> None:
        if key in self._data:
            del self._data[key]
        while len(self._data) >= self._max_entries:
            self._data.popitem(last=False)
        self._data[key] = CacheEntry(value=value, stored_at=self._clock())

    def clear(self) -> None:
        self._data.clear()

    def get_state(self) -> CacheState:
        return CacheState(size=len(self._data), max_entries=self._max_entries, ttl_seconds=self._ttl)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        """Live-entry check that leaves LRU order and expired entries alone."""
        entry = self._data.get(key) if isinstance(key, str) else None
        return entry is not None and self._clock() - entry.stored_at <= self._ttl
