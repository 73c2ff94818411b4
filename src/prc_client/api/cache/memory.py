"""In-memory TTL cache with stale grace window and oldest-first eviction."""

from __future__ import annotations

import copy
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

from .base import CacheEntry, CacheLookup, build_entry, classify


class MemoryCacheStore:
    """Process-local cache store.

    - get(): fresh hit, stale hit (inside the stale window) or miss.
    - set(): stores a deep copy; re-setting a key counts as a new insertion.
    - Evicts the oldest-inserted entries once ``max_items`` is exceeded.

    Values are copied on the way in and out so callers can never mutate
    what the cache holds.
    """

    def __init__(
        self,
        *,
        prefix: str = "",
        max_items: int = 1000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._prefix = prefix
        self._max_items = max_items
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> CacheLookup:
        full_key = self._key(key)
        entry = self._entries.get(full_key)
        lookup = classify(entry, self._clock())
        if entry is not None and not lookup.found:
            del self._entries[full_key]
        if lookup.found:
            return lookup._replace(value=copy.deepcopy(lookup.value))
        return lookup

    async def set(self, key: str, value: Any, ttl_ms: int, stale_ms: int = 0) -> None:
        full_key = self._key(key)
        entry = build_entry(copy.deepcopy(value), self._clock(), ttl_ms, stale_ms)
        self._entries.pop(full_key, None)
        self._entries[full_key] = entry
        while len(self._entries) > self._max_items:
            self._entries.popitem(last=False)

    async def delete(self, key: str) -> bool:
        return self._entries.pop(self._key(key), None) is not None

    async def size(self) -> int:
        self._purge()
        return len(self._entries)

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    async def keys(self) -> list[str]:
        """Live keys (without the namespace prefix), oldest first."""
        self._purge()
        start = len(self._prefix)
        return [k[start:] for k in self._entries]

    async def get_entry(self, key: str) -> CacheEntry | None:
        """Raw entry for inspection, regardless of freshness."""
        entry = self._entries.get(self._key(key))
        return copy.deepcopy(entry) if entry is not None else None

    async def close(self) -> None:
        self._entries.clear()

    def _purge(self) -> None:
        now = self._clock()
        for full_key in [k for k, e in self._entries.items() if not e.is_servable(now)]:
            del self._entries[full_key]
