"""Cache store contract shared by the memory and Redis backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple, Protocol, runtime_checkable


@dataclass(frozen=True)
class CacheEntry:
    """A cached value with its freshness window (epoch seconds)."""

    value: Any
    stored_at: float
    expires_at: float
    stale_until: float | None = None

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at

    def is_servable(self, now: float) -> bool:
        """Fresh, or expired but still inside the stale window."""
        if self.is_fresh(now):
            return True
        return self.stale_until is not None and now < self.stale_until

    @property
    def evict_at(self) -> float:
        """When the entry stops being useful at all."""
        if self.stale_until is not None and self.stale_until > self.expires_at:
            return self.stale_until
        return self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "stored_at": self.stored_at,
            "expires_at": self.expires_at,
            "stale_until": self.stale_until,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        return cls(
            value=data["value"],
            stored_at=float(data["stored_at"]),
            expires_at=float(data["expires_at"]),
            stale_until=float(data["stale_until"]) if data.get("stale_until") is not None else None,
        )


class CacheLookup(NamedTuple):
    """Result of a cache read."""

    value: Any
    found: bool
    is_stale: bool

    @classmethod
    def miss(cls) -> CacheLookup:
        return cls(None, False, False)


def build_entry(value: Any, now: float, ttl_ms: int, stale_ms: int = 0) -> CacheEntry:
    """Create an entry stored at ``now`` that expires after ``ttl_ms``."""
    expires_at = now + ttl_ms / 1000
    stale_until = expires_at + stale_ms / 1000 if stale_ms > 0 else None
    return CacheEntry(value=value, stored_at=now, expires_at=expires_at, stale_until=stale_until)


def classify(entry: CacheEntry | None, now: float) -> CacheLookup:
    """Evaluate an entry's TTL lazily at read time."""
    if entry is None or not entry.is_servable(now):
        return CacheLookup.miss()
    return CacheLookup(entry.value, True, not entry.is_fresh(now))


@runtime_checkable
class CacheStore(Protocol):
    """Key/value store with TTL and stale-read support."""

    async def get(self, key: str) -> CacheLookup: ...

    async def set(self, key: str, value: Any, ttl_ms: int, stale_ms: int = 0) -> None: ...

    async def delete(self, key: str) -> bool: ...

    async def size(self) -> int: ...

    async def clear(self) -> int: ...

    async def close(self) -> None: ...


@runtime_checkable
class InspectableCacheStore(CacheStore, Protocol):
    """A store that can also enumerate keys and expose raw entries."""

    async def keys(self) -> list[str]: ...

    async def get_entry(self, key: str) -> CacheEntry | None: ...
