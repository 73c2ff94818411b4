"""Redis-backed cache store (``redis.asyncio``).

Entries are stored as JSON envelopes; Redis expiry is set to the end of
the stale window so the server reclaims keys on its own. Key enumeration
and raw entry access are not offered by this backend.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from redis.asyncio import Redis

from .base import CacheEntry, CacheLookup, build_entry, classify

logger = logging.getLogger(__name__)


class RedisCacheStore:
    """Cache store backed by a shared Redis instance.

    Keys are ``<redis_key_prefix><prefix><key>`` so several clients can
    share one Redis database without colliding.
    """

    def __init__(
        self,
        redis: Redis,
        *,
        prefix: str = "",
        redis_key_prefix: str = "",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._redis = redis
        self._namespace = f"{redis_key_prefix}{prefix}"
        self._clock = clock

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        prefix: str = "",
        redis_key_prefix: str = "",
    ) -> RedisCacheStore:
        """Create a store with its own connection pool."""
        return cls(
            Redis.from_url(url, decode_responses=True),
            prefix=prefix,
            redis_key_prefix=redis_key_prefix,
        )

    def _key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    async def get(self, key: str) -> CacheLookup:
        raw = await self._redis.get(self._key(key))
        if raw is None:
            return CacheLookup.miss()
        try:
            entry = CacheEntry.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning("Discarding unreadable cache entry %s: %s", key, e)
            await self._redis.delete(self._key(key))
            return CacheLookup.miss()
        return classify(entry, self._clock())

    async def set(self, key: str, value: Any, ttl_ms: int, stale_ms: int = 0) -> None:
        now = self._clock()
        entry = build_entry(value, now, ttl_ms, stale_ms)
        px = max(1, int((entry.evict_at - now) * 1000))
        await self._redis.set(self._key(key), json.dumps(entry.to_dict()), px=px)

    async def delete(self, key: str) -> bool:
        return bool(await self._redis.delete(self._key(key)))

    async def size(self) -> int:
        count = 0
        async for _ in self._redis.scan_iter(match=f"{self._namespace}*"):
            count += 1
        return count

    async def clear(self) -> int:
        keys = [k async for k in self._redis.scan_iter(match=f"{self._namespace}*")]
        if not keys:
            return 0
        return int(await self._redis.delete(*keys))

    async def close(self) -> None:
        await self._redis.aclose()
