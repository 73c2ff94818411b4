"""Per-bucket rate limiter for the PRC API.

This module tracks quota state passively from response headers and
gates outgoing requests when a bucket is known to be exhausted.

Key Features:
- Passive tracking from response headers (zero API cost)
- Global and per-route buckets, route-to-bucket mapping learned from headers
- Local remaining estimate when a response carries no headers
- 429 handling from the server's retry hint or a default backoff window
- Shared, lock-protected state for queue workers and direct callers
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

from prc_client.config import RateLimitConfig

from .schemas import GLOBAL_BUCKET, BucketState, RateLimitStatus

logger = logging.getLogger(__name__)


class RateLimiter:
    """Tracks PRC API rate limit buckets and computes pre-request waits.

    Usage:
        limiter = RateLimiter()

        # Before each network attempt
        wait = await limiter.acquire("/server/players")
        if wait > 0:
            await asyncio.sleep(wait)

        # After each response
        await limiter.observe_headers("/server/players", response.headers)

    ``remaining`` is a hint: a concurrent caller or another client using the
    same key can still trigger a 429, which callers must treat as retryable.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            config: Rate limit configuration (defaults if not provided)
            clock: Optional clock returning an aware UTC datetime (for tests)
            rng: Optional seeded Random for deterministic jitter
        """
        self._config = config or RateLimitConfig()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._rng = rng or random.Random()

        self._buckets: dict[str, BucketState] = {}
        self._route_buckets: dict[str, str] = {}

        # Lock for concurrent observe/acquire
        self._lock = asyncio.Lock()

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    def bucket_for(self, key: str) -> str:
        """Resolve a route (or bucket name) to the bucket that governs it."""
        return self._route_buckets.get(key, key if key in self._buckets else GLOBAL_BUCKET)

    # -------------------------------------------------------------------------
    # Gating
    # -------------------------------------------------------------------------
    async def acquire(self, key: str = GLOBAL_BUCKET) -> float:
        """Return how long to wait before the next attempt on ``key``.

        Both the resolved bucket and the global bucket are consulted; the
        longest outstanding wait wins. Jitter is added to non-zero waits.

        Args:
            key: Route or bucket name

        Returns:
            Seconds to sleep before proceeding (0.0 = go now)
        """
        async with self._lock:
            now = self._clock()
            names = {self.bucket_for(key), GLOBAL_BUCKET}
            wait = 0.0
            for name in names:
                state = self._buckets.get(name)
                if state is not None and state.is_blocked(now):
                    wait = max(wait, state.seconds_until_reset(now))

        if wait > 0:
            wait += self._rng.uniform(0, self._config.jitter_ms / 1000)
            logger.debug("Rate limiter: %s must wait %.2fs", key, wait)
        return wait

    # -------------------------------------------------------------------------
    # Observation
    # -------------------------------------------------------------------------
    async def observe(
        self,
        bucket: str,
        remaining: int,
        reset_at: datetime,
        limit: int | None = None,
    ) -> BucketState:
        """Record the state of a bucket.

        Args:
            bucket: Bucket name
            remaining: Requests remaining in the window
            reset_at: When the window resets
            limit: Window size (keeps the previous value if omitted)
        """
        async with self._lock:
            return self._store(bucket, remaining, reset_at, limit)

    async def observe_headers(
        self,
        route: str,
        headers: Mapping[str, str],
    ) -> BucketState | None:
        """Update state from a response's rate limit headers.

        When the headers are missing, the local estimate for the route's
        bucket is decremented instead.

        Args:
            route: Route the response belongs to
            headers: Response headers

        Returns:
            The updated bucket state, or None if nothing is tracked yet
        """
        if not self._config.track_from_headers:
            return None

        parsed = BucketState.from_response_headers(headers)
        async with self._lock:
            if parsed is not None:
                self._route_buckets[route] = parsed.bucket
                return self._store(parsed.bucket, parsed.remaining, parsed.reset_at, parsed.limit)

            state = self._buckets.get(self.bucket_for(route))
            if state is None:
                return None
            return self._store(state.bucket, max(0, state.remaining - 1), state.reset_at, None)

    async def observe_rate_limited(
        self,
        route: str,
        retry_after: float | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> float:
        """Record a 429 for ``route``.

        The bucket is emptied until ``now + retry_after``, or the configured
        default backoff window when the server gave no hint.

        Args:
            route: Route that was rejected
            retry_after: Server-provided retry hint in seconds
            headers: Response headers (used to learn the bucket name)

        Returns:
            Seconds until the bucket reopens
        """
        parsed = BucketState.from_response_headers(headers) if headers else None
        if retry_after is None or retry_after <= 0:
            retry_after = self._config.default_backoff_ms / 1000

        async with self._lock:
            if parsed is not None:
                self._route_buckets[route] = parsed.bucket
            bucket = self.bucket_for(route)
            reset_at = self._clock() + timedelta(seconds=retry_after)
            existing = self._buckets.get(bucket)
            if existing is not None and existing.reset_at > reset_at:
                reset_at = existing.reset_at
            self._store(bucket, 0, reset_at, parsed.limit if parsed else None)

        logger.info("Rate limited on %s (bucket=%s), backing off %.1fs", route, bucket, retry_after)
        return retry_after

    def _store(
        self,
        bucket: str,
        remaining: int,
        reset_at: datetime,
        limit: int | None,
    ) -> BucketState:
        previous = self._buckets.get(bucket)
        if limit is None:
            limit = previous.limit if previous is not None else remaining
        state = BucketState(
            bucket=bucket,
            limit=limit,
            remaining=max(0, remaining),
            reset_at=reset_at,
            updated_at=self._clock(),
        )
        self._buckets[bucket] = state
        return state

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    def get_bucket(self, bucket: str = GLOBAL_BUCKET) -> BucketState | None:
        """Get the tracked state of a bucket (None if never observed)."""
        return self._buckets.get(bucket)

    @property
    def buckets(self) -> dict[str, BucketState]:
        """Snapshot of all tracked buckets."""
        return dict(self._buckets)

    def get_status(self, bucket: str = GLOBAL_BUCKET) -> RateLimitStatus:
        """Health status for a bucket (HEALTHY if unknown)."""
        state = self._buckets.get(bucket)
        if state is None:
            return RateLimitStatus.HEALTHY
        return state.get_status(self._clock())

    def reset(self) -> None:
        """Forget all tracked buckets."""
        self._buckets.clear()
        self._route_buckets.clear()

    def to_dict(self) -> dict[str, Any]:
        """Export current state as dictionary (for diagnostics).

        Returns:
            Dict with bucket data and the learned route mapping
        """
        now = self._clock()
        buckets: dict[str, Any] = {}
        for name, state in self._buckets.items():
            buckets[name] = {
                "limit": state.limit,
                "remaining": state.remaining,
                "remaining_percent": round(state.remaining_percent, 2),
                "reset_at": state.reset_at.isoformat(),
                "seconds_until_reset": round(state.seconds_until_reset(now), 2),
                "status": state.get_status(now).value,
            }
        return {"buckets": buckets, "routes": dict(self._route_buckets)}
