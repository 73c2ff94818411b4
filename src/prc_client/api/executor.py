"""Request executor: the single call path shared by every PRC API call.

Order of operations for one call:

1. Cache read (GET only, unless bypassed) - a fresh hit returns immediately
2. Single-flight: identical concurrent GETs share one network fetch, which
   runs as its own task so a cancelled caller never fails the others
3. Per attempt: rate limiter wait, then the HTTP call (through the queue
   when one is configured) under the per-attempt timeout
4. Retry policy decides on failures; backoff sleeps happen outside the queue
5. Exhausted: serve a stale cache entry if stale-if-error allows, else raise
6. Success: write the cache with the effective TTL and return the data
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from prc_client.config import CacheConfig
from prc_client.logging import bind_request, get_logger

from .cache import CacheStore
from .exceptions import PRCAPIError, RequestContext
from .pacing import RequestQueue, RetryPolicy
from .rate_limit import RateLimiter
from .transport import HTTPTransport, TransportResponse, error_from_response, is_rate_limited

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RequestOptions:
    """Per-call overrides.

    Attributes:
        cache: False bypasses the cache (no read, no write) for this call
        cache_max_age_ms: TTL for this call's cache write instead of the configured one
    """

    cache: bool | None = None
    cache_max_age_ms: int | None = None


@dataclass
class CacheStats:
    """Cache counters for diagnostics."""

    hits: int = 0
    misses: int = 0
    stale_served: int = 0
    writes: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stale_served": self.stale_served,
            "writes": self.writes,
        }


def cache_key(method: str, route: str, params: dict[str, Any] | None = None) -> str:
    """Deterministic cache key for a request (params order does not matter)."""
    key = f"{method.upper()}:{route}"
    if params:
        key += "?" + urlencode(sorted((str(k), str(v)) for k, v in params.items()))
    return key


class RequestExecutor:
    """Composes cache, rate limiter, retry policy and queue into one call path.

    All collaborators are owned by the client instance and passed in, so
    several clients in one process never share limiter or cache state.

    Usage:
        executor = RequestExecutor(
            transport,
            limiter=RateLimiter(),
            retry_policy=RetryPolicy(),
            cache=MemoryCacheStore(prefix="prc:"),
            cache_config=CacheConfig(),
        )
        players = await executor.execute("GET", "/server/players")
    """

    def __init__(
        self,
        transport: HTTPTransport,
        *,
        limiter: RateLimiter,
        retry_policy: RetryPolicy,
        cache: CacheStore | None = None,
        cache_config: CacheConfig | None = None,
        queue: RequestQueue | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self._limiter = limiter
        self._retry = retry_policy
        self._cache = cache
        self._cache_config = cache_config or CacheConfig()
        self._queue = queue
        self._sleep = sleep

        self._inflight: dict[str, asyncio.Future[Any]] = {}
        self.stats = CacheStats()

    @property
    def cache(self) -> CacheStore | None:
        return self._cache

    @property
    def queue(self) -> RequestQueue | None:
        return self._queue

    @property
    def limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    def _cache_enabled(self, method: str, options: RequestOptions) -> bool:
        return (
            method == "GET"
            and self._cache is not None
            and self._cache_config.enabled
            and options.cache is not False
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    async def execute(
        self,
        method: str,
        route: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Execute an API call and return its decoded JSON body.

        Args:
            method: HTTP method
            route: API route relative to the base URL (e.g. "/server/players")
            params: Query parameters
            json: JSON body (POST only)
            options: Per-call cache overrides

        Returns:
            Decoded response body (fresh, cached, or stale-if-error)

        Raises:
            PRCAPIError: Terminal failure after the retry policy gave up
        """
        method = method.upper()
        options = options or RequestOptions()
        key = cache_key(method, route, params)
        use_cache = self._cache_enabled(method, options)

        if use_cache:
            assert self._cache is not None
            lookup = await self._cache.get(key)
            if lookup.found and not lookup.is_stale:
                self.stats.hits += 1
                logger.debug("Cache hit for {}", key)
                return lookup.value
            self.stats.misses += 1

        if method != "GET" or options.cache is False:
            return await self._fetch(method, route, params, json, key, use_cache, options)

        shared = self._inflight.get(key)
        if shared is None:
            # Owned by no caller: cancelling one waiter leaves the others served
            shared = asyncio.ensure_future(
                self._fetch(method, route, params, json, key, use_cache, options)
            )
            self._inflight[key] = shared
            shared.add_done_callback(lambda t: self._release_inflight(key, t))
        else:
            logger.debug("Joining in-flight request for {}", key)
        return await asyncio.shield(shared)

    def _release_inflight(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the outcome retrieved so a failure nobody awaited isn't reported as unhandled
        if not task.cancelled():
            task.exception()

    # -------------------------------------------------------------------------
    # Attempt Loop
    # -------------------------------------------------------------------------
    async def _fetch(
        self,
        method: str,
        route: str,
        params: dict[str, Any] | None,
        json: Any,
        key: str,
        use_cache: bool,
        options: RequestOptions,
    ) -> Any:
        attempt = 0
        while True:
            attempt += 1
            context = RequestContext(
                method=method,
                route=route,
                params=dict(params or {}),
                attempt=attempt,
                bucket=self._limiter.bucket_for(route),
            )
            try:
                response = await self._run_attempt(method, route, params, json)
                if not response.ok:
                    raise error_from_response(response, context)
            except PRCAPIError as e:
                error = e if e.request_context is not None else e.with_context(context)
                if not self._retry.should_retry(attempt, error):
                    return await self._on_exhausted(error, key, use_cache)

                if error.is_rate_limit:
                    # The limiter holds the next attempt until the bucket reopens
                    logger.info(
                        "{} {} rate limited (attempt {}/{})",
                        method,
                        route,
                        attempt,
                        self._retry.max_attempts,
                    )
                    continue

                delay = self._retry.delay_for(attempt)
                logger.warning(
                    "{} {} failed (attempt {}/{}): {}; retrying in {:.2f}s",
                    method,
                    route,
                    attempt,
                    self._retry.max_attempts,
                    error.message,
                    delay,
                )
                await self._sleep(delay)
                continue

            if use_cache:
                assert self._cache is not None
                ttl_ms = (
                    options.cache_max_age_ms
                    if options.cache_max_age_ms is not None
                    else self._cache_config.ttl_ms
                )
                await self._cache.set(key, response.data, ttl_ms, self._cache_config.stale_ms)
                self.stats.writes += 1
            return response.data

    async def _run_attempt(
        self,
        method: str,
        route: str,
        params: dict[str, Any] | None,
        json: Any,
    ) -> TransportResponse:
        """One network attempt, through the queue when one is configured."""

        async def attempt() -> TransportResponse:
            wait = await self._limiter.acquire(route)
            if wait > 0:
                await self._sleep(wait)

            response = await self._transport.send(method, route, params=params, json=json)

            await self._limiter.observe_headers(route, response.headers)
            if is_rate_limited(response):
                retry_after = error_from_response(response).retry_after
                await self._limiter.observe_rate_limited(route, retry_after, response.headers)
            return response

        if self._queue is not None:
            return await self._queue.submit(attempt)
        return await attempt()

    async def _on_exhausted(self, error: PRCAPIError, key: str, use_cache: bool) -> Any:
        """Serve a stale entry if allowed, otherwise raise the terminal error."""
        if use_cache and self._cache_config.stale_if_error:
            assert self._cache is not None
            lookup = await self._cache.get(key)
            if lookup.found:
                self.stats.stale_served += 1
                logger.warning(
                    "Serving stale cache entry for {} after error: {}", key, error.message
                )
                return lookup.value

        ctx = error.request_context
        if ctx is not None:
            bind_request(ctx.method, ctx.route).error(
                "Request failed after {} attempt(s): {!r}", ctx.attempt, error
            )
        raise error
