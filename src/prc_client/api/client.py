"""Async client for the PRC private server API.

Every endpoint call funnels through one :class:`RequestExecutor`, which
owns the cache, rate limiter, retry policy and optional request queue of
this client instance.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import httpx

from prc_client.config import Settings, get_settings
from prc_client.logging import get_logger
from prc_client.schemas import (
    CommandLog,
    JoinLog,
    KillLog,
    ModCall,
    Player,
    ServerStatus,
    Vehicle,
)

from .cache import CacheEntry, CacheStore, InspectableCacheStore, create_cache_store
from .exceptions import ErrorCode, PRCAuthenticationError, PRCConfigurationError
from .executor import RequestExecutor, RequestOptions
from .pacing import RequestQueue, RetryPolicy
from .rate_limit import RateLimiter
from .subscriptions import EntityType, Subscription, SubscriptionConfig
from .transport import HTTPTransport

logger = get_logger(__name__)


class PRCClient:
    """Async PRC API client.

    Usage:
        async with PRCClient("server-key") as client:
            players = await client.get_players()
            for player in players:
                print(player.name, player.team)

    Or without context manager:
        client = PRCClient()
        server = await client.get_server()
        await client.destroy()
    """

    def __init__(
        self,
        server_key: str | None = None,
        *,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client and its request pipeline.

        Args:
            server_key: Private server key. If not provided, uses PRC_SERVER_KEY.
            settings: Settings to use instead of the environment-loaded ones
            transport: Custom httpx transport (e.g. ``httpx.MockTransport``)
            http_client: Pre-built httpx client (the PRC client takes ownership)

        Raises:
            PRCAuthenticationError: If no server key is available
            PRCConfigurationError: If the cache backend cannot be built
        """
        settings = settings or get_settings()
        if server_key:
            settings = settings.model_copy(update={"server_key": server_key})
        if not settings.server_key:
            raise PRCAuthenticationError(
                "PRC server key required. Set PRC_SERVER_KEY environment variable.",
                code=ErrorCode.MISSING_SERVER_KEY,
            )
        self._settings = settings

        cache = create_cache_store(settings.cache) if settings.cache.enabled else None
        queue = RequestQueue(settings.request_queue) if settings.request_queue.enabled else None

        self._transport = HTTPTransport(settings, client=http_client, transport=transport)
        self._executor = RequestExecutor(
            self._transport,
            limiter=RateLimiter(settings.rate_limit),
            retry_policy=RetryPolicy(settings.retry),
            cache=cache,
            cache_config=settings.cache,
            queue=queue,
        )
        self._subscriptions: set[Subscription] = set()
        self._closed = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._executor.limiter

    @property
    def subscriptions(self) -> frozenset[Subscription]:
        return frozenset(self._subscriptions)

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> PRCClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.destroy()

    async def destroy(self) -> None:
        """Close subscriptions, drain the request queue and close the HTTP client."""
        if self._closed:
            return
        self._closed = True

        for subscription in list(self._subscriptions):
            await subscription.close()

        queue = self._executor.queue
        if queue is not None:
            await queue.shutdown(wait=True)

        cache = self._executor.cache
        if cache is not None:
            await cache.close()

        await self._transport.close()
        logger.debug("PRC client closed")

    aclose = destroy

    # -------------------------------------------------------------------------
    # Raw Requests
    # -------------------------------------------------------------------------
    async def request(
        self,
        method: str,
        route: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Send a request through the full pipeline and return the decoded body."""
        return await self._executor.execute(
            method, route, params=params, json=json, options=options
        )

    # -------------------------------------------------------------------------
    # Server Endpoints
    # -------------------------------------------------------------------------
    async def get_server(self, options: RequestOptions | None = None) -> ServerStatus:
        """Get the server summary (name, owner, player counts, join key)."""
        data = await self.request("GET", "/server", options=options)
        return ServerStatus.from_api(data)

    async def get_players(self, options: RequestOptions | None = None) -> list[Player]:
        """Get players currently in the server."""
        data = await self.request("GET", "/server/players", options=options)
        return Player.from_api_list(data)

    async def get_join_logs(self, options: RequestOptions | None = None) -> list[JoinLog]:
        data = await self.request("GET", "/server/joinlogs", options=options)
        return JoinLog.from_api_list(data)

    async def get_queue(self, options: RequestOptions | None = None) -> list[int]:
        """Get the Roblox user IDs waiting in the join queue."""
        data = await self.request("GET", "/server/queue", options=options)
        return [int(user_id) for user_id in data or []]

    async def get_kill_logs(self, options: RequestOptions | None = None) -> list[KillLog]:
        data = await self.request("GET", "/server/killlogs", options=options)
        return KillLog.from_api_list(data)

    async def get_command_logs(self, options: RequestOptions | None = None) -> list[CommandLog]:
        data = await self.request("GET", "/server/commandlogs", options=options)
        return CommandLog.from_api_list(data)

    async def get_mod_calls(self, options: RequestOptions | None = None) -> list[ModCall]:
        data = await self.request("GET", "/server/modcalls", options=options)
        return ModCall.from_api_list(data)

    async def get_bans(self, options: RequestOptions | None = None) -> dict[str, str]:
        """Get banned players as ``{user_id: name}``."""
        data = await self.request("GET", "/server/bans", options=options)
        return {str(k): str(v) for k, v in (data or {}).items()}

    async def get_vehicles(self, options: RequestOptions | None = None) -> list[Vehicle]:
        data = await self.request("GET", "/server/vehicles", options=options)
        return Vehicle.from_api_list(data)

    async def execute_command(self, command: str) -> None:
        """Run a command in the server (e.g. ``":h Hello"``). Never cached.

        Raises:
            ValueError: If the command is empty
            PRCCommandError: If the server rejects the command
        """
        command = command.strip()
        if not command:
            raise ValueError("Command must not be empty")
        await self.request("POST", "/server/command", json={"command": command})
        logger.info("Executed command: {}", command)

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------
    def subscribe(
        self,
        entity_types: Iterable[EntityType | str],
        config: SubscriptionConfig | None = None,
    ) -> Subscription:
        """Create a polling subscription (call ``start()`` to begin polling).

        Raises:
            PRCConfigurationError: If the client is closed or an entity type is unknown
        """
        if self._closed:
            raise PRCConfigurationError("Cannot subscribe on a closed client")

        subscription = Subscription(
            entity_types,
            self._fetch_entity,
            config,
            on_close=self._subscriptions.discard,
        )
        self._subscriptions.add(subscription)
        return subscription

    async def _fetch_entity(self, entity_type: EntityType) -> Any:
        # Polls always read through to the API; diffs need current data
        return await self._executor.execute(
            "GET", entity_type.route, options=RequestOptions(cache=False)
        )

    # -------------------------------------------------------------------------
    # Cache Inspection
    # -------------------------------------------------------------------------
    def _require_cache(self) -> CacheStore:
        cache = self._executor.cache
        if cache is None:
            raise PRCConfigurationError("Response cache is disabled")
        return cache

    def _require_inspectable(self) -> InspectableCacheStore:
        cache = self._require_cache()
        if not isinstance(cache, InspectableCacheStore):
            raise PRCConfigurationError(
                f"{type(cache).__name__} does not support key enumeration"
            )
        return cache

    async def cache_clear(self) -> int:
        """Remove all cached responses. Returns the number removed."""
        return await self._require_cache().clear()

    async def cache_size(self) -> int:
        return await self._require_cache().size()

    async def cache_keys(self) -> list[str]:
        """List cached keys (in-memory cache only)."""
        return await self._require_inspectable().keys()

    async def cache_get_entry(self, key: str) -> CacheEntry | None:
        """Raw cache entry with its timestamps (in-memory cache only)."""
        return await self._require_inspectable().get_entry(key)

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------
    async def get_status(self) -> dict[str, Any]:
        """Snapshot of rate limits, queue, cache and subscriptions."""
        queue = self._executor.queue
        cache = self._executor.cache

        cache_status: dict[str, Any] = {"enabled": cache is not None}
        if cache is not None:
            cache_status["backend"] = type(cache).__name__
            cache_status["size"] = await cache.size()
        cache_status.update(self._executor.stats.to_dict())

        return {
            "rate_limits": self.rate_limiter.to_dict(),
            "queue": queue.get_stats() if queue is not None else {"enabled": False},
            "cache": cache_status,
            "inflight": self._executor.inflight_count,
            "subscriptions": len(self._subscriptions),
        }
