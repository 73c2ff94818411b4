"""Polling subscription: turns periodic API polls into change events.

Usage:
    subscription = client.subscribe(["players", "kills"])

    @subscription.on(EventType.PLAYER_JOIN)
    async def greet(event: SubscriptionEvent) -> None:
        print("joined:", event.data["Player"])

    await subscription.start()
    ...
    await subscription.close()
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from prc_client.logging import bind_subscription

from ..exceptions import PRCConfigurationError, SubscriptionClosedError
from .diff import Snapshot, build_snapshot, diff
from .events import EntityType, EventType, SubscriptionEvent

Handler = Callable[[SubscriptionEvent], Any]
# Called as error_handler(error, subscription)
ErrorHandler = Callable[[BaseException, Any], Any]
FilterFunc = Callable[[SubscriptionEvent], bool]
Fetcher = Callable[[EntityType], Awaitable[Any]]


class SubscriptionConfig(BaseModel):
    """Polling behavior for one subscription."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    poll_interval_ms: int = Field(default=5000, gt=0, description="Delay between ticks")
    retry_on_error: bool = Field(
        default=True,
        description="Use retry_interval_ms after a failed tick",
    )
    retry_interval_ms: int = Field(default=10000, gt=0, description="Delay after a failed tick")
    log_errors: bool = Field(default=True, description="Log tick errors without an error_handler")
    include_initial_state: bool = Field(
        default=False,
        description="Dispatch INITIAL_STATE per entity type on the first tick",
    )
    error_handler: ErrorHandler | None = Field(default=None, exclude=True)
    filter_func: FilterFunc | None = Field(default=None, exclude=True)

    # Accepted for compatibility, currently without effect
    buffer_size: int | None = Field(default=None, ge=0)
    batch_events: bool = False
    batch_window_ms: int | None = Field(default=None, ge=0)
    time_format: str | None = None


class SubscriptionState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    CLOSED = "closed"


class Subscription:
    """Polls a set of entity types and dispatches diffs to handlers.

    Each subscription owns its snapshots and its polling task; two
    subscriptions over the same entity type are fully independent.

    The first tick only records baselines. A failed tick leaves every
    snapshot untouched and the loop keeps going. Handler and filter
    exceptions are reported through the same path as tick errors.
    """

    def __init__(
        self,
        entity_types: Iterable[EntityType | str],
        fetch: Fetcher,
        config: SubscriptionConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_close: Callable[[Subscription], None] | None = None,
    ) -> None:
        try:
            types = tuple(dict.fromkeys(EntityType(e) for e in entity_types))
        except ValueError as e:
            raise PRCConfigurationError(f"Unknown entity type: {e}") from e
        if not types:
            raise PRCConfigurationError("A subscription needs at least one entity type")

        self.id = uuid.uuid4().hex[:8]
        self.config = config or SubscriptionConfig()
        self._entity_types = types
        self._fetch = fetch
        self._sleep = sleep
        self._on_close = on_close

        self._state = SubscriptionState.IDLE
        self._handlers: dict[EventType, list[Handler]] = defaultdict(list)
        self._snapshots: dict[EntityType, Snapshot] = {}
        self._task: asyncio.Task[None] | None = None
        # Ticks still running after close(); kept referenced until they finish
        self._background: set[asyncio.Task[bool]] = set()

        self.ticks = 0
        self.errors = 0
        self.events_dispatched = 0
        self.last_tick_at: datetime | None = None

        self._log = bind_subscription(self.id, [e.value for e in types])

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def entity_types(self) -> tuple[EntityType, ...]:
        return self._entity_types

    @property
    def is_running(self) -> bool:
        return self._state is SubscriptionState.RUNNING

    @property
    def is_closed(self) -> bool:
        return self._state is SubscriptionState.CLOSED

    def snapshot(self, entity_type: EntityType | str) -> Snapshot | None:
        """Current baseline for ``entity_type`` (None before the first tick)."""
        return self._snapshots.get(EntityType(entity_type))

    def handler_count(self, event_type: EventType | None = None) -> int:
        if event_type is None:
            return sum(len(h) for h in self._handlers.values())
        return len(self._handlers.get(EventType(event_type), []))

    # -------------------------------------------------------------------------
    # Handler Registration
    # -------------------------------------------------------------------------
    def on(self, event_type: EventType | str, handler: Handler | None = None) -> Any:
        """Register a handler for ``event_type``.

        Can be called directly or used as a decorator. Handlers may be
        plain functions or coroutines; several may share an event type.

        Raises:
            SubscriptionClosedError: If the subscription is closed
        """
        if self.is_closed:
            raise SubscriptionClosedError(f"Subscription {self.id} is closed")
        kind = EventType(event_type)

        if handler is None:

            def decorator(func: Handler) -> Handler:
                self._handlers[kind].append(func)
                return func

            return decorator

        self._handlers[kind].append(handler)
        return handler

    def off(self, event_type: EventType | str, handler: Handler) -> bool:
        """Remove a handler. Returns True if it was registered."""
        handlers = self._handlers.get(EventType(event_type), [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def start(self) -> None:
        """Start the polling loop. A second call while running is a no-op.

        Raises:
            SubscriptionClosedError: If the subscription was closed
        """
        if self.is_closed:
            raise SubscriptionClosedError(f"Subscription {self.id} is closed")
        if self.is_running:
            return

        self._state = SubscriptionState.RUNNING
        self._task = asyncio.create_task(self._run(), name=f"prc-subscription-{self.id}")
        self._log.info(
            "Subscription started (poll every {}ms)",
            self.config.poll_interval_ms,
        )

    async def close(self) -> None:
        """Stop polling and release snapshots. Safe to call more than once.

        The loop is stopped before this returns. A fetch already in flight
        finishes in the background and its result is discarded.
        """
        if self.is_closed:
            return
        self._state = SubscriptionState.CLOSED

        task, self._task = self._task, None
        try:
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    # Only the loop's own cancellation is absorbed; the caller's propagates
                    current = asyncio.current_task()
                    if current is not None and current.cancelling():
                        raise
        finally:
            self._snapshots.clear()
            self._handlers.clear()
            if self._on_close is not None:
                self._on_close(self)
            self._log.info("Subscription closed after {} ticks", self.ticks)

    async def __aenter__(self) -> Subscription:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------
    async def poll_once(self) -> bool:
        """Run a single tick now, outside the polling loop.

        Useful for driving a subscription that was not started.

        Returns:
            True if the tick succeeded

        Raises:
            SubscriptionClosedError: If the subscription is closed
        """
        if self.is_closed:
            raise SubscriptionClosedError(f"Subscription {self.id} is closed")
        return await self._tick()

    async def _run(self) -> None:
        while self.is_running:
            tick = asyncio.create_task(self._tick())
            self._background.add(tick)
            tick.add_done_callback(self._background.discard)

            # Shielded so close() stops the loop without aborting the fetch
            ok = await asyncio.shield(tick)

            if ok or not self.config.retry_on_error:
                delay_ms = self.config.poll_interval_ms
            else:
                delay_ms = self.config.retry_interval_ms
            await self._sleep(delay_ms / 1000)

    async def _tick(self) -> bool:
        self.ticks += 1
        self.last_tick_at = datetime.now(UTC)
        try:
            results = await self._fetch_all()
            if self.is_closed:
                return False
            snapshots, events = self._compute(results)
        except Exception as e:
            if self.is_closed:
                return False
            await self._report(e)
            return False

        self._snapshots.update(snapshots)
        await self._dispatch(events)
        return True

    async def _fetch_all(self) -> dict[EntityType, Any]:
        outcomes = await asyncio.gather(
            *(self._fetch(entity) for entity in self._entity_types),
            return_exceptions=True,
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return dict(zip(self._entity_types, outcomes, strict=True))

    def _compute(
        self,
        results: dict[EntityType, Any],
    ) -> tuple[dict[EntityType, Snapshot], list[SubscriptionEvent]]:
        """Diff every result against its snapshot without committing anything."""
        snapshots: dict[EntityType, Snapshot] = {}
        events: list[SubscriptionEvent] = []
        for entity, items in results.items():
            previous = self._snapshots.get(entity)
            if previous is None:
                snapshots[entity] = build_snapshot(entity, items)
                if self.config.include_initial_state:
                    events.append(
                        SubscriptionEvent(EventType.INITIAL_STATE, entity, list(items or []))
                    )
                continue
            snapshots[entity], changes = diff(entity, previous, items)
            events.extend(changes)
        return snapshots, events

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------
    async def _dispatch(self, events: list[SubscriptionEvent]) -> None:
        for event in events:
            if self.is_closed:
                return
            if self.config.filter_func is not None:
                try:
                    if not self.config.filter_func(event):
                        continue
                except Exception as e:
                    await self._report(e)
                    continue

            handlers = [*self._handlers.get(event.type, []), *self._handlers.get(EventType.ANY, [])]
            for handler in handlers:
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    await self._report(e)
            self.events_dispatched += 1

    async def _report(self, error: Exception) -> None:
        self.errors += 1
        handler = self.config.error_handler
        if handler is not None:
            try:
                result = handler(error, self)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self._log.exception("Subscription error handler raised")
            return
        if self.config.log_errors:
            self._log.opt(exception=error).warning("Subscription tick failed: {}", error)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "state": self._state.value,
            "entity_types": [e.value for e in self._entity_types],
            "ticks": self.ticks,
            "errors": self.errors,
            "events_dispatched": self.events_dispatched,
            "last_tick_at": self.last_tick_at.isoformat() if self.last_tick_at else None,
        }

    def __repr__(self) -> str:
        types = ",".join(e.value for e in self._entity_types)
        return f"Subscription(id={self.id!r}, entities={types}, state={self._state.value})"
