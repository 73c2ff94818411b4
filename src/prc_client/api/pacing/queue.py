"""Bounded worker pool for outbound PRC API calls.

This module provides an async request queue drained by a fixed number of
worker tasks, with a global minimum interval between task starts.

Features:
- Fixed-size worker pool (parallel up to ``workers``)
- Global start pacing independent of the rate limiter
- Exactly-once execution of every accepted task
- Optional depth bound with fail-fast QueueFullError
- Graceful shutdown that drains queued and in-flight work
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum
from typing import Any, Generic, TypeVar

from prc_client.config import RequestQueueConfig

from ..exceptions import PRCClientError, QueueFullError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TaskState(IntEnum):
    """State of a queued task."""

    PENDING = 1
    IN_FLIGHT = 2
    COMPLETED = 3
    FAILED = 4
    CANCELLED = 5


@dataclass
class QueuedTask(Generic[T]):
    """A unit of work waiting for a worker."""

    id: str
    factory: Callable[[], Awaitable[T]]
    future: asyncio.Future[T] | None = None
    state: TaskState = TaskState.PENDING
    enqueued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    completed_at: datetime | None = None
    worker: int | None = None


class RequestQueue:
    """Fixed worker pool that paces task starts.

    Ordering across workers is not guaranteed; each worker takes the
    oldest queued task when it becomes free.

    Usage:
        queue = RequestQueue(RequestQueueConfig(enabled=True, workers=2, interval_ms=100))
        await queue.start()

        # Submit and wait for result
        result = await queue.submit(lambda: http.get("/server"))

        # Or fire-and-forget
        task_id = queue.enqueue(my_coro_factory)

        await queue.shutdown()
    """

    def __init__(
        self,
        config: RequestQueueConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the request queue.

        Args:
            config: Queue configuration (defaults if not provided)
            clock: Monotonic clock used for start pacing
        """
        self._config = config or RequestQueueConfig(enabled=True)
        self._clock = clock

        self._queue: asyncio.Queue[QueuedTask[Any]] | None = None
        self._workers: list[asyncio.Task[None]] = []
        self._start_lock = asyncio.Lock()
        self._last_start: float | None = None

        # State
        self._running = False
        self._closed = False
        self._in_flight = 0

        # Statistics
        self._total_submitted = 0
        self._total_completed = 0
        self._total_failed = 0

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def start(self) -> None:
        """Start the worker tasks (idempotent)."""
        if self._running:
            return
        if self._closed:
            raise PRCClientError("Request queue has been shut down")

        if self._queue is None:
            self._queue = asyncio.Queue()
        self._running = True
        self._workers = [
            asyncio.create_task(self._worker_loop(i), name=f"prc-queue-worker-{i}")
            for i in range(self._config.workers)
        ]
        logger.info(
            "Request queue started (workers=%d, interval_ms=%d)",
            self._config.workers,
            self._config.interval_ms,
        )

    async def shutdown(self, wait: bool = True, timeout: float | None = 30.0) -> None:
        """Stop the workers.

        Args:
            wait: If True, let queued and in-flight tasks drain first
            timeout: Maximum seconds to wait for draining (None = no limit)
        """
        self._closed = True
        if not self._running:
            return

        if wait and self._queue is not None:
            pending = self._queue.qsize() + self._in_flight
            if pending:
                logger.info("Waiting for %d queued/in-flight tasks...", pending)
            try:
                await asyncio.wait_for(self._queue.join(), timeout)
            except TimeoutError:
                logger.warning("Request queue drain timed out after %.1fs", timeout or 0)

        self._running = False
        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        # Anything still queued will never run
        if self._queue is not None:
            while not self._queue.empty():
                task = self._queue.get_nowait()
                task.state = TaskState.CANCELLED
                if task.future is not None and not task.future.done():
                    task.future.cancel()
                self._queue.task_done()

        logger.info(
            "Request queue stopped (completed=%d, failed=%d)",
            self._total_completed,
            self._total_failed,
        )

    @property
    def is_running(self) -> bool:
        """Whether the workers are running."""
        return self._running

    # -------------------------------------------------------------------------
    # Task Submission
    # -------------------------------------------------------------------------
    def enqueue(
        self,
        factory: Callable[[], Awaitable[T]],
        *,
        future: asyncio.Future[T] | None = None,
    ) -> str:
        """Add a task to the queue (fire-and-forget unless a future is given).

        Args:
            factory: Function that creates the coroutine to execute
            future: Optional future resolved with the task's outcome

        Returns:
            Task ID for tracking

        Raises:
            QueueFullError: If the configured depth bound is reached
            PRCClientError: If the queue has been shut down
        """
        if self._closed:
            raise PRCClientError("Request queue has been shut down")
        if self._queue is None:
            self._queue = asyncio.Queue()

        max_size = self._config.max_size
        if max_size is not None and self._queue.qsize() >= max_size:
            raise QueueFullError(f"Request queue is full ({max_size} tasks pending)")

        task: QueuedTask[T] = QueuedTask(id=str(uuid.uuid4()), factory=factory, future=future)
        self._queue.put_nowait(task)
        self._total_submitted += 1

        logger.debug("Enqueued task %s (queue_size=%d)", task.id[:8], self._queue.qsize())
        return task.id

    async def submit(self, factory: Callable[[], Awaitable[T]]) -> T:
        """Submit a task and wait for its result.

        Starts the workers on first use.

        Args:
            factory: Function that creates the coroutine to execute

        Returns:
            Result of the coroutine

        Raises:
            QueueFullError: If the configured depth bound is reached
            Exception: Any exception from the coroutine
        """
        if not self._running:
            await self.start()

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self.enqueue(factory, future=future)
        return await future

    # -------------------------------------------------------------------------
    # Worker Loop
    # -------------------------------------------------------------------------
    async def _worker_loop(self, worker_id: int) -> None:
        """Pull tasks until cancelled."""
        assert self._queue is not None
        while True:
            task = await self._queue.get()
            try:
                if task.future is not None and task.future.cancelled():
                    task.state = TaskState.CANCELLED
                    continue
                await self._wait_for_start_slot()
                await self._execute(task, worker_id)
            finally:
                self._queue.task_done()

    async def _wait_for_start_slot(self) -> None:
        """Enforce the minimum interval between task starts across workers."""
        interval = self._config.interval_ms / 1000
        async with self._start_lock:
            if interval > 0 and self._last_start is not None:
                wait = self._last_start + interval - self._clock()
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_start = self._clock()

    async def _execute(self, task: QueuedTask[Any], worker_id: int) -> None:
        task.state = TaskState.IN_FLIGHT
        task.started_at = datetime.now(UTC)
        task.worker = worker_id
        self._in_flight += 1

        logger.debug("Worker %d executing task %s", worker_id, task.id[:8])
        try:
            result = await task.factory()
        except asyncio.CancelledError:
            task.state = TaskState.CANCELLED
            if task.future is not None and not task.future.done():
                task.future.cancel()
            raise
        except Exception as e:
            task.state = TaskState.FAILED
            self._total_failed += 1
            if task.future is not None:
                if not task.future.done():
                    task.future.set_exception(e)
            else:
                logger.warning("Fire-and-forget task %s failed: %s", task.id[:8], e)
        else:
            task.state = TaskState.COMPLETED
            self._total_completed += 1
            if task.future is not None and not task.future.done():
                task.future.set_result(result)
        finally:
            task.completed_at = datetime.now(UTC)
            self._in_flight -= 1

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    @property
    def queue_size(self) -> int:
        """Number of tasks waiting for a worker."""
        return self._queue.qsize() if self._queue is not None else 0

    @property
    def in_flight(self) -> int:
        """Number of tasks currently executing."""
        return self._in_flight

    @property
    def workers(self) -> int:
        return self._config.workers

    @property
    def is_idle(self) -> bool:
        """True if no queued or in-flight tasks."""
        return self.queue_size == 0 and self._in_flight == 0

    def get_stats(self) -> dict[str, int | bool]:
        """Get queue statistics.

        Returns:
            Dict with queue_size, in_flight, workers, totals, etc.
        """
        return {
            "queue_size": self.queue_size,
            "in_flight": self._in_flight,
            "workers": self._config.workers,
            "interval_ms": self._config.interval_ms,
            "is_running": self._running,
            "is_idle": self.is_idle,
            "total_submitted": self._total_submitted,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
        }
