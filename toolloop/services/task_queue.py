"""FIFO, one-at-a-time execution of asynchronous operations.

Tool calls mutate a shared store. Every mutation for a given key (a
conversation or a store instance) is funnelled through one
``SerializedTaskQueue`` so that writes from different agent turns never
interleave. The queue is the mutual-exclusion mechanism; no locks are
needed inside the store.
"""

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any

from cuid2 import cuid_wrapper

from toolloop.errors import QueueClearedError, QueueDestroyedError, QueueError
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)

cuid = cuid_wrapper()

Operation = Callable[[], Awaitable[Any]]


@dataclass
class QueuedTask[T]:
    """A deferred operation waiting for its turn."""

    id: str
    operation: Callable[[], Awaitable[T]]
    future: asyncio.Future[T]


class SerializedTaskQueue[T]:
    """Runs enqueued operations strictly in submission order, one at a time."""

    def __init__(self, name: str = "queue"):
        self.name = name
        self._pending: deque[QueuedTask[T]] = deque()
        self._current: QueuedTask[T] | None = None
        self._draining = False
        self._destroyed = False
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def pending_count(self) -> int:
        """Number of operations waiting to start (excludes the one in flight)."""
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._draining

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    def enqueue(self, operation: Callable[[], Awaitable[T]], *, task_id: str | None = None) -> asyncio.Future[T]:
        """Submit an operation and return a future settled with its own outcome.

        Must be called from a running event loop. After ``destroy()`` the
        returned future is already failed with ``QueueDestroyedError``.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[T] = loop.create_future()

        if self._destroyed:
            future.set_exception(QueueDestroyedError())
            return future

        task = QueuedTask(id=task_id or cuid(), operation=operation, future=future)
        self._pending.append(task)
        logger.debug(f"[{self.name}] Enqueued task {task.id} ({len(self._pending)} pending)")

        if not self._draining:
            self._draining = True
            self._drain_task = loop.create_task(self._drain(), name=f"{self.name}-drain")

        return future

    async def _drain(self) -> None:
        try:
            while self._pending:
                task = self._pending.popleft()
                self._current = task
                try:
                    result = await task.operation()
                except asyncio.CancelledError:
                    if not task.future.done():
                        task.future.cancel()
                    raise
                except Exception as e:
                    logger.debug(f"[{self.name}] Task {task.id} failed: {e}")
                    if not task.future.done():
                        task.future.set_exception(e)
                else:
                    if not task.future.done():
                        task.future.set_result(result)
                finally:
                    self._current = None
        finally:
            self._draining = False
            self._drain_task = None

    def clear(self) -> None:
        """Reject every pending operation; the one in flight keeps running."""
        self._reject_pending(QueueClearedError)

    def destroy(self) -> None:
        """Close the queue for good and reject everything still pending."""
        if self._destroyed:
            return
        self._destroyed = True
        self._reject_pending(QueueDestroyedError)
        logger.debug(f"[{self.name}] Destroyed")

    def _reject_pending(self, error_type: type[QueueError]) -> None:
        rejected = 0
        while self._pending:
            task = self._pending.popleft()
            if not task.future.done():
                task.future.set_exception(error_type())
                rejected += 1
        if rejected:
            logger.info(f"[{self.name}] Rejected {rejected} pending tasks: {error_type.__name__}")


class KeyedTaskQueues:
    """One SerializedTaskQueue per logical key.

    Operations on the same key are serialised; different keys run
    independently and may interleave freely.
    """

    def __init__(self) -> None:
        self._queues: dict[Hashable, SerializedTaskQueue[Any]] = {}

    def queue_for(self, key: Hashable) -> SerializedTaskQueue[Any]:
        """Get or create the queue bound to ``key``."""
        queue = self._queues.get(key)
        if queue is None:
            queue = SerializedTaskQueue(name=f"queue:{key}")
            self._queues[key] = queue
        return queue

    def enqueue(self, key: Hashable, operation: Operation) -> asyncio.Future[Any]:
        return self.queue_for(key).enqueue(operation)

    def destroy(self, key: Hashable) -> bool:
        """Destroy and forget the queue for ``key``. Returns False if there was none."""
        queue = self._queues.pop(key, None)
        if queue is None:
            return False
        queue.destroy()
        return True

    def destroy_all(self) -> None:
        for key in list(self._queues):
            self.destroy(key)

    def keys(self) -> list[Hashable]:
        return list(self._queues)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._queues

    def __len__(self) -> int:
        return len(self._queues)


class InFlightDeduplicator:
    """Collapses concurrent requests for the same key into one operation.

    The first caller for a key starts the operation; callers arriving while
    it is in flight await the same result. The entry is dropped as soon as
    the operation settles, whatever the outcome, so a later call starts
    fresh.
    """

    def __init__(self) -> None:
        self._in_flight: dict[Hashable, asyncio.Task[Any]] = {}

    def in_flight(self, key: Hashable) -> bool:
        return key in self._in_flight

    async def run_once(self, key: Hashable, factory: Operation) -> Any:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._in_flight[key] = task
            task.add_done_callback(lambda _: self._release(key, task))
        else:
            logger.debug(f"Joining in-flight operation for {key}")

        # Shielded so one cancelled waiter does not cancel the shared operation
        return await asyncio.shield(task)

    def _release(self, key: Hashable, task: asyncio.Task[Any]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
