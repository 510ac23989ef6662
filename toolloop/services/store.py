"""Store capability and its serialised gateway."""

import asyncio
from typing import Any, Protocol

from toolloop.services.task_queue import SerializedTaskQueue


class Store(Protocol):
    """Persistent store mutated by tools.

    Assumed to keep its own internal consistency once ``apply`` is called,
    but not across concurrent callers.
    """

    def apply(self, mutation: Any) -> None: ...


class SerializedStore:
    """Routes every store mutation through a SerializedTaskQueue.

    Share the queue with the agent loops that execute tools against the
    same store so that direct mutations and tool calls form one total order.
    """

    def __init__(self, store: Store, queue: SerializedTaskQueue[Any] | None = None):
        self.store = store
        self.queue = queue or SerializedTaskQueue(name="store")

    def apply(self, mutation: Any) -> asyncio.Future[Any]:
        """Schedule ``mutation``; the returned future settles once it is applied."""

        async def operation() -> None:
            self.store.apply(mutation)

        return self.queue.enqueue(operation)
