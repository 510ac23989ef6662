"""Typed event stream published by the agent loop."""

from collections.abc import Callable
from dataclasses import dataclass

from toolloop.models.conversation import LoopStatus
from toolloop.models.llm import ModelResponse
from toolloop.models.messages import Message, ToolCallRequest
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class IterationStarted:
    iteration: int


@dataclass(frozen=True)
class IterationCompleted:
    iteration: int
    response: ModelResponse


@dataclass(frozen=True)
class ToolsExecuting:
    tool_calls: list[ToolCallRequest]


@dataclass(frozen=True)
class ToolsCompleted:
    results: list[Message]


@dataclass(frozen=True)
class FinalMessage:
    message: Message


@dataclass(frozen=True)
class RetryScheduled:
    attempt: int
    max_attempts: int
    delay: float
    error: BaseException | None


@dataclass(frozen=True)
class LoopFailed:
    """The turn ended without a final answer.

    Only a ``failed`` turn raises ``error`` to the caller. Exhausted and
    stuck turns publish this and still return their partial result.
    """

    error: BaseException | None
    iteration: int


@dataclass(frozen=True)
class LoopCompleted:
    iterations: int
    status: LoopStatus


AgentEvent = (
    IterationStarted
    | IterationCompleted
    | ToolsExecuting
    | ToolsCompleted
    | FinalMessage
    | RetryScheduled
    | LoopFailed
    | LoopCompleted
)

EventHandler = Callable[[AgentEvent], None]


class EventStream:
    """Fan-out channel for agent loop progress.

    Handlers run synchronously in subscription order. A handler that raises
    is logged and skipped; it never interrupts the loop or other handlers.
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Register ``handler`` and return a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def publish(self, event: AgentEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler failed on {type(event).__name__}: {e}", exc_info=True)

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)
