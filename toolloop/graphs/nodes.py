"""Node implementations for the agent loop graph."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from toolloop.errors import IterationLimitError, QueueError, RateLimitExhaustedError, StuckLoopError, is_retryable
from toolloop.formatters.service import ToolOutcomeFormatter
from toolloop.graphs.state import ConversationState
from toolloop.models.conversation import LoopStatus
from toolloop.models.llm import ModelCallOptions, ModelProvider, ToolSpec
from toolloop.models.messages import Message, ToolCallRequest, ToolExecutionResult
from toolloop.services.events import (
    EventStream,
    FinalMessage,
    IterationCompleted,
    IterationStarted,
    RetryScheduled,
    ToolsCompleted,
    ToolsExecuting,
)
from toolloop.services.task_queue import SerializedTaskQueue
from toolloop.tools.base import ToolExecutor
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

# A call counts as a repeat when it matches one of the last RECENT_CALL_WINDOW calls;
# STUCK_REPEAT_LIMIT consecutive repeats of one signature end the turn.
RECENT_CALL_WINDOW = 3
STUCK_REPEAT_LIMIT = 3


def track_repeated_calls(
    calls: list[ToolCallRequest], recent: list[str], counts: dict[str, int]
) -> tuple[ToolCallRequest | None, list[str], dict[str, int]]:
    """Record ``calls`` against the turn's call history.

    Returns the first call that hit the repeat limit (or None) together with
    the updated history and counters. Neither input is mutated.
    """
    recent = list(recent)
    counts = dict(counts)
    for call in calls:
        signature = call.signature
        if signature in recent[-RECENT_CALL_WINDOW:]:
            counts[signature] = counts.get(signature, 0) + 1
            logger.warning(f"Repeated tool call {call.name} (count {counts[signature]})")
            if counts[signature] >= STUCK_REPEAT_LIMIT:
                return call, recent, counts
        else:
            counts[signature] = 0
        recent.append(signature)
    return None, recent, counts


class LoopNodes:
    """Graph nodes bound to one agent loop's collaborators."""

    def __init__(
        self,
        provider: ModelProvider,
        executor: ToolExecutor,
        formatter: ToolOutcomeFormatter,
        tools: list[ToolSpec],
        events: EventStream,
        queue: SerializedTaskQueue[ToolExecutionResult],
        max_retry_attempts: int = 3,
        retry_base_delay: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.provider = provider
        self.executor = executor
        self.formatter = formatter
        self.tool_specs = tools
        self.events = events
        self.queue = queue
        self.max_retry_attempts = max_retry_attempts
        self.retry_base_delay = retry_base_delay
        self.sleep = sleep

    def retry_delay(self, attempt: int) -> float:
        return self.retry_base_delay * 2 ** (attempt - 1)

    async def agent(self, state: ConversationState) -> dict[str, Any]:
        """Ask the model for its next move given the full history."""
        iteration = state.iteration + 1
        if state.retry_attempts == 0:
            self.events.publish(IterationStarted(iteration=iteration))

        logger.info(f"Agent node processing iteration {iteration} for {state.conversation_id}")

        options = ModelCallOptions(on_retry=self._publish_retry)

        try:
            response = await self.provider.call(state.messages, self.tool_specs, state.model, state.extras, options)
        except Exception as e:
            if is_retryable(e):
                logger.warning(f"Transient provider failure on iteration {iteration}: {e}")
                return {"status": LoopStatus.BACKOFF, "last_error": str(e), "exception": e}

            logger.error(f"Agent node error: {e}", exc_info=True)
            return {"status": LoopStatus.FAILED, "last_error": str(e), "exception": e}

        self.events.publish(IterationCompleted(iteration=iteration, response=response))

        if not response.has_tool_calls:
            message = Message.assistant(response.message)
            self.events.publish(FinalMessage(message=message))
            return {
                "messages": [message],
                "status": LoopStatus.DONE,
                "retry_attempts": 0,
                "pending_tool_calls": [],
                "last_error": None,
                "exception": None,
            }

        stuck_on, recent, counts = track_repeated_calls(
            response.tool_calls, state.recent_call_signatures, state.repeat_counts
        )
        if stuck_on is not None:
            error = StuckLoopError(stuck_on.name)
            logger.error(f"Stuck loop on {stuck_on.name} for {state.conversation_id}, ending turn")
            return {
                "status": LoopStatus.STUCK,
                "retry_attempts": 0,
                "pending_tool_calls": [],
                "recent_call_signatures": recent,
                "repeat_counts": counts,
                "last_error": str(error),
                "exception": error,
            }

        logger.info(f"Agent requesting {len(response.tool_calls)} tool calls")
        return {
            "messages": [Message.assistant(response.message, tool_calls=response.tool_calls)],
            "status": LoopStatus.EXECUTING_TOOLS,
            "retry_attempts": 0,
            "pending_tool_calls": list(response.tool_calls),
            "recent_call_signatures": recent,
            "repeat_counts": counts,
            "last_error": None,
            "exception": None,
        }

    async def backoff(self, state: ConversationState) -> dict[str, Any]:
        """Wait out a transient provider failure, or give up past the retry ceiling."""
        attempt = state.retry_attempts + 1
        last_error = state.exception

        if attempt > self.max_retry_attempts:
            error = RateLimitExhaustedError(self.max_retry_attempts, last_error)
            error.__cause__ = last_error
            logger.error(f"Giving up after {self.max_retry_attempts} retries for {state.conversation_id}")
            return {"status": LoopStatus.FAILED, "last_error": str(error), "exception": error}

        delay = self.retry_delay(attempt)
        self._publish_retry(attempt, self.max_retry_attempts, delay, last_error)
        logger.info(f"Retrying model call in {delay}s (attempt {attempt}/{self.max_retry_attempts})")
        await self.sleep(delay)

        return {"status": LoopStatus.AWAITING_RESPONSE, "retry_attempts": attempt}

    async def tools(self, state: ConversationState) -> dict[str, Any]:
        """Execute pending tool calls in order and append one tool message per call."""
        calls = list(state.pending_tool_calls)
        self.events.publish(ToolsExecuting(tool_calls=calls))

        results: list[Message] = []
        for call in calls:
            try:
                outcome = await self.queue.enqueue(partial(self.executor.execute, call))
            except QueueError as e:
                logger.error(f"Tool queue rejected {call.name}: {e}")
                return {
                    "messages": results,
                    "status": LoopStatus.FAILED,
                    "pending_tool_calls": [],
                    "last_error": str(e),
                    "exception": e,
                }
            except Exception as e:
                logger.error(f"Tool {call.name} raised during execution: {e}", exc_info=True)
                content = self.formatter.format_error(e, call)
            else:
                content = self.formatter.format(outcome, call)

            results.append(Message.tool(content, call.id))

        self.events.publish(ToolsCompleted(results=results))

        iteration = state.iteration + 1
        if iteration >= state.max_iterations:
            error = IterationLimitError(state.max_iterations)
            return {
                "messages": results,
                "status": LoopStatus.EXHAUSTED,
                "iteration": iteration,
                "pending_tool_calls": [],
                "last_error": str(error),
                "exception": error,
            }

        return {
            "messages": results,
            "status": LoopStatus.AWAITING_RESPONSE,
            "iteration": iteration,
            "pending_tool_calls": [],
        }

    def _publish_retry(self, attempt: int, max_attempts: int, delay: float, error: BaseException | None) -> None:
        self.events.publish(RetryScheduled(attempt=attempt, max_attempts=max_attempts, delay=delay, error=error))
