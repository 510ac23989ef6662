"""Agent loop: alternates model calls and tool execution until the model is done."""

import asyncio
import os
from dataclasses import dataclass
from functools import partial

from langgraph.graph import END, StateGraph

from toolloop.errors import InputRejectedError, ToolLoopError
from toolloop.formatters import default_formatter
from toolloop.formatters.service import ToolOutcomeFormatter
from toolloop.graphs.edges import recursion_limit, route_agent_output, route_backoff_output, route_tool_output
from toolloop.graphs.nodes import LoopNodes, Sleep
from toolloop.graphs.state import ConversationState
from toolloop.models.conversation import AgentLoopResult, LoopStatus
from toolloop.models.llm import ModelProvider, RunContext, ToolSpec
from toolloop.models.messages import Message, ToolExecutionResult, cuid
from toolloop.services.events import EventStream, LoopCompleted, LoopFailed
from toolloop.services.input_guard import InputGuard
from toolloop.services.task_queue import SerializedTaskQueue
from toolloop.tools.base import ToolExecutor
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "claude-3-5-sonnet-20241022"


def _env_int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float, minimum: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return max(minimum, float(raw))
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


@dataclass
class AgentLoopConfig:
    """Configuration for the agent loop."""

    max_iterations: int = 15
    max_retry_attempts: int = 3
    retry_base_delay: float = 1.0  # seconds, doubled on every retry
    model: str = DEFAULT_MODEL

    @classmethod
    def from_env(cls) -> "AgentLoopConfig":
        return cls(
            max_iterations=_env_int("LLM_MAX_ITERATIONS", 15, 1),
            max_retry_attempts=_env_int("LLM_MAX_RETRY_ATTEMPTS", 3, 1),
            retry_base_delay=_env_float("LLM_RETRY_BASE_DELAY", 1.0, 0.0),
            model=os.getenv("LLM_MODEL") or DEFAULT_MODEL,
        )


def build_graph(nodes: LoopNodes):
    """Create the agent loop graph.

    ``agent`` calls the model, ``backoff`` waits out transient failures and
    ``tools`` executes requested tool calls. Terminal statuses route to END.
    """
    workflow = StateGraph(ConversationState)

    workflow.add_node("agent", nodes.agent)
    workflow.add_node("backoff", nodes.backoff)
    workflow.add_node("tools", nodes.tools)

    workflow.set_entry_point("agent")

    workflow.add_conditional_edges(
        "agent",
        route_agent_output,
        {
            "tools": "tools",
            "backoff": "backoff",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "backoff",
        route_backoff_output,
        {
            "agent": "agent",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "tools",
        route_tool_output,
        {
            "agent": "agent",
            "end": END,
        },
    )

    return workflow.compile()


class AgentLoop:
    """Drives one conversation: validates input, then runs the graph to a terminal state.

    Tool calls execute through ``store_queue``. Pass the same queue to every
    loop that mutates the same store so their writes never interleave.
    Concurrent ``run`` calls on one loop are processed one after another.
    """

    def __init__(
        self,
        provider: ModelProvider,
        executor: ToolExecutor,
        *,
        formatter: ToolOutcomeFormatter | None = None,
        guard: InputGuard | None = None,
        config: AgentLoopConfig | None = None,
        events: EventStream | None = None,
        tools: list[ToolSpec] | None = None,
        store_queue: SerializedTaskQueue[ToolExecutionResult] | None = None,
        conversation_id: str | None = None,
        system_prompt: str | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.provider = provider
        self.executor = executor
        self.formatter = formatter or default_formatter()
        self.guard = guard or InputGuard()
        self.config = config or AgentLoopConfig()
        self.events = events or EventStream()
        self.conversation_id = conversation_id or cuid()
        self.system_prompt = system_prompt

        if tools is None:
            get_tool_specs = getattr(executor, "get_tool_specs", None)
            tools = get_tool_specs() if get_tool_specs else []

        self._owns_store_queue = store_queue is None
        self.store_queue = store_queue or SerializedTaskQueue(name=f"tools:{self.conversation_id}")
        self._run_queue: SerializedTaskQueue[AgentLoopResult] = SerializedTaskQueue(
            name=f"turns:{self.conversation_id}"
        )

        self.nodes = LoopNodes(
            provider=provider,
            executor=executor,
            formatter=self.formatter,
            tools=tools,
            events=self.events,
            queue=self.store_queue,
            max_retry_attempts=self.config.max_retry_attempts,
            retry_base_delay=self.config.retry_base_delay,
            sleep=sleep,
        )
        self.graph = build_graph(self.nodes)

        self._history: list[Message] = self._initial_history()
        self._state: ConversationState | None = None

    @property
    def history(self) -> list[Message]:
        return list(self._history)

    @property
    def state(self) -> ConversationState | None:
        """State at the end of the most recent turn."""
        return self._state

    def clear_history(self) -> None:
        self._history = self._initial_history()
        self._state = None

    def set_history(self, messages: list[Message]) -> None:
        self._history = list(messages)
        self._state = None

    async def run(self, user_text: str, context: RunContext | None = None) -> AgentLoopResult:
        """Run one user turn to completion.

        Raises:
            InputRejectedError: if the input guard rejects ``user_text``
            ToolLoopError: if the model call fails for good or the tool queue is shut down
        """
        return await self._run_queue.enqueue(partial(self._run_turn, user_text, context or RunContext()))

    def close(self) -> None:
        """Reject queued turns, and queued tool calls if this loop owns the tool queue."""
        self._run_queue.destroy()
        if self._owns_store_queue:
            self.store_queue.destroy()

    async def _run_turn(self, user_text: str, context: RunContext) -> AgentLoopResult:
        validation = self.guard.validate(user_text)
        if not validation.is_valid:
            raise InputRejectedError(validation.reason or "Invalid input")

        self._history.append(Message.user(validation.sanitized_content or ""))

        max_iterations = context.max_iterations or self.config.max_iterations
        initial_state = ConversationState(
            conversation_id=self.conversation_id,
            messages=list(self._history),
            model=context.model or self.config.model,
            extras=context.extras,
            max_iterations=max_iterations,
        )

        logger.info(f"Running turn for {self.conversation_id} ({len(self._history)} messages in history)")

        result = await self.graph.ainvoke(
            dict(initial_state),
            {"recursion_limit": recursion_limit(max_iterations, self.config.max_retry_attempts)},
        )
        final_state = result if isinstance(result, ConversationState) else ConversationState(**result)

        self._history = list(final_state.messages)
        self._state = final_state

        if final_state.status == LoopStatus.FAILED:
            error = final_state.exception or ToolLoopError(final_state.last_error or "Agent loop failed")
            self.events.publish(LoopFailed(error=error, iteration=final_state.iteration))
            self.events.publish(LoopCompleted(iterations=final_state.iteration, status=final_state.status))
            raise error

        # Cut-off turns keep their partial result but still report why they stopped
        if final_state.status in (LoopStatus.EXHAUSTED, LoopStatus.STUCK):
            self.events.publish(LoopFailed(error=final_state.exception, iteration=final_state.iteration))

        self.events.publish(LoopCompleted(iterations=final_state.iteration, status=final_state.status))

        return AgentLoopResult(
            status=final_state.status,
            message=final_state.last_assistant_message,
            messages=list(final_state.messages),
            iterations=final_state.iteration,
            error=final_state.last_error,
        )

    def _initial_history(self) -> list[Message]:
        return [Message.system(self.system_prompt)] if self.system_prompt else []
