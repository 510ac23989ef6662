"""Edge logic and routing for the agent loop graph."""

from typing import Literal

from toolloop.graphs.state import ConversationState
from toolloop.models.conversation import LoopStatus
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)


def route_agent_output(state: ConversationState) -> Literal["tools", "backoff", "end"]:
    """Route from the agent node.

    Tool calls go to the tools node, transient provider failures to the
    backoff node. Anything else (final answer, hard failure, repeated
    tool call) ends the turn.
    """
    logger.debug(f"Routing from agent node. Status: {state.status}")

    if state.status == LoopStatus.EXECUTING_TOOLS:
        return "tools"
    if state.status == LoopStatus.BACKOFF:
        return "backoff"
    if state.status == LoopStatus.STUCK:
        logger.warning(f"Repeated tool calls ended the turn for {state.conversation_id}")
    return "end"


def route_backoff_output(state: ConversationState) -> Literal["agent", "end"]:
    """Retry the model call unless the retry ceiling was hit."""
    if state.status == LoopStatus.AWAITING_RESPONSE:
        return "agent"
    return "end"


def route_tool_output(state: ConversationState) -> Literal["agent", "end"]:
    """Return to the agent unless the iteration cap was reached or the queue failed."""
    if state.status == LoopStatus.AWAITING_RESPONSE:
        return "agent"
    if state.status == LoopStatus.EXHAUSTED:
        logger.warning(f"Iteration cap ({state.max_iterations}) reached for {state.conversation_id}")
    return "end"


def recursion_limit(max_iterations: int, max_retry_attempts: int) -> int:
    """Graph step budget that can never cut a turn short of its own limits.

    Each model call may cost one agent step plus a backoff/agent pair per
    retry; each iteration adds a tools step.
    """
    per_iteration = 2 * max_retry_attempts + 2
    return (max_iterations + 1) * per_iteration + 5
