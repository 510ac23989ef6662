"""State definitions for the LangGraph agent loop."""

import operator
from typing import Annotated, Any

from pydantic import BaseModel, Field

from toolloop.models.conversation import LoopStatus
from toolloop.models.messages import Message, ToolCallRequest


class ConversationState(BaseModel):
    """State passed through every node of the agent loop graph.

    ``messages`` is the full conversation history; nodes return only the
    messages they add and the reducer appends them.
    """

    # Core conversation data
    conversation_id: str
    messages: Annotated[list[Message], operator.add] = Field(default_factory=list)

    # Per-turn settings
    model: str
    extras: dict[str, Any] | None = None
    max_iterations: int = 15

    # Control flow
    status: LoopStatus = LoopStatus.AWAITING_RESPONSE
    iteration: int = 0
    retry_attempts: int = 0
    pending_tool_calls: list[ToolCallRequest] = Field(default_factory=list)

    # Repeated tool call tracking, reset every turn
    recent_call_signatures: list[str] = Field(default_factory=list)
    repeat_counts: dict[str, int] = Field(default_factory=dict)

    # Failure tracking
    last_error: str | None = None
    exception: BaseException | None = None

    class Config:
        """Pydantic configuration."""

        arbitrary_types_allowed = True  # Allow exception instances

    @property
    def last_assistant_message(self) -> Message | None:
        for message in reversed(self.messages):
            if message.role == "assistant":
                return message
        return None
