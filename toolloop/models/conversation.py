"""Agent turn status and result models."""

from dataclasses import dataclass
from enum import StrEnum

from toolloop.models.messages import Message


class LoopStatus(StrEnum):
    """States of the agent loop state machine."""

    AWAITING_RESPONSE = "awaiting_response"
    BACKOFF = "backoff"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    FAILED = "failed"
    EXHAUSTED = "exhausted"
    STUCK = "stuck"

    @property
    def is_terminal(self) -> bool:
        return self in (LoopStatus.DONE, LoopStatus.FAILED, LoopStatus.EXHAUSTED, LoopStatus.STUCK)


@dataclass
class AgentLoopResult:
    """Result from running one agent turn."""

    status: LoopStatus
    message: Message | None
    messages: list[Message]
    iterations: int
    error: str | None = None

    @property
    def is_final(self) -> bool:
        """True only when the model finished on its own (not cut off by the iteration cap or a repeated tool call)."""
        return self.status == LoopStatus.DONE
