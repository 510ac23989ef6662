"""Data models shared across the runtime."""

from toolloop.models.conversation import AgentLoopResult, LoopStatus
from toolloop.models.llm import ModelCallOptions, ModelProvider, ModelResponse, RunContext, ToolSpec
from toolloop.models.messages import Message, ToolCallRequest, ToolExecutionResult
from toolloop.models.validation import ValidationResult

__all__ = [
    "AgentLoopResult",
    "LoopStatus",
    "Message",
    "ModelCallOptions",
    "ModelProvider",
    "ModelResponse",
    "RunContext",
    "ToolCallRequest",
    "ToolExecutionResult",
    "ToolSpec",
    "ValidationResult",
]
