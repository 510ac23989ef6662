"""Model provider contract types (provider-agnostic)."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from pydantic import BaseModel

from toolloop.models.messages import Message, ToolCallRequest

RetryCallback = Callable[[int, int, float, BaseException], None]


class ToolSpec(BaseModel):
    """Tool definition advertised to the model."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class ModelResponse:
    """Provider-agnostic response from a model call."""

    message: str | None = None
    tool_calls: list[ToolCallRequest] = field(default_factory=list)

    @property
    def has_tool_calls(self) -> bool:
        return len(self.tool_calls) > 0


@dataclass
class ModelCallOptions:
    """Per-call options passed to a model provider."""

    on_retry: RetryCallback | None = None


@dataclass
class RunContext:
    """Configuration for a single agent turn."""

    model: str | None = None
    extras: dict[str, Any] | None = None
    max_iterations: int | None = None


class ModelProvider(Protocol):
    """Capability that turns a message history into the model's next move.

    Implementations raise ``ProviderError`` with ``retryable=True`` for
    rate-limit or overload failures so the agent loop can back off.
    """

    async def call(
        self,
        messages: list[Message],
        tools: list[ToolSpec],
        model: str,
        extras: dict[str, Any] | None,
        options: ModelCallOptions,
    ) -> ModelResponse: ...
