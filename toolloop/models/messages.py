"""Conversation message and tool call data models."""

import json
from typing import Any, Literal

from cuid2 import cuid_wrapper
from pydantic import BaseModel, Field, field_validator, model_validator

cuid = cuid_wrapper()

Role = Literal["user", "assistant", "tool", "system"]


class ToolCallRequest(BaseModel):
    """A request from the model to invoke a named tool."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    class Config:
        frozen = True

    @field_validator("arguments", mode="before")
    @classmethod
    def parse_arguments(cls, v: Any) -> Any:
        """Accept JSON-encoded argument strings as sent by OpenAI-style providers."""
        if v is None or v == "":
            return {}
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"Tool arguments are not valid JSON: {e.msg}") from e
        return v

    @property
    def signature(self) -> str:
        """Name plus canonical arguments; equal for calls that would do the same thing."""
        return f"{self.name}:{json.dumps(self.arguments, sort_keys=True, default=str)}"


class Message(BaseModel):
    """A single entry in a conversation history."""

    role: Role
    content: str = ""
    tool_calls: list[ToolCallRequest] | None = None
    tool_call_id: str | None = None
    id: str = Field(default_factory=cuid)

    class Config:
        frozen = True

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def assistant(cls, content: str | None, tool_calls: list[ToolCallRequest] | None = None) -> "Message":
        return cls(role="assistant", content=content or "", tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, content: str, tool_call_id: str) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


class ToolExecutionResult(BaseModel):
    """Outcome of executing exactly one tool call."""

    success: bool
    result: Any = None
    error: str | None = None
    call: ToolCallRequest

    @model_validator(mode="after")
    def check_outcome(self) -> "ToolExecutionResult":
        if self.success and self.error is not None:
            raise ValueError("A successful result cannot carry an error")
        if not self.success and self.result is not None:
            raise ValueError("A failed result cannot carry a payload")
        return self

    @classmethod
    def ok(cls, call: ToolCallRequest, payload: Any) -> "ToolExecutionResult":
        return cls(success=True, result=payload, call=call)

    @classmethod
    def failed(cls, call: ToolCallRequest, error: str | None) -> "ToolExecutionResult":
        return cls(success=False, error=error, call=call)
