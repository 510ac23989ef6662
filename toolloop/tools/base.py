"""Base types and definitions for tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Protocol

from pydantic import BaseModel

from toolloop.models.llm import ToolSpec
from toolloop.models.messages import ToolCallRequest, ToolExecutionResult

ToolHandler = Callable[[BaseModel, Any], Awaitable[Any]]


class ToolError(Exception):
    """A tool refused or failed the requested operation.

    The message is shown to the model, so keep it actionable.
    """


class ToolExecutor(Protocol):
    """Runs a single tool call. Never raises for tool-level failures."""

    async def execute(self, call: ToolCallRequest) -> ToolExecutionResult: ...


@dataclass
class ToolDefinition:
    """Definition of a tool available to the model."""

    name: str
    description: str
    input_schema_class: type[BaseModel]
    handler: ToolHandler

    def get_json_schema(self) -> dict[str, Any]:
        """Get JSON schema for this tool's input."""
        return self.input_schema_class.model_json_schema()

    def parse_input(self, raw_input: dict[str, Any]) -> BaseModel:
        """Parse and validate tool input."""
        return self.input_schema_class.model_validate(raw_input)

    def to_spec(self) -> ToolSpec:
        return ToolSpec(name=self.name, description=self.description, input_schema=self.get_json_schema())
