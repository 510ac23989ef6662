"""Tools registry for managing model-callable tools."""

from typing import Any

from pydantic import ValidationError

from toolloop.models.llm import ToolSpec
from toolloop.models.messages import ToolCallRequest, ToolExecutionResult
from toolloop.tools.base import ToolDefinition, ToolError
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)


class ToolsRegistry:
    """Registry of tools, and the executor the agent loop runs calls through.

    Handlers receive the parsed input model and the registry's ``store``.
    """

    def __init__(self, store: Any = None, tools: list[ToolDefinition] | None = None):
        self.store = store
        self._tools: dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register_tool(tool)

    def register_tool(self, tool: ToolDefinition) -> None:
        """Register a new tool in the registry."""
        if tool.name in self._tools:
            logger.warning(f"Replacing already registered tool: {tool.name}")
        self._tools[tool.name] = tool

    def get_tool_specs(self) -> list[ToolSpec]:
        """Get the tool definitions advertised to the model, in registration order."""
        return [tool.to_spec() for tool in self._tools.values()]

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def has_tool(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    async def execute(self, call: ToolCallRequest) -> ToolExecutionResult:
        """Execute one tool call, turning every failure into a failed result."""
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {call.name}")
            return ToolExecutionResult.failed(call, f"Unknown tool: {call.name}")

        try:
            params = tool.parse_input(call.arguments)
        except ValidationError as e:
            logger.info(f"Invalid arguments for tool {call.name}: {e.error_count()} error(s)")
            return ToolExecutionResult.failed(call, f"Invalid arguments for {call.name}: {_summarize(e)}")

        try:
            payload = await tool.handler(params, self.store)
        except ToolError as e:
            return ToolExecutionResult.failed(call, str(e))
        except Exception as e:
            logger.error(f"Tool {call.name} raised unexpectedly: {e}", exc_info=True)
            return ToolExecutionResult.failed(call, f"Tool {call.name} failed: {e}")

        if isinstance(payload, dict) and payload.get("success") is False:
            return ToolExecutionResult.failed(call, payload.get("error"))

        return ToolExecutionResult.ok(call, payload)


def _summarize(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(p) for p in detail["loc"]) or "input"
        parts.append(f"{location}: {detail['msg']}")
    return "; ".join(parts)
