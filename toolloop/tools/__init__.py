"""Tool registration and execution."""

from toolloop.tools.base import ToolDefinition, ToolError, ToolExecutor
from toolloop.tools.registry import ToolsRegistry

__all__ = ["ToolDefinition", "ToolError", "ToolExecutor", "ToolsRegistry"]
