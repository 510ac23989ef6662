"""Base types for tool result formatters."""

import json
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

from toolloop.models.messages import ToolCallRequest, ToolExecutionResult

Predicate = Callable[[str], bool]
Renderer = Callable[[ToolExecutionResult, ToolCallRequest], str]


class ToolResultFormatter(Protocol):
    """Anything that can render results for some set of tool names."""

    def can_format(self, tool_name: str) -> bool: ...

    def format(self, result: ToolExecutionResult, call: ToolCallRequest) -> str: ...


@dataclass(frozen=True)
class FormatterEntry:
    """One registry slot: a tool-name predicate paired with its renderer."""

    predicate: Predicate
    renderer: Renderer
    name: str = "formatter"


def to_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str, ensure_ascii=False)


class ToolFamilyFormatter:
    """Formatter for a family of related tools.

    Subclasses list their tools in ``tool_names`` and implement one
    ``_format_<tool_name>(payload)`` method per tool. Tools without a
    dedicated method, and non-mapping payloads, get a generic rendering.
    """

    family: ClassVar[str] = "Tool"
    tool_names: ClassVar[tuple[str, ...]] = ()

    def can_format(self, tool_name: str) -> bool:
        return tool_name in self.tool_names

    def format(self, result: ToolExecutionResult, call: ToolCallRequest) -> str:
        renderer = getattr(self, f"_format_{call.name}", None)
        if renderer is None or not isinstance(result.result, dict):
            return f"{self.family} operation completed: {to_json(result.result)}"
        return renderer(result.result)

    @staticmethod
    def bullet_list(items: list[str], empty: str) -> str:
        return "\n• ".join(items) if items else empty
