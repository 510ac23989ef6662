"""Turns raw tool execution results into readable, cross-referenced text."""

from toolloop.formatters.base import FormatterEntry, Predicate, Renderer, ToolResultFormatter, to_json
from toolloop.models.messages import ToolCallRequest, ToolExecutionResult
from toolloop.utils.logging import get_logger

logger = get_logger(__name__)

UNKNOWN_ERROR = "Unknown error occurred"


class ToolOutcomeFormatter:
    """Ordered registry of formatters; the first one that accepts a tool wins.

    Registration order is priority order, so register specific formatters
    before broad ones.
    """

    def __init__(self, formatters: list[ToolResultFormatter] | None = None):
        self._entries: list[FormatterEntry] = []
        for formatter in formatters or []:
            self.register(formatter)

    def register(self, formatter: ToolResultFormatter) -> None:
        """Append a formatter object exposing ``can_format`` and ``format``."""
        self._entries.append(
            FormatterEntry(
                predicate=formatter.can_format,
                renderer=formatter.format,
                name=type(formatter).__name__,
            )
        )

    def register_rule(self, predicate: Predicate, renderer: Renderer, name: str = "rule") -> None:
        """Append a bare predicate/renderer pair."""
        self._entries.append(FormatterEntry(predicate=predicate, renderer=renderer, name=name))

    @property
    def entries(self) -> list[FormatterEntry]:
        return list(self._entries)

    def format(self, result: ToolExecutionResult, call: ToolCallRequest) -> str:
        """Render ``result`` for display and for re-injection into the model context."""
        if not result.success:
            return f"Error: {result.error or UNKNOWN_ERROR}"

        for entry in self._entries:
            if entry.predicate(call.name):
                logger.debug(f"Formatting {call.name} result with {entry.name}")
                return entry.renderer(result, call)

        return self.format_default(result)

    def format_default(self, result: ToolExecutionResult) -> str:
        return f"Tool executed successfully:\n{to_json(result.result)}"

    def format_error(self, error: BaseException, call: ToolCallRequest) -> str:
        """Render an execution-level failure (the tool raised) for the conversation."""
        return f"Error executing tool {call.name}: {error}"
