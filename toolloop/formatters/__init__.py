from toolloop.formatters.base import ToolFamilyFormatter, ToolResultFormatter
from toolloop.formatters.contacts import ContactToolFormatter
from toolloop.formatters.documents import DocumentToolFormatter
from toolloop.formatters.projects import ProjectToolFormatter
from toolloop.formatters.references import REFERENCE_TAG, Reference, extract_references, reference
from toolloop.formatters.service import ToolOutcomeFormatter
from toolloop.formatters.tasks import TaskToolFormatter


def default_formatter() -> ToolOutcomeFormatter:
    """Formatter with every built-in tool family registered."""
    return ToolOutcomeFormatter(
        [
            TaskToolFormatter(),
            DocumentToolFormatter(),
            ProjectToolFormatter(),
            ContactToolFormatter(),
        ]
    )


__all__ = [
    "REFERENCE_TAG",
    "ContactToolFormatter",
    "DocumentToolFormatter",
    "ProjectToolFormatter",
    "Reference",
    "TaskToolFormatter",
    "ToolFamilyFormatter",
    "ToolOutcomeFormatter",
    "ToolResultFormatter",
    "default_formatter",
    "extract_references",
    "reference",
]
