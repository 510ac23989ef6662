"""Reference markers embedded in formatted tool output.

A marker identifies an entity for presentation layers, which render it as a
navigable link::

    <REF path="project:abc123">View project</REF>

Formatters only emit the text; they never navigate.
"""

import re
from dataclasses import dataclass

REFERENCE_TAG = "REF"

_MARKER_PATTERN = re.compile(r'<REF path="([^":]+):([^"]*)">(.*?)</REF>', re.DOTALL)


@dataclass(frozen=True)
class Reference:
    """An entity reference parsed out of formatted text."""

    kind: str
    entity_id: str
    label: str


def reference(kind: str, entity_id: str, label: str | None = None) -> str:
    """Build a reference marker; the label defaults to the entity id."""
    return f'<{REFERENCE_TAG} path="{kind}:{entity_id}">{label if label is not None else entity_id}</{REFERENCE_TAG}>'


def project_ref(entity_id: str, label: str | None = None) -> str:
    return reference("project", entity_id, label)


def task_ref(entity_id: str, label: str | None = None) -> str:
    return reference("task", entity_id, label)


def document_ref(entity_id: str, label: str | None = None) -> str:
    return reference("document", entity_id, label)


def contact_ref(entity_id: str, label: str | None = None) -> str:
    return reference("contact", entity_id, label)


def extract_references(text: str) -> list[Reference]:
    """Return every reference marker in ``text``, in order of appearance."""
    return [Reference(kind=m.group(1), entity_id=m.group(2), label=m.group(3)) for m in _MARKER_PATTERN.finditer(text)]
