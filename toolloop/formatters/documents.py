"""Formatter for document tools."""

from datetime import datetime
from typing import Any

from toolloop.formatters.base import ToolFamilyFormatter
from toolloop.formatters.references import document_ref, project_ref


def _date(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value).date().isoformat()
        except ValueError:
            return value
    return "unknown"


class DocumentToolFormatter(ToolFamilyFormatter):
    family = "Document"
    tool_names = (
        "list_documents",
        "read_document",
        "search_documents",
        "get_project_documents",
        "create_document",
        "update_document",
        "archive_document",
        "add_document_to_project",
        "remove_document_from_project",
    )

    def _format_list_documents(self, result: dict[str, Any]) -> str:
        documents = [
            f"{d.get('title')} (ID: {document_ref(d['id'])}) - Updated: {_date(d.get('updated_at'))}"
            for d in result.get("documents") or []
        ]
        return f"Available documents:\n• {self.bullet_list(documents, 'No documents found')}"

    def _format_read_document(self, result: dict[str, Any]) -> str:
        document = result.get("document")
        if not document:
            return "Document not found"
        return f"Document: {document.get('title')} ({document_ref(document['id'])})\n\nContent:\n{document.get('content', '')}"

    def _format_search_documents(self, result: dict[str, Any]) -> str:
        matches = [
            f"{r.get('title')} (ID: {document_ref(r['id'])})\n  Snippet: {r.get('snippet', '')}"
            for r in result.get("results") or []
        ]
        return f"Search results:\n• {'\n\n• '.join(matches) if matches else 'No matching documents found'}"

    def _format_get_project_documents(self, result: dict[str, Any]) -> str:
        documents = [
            f"{d.get('title')} (ID: {document_ref(d['id'])}) - Created: {_date(d.get('created_at'))}"
            for d in result.get("documents") or []
        ]
        return f"Project documents:\n• {self.bullet_list(documents, 'No documents found in project')}"

    def _format_create_document(self, result: dict[str, Any]) -> str:
        document_id = document_ref(result["document_id"]) if result.get("document_id") else "unavailable"
        return (
            f"Document created successfully:\n• Title: {result.get('title')}\n• Document ID: {document_id}"
            f"\n• Content length: {len(result.get('content') or '')} characters"
        )

    def _format_update_document(self, result: dict[str, Any]) -> str:
        document = result.get("document") or {}
        if not document.get("id"):
            return "Document update failed: Document ID not found"
        message = f"Document updated successfully:\n• Document ID: {document_ref(document['id'])}"
        if document.get("title"):
            message += f"\n• New title: {document['title']}"
        if document.get("content") is not None:
            message += f"\n• Content updated ({len(document['content'])} characters)"
        return message

    def _format_archive_document(self, result: dict[str, Any]) -> str:
        document = result.get("document") or {}
        if not document.get("id"):
            return "Document archive failed: Document ID not found"
        return f"Document archived successfully:\n• Document ID: {document_ref(document['id'])}"

    def _format_add_document_to_project(self, result: dict[str, Any]) -> str:
        association = result.get("association") or {}
        return (
            "Document successfully added to project:"
            f"\n• Document ID: {document_ref(association.get('document_id', 'unknown'))}"
            f"\n• Project ID: {project_ref(association.get('project_id', 'unknown'))}"
        )

    def _format_remove_document_from_project(self, result: dict[str, Any]) -> str:
        association = result.get("association") or {}
        return (
            "Document successfully removed from project:"
            f"\n• Document ID: {document_ref(association.get('document_id', 'unknown'))}"
            f"\n• Project ID: {project_ref(association.get('project_id', 'unknown'))}"
        )
