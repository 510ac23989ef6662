"""Formatter for contact tools."""

from typing import Any

from toolloop.formatters.base import ToolFamilyFormatter
from toolloop.formatters.references import contact_ref


class ContactToolFormatter(ToolFamilyFormatter):
    family = "Contact"
    tool_names = (
        "list_contacts",
        "get_contact",
        "create_contact",
        "update_contact",
    )

    def _format_list_contacts(self, result: dict[str, Any]) -> str:
        contacts = [
            f"{c.get('name')} (ID: {contact_ref(c['id'])}){f' - {c['email']}' if c.get('email') else ''}"
            for c in result.get("contacts") or []
        ]
        return f"Contacts:\n• {self.bullet_list(contacts, 'No contacts found')}"

    def _format_get_contact(self, result: dict[str, Any]) -> str:
        contact = result.get("contact")
        if not contact:
            return "Contact not found"
        message = f"Contact: {contact.get('name')} ({contact_ref(contact['id'])})"
        for field in ("email", "phone", "company", "notes"):
            if contact.get(field):
                message += f"\n• {field.capitalize()}: {contact[field]}"
        return message

    def _format_create_contact(self, result: dict[str, Any]) -> str:
        contact = result.get("contact") or {}
        if not contact.get("id"):
            return "Contact creation failed: Contact ID not found"
        return f"Contact created successfully:\n• Name: {contact.get('name')}\n• Contact ID: {contact_ref(contact['id'])}"

    def _format_update_contact(self, result: dict[str, Any]) -> str:
        contact = result.get("contact") or {}
        if not contact.get("id"):
            return "Contact update failed: Contact ID not found"
        return f"Contact updated successfully:\n• Contact ID: {contact_ref(contact['id'])}"
