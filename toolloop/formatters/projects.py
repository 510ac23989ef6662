"""Formatter for project tools."""

from typing import Any

from toolloop.formatters.base import ToolFamilyFormatter
from toolloop.formatters.references import project_ref


class ProjectToolFormatter(ToolFamilyFormatter):
    family = "Project"
    tool_names = (
        "list_projects",
        "get_project_details",
        "create_project",
        "update_project",
    )

    def _format_list_projects(self, result: dict[str, Any]) -> str:
        projects = [
            f"{p.get('name')} (ID: {project_ref(p['id'])}) - {p.get('description') or 'No description'}"
            for p in result.get("projects") or []
        ]
        return f"Available projects:\n• {self.bullet_list(projects, 'No projects found')}"

    def _format_get_project_details(self, result: dict[str, Any]) -> str:
        project = result.get("project")
        if not project:
            return "Project not found"
        columns = [f"{c.get('name')} (ID: {c.get('id')})" for c in project.get("columns") or []]
        return (
            f"Project: {project.get('name')} ({project_ref(project['id'])})"
            f"\n• Description: {project.get('description') or 'none'}"
            f"\n• Columns:\n  • {'\n  • '.join(columns) if columns else 'No columns'}"
        )

    def _format_create_project(self, result: dict[str, Any]) -> str:
        project = result.get("project") or {}
        if not project.get("id"):
            return "Project creation failed: Project ID not found"
        return f"Project created successfully:\n• Name: {project.get('name')}\n• Project ID: {project_ref(project['id'])}"

    def _format_update_project(self, result: dict[str, Any]) -> str:
        project = result.get("project") or {}
        if not project.get("id"):
            return "Project update failed: Project ID not found"
        message = f"Project updated successfully:\n• Project ID: {project_ref(project['id'])}"
        if project.get("name"):
            message += f"\n• New name: {project['name']}"
        if "description" in project:
            message += "\n• Description updated"
        return message
