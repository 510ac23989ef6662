"""Formatter for task tools."""

from typing import Any

from toolloop.formatters.base import ToolFamilyFormatter
from toolloop.formatters.references import project_ref, task_ref


class TaskToolFormatter(ToolFamilyFormatter):
    family = "Task"
    tool_names = (
        "create_task",
        "update_task",
        "move_task_within_project",
        "move_task_to_project",
        "archive_task",
        "unarchive_task",
        "get_task_by_id",
        "get_project_tasks",
        "get_orphaned_tasks",
    )

    def _format_create_task(self, result: dict[str, Any]) -> str:
        title = result.get("task_title") or "Untitled task"
        project = result.get("project_name") or "unknown project"
        column = result.get("column_name") or "unknown column"
        assignees = result.get("assignee_names") or []
        assignee_suffix = f" (assigned to {', '.join(assignees)})" if assignees else ""
        task_id = task_ref(result["task_id"]) if result.get("task_id") else "unavailable"
        return (
            f'Task created successfully: "{title}" in project "{project}" column "{column}"{assignee_suffix}. '
            f"Task ID: {task_id}"
        )

    def _format_update_task(self, result: dict[str, Any]) -> str:
        task = result.get("task") or {}
        if not task.get("id"):
            return "Task update failed: Task ID not found"
        message = f"Task updated successfully:\n• Task ID: {task_ref(task['id'])}"
        if task.get("title"):
            message += f"\n• New title: {task['title']}"
        if "description" in task:
            message += "\n• Description updated"
        if task.get("assignee_ids") is not None:
            message += "\n• Assignees updated"
        return message

    def _format_move_task_within_project(self, result: dict[str, Any]) -> str:
        task = result.get("task") or {}
        if not task.get("id"):
            return "Task move failed: Task ID not found"
        return (
            f"Task moved within project successfully:\n• Task ID: {task_ref(task['id'])}"
            f"\n• New column ID: {task.get('column_id')}\n• Position: {task.get('position')}"
        )

    def _format_move_task_to_project(self, result: dict[str, Any]) -> str:
        task = result.get("task") or {}
        if not task.get("id"):
            return "Task move to project failed: Task ID not found"
        project = project_ref(task["project_id"]) if task.get("project_id") else "none"
        return (
            f"Task moved to project:\n• Task ID: {task_ref(task['id'])}\n• New project ID: {project}"
            f"\n• New column ID: {task.get('column_id')}\n• Position: {task.get('position')}"
        )

    def _format_archive_task(self, result: dict[str, Any]) -> str:
        task = result.get("task") or {}
        if not task.get("id"):
            return "Task archive failed: Task ID not found"
        return f"Task archived successfully:\n• Task ID: {task_ref(task['id'])}"

    def _format_unarchive_task(self, result: dict[str, Any]) -> str:
        task = result.get("task") or {}
        if not task.get("id"):
            return "Task unarchive failed: Task ID not found"
        return f"Task unarchived successfully:\n• Task ID: {task_ref(task['id'])}"

    def _format_get_task_by_id(self, result: dict[str, Any]) -> str:
        task = result.get("task")
        if not task:
            return "Task not found"
        project = project_ref(task["project_id"]) if task.get("project_id") else "none"
        message = (
            f"Task details:\n• ID: {task_ref(task['id'])}\n• Title: {task.get('title')}"
            f"\n• Project ID: {project}\n• Column ID: {task.get('column_id') or 'none'}"
            f"\n• Description: {task.get('description') or 'none'}\n• Position: {task.get('position')}"
        )
        if task.get("assignee_ids"):
            message += f"\n• Assignees: {', '.join(task['assignee_ids'])}"
        return message

    def _format_get_project_tasks(self, result: dict[str, Any]) -> str:
        project_info = f' for "{result["project_name"]}"' if result.get("project_name") else ""
        tasks = [
            f"{t.get('title')} (ID: {task_ref(t['id'])}) - "
            f"Column: {t.get('column_name') or t.get('column_id')}, Position: {t.get('position')}"
            for t in result.get("tasks") or []
        ]
        return f"Project tasks{project_info}:\n• {self.bullet_list(tasks, 'No tasks found in project')}"

    def _format_get_orphaned_tasks(self, result: dict[str, Any]) -> str:
        tasks = [
            f"{t.get('title')} (ID: {task_ref(t['id'])}) - Position: {t.get('position')}"
            for t in result.get("tasks") or []
        ]
        return f"Orphaned tasks:\n• {self.bullet_list(tasks, 'No orphaned tasks found')}"
