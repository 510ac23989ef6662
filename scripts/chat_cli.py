#!/usr/bin/env python3
"""Interactive chat CLI for trying the agent loop against a small demo project list."""

import argparse
import asyncio
import uuid
from typing import Any

from pydantic import BaseModel, Field
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

from toolloop.clients.anthropic import AnthropicProvider
from toolloop.clients.stub import StubProvider
from toolloop.errors import InputRejectedError, ToolLoopError
from toolloop.graphs import AgentLoop, AgentLoopConfig
from toolloop.models.llm import RunContext
from toolloop.services.events import (
    AgentEvent,
    IterationStarted,
    LoopCompleted,
    RetryScheduled,
    ToolsCompleted,
    ToolsExecuting,
)
from toolloop.tools import ToolDefinition, ToolsRegistry
from toolloop.utils.logging import setup_logging

SYSTEM_PROMPT = """You are a helpful project management assistant.

Use the available tools to inspect and create projects.
Always look up IDs with a tool instead of guessing them."""


class DemoProjects:
    """Throwaway in-memory project list for the demo tools."""

    def __init__(self) -> None:
        self.projects: dict[str, dict[str, Any]] = {}

    def apply(self, mutation) -> None:
        mutation(self)

    def add(self, name: str, description: str | None = None) -> dict[str, Any]:
        project = {"id": uuid.uuid4().hex[:8], "name": name, "description": description}
        self.projects[project["id"]] = project
        return project


class EmptyInput(BaseModel):
    """Input schema for tools that don't require parameters."""


class CreateProjectInput(BaseModel):
    name: str = Field(..., description="Project name", min_length=1, max_length=200)
    description: str | None = Field(None, description="Optional project description")


async def list_projects(params: EmptyInput, store: DemoProjects) -> dict[str, Any]:
    return {"projects": list(store.projects.values())}


async def create_project(params: CreateProjectInput, store: DemoProjects) -> dict[str, Any]:
    return {"project": store.add(params.name, params.description)}


DEMO_TOOLS = [
    ToolDefinition(
        name="list_projects",
        description="List all projects with their IDs and descriptions.",
        input_schema_class=EmptyInput,
        handler=list_projects,
    ),
    ToolDefinition(
        name="create_project",
        description="Create a new project.",
        input_schema_class=CreateProjectInput,
        handler=create_project,
    ),
]


class ChatCLI:
    """Interactive chat interface running an AgentLoop in-process."""

    def __init__(self, use_stub: bool = False):
        self.console = Console()
        self.store = DemoProjects()
        self.store.add("Website relaunch", "New marketing site")
        self.store.add("Hiring", "Backend engineer search")

        provider = StubProvider.from_env() if use_stub else AnthropicProvider()
        self.registry = ToolsRegistry(store=self.store, tools=DEMO_TOOLS)
        self.loop = AgentLoop(
            provider,
            self.registry,
            config=AgentLoopConfig.from_env(),
            system_prompt=SYSTEM_PROMPT,
        )
        self.loop.events.subscribe(self._show_event)

    async def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]toolloop - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with the assistant.\n"
                "Commands: /help, /clear, /quit",
                border_style="blue",
            )
        )

        try:
            while True:
                user_input = await asyncio.to_thread(Prompt.ask, "\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/clear":
                    self.loop.clear_history()
                    self.console.print("[yellow]History cleared[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                await self._send_message(user_input)

        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            self.loop.close()
            self.console.print("\n[yellow]Goodbye![/yellow]")

    async def _send_message(self, message: str) -> None:
        try:
            result = await self.loop.run(message, RunContext(extras={"project_count": len(self.store.projects)}))
        except InputRejectedError as e:
            self.console.print(f"[red]Message rejected: {e.reason}[/red]")
            return
        except ToolLoopError as e:
            self.console.print(f"[red]Agent failed: {e}[/red]")
            return

        if result.message and result.message.content:
            self.console.print(
                Panel(
                    Markdown(result.message.content),
                    title="[bold green]Assistant[/bold green]",
                    border_style="green",
                    padding=(1, 2),
                )
            )
        if not result.is_final:
            self.console.print(f"[yellow]Stopped after {result.iterations} iterations ({result.status})[/yellow]")
            if result.error:
                self.console.print(f"[yellow]{result.error}[/yellow]")

    def _show_event(self, event: AgentEvent) -> None:
        match event:
            case IterationStarted(iteration=iteration):
                self.console.print(f"[dim]Thinking (iteration {iteration})...[/dim]")
            case ToolsExecuting(tool_calls=calls):
                names = ", ".join(call.name for call in calls)
                self.console.print(f"[dim]Running tools: {names}[/dim]")
            case ToolsCompleted(results=results):
                for message in results:
                    self.console.print(Panel(message.content, border_style="dim", title="[dim]tool result[/dim]"))
            case RetryScheduled(attempt=attempt, max_attempts=max_attempts, delay=delay):
                self.console.print(f"[yellow]Provider busy, retry {attempt}/{max_attempts} in {delay:.1f}s[/yellow]")
            case LoopCompleted(iterations=iterations, status=status):
                self.console.print(f"[dim]Turn finished: {status} after {iterations} tool rounds[/dim]")

    def _show_help(self) -> None:
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Clear conversation history
• /quit or /exit - Exit the chat

[bold]Example Conversation:[/bold]
1. "What projects do we have?"
2. "Create a project called Launch party"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--stub", action="store_true", help="use the scripted stub provider (LLM_STUB_* env vars)")
    args = parser.parse_args()

    setup_logging()
    chat = ChatCLI(use_stub=args.stub)
    asyncio.run(chat.start())


if __name__ == "__main__":
    main()
