"""Command line for headless canvas and task generation against a vault."""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich import print
from rich.table import Table

from .models.canvas import Archetype, Level
from .models.task import TaskData, TaskFilter, TaskStatus
from .services.canvas_service import CanvasService
from .services.config import AppConfig, reload_config
from .services.gemini import GeminiService, GenerationError
from .services.tasks import TaskManager
from .services.vault import NoteExistsError, VaultPathError, VaultService

logger = logging.getLogger(__name__)

APP_HELP = """
vault-assistant: canvas layouts and task notes for an Obsidian vault.

The vault is taken from --vault or VAULT_PATH (a .env file is honoured).
Layouts from text are computed locally; --generate asks Gemini instead and
needs GEMINI_API_KEY.
"""

app = typer.Typer(name="vault-assistant", help=APP_HELP, no_args_is_help=True)


@app.callback()
def main(
    ctx: typer.Context,
    vault: Optional[Path] = typer.Option(None, "--vault", "-v", help="Vault folder (overrides VAULT_PATH)"),
    log_level: str = typer.Option("WARNING", "--log-level", envvar="LOG_LEVEL", help="Logging level"),
):
    logging.basicConfig(level=log_level.upper())
    if vault is not None:
        os.environ["VAULT_PATH"] = str(vault)
    try:
        ctx.obj = reload_config()
    except ValidationError as e:
        print(f"[red]Invalid configuration:[/red] {e.errors()[0]['msg']}")
        raise typer.Exit(code=1)


def _services(config: AppConfig) -> tuple[VaultService, GeminiService]:
    vault = VaultService(config)
    if not vault.verify_vault():
        print(f"[red]Error: Vault not found at {config.vault_path}[/red]")
        raise typer.Exit(code=1)
    return vault, GeminiService(config)


def _read_text(source: Optional[Path]) -> str:
    if source is None or str(source) == "-":
        return typer.get_text_stream("stdin").read()
    return source.read_text(encoding="utf-8")


@app.command()
def canvas(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Canvas name (sanitized into the filename)"),
    source: Optional[Path] = typer.Option(
        None, "--file", "-f", help="Text file to lay out; stdin when omitted or '-'"
    ),
    layout: Archetype = typer.Option(Archetype.MINDMAP, "--layout", "-l", help="Layout type"),
    folder: Optional[str] = typer.Option(None, "--folder", help="Vault folder for the canvas"),
    generate: bool = typer.Option(False, "--generate", help="Ask Gemini for the layout"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """
    Write a canvas from free text.

    Examples:
        vault-assistant canvas sprint --layout taskboard -f notes.txt
        cat ideas.md | vault-assistant canvas ideas
    """
    vault, gemini = _services(ctx.obj)
    canvases = CanvasService(ctx.obj, vault, gemini)
    text = _read_text(source)

    try:
        if generate:
            result = asyncio.run(canvases.generate_canvas(text, layout, name, folder))
        else:
            result = canvases.create_canvas(name, layout, text, folder)
    except GenerationError as e:
        print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1)
    except VaultPathError as e:
        print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(json.dumps(result.model_dump()))
        return
    verb = "Created" if result.created else "Updated"
    print(f"[green]{verb} {result.path}[/green] ({result.node_count} nodes, {result.edge_count} edges)")


@app.command()
def task(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Task title, or a free-text description with --generate"),
    description: str = typer.Option("", "--description", "-d"),
    priority: Level = typer.Option(Level.MEDIUM, "--priority", "-p"),
    due: str = typer.Option("", "--due", help="Due date, e.g. 2026-11-01"),
    tags: List[str] = typer.Option([], "--tag", "-t", help="Tag (repeatable)"),
    subtasks: List[str] = typer.Option([], "--subtask", "-s", help="Subtask (repeatable)"),
    generate: bool = typer.Option(False, "--generate", help="Let Gemini structure TITLE as a description"),
):
    """Create a task note in the task folder."""
    vault, gemini = _services(ctx.obj)
    manager = TaskManager(ctx.obj, vault, gemini)

    try:
        if generate:
            path = asyncio.run(manager.create_task_from_description(title))
        else:
            data = TaskData(
                title=title,
                description=description,
                priority=priority,
                due_date=due,
                tags=tags,
                subtasks=subtasks,
            )
            path = manager.create_task(data)
    except GenerationError as e:
        print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1)
    except NoteExistsError as e:
        print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)

    print(f"[green]Task created: {path}[/green]")


@app.command()
def tasks(
    ctx: typer.Context,
    status: Optional[TaskStatus] = typer.Option(None, "--status"),
    priority: Optional[Level] = typer.Option(None, "--priority"),
    tag: Optional[str] = typer.Option(None, "--tag"),
    folder: Optional[str] = typer.Option(None, "--folder"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List task notes, highest priority first."""
    vault, gemini = _services(ctx.obj)
    found = TaskManager(ctx.obj, vault, gemini).list_tasks(
        TaskFilter(status=status, priority=priority, tag=tag, folder=folder)
    )

    if json_output:
        typer.echo(json.dumps([item.model_dump() for item in found]))
        return
    if not found:
        print("[yellow]No tasks found[/yellow]")
        return

    table = Table(title="Tasks")
    table.add_column("Title", style="cyan")
    table.add_column("Status", style="magenta")
    table.add_column("Priority")
    table.add_column("Due")
    table.add_column("Path", style="dim")
    for item in found:
        table.add_row(item.title, item.status, item.priority, item.due_date or "", item.path)
    print(table)


@app.command("serve-mcp")
def serve_mcp(
    ctx: typer.Context,
    transport: str = typer.Option("stdio", "--transport", help="stdio or http"),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8001, "--port"),
):
    """Run the MCP tool server for external LLM clients."""
    from .mcp.server import create_mcp_server

    _services(ctx.obj)
    server = create_mcp_server(ctx.obj)
    logger.info("Starting MCP server", extra={"transport": transport, "vault": str(ctx.obj.vault_path)})
    if transport == "http":
        server.run(transport="http", host=host, port=port)
    else:
        server.run(transport="stdio")


if __name__ == "__main__":
    app()
