"""FastMCP server exposing vault, task and canvas tools."""

from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, List, Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from ..models.canvas import Archetype, RiskRecord, StructuredTask, TopicBranch, TopicTree
from ..models.note import SearchType
from ..models.task import TaskData, TaskFilter, TaskStatus
from ..services.canvas_service import CanvasService
from ..services.config import AppConfig, get_config
from ..services.gemini import GeminiService
from ..services.tasks import TaskManager
from ..services.vault import VaultService

logger = logging.getLogger(__name__)

SERVER_NAME = "obsidian-virtual-assistant"
SUMMARY_NOTE_LIMIT = 10
SUMMARY_EXCERPT_CHARS = 500

PriorityChoice = Literal["high", "medium", "low"]
LayoutChoice = Literal["taskboard", "riskmatrix", "mindmap", "personnel", "custom"]

# Errors a tool reports back to the client instead of crashing the session.
TOOL_ERRORS = (OSError, ValueError)


def _log_call(tool_name: str, start_time: float, **extra: Any) -> None:
    duration_ms = (time.time() - start_time) * 1000
    logger.info(
        "MCP tool called",
        extra={"tool_name": tool_name, "duration_ms": f"{duration_ms:.2f}", **extra},
    )


def _tool_error(action: str, tool_name: str, exc: Exception) -> ToolError:
    logger.warning("MCP tool failed", extra={"tool_name": tool_name, "error": str(exc)})
    return ToolError(f"Error {action}: {exc}")


def _split_paths(value: str) -> List[str]:
    return [part.strip() for part in value.replace("\n", ",").split(",") if part.strip()]


def create_mcp_server(config: AppConfig | None = None) -> FastMCP:
    """Build a FastMCP server bound to one vault."""
    config = config or get_config()
    vault = VaultService(config)
    gemini = GeminiService(config)
    task_manager = TaskManager(config, vault, gemini)
    canvases = CanvasService(config, vault, gemini)

    mcp = FastMCP(
        SERVER_NAME,
        instructions=(
            "Tools for one Obsidian vault. Paths are relative to the vault root and may not "
            "escape it. Task notes are Markdown with 'type: task' frontmatter; canvases are "
            "JSON Canvas files laid out deterministically from a description or structured records."
        ),
    )

    # ---- resources -----------------------------------------------------

    @mcp.resource("obsidian://vault/notes", name="vault-notes", mime_type="application/json")
    def vault_notes() -> str:
        notes = vault.list_notes()
        return json.dumps([note.model_dump(mode="json") for note in notes], indent=2)

    @mcp.resource("obsidian://vault/tasks", name="vault-tasks", mime_type="application/json")
    def vault_tasks() -> str:
        return json.dumps([task.model_dump(mode="json") for task in task_manager.list_tasks()], indent=2)

    # ---- notes ---------------------------------------------------------

    @mcp.tool(name="read_note", description="Read the contents of a note from the Obsidian vault")
    def read_note(
        path: str = Field(..., description='Path to the note file, relative to vault root (e.g., "folder/note.md")'),
    ) -> str:
        start_time = time.time()
        try:
            content = vault.read_note(path)
        except TOOL_ERRORS as exc:
            raise _tool_error("reading note", "read_note", exc) from exc
        _log_call("read_note", start_time, note_path=path)
        return content

    @mcp.tool(name="search_vault", description="Search for notes in the Obsidian vault by content or filename")
    def search_vault(
        query: str = Field(..., description="Search query"),
        search_type: SearchType = Field(default="both", description="Type of search to perform"),
    ) -> List[Dict[str, Any]]:
        start_time = time.time()
        results = vault.search_notes(query, search_type)
        _log_call("search_vault", start_time, query=query, result_count=len(results))
        return [result.model_dump() for result in results]

    @mcp.tool(name="create_note", description="Create a new note in the Obsidian vault")
    def create_note(
        path: str = Field(..., description='Path for the new note, relative to vault root (e.g., "folder/note.md")'),
        content: str = Field(..., description="Content of the note in Markdown format"),
        overwrite: bool = Field(default=False, description="Whether to overwrite if file exists"),
    ) -> str:
        start_time = time.time()
        try:
            written = vault.create_note(path, content, overwrite)
        except TOOL_ERRORS as exc:
            raise _tool_error("creating note", "create_note", exc) from exc
        _log_call("create_note", start_time, note_path=written)
        return f"Note created successfully at: {written}"

    @mcp.tool(name="update_note", description="Update an existing note in the Obsidian vault")
    def update_note(
        path: str = Field(..., description="Path to the note file"),
        content: str = Field(..., description="New content for the note"),
        append: bool = Field(default=False, description="If true, append to existing content instead of replacing"),
    ) -> str:
        start_time = time.time()
        try:
            vault.update_note(path, content, append)
        except TOOL_ERRORS as exc:
            raise _tool_error("updating note", "update_note", exc) from exc
        _log_call("update_note", start_time, note_path=path, append=append)
        return f"Note updated successfully: {path}"

    # ---- tasks ---------------------------------------------------------

    @mcp.tool(
        name="create_task_note",
        description="Create a structured task note with frontmatter and organized sections",
    )
    def create_task_note(
        title: str = Field(..., description="Title of the task"),
        description: str = Field(..., description="Detailed description of the task"),
        priority: PriorityChoice = Field(default="medium", description="Task priority"),
        due_date: Optional[str] = Field(default=None, description='Due date in ISO format (e.g., "2024-12-25")'),
        tags: Optional[List[str]] = Field(default=None, description="Tags for the task"),
        subtasks: Optional[List[str]] = Field(default=None, description="List of subtasks"),
        folder: Optional[str] = Field(default=None, description="Folder to create the task in"),
    ) -> str:
        start_time = time.time()
        task = TaskData(
            title=title,
            description=description,
            priority=priority,
            due_date=due_date or "",
            tags=tags or [],
            subtasks=subtasks or [],
        )
        try:
            written = task_manager.create_task(task, folder=folder)
        except TOOL_ERRORS as exc:
            raise _tool_error("creating task", "create_task_note", exc) from exc
        _log_call("create_task_note", start_time, note_path=written)
        return f"Task created successfully: {written}"

    @mcp.tool(
        name="list_tasks",
        description="List all task notes in the vault, optionally filtered by status or priority",
    )
    def list_tasks(
        status: Literal["pending", "in-progress", "completed", "all"] = Field(
            default="all", description="Filter by task status"
        ),
        priority: Literal["high", "medium", "low", "all"] = Field(default="all", description="Filter by priority"),
        folder: Optional[str] = Field(default=None, description="Folder to search for tasks"),
    ) -> List[Dict[str, Any]]:
        start_time = time.time()
        task_filter = TaskFilter(
            status=None if status == "all" else status,
            priority=None if priority == "all" else priority,
            folder=folder,
        )
        try:
            found = task_manager.list_tasks(task_filter)
        except TOOL_ERRORS as exc:
            raise _tool_error("listing tasks", "list_tasks", exc) from exc
        _log_call("list_tasks", start_time, result_count=len(found))
        return [task.model_dump() for task in found]

    @mcp.tool(name="update_task_status", description="Update the status of an existing task note")
    def update_task_status(
        path: str = Field(..., description="Path to the task note"),
        status: Literal["pending", "in-progress", "completed"] = Field(..., description="New status for the task"),
    ) -> str:
        start_time = time.time()
        try:
            task_manager.update_task_status(path, TaskStatus(status))
        except TOOL_ERRORS as exc:
            raise _tool_error("updating task", "update_task_status", exc) from exc
        _log_call("update_task_status", start_time, note_path=path, status=status)
        return f'Task status updated to "{status}": {path}'

    # ---- canvases ------------------------------------------------------

    @mcp.tool(
        name="create_canvas",
        description="Create a JSON Canvas file with nodes and edges for visual organization",
    )
    def create_canvas(
        name: str = Field(..., description="Name for the canvas file"),
        layout_type: LayoutChoice = Field(..., description="Type of canvas layout"),
        description: str = Field(..., description="Description of what the canvas should contain"),
        folder: Optional[str] = Field(default=None, description="Folder to create the canvas in"),
    ) -> str:
        start_time = time.time()
        try:
            result = canvases.create_canvas(name, Archetype(layout_type), description, folder)
        except TOOL_ERRORS as exc:
            raise _tool_error("creating canvas", "create_canvas", exc) from exc
        _log_call("create_canvas", start_time, canvas_path=result.path, node_count=result.node_count)
        return f"Canvas created successfully: {result.path}"

    @mcp.tool(
        name="create_taskboard_canvas",
        description="Create a Kanban canvas from structured tasks (status maps to the column)",
    )
    def create_taskboard_canvas(
        name: str = Field(..., description="Name for the canvas file"),
        tasks: List[StructuredTask] = Field(..., description="Tasks with title, status, priority"),
        folder: Optional[str] = Field(default=None, description="Folder to create the canvas in"),
    ) -> str:
        start_time = time.time()
        try:
            result = canvases.create_taskboard(name, tasks, folder)
        except TOOL_ERRORS as exc:
            raise _tool_error("creating canvas", "create_taskboard_canvas", exc) from exc
        _log_call("create_taskboard_canvas", start_time, canvas_path=result.path)
        return f"Canvas created successfully: {result.path}"

    @mcp.tool(
        name="create_risk_matrix_canvas",
        description="Create a 3x3 likelihood/impact risk matrix canvas from structured risks",
    )
    def create_risk_matrix_canvas(
        name: str = Field(..., description="Name for the canvas file"),
        risks: List[RiskRecord] = Field(..., description="Risks with title, likelihood and impact"),
        folder: Optional[str] = Field(default=None, description="Folder to create the canvas in"),
    ) -> str:
        start_time = time.time()
        try:
            result = canvases.create_risk_matrix(name, risks, folder)
        except TOOL_ERRORS as exc:
            raise _tool_error("creating canvas", "create_risk_matrix_canvas", exc) from exc
        _log_call("create_risk_matrix_canvas", start_time, canvas_path=result.path)
        return f"Canvas created successfully: {result.path}"

    @mcp.tool(
        name="create_mind_map_canvas",
        description="Create a radial mind map canvas from a central theme and branches",
    )
    def create_mind_map_canvas(
        name: str = Field(..., description="Name for the canvas file"),
        central_theme: str = Field(..., description="Text of the central node"),
        branches: Optional[List[TopicBranch]] = Field(
            default=None, description="Branches, each a topic with its subtopics"
        ),
        folder: Optional[str] = Field(default=None, description="Folder to create the canvas in"),
    ) -> str:
        start_time = time.time()
        try:
            tree = TopicTree(central_theme=central_theme, branches=branches or [])
            result = canvases.create_mind_map(name, tree, folder)
        except TOOL_ERRORS as exc:
            raise _tool_error("creating canvas", "create_mind_map_canvas", exc) from exc
        _log_call("create_mind_map_canvas", start_time, canvas_path=result.path)
        return f"Canvas created successfully: {result.path}"

    # ---- vault ---------------------------------------------------------

    @mcp.tool(name="list_folders", description="List all folders in the Obsidian vault")
    def list_folders() -> List[str]:
        start_time = time.time()
        folders = vault.list_folders()
        _log_call("list_folders", start_time, result_count=len(folders))
        return folders

    @mcp.tool(
        name="get_vault_info",
        description="Get information about the Obsidian vault including stats and structure",
    )
    def get_vault_info() -> Dict[str, Any]:
        start_time = time.time()
        info = vault.get_vault_info()
        _log_call("get_vault_info", start_time, note_count=info.note_count)
        return info.model_dump()

    # ---- prompts -------------------------------------------------------

    @mcp.prompt(name="task-from-notes", description="Generate a task breakdown from selected notes")
    def task_from_notes(notes: str) -> str:
        """Paths are separated by commas or newlines."""
        sections = []
        for path in _split_paths(notes):
            try:
                sections.append(f"## {path}\n\n{vault.read_note(path)}")
            except TOOL_ERRORS:
                sections.append(f"## {path}\n\n[Error reading note]")
        joined = "\n\n---\n\n".join(sections)
        return (
            "Based on the following notes, create a structured task breakdown with priorities "
            f"and dependencies:\n\n{joined}"
        )

    @mcp.prompt(name="summarize-notes", description="Summarize a collection of notes")
    def summarize_notes(folder: str) -> str:
        summaries = []
        for note in vault.list_notes(folder)[:SUMMARY_NOTE_LIMIT]:
            try:
                excerpt = vault.read_note(note.path)[:SUMMARY_EXCERPT_CHARS]
                summaries.append(f"## {note.name}\n\n{excerpt}...")
            except TOOL_ERRORS:
                summaries.append(f"## {note.name}\n\n[Error reading note]")
        joined = "\n\n---\n\n".join(summaries)
        return f'Please provide a comprehensive summary of the following notes from the "{folder}" folder:\n\n{joined}'

    return mcp


if __name__ == "__main__":
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    app_config = get_config()
    server = create_mcp_server(app_config)
    if not VaultService(app_config).verify_vault():
        raise SystemExit(f"Error: Vault not found at {app_config.vault_path}")

    transport = os.getenv("MCP_TRANSPORT", "stdio").strip().lower() or "stdio"
    if transport == "http":
        port = int(os.getenv("MCP_PORT", "8001"))
        host = os.getenv("MCP_HOST", "127.0.0.1")
        logger.info("Starting MCP server", extra={"transport": transport, "host": host, "port": port})
        server.run(transport=transport, host=host, port=port)
    else:
        logger.info("Starting MCP server", extra={"transport": transport, "vault": str(app_config.vault_path)})
        server.run(transport=transport)
