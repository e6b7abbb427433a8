"""Task notes: Markdown files with ``type: task`` frontmatter."""

from __future__ import annotations

from datetime import date, datetime, timezone
import json
import logging
from pathlib import PurePosixPath
import re
from typing import Any, Dict, List, Optional

import frontmatter
import jinja2
import yaml

from ..models.canvas import Level
from ..models.task import TaskData, TaskFilter, TaskInfo, TaskStatus
from .canvas_service import sanitize_filename
from .canvas_validator import strip_code_fences
from .config import AppConfig, get_config
from .gemini import GeminiService, GenerationError
from .vault import VaultService

logger = logging.getLogger(__name__)

PRIORITY_ORDER = {"high": 0, "medium": 1, "low": 2}
TITLE_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)
SUBTASKS_SECTION = re.compile(r"(## Subtasks\n)([\s\S]*?)(\n## |\n---|\n$|$)")


def _frontmatter_field(name: str) -> re.Pattern[str]:
    return re.compile(rf"^({name}:[ \t]*).*$", re.MULTILINE)


def _as_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


def _as_tags(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(tag).strip() for tag in value if str(tag).strip()]
    if isinstance(value, str):
        return [tag.strip() for tag in value.strip("[]").split(",") if tag.strip()]
    return []


def _created_sort_key(task: TaskInfo) -> float:
    if not task.created:
        return 0.0
    try:
        created = datetime.fromisoformat(task.created.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created.timestamp()


class TaskManager:
    """Create, list and edit task notes under ``config.task_folder``."""

    def __init__(
        self,
        config: AppConfig | None = None,
        vault: VaultService | None = None,
        gemini: GeminiService | None = None,
    ) -> None:
        self.config = config or get_config()
        self.vault = vault or VaultService(self.config)
        self.gemini = gemini or GeminiService(self.config)
        self._env = jinja2.Environment(autoescape=False, keep_trailing_newline=True)

    def render_task(self, task: TaskData, created: Optional[datetime] = None) -> str:
        """Render the configured task template for ``task``."""
        created = created or datetime.now(timezone.utc)
        subtasks = (
            "\n".join(f"- [ ] {item}" for item in task.subtasks) if task.subtasks else "- [ ] Add subtasks here"
        )
        related = "\n".join(f"- [[{item}]]" for item in task.related)
        template = self._env.from_string(self.config.task_template)
        return template.render(
            title=task.title,
            description=task.description,
            priority=task.priority.value,
            due_date=task.due_date or "Not set",
            tags=", ".join(task.tags),
            created_date=created.isoformat().replace("+00:00", "Z"),
            subtasks=subtasks,
            notes=task.notes or "No additional notes",
            related=related,
        )

    def create_task(self, task: TaskData, folder: Optional[str] = None, timestamped: bool = False) -> str:
        """
        Write a task note and return its vault-relative path.

        With ``timestamped`` the filename gets a ``-YYYYMMDD-HHmmss`` suffix so
        repeated titles never collide; otherwise an existing note raises
        ``NoteExistsError``.
        """
        now = datetime.now(timezone.utc)
        stem = sanitize_filename(task.title)
        if timestamped:
            stem = f"{stem}-{now.strftime('%Y%m%d-%H%M%S')}"
        path = f"{(folder or self.config.task_folder).strip('/')}/{stem}.md"
        written = self.vault.create_note(path, self.render_task(task, now))
        logger.info("Task created", extra={"path": written, "priority": task.priority.value})
        return written

    def create_quick_task(self, title: str, priority: Level | str = Level.MEDIUM) -> str:
        return self.create_task(TaskData(title=title, priority=priority), timestamped=True)

    @staticmethod
    def parse_task_data(text: str) -> TaskData:
        """Parse model output into ``TaskData``; missing fields get defaults."""
        cleaned = strip_code_fences(text)
        try:
            parsed = json.loads(cleaned)
        except json.JSONDecodeError as e:
            raise GenerationError(f"Error parsing task data: {e.msg}", {"excerpt": cleaned[:200]}) from e
        if not isinstance(parsed, dict):
            raise GenerationError("Error parsing task data: expected a JSON object")
        return TaskData(**{key: value for key, value in parsed.items() if key in TaskData.model_fields})

    async def create_task_from_description(self, description: str) -> str:
        """
        Let Gemini structure a free-text description, then write the task note.

        Raises:
            GenerationError: If Gemini is unavailable or its output is unusable.
        """
        if not self.gemini.is_configured():
            raise GenerationError("Please configure your Gemini API key in settings")
        result = await self.gemini.generate_task_from_description(description)
        if not result.success:
            raise GenerationError(f"Error generating task: {result.error}")
        return self.create_task(self.parse_task_data(result.text), timestamped=True)

    def parse_task_note(self, note_path: str, content: str) -> Optional[TaskInfo]:
        """Return task metadata, or None when the note is not a task."""
        try:
            post = frontmatter.loads(content)
        except yaml.YAMLError as e:
            logger.debug("Skipping note with invalid frontmatter", extra={"path": note_path, "error": str(e)})
            return None
        metadata: Dict[str, Any] = post.metadata
        if metadata.get("type") != "task":
            return None

        title_match = TITLE_PATTERN.search(post.content)
        title = title_match.group(1).strip() if title_match else PurePosixPath(note_path).stem
        return TaskInfo(
            path=note_path,
            title=title,
            status=_as_text(metadata.get("status")) or TaskStatus.PENDING.value,
            priority=_as_text(metadata.get("priority")) or Level.MEDIUM.value,
            due_date=_as_text(metadata.get("due")),
            tags=_as_tags(metadata.get("tags")),
            created=_as_text(metadata.get("created")),
        )

    def list_tasks(self, task_filter: Optional[TaskFilter] = None) -> List[TaskInfo]:
        """Task notes matching the filter, highest priority first then newest."""
        task_filter = task_filter or TaskFilter()
        folder = task_filter.folder or self.config.task_folder
        tasks: List[TaskInfo] = []

        for note in self.vault.list_notes(folder):
            try:
                content = self.vault.read_note(note.path)
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping unreadable note", extra={"path": note.path, "error": str(e)})
                continue
            info = self.parse_task_note(note.path, content)
            if info is None:
                continue
            if task_filter.status and info.status != task_filter.status.value:
                continue
            if task_filter.priority and info.priority != task_filter.priority.value:
                continue
            if task_filter.tag and task_filter.tag not in info.tags:
                continue
            tasks.append(info)

        tasks.sort(key=_created_sort_key, reverse=True)
        tasks.sort(key=lambda task: PRIORITY_ORDER.get(task.priority, 2))
        return tasks

    def _replace_field(self, task_path: str, name: str, value: str) -> str:
        content = self.vault.read_note(task_path)
        updated, count = _frontmatter_field(name).subn(lambda m: f"{m.group(1)}{value}", content, count=1)
        if count == 0:
            raise ValueError(f"Task note has no '{name}' field: {task_path}")
        return self.vault.update_note(task_path, updated)

    def update_task_status(self, task_path: str, status: TaskStatus | str) -> str:
        status = TaskStatus(status)
        path = self._replace_field(task_path, "status", status.value)
        logger.info("Task status updated", extra={"path": path, "status": status.value})
        return path

    def update_task_priority(self, task_path: str, priority: Level | str) -> str:
        priority = Level(priority)
        return self._replace_field(task_path, "priority", priority.value)

    def add_subtask(self, task_path: str, subtask: str) -> str:
        """Append an unchecked item to the note's ``## Subtasks`` section."""
        content = self.vault.read_note(task_path)
        match = SUBTASKS_SECTION.search(content)
        if match is None:
            raise ValueError(f"Task note has no Subtasks section: {task_path}")
        section = match.group(2).rstrip()
        new_section = f"{section}\n- [ ] {subtask}\n" if section else f"- [ ] {subtask}\n"
        updated = content[: match.start(2)] + new_section + content[match.end(2):]
        return self.vault.update_note(task_path, updated)


__all__ = ["TaskManager"]
