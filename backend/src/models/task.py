"""Task note Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .canvas import Level


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskData(BaseModel):
    """Fields rendered into a task note template."""

    title: str = Field(default="Untitled Task", min_length=1)
    description: str = ""
    priority: Level = Level.MEDIUM
    due_date: str = ""
    tags: List[str] = Field(default_factory=list)
    subtasks: List[str] = Field(default_factory=list)
    notes: str = ""
    related: List[str] = Field(default_factory=list)

    @field_validator("priority", mode="before")
    @classmethod
    def _lenient_priority(cls, value: object) -> Level:
        return Level.parse(value)

    @field_validator("tags", "subtasks", "related", mode="before")
    @classmethod
    def _list_or_empty(cls, value: object) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(item) for item in value if str(item).strip()]

    @field_validator("title", mode="before")
    @classmethod
    def _title_or_default(cls, value: object) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return "Untitled Task"

    @field_validator("description", "due_date", "notes", mode="before")
    @classmethod
    def _text_or_empty(cls, value: object) -> str:
        return value if isinstance(value, str) else ""


class TaskInfo(BaseModel):
    """Summary of a task note found in the vault."""

    path: str
    title: str
    status: str = TaskStatus.PENDING.value
    priority: str = Level.MEDIUM.value
    due_date: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created: Optional[str] = None


class TaskFilter(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[Level] = None
    tag: Optional[str] = None
    folder: Optional[str] = None


class TaskCreate(TaskData):
    """Task payload plus an optional target folder."""

    folder: Optional[str] = None
    timestamped: bool = False


class QuickTaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    priority: Level = Level.MEDIUM


class TaskDescription(BaseModel):
    description: str = Field(..., min_length=1, max_length=20_000)


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskPriorityUpdate(BaseModel):
    priority: Level


class SubtaskCreate(BaseModel):
    subtask: str = Field(..., min_length=1, max_length=500)


__all__ = [
    "QuickTaskCreate",
    "SubtaskCreate",
    "TaskCreate",
    "TaskData",
    "TaskDescription",
    "TaskFilter",
    "TaskInfo",
    "TaskPriorityUpdate",
    "TaskStatus",
    "TaskStatusUpdate",
]
