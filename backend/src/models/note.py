"""Note-related Pydantic models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SearchType = Literal["content", "filename", "both"]


class NoteSummary(BaseModel):
    """Lightweight representation used for listings."""

    name: str
    path: str
    size: int = Field(..., ge=0)
    modified: datetime


class NoteContent(BaseModel):
    path: str
    content: str


class NoteCreate(BaseModel):
    """Request payload to create a note."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "path": "Projects/launch-plan.md",
                "content": "# Launch plan\n\n- [ ] Draft announcement",
                "overwrite": False,
            }
        }
    )

    path: str = Field(..., min_length=1, max_length=256)
    content: str = Field(..., max_length=1_048_576)
    overwrite: bool = False

    @field_validator("path")
    @classmethod
    def validate_path(cls, value: str) -> str:
        if "\\" in value:
            raise ValueError("Note path must use Unix-style separators (/)")
        if value.startswith("/"):
            raise ValueError("Note path must be relative (no leading /)")
        return value


class NoteUpdate(BaseModel):
    """Request payload to update a note."""

    content: str = Field(..., max_length=1_048_576)
    append: bool = False


class SearchResult(BaseModel):
    path: str
    name: str
    matches: List[str] = Field(default_factory=list)
    score: int = 0


class VaultInfo(BaseModel):
    path: str
    note_count: int
    folder_count: int
    canvas_count: int
    total_size: int
    folders: List[str] = Field(default_factory=list)


__all__ = [
    "NoteContent",
    "NoteCreate",
    "NoteSummary",
    "NoteUpdate",
    "SearchResult",
    "SearchType",
    "VaultInfo",
]
