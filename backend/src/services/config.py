"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[3]

DEFAULT_TASK_TEMPLATE = """---
type: task
status: pending
priority: {{priority}}
due: {{due_date}}
tags: [{{tags}}]
created: {{created_date}}
---

# {{title}}

## Description
{{description}}

## Subtasks
{{subtasks}}

## Notes
{{notes}}

## Related
{{related}}
"""


class AppConfig(BaseModel):
    """Runtime configuration passed explicitly to every service."""

    model_config = ConfigDict(frozen=True)

    vault_path: Path = Field(..., description="Root folder of the Obsidian vault")
    gemini_api_key: Optional[str] = Field(
        default=None, description="Google AI Studio key; generation is disabled without it"
    )
    default_model: str = Field(default="gemini-2.5-flash", description="Gemini model id")
    task_folder: str = Field(default="Tasks", description="Folder for new task notes")
    canvas_folder: str = Field(default="Canvas", description="Folder for generated canvases")
    chat_history_enabled: bool = True
    max_chat_history: int = Field(default=50, ge=1, le=1000)
    include_current_note_as_context: bool = True
    request_timeout: float = Field(default=60.0, gt=0)
    task_template: str = Field(default=DEFAULT_TASK_TEMPLATE, min_length=1)

    @field_validator("vault_path", mode="before")
    @classmethod
    def _normalize_vault_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("VAULT_PATH is required")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("gemini_api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @field_validator("task_folder", "canvas_folder")
    @classmethod
    def _relative_folder(cls, value: str) -> str:
        cleaned = value.strip().strip("/")
        if not cleaned:
            raise ValueError("Folder must not be empty")
        if ".." in cleaned.split("/") or "\\" in cleaned:
            raise ValueError("Folder must be a relative vault path without '..'")
        return cleaned


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_flag(key: str, default: str = "true") -> bool:
    return (_read_env(key, default) or default).lower() not in {"0", "false", "no"}


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration from the environment (and .env)."""
    load_dotenv()
    vault_path = _read_env("VAULT_PATH") or _read_env("OBSIDIAN_VAULT_PATH")
    api_key = _read_env("GEMINI_API_KEY") or _read_env("GOOGLE_API_KEY")

    return AppConfig(
        vault_path=vault_path,
        gemini_api_key=api_key,
        default_model=_read_env("GEMINI_MODEL", "gemini-2.5-flash"),
        task_folder=_read_env("TASK_FOLDER", "Tasks"),
        canvas_folder=_read_env("CANVAS_FOLDER", "Canvas"),
        chat_history_enabled=_read_flag("CHAT_HISTORY_ENABLED"),
        max_chat_history=int(_read_env("MAX_CHAT_HISTORY", "50")),
        include_current_note_as_context=_read_flag("INCLUDE_NOTE_CONTEXT"),
        request_timeout=float(_read_env("GEMINI_TIMEOUT", "60")),
    )


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["AppConfig", "DEFAULT_TASK_TEMPLATE", "get_config", "reload_config", "PROJECT_ROOT"]
