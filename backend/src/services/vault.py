"""Filesystem vault management."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import re
from typing import Any, Dict, List

from ..models.note import NoteSummary, SearchResult, SearchType, VaultInfo
from .config import AppConfig, get_config

logger = logging.getLogger(__name__)

IGNORED_DIRS = {".obsidian", "node_modules", ".git", ".trash"}
CONTEXT_CHARS = 50


class VaultPathError(ValueError):
    """Raised when a path resolves outside the vault root."""


class NoteExistsError(FileExistsError):
    """Raised when creating a note over an existing one without ``overwrite``."""

    def __init__(self, note_path: str) -> None:
        super().__init__(f"Note already exists: {note_path}")
        self.note_path = note_path


def _is_ignored(relative: Path) -> bool:
    return any(part in IGNORED_DIRS or part.startswith(".") for part in relative.parts[:-1])


class VaultService:
    """Read/write access to files under a single vault root."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config = config or get_config()
        self.vault_root = self.config.vault_path

    def verify_vault(self) -> bool:
        return self.vault_root.is_dir()

    def resolve_path(self, relative_path: str) -> Path:
        """
        Resolve a vault-relative path.

        Raises VaultPathError if the resolved path escapes the vault root.
        """
        resolved = (self.vault_root / relative_path).resolve()
        if not resolved.is_relative_to(self.vault_root):
            logger.warning("Rejected path outside vault", extra={"path": relative_path})
            raise VaultPathError(f"Path traversal not allowed: {relative_path}")
        return resolved

    def relative(self, absolute_path: Path) -> str:
        return absolute_path.relative_to(self.vault_root).as_posix()

    # -- raw file access -------------------------------------------------

    def file_exists(self, relative_path: str) -> bool:
        return self.resolve_path(relative_path).is_file()

    def folder_exists(self, relative_path: str) -> bool:
        return self.resolve_path(relative_path).is_dir()

    def create_folder(self, relative_path: str) -> None:
        self.resolve_path(relative_path).mkdir(parents=True, exist_ok=True)

    def read_file(self, relative_path: str) -> str:
        return self.resolve_path(relative_path).read_text(encoding="utf-8")

    def write_file(self, relative_path: str, content: str) -> str:
        """Write a file, creating parent folders. Returns the vault-relative path."""
        full_path = self.resolve_path(relative_path)
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content, encoding="utf-8")
        return self.relative(full_path)

    def list_files(self, folder: str | None = None, suffix: str | None = None) -> List[Dict[str, Any]]:
        """List files recursively, skipping hidden and tool folders."""
        base = self.resolve_path(folder) if folder else self.vault_root
        if not base.is_dir():
            return []
        pattern = f"*{suffix}" if suffix else "*"
        results: List[Dict[str, Any]] = []
        for file_path in base.rglob(pattern):
            if not file_path.is_file():
                continue
            relative = file_path.relative_to(self.vault_root)
            if _is_ignored(relative):
                continue
            stat = file_path.stat()
            results.append(
                {
                    "path": relative.as_posix(),
                    "name": file_path.stem,
                    "size": stat.st_size,
                    "modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                }
            )
        return results

    # -- notes -----------------------------------------------------------

    def read_note(self, note_path: str) -> str:
        full_path = self.resolve_path(note_path)
        if not full_path.is_file():
            raise FileNotFoundError(f"Note not found: {note_path}")
        return full_path.read_text(encoding="utf-8")

    def create_note(self, note_path: str, content: str, overwrite: bool = False) -> str:
        """Create a Markdown note (``.md`` appended when missing)."""
        if not note_path.endswith(".md"):
            note_path = f"{note_path}.md"
        full_path = self.resolve_path(note_path)
        if full_path.exists() and not overwrite:
            raise NoteExistsError(note_path)
        return self.write_file(note_path, content)

    def update_note(self, note_path: str, content: str, append: bool = False) -> str:
        full_path = self.resolve_path(note_path)
        if not full_path.is_file():
            raise FileNotFoundError(f"Note not found: {note_path}")
        if append:
            content = full_path.read_text(encoding="utf-8") + "\n" + content
        full_path.write_text(content, encoding="utf-8")
        return self.relative(full_path)

    def delete_note(self, note_path: str) -> None:
        full_path = self.resolve_path(note_path)
        try:
            full_path.unlink()
        except FileNotFoundError as exc:
            raise FileNotFoundError(f"Note not found: {note_path}") from exc

    def list_notes(self, folder: str | None = None) -> List[NoteSummary]:
        """List Markdown notes, most recently modified first."""
        notes = [NoteSummary(**entry) for entry in self.list_files(folder, suffix=".md")]
        return sorted(notes, key=lambda note: note.modified, reverse=True)

    def search_notes(self, query: str, search_type: SearchType = "both") -> List[SearchResult]:
        """Case-insensitive filename/content search, best matches first."""
        query_lower = query.lower()
        if not query_lower:
            return []
        results: List[SearchResult] = []

        for note in self.list_notes():
            matches: List[str] = []
            score = 0

            if search_type in ("filename", "both") and query_lower in note.name.lower():
                matches.append(f"Filename match: {note.name}")
                score += 100 if note.name.lower() == query_lower else 50

            if search_type in ("content", "both"):
                try:
                    content = self.read_note(note.path)
                except (OSError, UnicodeDecodeError) as exc:
                    logger.debug("Skipping unreadable note", extra={"path": note.path, "error": str(exc)})
                    content = ""
                content_lower = content.lower()
                index = content_lower.find(query_lower)
                if index >= 0:
                    start = max(0, index - CONTEXT_CHARS)
                    end = min(len(content), index + len(query) + CONTEXT_CHARS)
                    matches.append(f"Content: ...{content[start:end]}...")
                    score += len(re.findall(re.escape(query_lower), content_lower)) * 10

            if matches:
                results.append(SearchResult(path=note.path, name=note.name, matches=matches, score=score))

        return sorted(results, key=lambda result: result.score, reverse=True)

    def list_folders(self) -> List[str]:
        folders: List[str] = []
        for path in self.vault_root.rglob("*"):
            if not path.is_dir():
                continue
            relative = path.relative_to(self.vault_root)
            if any(part in IGNORED_DIRS or part.startswith(".") for part in relative.parts):
                continue
            folders.append(relative.as_posix())
        return sorted(folders)

    def get_vault_info(self) -> VaultInfo:
        notes = self.list_notes()
        folders = self.list_folders()
        canvases = self.list_files(suffix=".canvas")
        return VaultInfo(
            path=str(self.vault_root),
            note_count=len(notes),
            folder_count=len(folders),
            canvas_count=len(canvases),
            total_size=sum(note.size for note in notes),
            folders=folders,
        )

    # -- canvases --------------------------------------------------------

    def read_canvas(self, canvas_path: str) -> Dict[str, Any]:
        full_path = self.resolve_path(canvas_path)
        if not full_path.is_file():
            raise FileNotFoundError(f"Canvas not found: {canvas_path}")
        return json.loads(full_path.read_text(encoding="utf-8"))

    def write_canvas(self, canvas_path: str, data: Dict[str, Any]) -> str:
        """Write canvas JSON (``.canvas`` appended when missing), replacing any existing file."""
        if not canvas_path.endswith(".canvas"):
            canvas_path = f"{canvas_path}.canvas"
        return self.write_file(canvas_path, json.dumps(data, indent=2, ensure_ascii=False, allow_nan=False))


__all__ = ["NoteExistsError", "VaultPathError", "VaultService"]
