"""Canvas generation and persistence inside the vault."""

from __future__ import annotations

import logging
import re
import time
from pathlib import PurePosixPath
from typing import Optional, Sequence

from ..models.canvas import (
    Archetype,
    CanvasData,
    CanvasWriteResult,
    RiskRecord,
    StructuredTask,
    TopicTree,
)
from .config import AppConfig, get_config
from .canvas_validator import parse_canvas_json, validate_canvas_data
from .gemini import GeminiService, GenerationError
from .layout import (
    DESCRIPTION_STYLE,
    STRUCTURED_STYLE,
    LayoutStyle,
    layout_from_description,
    layout_mind_map,
    layout_risk_matrix,
    layout_taskboard,
    structured_tasks_to_records,
)
from .vault import VaultService

logger = logging.getLogger(__name__)

INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')
WHITESPACE_RUN = re.compile(r"\s+")
MAX_FILENAME_LENGTH = 100
CANVAS_SUFFIX = ".canvas"


def sanitize_filename(name: str) -> str:
    """Make a vault-safe file stem: reserved characters and whitespace become ``-``."""
    cleaned = INVALID_FILENAME_CHARS.sub("-", name)
    cleaned = WHITESPACE_RUN.sub("-", cleaned)
    return cleaned[:MAX_FILENAME_LENGTH]


class CanvasService:
    """Turns descriptions or structured records into ``.canvas`` files."""

    def __init__(
        self,
        config: AppConfig | None = None,
        vault: VaultService | None = None,
        gemini: GeminiService | None = None,
    ) -> None:
        self.config = config or get_config()
        self.vault = vault or VaultService(self.config)
        self.gemini = gemini or GeminiService(self.config)

    def canvas_path(self, name: str, folder: Optional[str] = None) -> str:
        target = (folder or self.config.canvas_folder).strip("/")
        filename = f"{sanitize_filename(name)}{CANVAS_SUFFIX}"
        return f"{target}/{filename}" if target else filename

    def save_canvas(self, data: CanvasData, name: str, folder: Optional[str] = None) -> CanvasWriteResult:
        """Write (or overwrite in place) ``<folder>/<name>.canvas``."""
        path = self.canvas_path(name, folder)
        created = not self.vault.file_exists(path)
        written = self.vault.write_canvas(path, data.to_dict())
        logger.info(
            "Canvas created" if created else "Canvas updated",
            extra={"path": written, "nodes": len(data.nodes), "edges": len(data.edges)},
        )
        return CanvasWriteResult(
            path=written, created=created, node_count=len(data.nodes), edge_count=len(data.edges)
        )

    def _save_layout(self, data: CanvasData, name: str, folder: Optional[str]) -> CanvasWriteResult:
        return self.save_canvas(validate_canvas_data(data), name, folder)

    def create_canvas(
        self,
        name: str,
        archetype: Archetype | str,
        description: str,
        folder: Optional[str] = None,
        style: LayoutStyle = DESCRIPTION_STYLE,
    ) -> CanvasWriteResult:
        """Lay out free text without a model call."""
        data = layout_from_description(archetype, description, style)
        return self._save_layout(data, name, folder)

    def create_taskboard(
        self, name: str, tasks: Sequence[StructuredTask], folder: Optional[str] = None
    ) -> CanvasWriteResult:
        data = layout_taskboard(structured_tasks_to_records(tasks), STRUCTURED_STYLE)
        return self._save_layout(data, name, folder)

    def create_risk_matrix(
        self, name: str, risks: Sequence[RiskRecord], folder: Optional[str] = None
    ) -> CanvasWriteResult:
        return self._save_layout(layout_risk_matrix(risks, STRUCTURED_STYLE), name, folder)

    def create_mind_map(self, name: str, tree: TopicTree, folder: Optional[str] = None) -> CanvasWriteResult:
        return self._save_layout(layout_mind_map(tree, STRUCTURED_STYLE), name, folder)

    async def generate_canvas(
        self,
        description: str,
        archetype: Archetype | str,
        name: Optional[str] = None,
        folder: Optional[str] = None,
    ) -> CanvasWriteResult:
        """
        Ask Gemini for a layout, repair it and save it.

        Raises:
            GenerationError: If the model is unavailable, fails, or returns
                something that is not a JSON object.
        """
        archetype = Archetype(archetype)
        if not self.gemini.is_configured():
            raise GenerationError("Please configure your Gemini API key in settings")

        result = await self.gemini.generate_canvas_layout(description, archetype)
        if not result.success:
            raise GenerationError(
                f"Error generating canvas: {result.error}", {"archetype": archetype.value}
            )

        data = validate_canvas_data(parse_canvas_json(result.text))
        canvas_name = name or f"{archetype.value}-{int(time.time() * 1000)}"
        return self.save_canvas(data, canvas_name, folder)

    async def generate_canvas_from_note(
        self, note_path: str, archetype: Archetype | str, name: Optional[str] = None
    ) -> CanvasWriteResult:
        """Use a note's body as the description; name defaults to ``<note>-<archetype>``."""
        archetype = Archetype(archetype)
        content = self.vault.read_note(note_path)
        stem = PurePosixPath(note_path).stem
        return await self.generate_canvas(content, archetype, name or f"{stem}-{archetype.value}")

    def read_canvas(self, path: str) -> CanvasData:
        if not path.endswith(CANVAS_SUFFIX):
            path = f"{path}{CANVAS_SUFFIX}"
        return validate_canvas_data(self.vault.read_canvas(path))


__all__ = ["CanvasService", "sanitize_filename"]
