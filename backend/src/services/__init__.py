"""Service layer for business logic and external integrations."""

from .assistant import AssistantService, ChatHistory
from .canvas_service import CanvasService, sanitize_filename
from .canvas_validator import parse_canvas_json, strip_code_fences, validate_canvas_data
from .config import AppConfig, get_config, reload_config
from .gemini import GeminiService, GenerationError
from .layout import (
    DESCRIPTION_STYLE,
    STRUCTURED_STYLE,
    LayoutStyle,
    closest_side,
    layout_from_description,
)
from .prompt_loader import PromptLoader, PromptLoaderError
from .tasks import TaskManager
from .vault import NoteExistsError, VaultPathError, VaultService

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "VaultService",
    "VaultPathError",
    "NoteExistsError",
    "LayoutStyle",
    "DESCRIPTION_STYLE",
    "STRUCTURED_STYLE",
    "closest_side",
    "layout_from_description",
    "parse_canvas_json",
    "strip_code_fences",
    "validate_canvas_data",
    "CanvasService",
    "sanitize_filename",
    "GeminiService",
    "GenerationError",
    "PromptLoader",
    "PromptLoaderError",
    "TaskManager",
    "AssistantService",
    "ChatHistory",
]
