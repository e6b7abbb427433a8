"""Request-scoped access to the services built by ``create_app``."""

from __future__ import annotations

from fastapi import Request

from ..services.assistant import AssistantService
from ..services.canvas_service import CanvasService
from ..services.config import AppConfig
from ..services.gemini import GeminiService
from ..services.tasks import TaskManager
from ..services.vault import VaultService


def get_app_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_vault_service(request: Request) -> VaultService:
    return request.app.state.vault


def get_gemini_service(request: Request) -> GeminiService:
    return request.app.state.gemini


def get_task_manager(request: Request) -> TaskManager:
    return request.app.state.tasks


def get_canvas_service(request: Request) -> CanvasService:
    return request.app.state.canvases


def get_assistant(request: Request) -> AssistantService:
    return request.app.state.assistant
