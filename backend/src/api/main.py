"""FastAPI application main entry point."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastmcp.server.http import StreamableHTTPSessionManager, set_http_request
from starlette.responses import Response

from ..mcp.server import create_mcp_server
from ..services.assistant import AssistantService
from ..services.canvas_service import CanvasService
from ..services.config import AppConfig, get_config
from ..services.gemini import GeminiService
from ..services.prompt_loader import PromptLoader
from ..services.tasks import TaskManager
from ..services.vault import VaultService
from .middleware import register_error_handlers
from .routes import canvas, chat, notes, system, tasks

logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    "app://obsidian.md",
    "http://localhost:5173",
    "http://localhost:3000",
]


def _attach_services(app: FastAPI, config: AppConfig) -> None:
    vault = VaultService(config)
    prompts = PromptLoader()
    gemini = GeminiService(config, prompts)
    task_manager = TaskManager(config, vault, gemini)
    canvases = CanvasService(config, vault, gemini)

    app.state.config = config
    app.state.vault = vault
    app.state.gemini = gemini
    app.state.tasks = task_manager
    app.state.canvases = canvases
    app.state.assistant = AssistantService(config, vault, gemini, task_manager, canvases, prompts)


def _mount_mcp(app: FastAPI, session_manager: StreamableHTTPSessionManager) -> None:
    @app.api_route("/mcp", methods=["GET", "POST", "DELETE"])
    async def mcp_http_bridge(request: Request) -> Response:
        """Forward HTTP requests to the FastMCP streamable HTTP session manager."""

        send_queue: asyncio.Queue = asyncio.Queue()

        async def send(message):
            await send_queue.put(message)

        try:
            with set_http_request(request):
                await session_manager.handle_request(request.scope, request.receive, send)
        except Exception as exc:
            logger.exception("FastMCP session manager crashed: %s", exc)
            raise HTTPException(status_code=500, detail=f"MCP Bridge Error: {exc}")

        await send_queue.put(None)

        result_body = b""
        headers = {}
        status = 200

        while True:
            message = await send_queue.get()
            if message is None:
                break
            msg_type = message["type"]
            if msg_type == "http.response.start":
                status = message.get("status", 200)
                raw_headers = message.get("headers", [])
                headers = {key.decode(): value.decode() for key, value in raw_headers}
            elif msg_type == "http.response.body":
                result_body += message.get("body", b"")
                if not message.get("more_body"):
                    break

        return Response(content=result_body, status_code=status, headers=headers)

    logger.info("MCP HTTP endpoint mounted at /mcp via StreamableHTTPSessionManager")


def create_app(config: AppConfig | None = None) -> FastAPI:
    """Build the API with its services bound to one vault."""
    config = config or get_config()
    mcp = create_mcp_server(config)
    session_manager = StreamableHTTPSessionManager(
        app=mcp._mcp_server,
        event_store=None,
        json_response=False,
        stateless=True,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not app.state.vault.verify_vault():
            logger.warning("Vault folder not found", extra={"vault": str(config.vault_path)})
        async with session_manager.run():
            yield

    app = FastAPI(
        title="Vault Assistant API",
        description="Canvas layouts, task notes and chat for an Obsidian vault",
        version="0.1.0",
        lifespan=lifespan,
    )
    _attach_services(app, config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    app.include_router(notes.router, tags=["notes"])
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(canvas.router, tags=["canvas"])
    app.include_router(chat.router, tags=["chat"])
    app.include_router(system.router, tags=["system"])
    _mount_mcp(app, session_manager)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "vault": app.state.vault.verify_vault()}

    return app


__all__ = ["create_app"]
