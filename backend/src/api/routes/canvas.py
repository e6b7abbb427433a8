"""HTTP API routes for canvas generation."""

from __future__ import annotations

from urllib.parse import unquote

from fastapi import APIRouter, Depends

from ...models.canvas import (
    Archetype,
    CanvasFromDescription,
    CanvasFromNote,
    CanvasGenerate,
    CanvasWriteResult,
    MindMapCanvasCreate,
    RiskMatrixCanvasCreate,
    TaskboardCanvasCreate,
    TopicTree,
)
from ...services.canvas_service import CanvasService
from ..dependencies import get_canvas_service

router = APIRouter()


@router.post("/api/canvas", response_model=CanvasWriteResult, status_code=201)
async def create_canvas(
    request: CanvasFromDescription, canvases: CanvasService = Depends(get_canvas_service)
):
    """Lay out free text deterministically; an existing canvas of the same name is overwritten."""
    return canvases.create_canvas(
        request.name, request.layout_type, request.description, request.folder
    )


@router.post("/api/canvas/generate", response_model=CanvasWriteResult, status_code=201)
async def generate_canvas(
    request: CanvasGenerate, canvases: CanvasService = Depends(get_canvas_service)
):
    """Ask Gemini for a layout. Responds 502 when generation fails."""
    archetype = request.layout_type or Archetype.detect(request.description)
    return await canvases.generate_canvas(request.description, archetype, request.name)


@router.post("/api/canvas/from-note", response_model=CanvasWriteResult, status_code=201)
async def canvas_from_note(
    request: CanvasFromNote, canvases: CanvasService = Depends(get_canvas_service)
):
    return await canvases.generate_canvas_from_note(
        request.note_path, request.layout_type, request.name
    )


@router.post("/api/canvas/taskboard", response_model=CanvasWriteResult, status_code=201)
async def create_taskboard(
    request: TaskboardCanvasCreate, canvases: CanvasService = Depends(get_canvas_service)
):
    return canvases.create_taskboard(request.name, request.tasks, request.folder)


@router.post("/api/canvas/riskmatrix", response_model=CanvasWriteResult, status_code=201)
async def create_risk_matrix(
    request: RiskMatrixCanvasCreate, canvases: CanvasService = Depends(get_canvas_service)
):
    return canvases.create_risk_matrix(request.name, request.risks, request.folder)


@router.post("/api/canvas/mindmap", response_model=CanvasWriteResult, status_code=201)
async def create_mind_map(
    request: MindMapCanvasCreate, canvases: CanvasService = Depends(get_canvas_service)
):
    tree = TopicTree(central_theme=request.central_theme, branches=request.branches)
    return canvases.create_mind_map(request.name, tree, request.folder)


@router.get("/api/canvas/{path:path}")
async def read_canvas(path: str, canvases: CanvasService = Depends(get_canvas_service)):
    """Return a stored canvas after repairing it; 404 when missing."""
    return canvases.read_canvas(unquote(path)).to_dict()


__all__ = ["router"]
