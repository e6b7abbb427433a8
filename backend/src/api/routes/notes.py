"""HTTP API routes for note operations."""

from __future__ import annotations

from typing import List, Optional
from urllib.parse import unquote

from fastapi import APIRouter, Depends, Query

from ...models.note import (
    NoteContent,
    NoteCreate,
    NoteSummary,
    NoteUpdate,
    SearchResult,
    SearchType,
    VaultInfo,
)
from ...services.vault import VaultService
from ..dependencies import get_vault_service

router = APIRouter()


@router.get("/api/notes", response_model=List[NoteSummary])
async def list_notes(
    folder: Optional[str] = Query(None, description="Optional folder filter"),
    vault: VaultService = Depends(get_vault_service),
):
    """List all notes in the vault, newest first."""
    return vault.list_notes(folder)


@router.get("/api/notes/search", response_model=List[SearchResult])
async def search_notes(
    q: str = Query(..., min_length=1, description="Search query"),
    search_type: SearchType = Query("both"),
    vault: VaultService = Depends(get_vault_service),
):
    return vault.search_notes(q, search_type)


@router.get("/api/vault", response_model=VaultInfo)
async def vault_info(vault: VaultService = Depends(get_vault_service)):
    return vault.get_vault_info()


@router.get("/api/folders", response_model=List[str])
async def list_folders(vault: VaultService = Depends(get_vault_service)):
    return vault.list_folders()


@router.get("/api/notes/{path:path}", response_model=NoteContent)
async def read_note(path: str, vault: VaultService = Depends(get_vault_service)):
    """Read a note; 404 when it does not exist."""
    note_path = unquote(path)
    return NoteContent(path=note_path, content=vault.read_note(note_path))


@router.post("/api/notes", response_model=NoteContent, status_code=201)
async def create_note(create: NoteCreate, vault: VaultService = Depends(get_vault_service)):
    """Create a note; 409 if it exists and ``overwrite`` is false."""
    written = vault.create_note(create.path, create.content, create.overwrite)
    return NoteContent(path=written, content=create.content)


@router.put("/api/notes/{path:path}", response_model=NoteContent)
async def update_note(path: str, update: NoteUpdate, vault: VaultService = Depends(get_vault_service)):
    note_path = unquote(path)
    written = vault.update_note(note_path, update.content, update.append)
    return NoteContent(path=written, content=vault.read_note(written))


@router.delete("/api/notes/{path:path}", status_code=204)
async def delete_note(path: str, vault: VaultService = Depends(get_vault_service)):
    vault.delete_note(unquote(path))


__all__ = ["router"]
