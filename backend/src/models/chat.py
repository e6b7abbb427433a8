"""Chat and LLM response models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field


class GenerationResult(BaseModel):
    """Outcome of a single model call; failures are reported, not raised."""

    text: str = ""
    success: bool
    error: Optional[str] = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=100_000)
    context: Optional[str] = Field(
        default=None, description="Body of the note currently open in the editor"
    )


class ChatReply(BaseModel):
    """Assistant answer plus whatever artifact the message produced."""

    content: str
    action: Literal["chat", "task", "canvas"] = "chat"
    success: bool = True
    path: Optional[str] = None
    layout_type: Optional[str] = None


__all__ = ["ChatMessage", "ChatReply", "ChatRequest", "GenerationResult"]
