"""Chat routes: routed messages, streamed answers and the stored history."""

from __future__ import annotations

import json
import logging
from typing import AsyncGenerator, List

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ...models.chat import ChatMessage, ChatReply, ChatRequest
from ...services.assistant import AssistantService
from ...services.gemini import GenerationError
from ..dependencies import get_assistant

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/chat", response_model=ChatReply)
async def send_message(request: ChatRequest, assistant: AssistantService = Depends(get_assistant)):
    """
    Handle one chat message.

    Messages starting with "create a task" or "create a canvas" produce a vault
    artifact; anything else is answered by Gemini with the conversation history.
    Generation failures are reported in the reply body with ``success`` false.
    """
    return await assistant.handle_message(request.message, request.context)


@router.post("/api/chat/stream")
async def stream_message(request: ChatRequest, assistant: AssistantService = Depends(get_assistant)):
    """Stream a plain chat answer as server-sent events."""

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            async for chunk in assistant.stream_message(request.message):
                yield json.dumps({"type": "content", "content": chunk})
        except GenerationError as e:
            logger.warning("Chat stream failed", extra={"error": e.message})
            yield json.dumps({"type": "error", "error": e.message})
            return
        yield json.dumps({"type": "done"})

    return EventSourceResponse(event_generator())


@router.get("/api/chat/history", response_model=List[ChatMessage])
async def get_history(assistant: AssistantService = Depends(get_assistant)):
    return assistant.history.messages


@router.delete("/api/chat/history", status_code=204)
async def clear_history(assistant: AssistantService = Depends(get_assistant)):
    assistant.history.clear()


__all__ = ["router"]
