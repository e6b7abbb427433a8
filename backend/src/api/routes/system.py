"""System routes for diagnostics."""

import logging

from fastapi import APIRouter, Depends

from ...models.chat import GenerationResult
from ...services.gemini import GeminiService
from ..dependencies import get_gemini_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/system/test-connection", response_model=GenerationResult)
async def test_connection(gemini: GeminiService = Depends(get_gemini_service)):
    """Send a one-word prompt to Gemini to check the key and model."""
    result = await gemini.test_connection()
    logger.info("Gemini connection test", extra={"success": result.success})
    return result
