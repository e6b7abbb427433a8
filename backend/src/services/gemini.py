"""Gemini REST client used for chat, task extraction and canvas generation."""

from __future__ import annotations

import json
import logging
import time
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence

import httpx

from ..models.canvas import Archetype
from ..models.chat import ChatMessage, GenerationResult
from .config import AppConfig, get_config
from .prompt_loader import PromptLoader

logger = logging.getLogger(__name__)

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
NOT_CONFIGURED = "Gemini API is not configured. Please add your API key in settings."
MAX_OUTPUT_TOKENS = 8192


class GenerationError(Exception):
    """Raised when the model call fails or its output cannot be used."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


def _extract_text(data: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback", {})
        reason = feedback.get("blockReason")
        raise GenerationError(
            f"Gemini returned no candidates{f' (blocked: {reason})' if reason else ''}",
            {"prompt_feedback": feedback},
        )
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


def _user_content(text: str) -> Dict[str, Any]:
    return {"role": "user", "parts": [{"text": text}]}


class GeminiService:
    """
    Thin async wrapper over ``models/{model}:generateContent``.

    ``generate_*`` methods return a ``GenerationResult`` and never raise; the
    streaming call raises ``GenerationError`` since it has no result envelope.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        prompts: PromptLoader | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or get_config()
        self.prompts = prompts or PromptLoader()
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self.config.gemini_api_key)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=GEMINI_API_BASE,
            timeout=self.config.request_timeout,
            transport=self._transport,
            headers={"x-goog-api-key": self.config.gemini_api_key or ""},
        )

    async def _generate(self, contents: List[Dict[str, Any]], model: Optional[str] = None) -> GenerationResult:
        if not self.is_configured():
            return GenerationResult(success=False, error=NOT_CONFIGURED)

        model_name = model or self.config.default_model
        start_time = time.time()
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/models/{model_name}:generateContent",
                    json={
                        "contents": contents,
                        "generationConfig": {"maxOutputTokens": MAX_OUTPUT_TOKENS},
                    },
                )
                response.raise_for_status()
                text = _extract_text(response.json())
        except httpx.HTTPStatusError as e:
            logger.error(
                "Gemini API error",
                extra={"status_code": e.response.status_code, "model": model_name},
            )
            return GenerationResult(success=False, error=f"API error: {e.response.status_code} {e.response.text[:200]}")
        except httpx.TimeoutException:
            logger.error("Gemini API timeout", extra={"model": model_name})
            return GenerationResult(success=False, error="Request timeout - please try again")
        except httpx.HTTPError as e:
            logger.error("Gemini request failed", extra={"model": model_name, "error": str(e)})
            return GenerationResult(success=False, error=str(e))
        except (GenerationError, ValueError) as e:
            logger.warning("Unusable Gemini response", extra={"model": model_name, "error": str(e)})
            return GenerationResult(success=False, error=str(e))

        logger.info(
            "Gemini generation finished",
            extra={"model": model_name, "duration_ms": (time.time() - start_time) * 1000, "chars": len(text)},
        )
        return GenerationResult(text=text, success=True)

    async def generate_text(
        self, prompt: str, system_prompt: Optional[str] = None, model: Optional[str] = None
    ) -> GenerationResult:
        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        return await self._generate([_user_content(full_prompt)], model)

    async def generate_with_history(
        self,
        messages: Sequence[ChatMessage],
        new_message: str,
        system_prompt: Optional[str] = None,
        context: Optional[str] = None,
    ) -> GenerationResult:
        """Continue a conversation; prior turns map onto Gemini's user/model roles."""
        contents = [
            {"role": "user" if msg.role == "user" else "model", "parts": [{"text": msg.content}]}
            for msg in messages
        ]
        full_message = ""
        if system_prompt:
            full_message += f"[System Instructions: {system_prompt}]\n\n"
        if context:
            full_message += f"[Current Note Context:\n{context}]\n\n"
        full_message += new_message
        contents.append(_user_content(full_message))
        return await self._generate(contents)

    async def generate_stream(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> AsyncGenerator[str, None]:
        """Yield text chunks from ``streamGenerateContent`` (SSE)."""
        if not self.is_configured():
            raise GenerationError(NOT_CONFIGURED)

        full_prompt = f"{system_prompt}\n\n{prompt}" if system_prompt else prompt
        model_name = self.config.default_model
        try:
            async with self._client() as client:
                async with client.stream(
                    "POST",
                    f"/models/{model_name}:streamGenerateContent",
                    params={"alt": "sse"},
                    json={"contents": [_user_content(full_prompt)]},
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.startswith("data: "):
                            continue
                        try:
                            chunk = json.loads(line[6:])
                        except json.JSONDecodeError:
                            continue
                        text = _extract_text(chunk)
                        if text:
                            yield text
        except httpx.HTTPStatusError as e:
            raise GenerationError(
                f"API error: {e.response.status_code}", {"model": model_name}
            ) from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Streaming request failed: {e}", {"model": model_name}) from e

    async def test_connection(self) -> GenerationResult:
        if not self.is_configured():
            return GenerationResult(
                success=False, error="API key not configured. Please add your Gemini API key in settings."
            )
        result = await self.generate_text('Say "Hello" in one word.')
        if not result.success:
            return GenerationResult(success=False, error=result.error or "Unknown error during test")
        return result

    async def generate_task_from_description(self, description: str) -> GenerationResult:
        return await self.generate_text(description, self.prompts.load("task/system.md"))

    async def generate_canvas_layout(self, description: str, archetype: Archetype | str) -> GenerationResult:
        system_prompt = self.prompts.load("canvas/system.md", {"archetype": Archetype(archetype).value})
        return await self.generate_text(description, system_prompt)


__all__ = ["GEMINI_API_BASE", "GeminiService", "GenerationError"]
