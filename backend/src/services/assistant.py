"""Chat front door: routes messages to task creation, canvas generation or plain chat."""

from __future__ import annotations

import json
import logging
import re
from typing import AsyncGenerator, List, Optional

from pydantic import TypeAdapter, ValidationError

from ..models.canvas import Archetype
from ..models.chat import ChatMessage, ChatReply
from .canvas_service import CanvasService
from .config import AppConfig, get_config
from .gemini import GeminiService, GenerationError
from .prompt_loader import PromptLoader
from .tasks import TaskManager
from .vault import VaultService

logger = logging.getLogger(__name__)

HISTORY_PATH = ".assistant/chat-history.json"
TASK_COMMAND = re.compile(r"^create a task(?: for)?:?\s*", re.IGNORECASE)
CANVAS_COMMAND = re.compile(r"^create a canvas(?: for)?:?\s*", re.IGNORECASE)
CANVAS_HELP = (
    "Please provide a description for the canvas you want to create. You can specify the type:\n"
    "- **taskboard**: Kanban-style task board\n"
    "- **riskmatrix**: Risk assessment matrix\n"
    "- **mindmap**: Mind map visualization"
)

_messages_adapter = TypeAdapter(List[ChatMessage])


class ChatHistory:
    """Bounded conversation log, persisted as JSON inside the vault when enabled."""

    def __init__(self, vault: VaultService, limit: int, persist: bool = True) -> None:
        self.vault = vault
        self.limit = limit
        self.persist = persist
        self.messages: List[ChatMessage] = self._load() if persist else []

    def _load(self) -> List[ChatMessage]:
        if not self.vault.file_exists(HISTORY_PATH):
            return []
        try:
            messages = _messages_adapter.validate_json(self.vault.read_file(HISTORY_PATH))
        except ValidationError as e:
            logger.warning("Discarding unreadable chat history", extra={"error": str(e)})
            return []
        return messages[-self.limit:]

    def _save(self) -> None:
        if self.persist:
            payload = _messages_adapter.dump_python(self.messages, mode="json")
            self.vault.write_file(HISTORY_PATH, json.dumps(payload, indent=2, ensure_ascii=False))

    def add(self, message: ChatMessage) -> None:
        self.messages.append(message)
        del self.messages[: -self.limit]
        self._save()

    def clear(self) -> None:
        self.messages = []
        self._save()


class AssistantService:
    """Stateful chat session bound to one vault."""

    def __init__(
        self,
        config: AppConfig | None = None,
        vault: VaultService | None = None,
        gemini: GeminiService | None = None,
        tasks: TaskManager | None = None,
        canvases: CanvasService | None = None,
        prompts: PromptLoader | None = None,
    ) -> None:
        self.config = config or get_config()
        self.vault = vault or VaultService(self.config)
        self.prompts = prompts or PromptLoader()
        self.gemini = gemini or GeminiService(self.config, self.prompts)
        self.tasks = tasks or TaskManager(self.config, self.vault, self.gemini)
        self.canvases = canvases or CanvasService(self.config, self.vault, self.gemini)
        self.history = ChatHistory(
            self.vault, self.config.max_chat_history, persist=self.config.chat_history_enabled
        )

    async def handle_message(self, message: str, context: Optional[str] = None) -> ChatReply:
        """Answer one user message and record both sides of the exchange."""
        message = message.strip()
        self.history.add(ChatMessage(role="user", content=message))

        if TASK_COMMAND.match(message):
            reply = await self._create_task(TASK_COMMAND.sub("", message, count=1).strip())
        elif CANVAS_COMMAND.match(message):
            reply = await self._create_canvas(CANVAS_COMMAND.sub("", message, count=1).strip())
        else:
            reply = await self._chat(message, context)

        self.history.add(ChatMessage(role="assistant", content=reply.content))
        return reply

    async def _create_task(self, description: str) -> ChatReply:
        if not description:
            return ChatReply(
                content="Please provide a description for the task you want to create.",
                action="task",
                success=False,
            )
        try:
            path = await self.tasks.create_task_from_description(description)
        except GenerationError as e:
            logger.warning("Task generation failed", extra={"error": e.message})
            return ChatReply(content=f"❌ Failed to create task: {e.message}", action="task", success=False)
        name = path.rsplit("/", 1)[-1].removesuffix(".md")
        return ChatReply(
            content=f"✅ Task created: **{name}**\n\n[Open task]({path})", action="task", path=path
        )

    async def _create_canvas(self, description: str) -> ChatReply:
        if not description:
            return ChatReply(content=CANVAS_HELP, action="canvas", success=False)
        archetype = Archetype.detect(description)
        try:
            result = await self.canvases.generate_canvas(description, archetype)
        except GenerationError as e:
            logger.warning("Canvas generation failed", extra={"error": e.message, "archetype": archetype.value})
            return ChatReply(
                content=f"❌ Failed to create canvas: {e.message}",
                action="canvas",
                success=False,
                layout_type=archetype.value,
            )
        name = result.path.rsplit("/", 1)[-1].removesuffix(".canvas")
        return ChatReply(
            content=(
                f"✅ Canvas created: **{name}**\n\nLayout type: {archetype.value}\n\n[Open canvas]({result.path})"
            ),
            action="canvas",
            path=result.path,
            layout_type=archetype.value,
        )

    async def stream_message(self, message: str) -> AsyncGenerator[str, None]:
        """
        Stream a plain chat answer chunk by chunk.

        The joined answer is recorded once the stream completes. Raises
        GenerationError when Gemini is not configured or the stream fails.
        """
        message = message.strip()
        self.history.add(ChatMessage(role="user", content=message))
        chunks: List[str] = []
        async for chunk in self.gemini.generate_stream(message, self._system_prompt()):
            chunks.append(chunk)
            yield chunk
        self.history.add(ChatMessage(role="assistant", content="".join(chunks)))

    def _system_prompt(self) -> str:
        return self.prompts.load("chat/system.md", {"vault_name": self.vault.vault_root.name})

    async def _chat(self, message: str, context: Optional[str]) -> ChatReply:
        if not self.config.include_current_note_as_context:
            context = None
        system_prompt = self._system_prompt()
        # The user turn just recorded is sent separately as new_message.
        previous = self.history.messages[:-1]
        result = await self.gemini.generate_with_history(previous, message, system_prompt, context)
        if not result.success:
            return ChatReply(content=f"Error: {result.error}", success=False)
        return ChatReply(content=result.text)


__all__ = ["AssistantService", "ChatHistory", "HISTORY_PATH"]
