"""Jinja2-based prompt template loader for the Gemini-backed assistant.

Templates live in backend/prompts/ and are re-read on every call so they can be
tuned without restarting the server. Minimal inline fallbacks keep task, canvas
and chat generation working when the directory is missing (e.g. in a wheel).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import jinja2

logger = logging.getLogger(__name__)

# backend/src/services/prompt_loader.py -> backend/prompts/
DEFAULT_PROMPTS_DIR = Path(__file__).resolve().parent.parent.parent / "prompts"

INLINE_PROMPTS: Dict[str, str] = {
    "task/system.md": """You are a task management assistant. Given a task description, return a JSON object with
the fields title, description, priority ("high" | "medium" | "low"), due_date, tags (string[]),
subtasks (string[]), notes and related (string[]).

Only return valid JSON, no markdown code blocks or other formatting.
""",
    "canvas/system.md": """You are a canvas layout generator. Create a JSON Canvas layout based on the given description.

Layout Type: {{ archetype }}

Return a JSON object with "nodes" (id, type, x, y, width, height, text or label, optional color "1"-"6")
and "edges" (id, fromNode, toNode, optional fromSide/toSide/label).

Only return valid JSON, no markdown code blocks.
""",
    "chat/system.md": """You are a helpful assistant for Obsidian note-taking. Help users organize their thoughts,
create tasks, and manage their knowledge base. Be concise but thorough.
""",
}


class PromptLoaderError(Exception):
    """Raised when a prompt cannot be loaded."""

    pass


class PromptLoader:
    """Load and render Jinja2 prompt templates.

    Example:
        >>> loader = PromptLoader()
        >>> system_prompt = loader.load("canvas/system.md", {"archetype": "mindmap"})
    """

    def __init__(self, prompts_dir: Optional[Path] = None) -> None:
        self.prompts_dir = prompts_dir or DEFAULT_PROMPTS_DIR

        if self.prompts_dir.is_dir():
            self.env = jinja2.Environment(
                loader=jinja2.FileSystemLoader(str(self.prompts_dir)),
                autoescape=False,  # Prompts are markdown, not HTML
                auto_reload=True,
                keep_trailing_newline=True,
            )
            logger.debug(
                "PromptLoader initialized with filesystem templates",
                extra={"prompts_dir": str(self.prompts_dir)},
            )
        else:
            self.env = None
            logger.warning(
                "Prompts directory not found, using inline fallbacks",
                extra={"prompts_dir": str(self.prompts_dir)},
            )

    def load(self, path: str, context: Optional[Dict[str, Any]] = None) -> str:
        """Load and render a prompt template.

        Args:
            path: Relative path to the template file (e.g., "task/system.md").
            context: Dictionary of variables to render into the template.

        Raises:
            PromptLoaderError: If the template cannot be loaded or rendered.
        """
        context = context or {}

        if self.env is not None:
            try:
                rendered = self.env.get_template(path).render(**context)
                logger.debug(
                    "Loaded prompt from filesystem",
                    extra={"path": path, "context_keys": list(context.keys())},
                )
                return rendered.strip()
            except jinja2.TemplateNotFound:
                logger.debug("Template not found in filesystem, trying inline fallback", extra={"path": path})
            except jinja2.TemplateError as e:
                logger.error("Failed to render template", extra={"path": path, "error": str(e)})
                raise PromptLoaderError(f"Failed to render template {path}: {e}") from e

        return self._get_inline_prompt(path, context)

    def _get_inline_prompt(self, path: str, context: Dict[str, Any]) -> str:
        template_str = INLINE_PROMPTS.get(path)
        if template_str is None:
            logger.warning(
                "No inline fallback for prompt path",
                extra={"path": path, "available": list(INLINE_PROMPTS.keys())},
            )
            raise PromptLoaderError(
                f"Prompt not found: {path}. Available inline prompts: {list(INLINE_PROMPTS.keys())}"
            )

        try:
            return jinja2.Template(template_str).render(**context).strip()
        except jinja2.TemplateError as e:
            logger.error("Failed to render inline template", extra={"path": path, "error": str(e)})
            raise PromptLoaderError(f"Failed to render inline template {path}: {e}") from e

    def list_available(self) -> Dict[str, list[str]]:
        """Template paths found on disk and those with inline fallbacks."""
        result: Dict[str, list[str]] = {"filesystem": [], "inline": sorted(INLINE_PROMPTS)}
        if self.prompts_dir.is_dir():
            for md_file in self.prompts_dir.rglob("*.md"):
                result["filesystem"].append(md_file.relative_to(self.prompts_dir).as_posix())
        return result


__all__ = ["PromptLoader", "PromptLoaderError", "DEFAULT_PROMPTS_DIR"]
