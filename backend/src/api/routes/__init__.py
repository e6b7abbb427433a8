"""HTTP API route handlers."""

from . import canvas, chat, notes, system, tasks

__all__ = ["canvas", "chat", "notes", "system", "tasks"]
