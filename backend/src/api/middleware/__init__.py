"""Exception handlers shared by every API route."""

from .error_handlers import (
    generation_error_handler,
    note_exists_handler,
    register_error_handlers,
    vault_path_handler,
)

__all__ = [
    "register_error_handlers",
    "generation_error_handler",
    "note_exists_handler",
    "vault_path_handler",
]
