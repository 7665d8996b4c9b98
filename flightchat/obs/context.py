"""Request context helpers using ContextVars.

Values set here are picked up by `log_event` so call sites deep in the
pipeline do not need to thread identifiers through every signature.
"""

from contextvars import ContextVar
from typing import Optional


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
chat_id_var: ContextVar[Optional[str]] = ContextVar("chat_id", default=None)
client_id_var: ContextVar[Optional[str]] = ContextVar("client_id", default=None)


def bind_chat(chat_id: Optional[str], client_id: Optional[str]) -> None:
    """Attach the chat session identifiers to the current context."""
    chat_id_var.set(chat_id)
    client_id_var.set(client_id)


def clear_context() -> None:
    """Reset context variables to defaults."""
    request_id_var.set(None)
    chat_id_var.set(None)
    client_id_var.set(None)
