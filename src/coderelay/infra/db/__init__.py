"""Async PostgreSQL infrastructure (ORM model, converters, repository)."""

from .converters import StoredMessage, message_role, rows_to_messages
from .models import ROLE_ASSISTANT, ROLE_SYSTEM, ROLE_USER, Base, Message, Role
from .repository import MessageRef, MessageRepository, get_message_repository

__all__ = [
    "Base",
    "get_message_repository",
    "Message",
    "message_role",
    "MessageRef",
    "MessageRepository",
    "Role",
    "ROLE_ASSISTANT",
    "ROLE_SYSTEM",
    "ROLE_USER",
    "rows_to_messages",
    "StoredMessage",
]
