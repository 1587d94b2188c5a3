"""Row <-> BaseMessage converters for the messages table.

Stored rows are validated against ``StoredMessage`` first; a row with an
unknown role or missing content fails the whole batch with
``pydantic.ValidationError`` before anything is sent upstream.
"""

from collections.abc import Sequence
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, TypeAdapter

from .constants import ROLE_ASSISTANT, ROLE_SYSTEM, ROLE_USER
from .models import Role

_MESSAGE_CLASSES: dict[str, type[BaseMessage]] = {
    ROLE_SYSTEM: SystemMessage,
    ROLE_USER: HumanMessage,
    ROLE_ASSISTANT: AIMessage,
}

# LangChain ``BaseMessage.type`` -> stored role
_TYPE_TO_ROLE: dict[str, Role] = {
    "system": ROLE_SYSTEM,
    "human": ROLE_USER,
    "ai": ROLE_ASSISTANT,
}


class StoredMessage(BaseModel):
    """Shape every history row must have before it reaches a provider."""

    model_config = ConfigDict(extra="ignore")

    role: Role
    content: str


_stored_messages = TypeAdapter(list[StoredMessage])


def stored_to_message(stored: StoredMessage) -> BaseMessage:
    return _MESSAGE_CLASSES[stored.role](content=stored.content)


def rows_to_messages(rows: Sequence[dict[str, Any]]) -> list[BaseMessage]:
    """Validate history rows and convert them to LangChain messages.

    Raises:
        pydantic.ValidationError: if any row does not match ``StoredMessage``.
    """
    return [stored_to_message(s) for s in _stored_messages.validate_python(rows)]


def message_role(msg: BaseMessage) -> Role:
    """Map a LangChain message back to its stored role."""
    try:
        return _TYPE_TO_ROLE[msg.type]
    except KeyError:
        raise ValueError(f"Unsupported message type in history: {msg.type!r}") from None
