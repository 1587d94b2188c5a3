"""Read-only access to the messages table.

Used by the completion endpoint to resolve the target message and to
load every earlier turn of its chat, oldest first.
"""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends
from langchain_core.messages import BaseMessage
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from coderelay.infra.db_engine import get_session_factory
from coderelay.infra.telemetry import (
    ATTR_HISTORY_CHAT_ID,
    ATTR_HISTORY_MESSAGE_COUNT,
    SPAN_HISTORY_LOAD,
    tracer,
)

from .constants import (
    PARAM_CHAT_ID,
    PARAM_ID,
    PARAM_POSITION,
    SQL_SELECT_HISTORY,
    SQL_SELECT_MESSAGE,
)
from .converters import rows_to_messages

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageRef:
    """Location of a message inside its chat."""

    id: str
    chat_id: str
    position: int


class MessageRepository:
    """Queries over ``messages``; one short-lived session per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, message_id: str) -> MessageRef | None:
        """Fetch a message by id, or ``None`` when it does not exist."""
        async with self._session_factory() as session:
            result = await session.execute(
                text(SQL_SELECT_MESSAGE), {PARAM_ID: message_id}
            )
            row = result.first()
        if row is None:
            return None
        return MessageRef(id=row[0], chat_id=row[1], position=row[2])

    async def list_up_to(self, chat_id: str, position: int) -> list[BaseMessage]:
        """Load every message of *chat_id* at or before *position*, oldest first.

        Raises:
            pydantic.ValidationError: if a stored row has an unexpected shape.
        """
        with tracer.start_as_current_span(SPAN_HISTORY_LOAD) as span:
            span.set_attribute(ATTR_HISTORY_CHAT_ID, chat_id)
            async with self._session_factory() as session:
                result = await session.execute(
                    text(SQL_SELECT_HISTORY),
                    {PARAM_CHAT_ID: chat_id, PARAM_POSITION: position},
                )
                rows = [dict(row) for row in result.mappings().all()]
            messages = rows_to_messages(rows)
            span.set_attribute(ATTR_HISTORY_MESSAGE_COUNT, len(messages))
            logger.debug(
                "Loaded %d messages for chat %s up to position %d",
                len(messages),
                chat_id,
                position,
            )
            return messages


def get_message_repository(
    sf: Annotated[
        async_sessionmaker[AsyncSession],
        Depends(get_session_factory),
    ],
) -> MessageRepository:
    """Return the message repository for this app."""
    return MessageRepository(sf)
