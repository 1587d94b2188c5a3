"""SQLAlchemy ORM models for the message store.

Tables are managed by Alembic migrations; this service only reads them.
The ``Base.metadata`` naming convention keeps constraint names
deterministic for ``--autogenerate`` diffs.
"""

from datetime import datetime
from typing import Literal

from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Shared declarative base with explicit naming convention."""


Base.metadata.naming_convention = NAMING_CONVENTION


# ---------------------------------------------------------------------------
# Role constants & type
# ---------------------------------------------------------------------------

ROLE_SYSTEM: Literal["system"] = "system"
ROLE_USER: Literal["user"] = "user"
ROLE_ASSISTANT: Literal["assistant"] = "assistant"

Role = Literal["system", "user", "assistant"]


class Message(Base):
    """One turn of a chat.

    ``position`` is strictly increasing within a ``chat_id`` and defines
    conversation order; ``created_at`` is informational only.
    """

    __tablename__ = "messages"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    chat_id: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index(
            "uq_messages_chat_id_position",
            "chat_id",
            "position",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Message(id={self.id!r}, chat_id={self.chat_id!r}, "
            f"position={self.position}, role={self.role!r})>"
        )
