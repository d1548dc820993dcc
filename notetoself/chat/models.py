"""Conversation data models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from notetoself.db import from_db_timestamp, to_db_timestamp


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationMessage:
    """A single conversation turn. Never edited after creation.

    Attributes:
        surface: Which conversation this belongs to (``"chat"`` or ``"reflections"``).
        role: Who wrote it.
        content: Message text.
        timestamp: Creation time; orders messages within a session.
        id: Unique identifier (UUID hex).
    """

    surface: str
    role: Role
    content: str
    timestamp: datetime
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def label(self) -> str:
        """Role as shown in model context, e.g. ``"Assistant"``."""
        return self.role.value.capitalize()

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``conversation_messages`` column order."""
        return (
            self.id,
            self.surface,
            self.role.value,
            self.content,
            to_db_timestamp(self.timestamp),
        )

    @classmethod
    def from_row(cls, row: tuple) -> ConversationMessage:
        """Deserialize from a SQLite row tuple."""
        return cls(
            id=row[0],
            surface=row[1],
            role=Role(row[2]),
            content=row[3],
            timestamp=from_db_timestamp(row[4]),
        )


@dataclass(frozen=True)
class AppendResult:
    """Outcome of appending a message to the conversation.

    A message is always *displayed* (it joins the in-memory log), but may not
    be durably *persisted* when the message store write failed.
    """

    message: ConversationMessage
    persisted: bool
    displayed: bool = True
