"""JournalEntry data model."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from notetoself.db import from_db_timestamp, to_db_timestamp


@dataclass(frozen=True)
class JournalEntry:
    """A single journal entry written by the user.

    Attributes:
        timestamp: When the entry was written (timezone-aware).
        mood: Free-form mood label, e.g. ``"calm"``. May be missing.
        text: The entry body.
        id: Unique identifier (UUID hex).
    """

    timestamp: datetime
    mood: str | None
    text: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_row(self) -> tuple:
        """Serialize to a tuple matching the ``journal_entries`` column order."""
        return (self.id, to_db_timestamp(self.timestamp), self.mood, self.text)

    @classmethod
    def from_row(cls, row: tuple) -> JournalEntry:
        """Deserialize from a SQLite row tuple."""
        return cls(
            id=row[0],
            timestamp=from_db_timestamp(row[1]),
            mood=row[2],
            text=row[3] or "",
        )

    @classmethod
    def now(cls, mood: str | None, text: str) -> JournalEntry:
        return cls(timestamp=datetime.now(UTC), mood=mood, text=text)
