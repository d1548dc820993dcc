"""MessageStore and StateStore — conversation persistence via libsql."""

from __future__ import annotations

import contextlib
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from notetoself.chat.models import ConversationMessage
from notetoself.db import connect, to_db_timestamp

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_MESSAGES = """
CREATE TABLE IF NOT EXISTS conversation_messages (
    id        TEXT PRIMARY KEY,
    surface   TEXT NOT NULL,
    role      TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
    content   TEXT NOT NULL,
    timestamp TEXT NOT NULL
)
"""

_CREATE_MESSAGES_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_conversation_messages_surface_ts "
    "ON conversation_messages(surface, timestamp)"
)

_CREATE_STATE = """
CREATE TABLE IF NOT EXISTS app_state (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class MessageStore:
    """Append-only log of conversation messages, partitioned by surface.

    Singleton accessed via ``MessageStore.get()``.  Pass an explicit *db_path*
    for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: MessageStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> MessageStore:
        """Return the shared MessageStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    @contextlib.asynccontextmanager
    async def _db(self) -> AsyncIterator:
        async with connect(self._db_path) as db:
            if not self._initialised:
                await db.execute(_CREATE_MESSAGES)
                await db.execute(_CREATE_MESSAGES_INDEX)
                await db.commit()
                self._initialised = True
            yield db

    async def append(self, message: ConversationMessage) -> None:
        """Insert one message."""
        async with self._db() as db:
            await db.execute(
                """
                INSERT INTO conversation_messages (id, surface, role, content, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                message.to_row(),
            )
            await db.commit()

    async def list_since(self, surface: str, since: datetime) -> list[ConversationMessage]:
        """Return the surface's messages at or after *since*, oldest first."""
        async with self._db() as db:
            cursor = await db.execute(
                """
                SELECT id, surface, role, content, timestamp FROM conversation_messages
                WHERE surface = ? AND timestamp >= ?
                ORDER BY timestamp ASC
                """,
                (surface, to_db_timestamp(since)),
            )
            rows = await cursor.fetchall()
        return [ConversationMessage.from_row(row) for row in rows]

    async def delete_since(self, surface: str, since: datetime) -> int:
        """Delete the surface's messages at or after *since*. Returns the count."""
        async with self._db() as db:
            cursor = await db.execute(
                "DELETE FROM conversation_messages WHERE surface = ? AND timestamp >= ?",
                (surface, to_db_timestamp(since)),
            )
            await db.commit()
            deleted = cursor.rowcount
        logger.info("Deleted %d %s messages", deleted, surface)
        return deleted


class StateStore:
    """Small key/value table for scalar process state.

    Holds each surface's session anchor and quota counters.  Singleton
    accessed via ``StateStore.get()``.
    """

    _instance: StateStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> StateStore:
        """Return the shared StateStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    @contextlib.asynccontextmanager
    async def _db(self) -> AsyncIterator:
        async with connect(self._db_path) as db:
            if not self._initialised:
                await db.execute(_CREATE_STATE)
                await db.commit()
                self._initialised = True
            yield db

    async def get_value(self, key: str) -> str | None:
        async with self._db() as db:
            cursor = await db.execute("SELECT value FROM app_state WHERE key = ?", (key,))
            row = await cursor.fetchone()
        return row[0] if row else None

    async def set_value(self, key: str, value: str) -> None:
        now = datetime.now(UTC).isoformat()
        async with self._db() as db:
            await db.execute(
                "INSERT OR REPLACE INTO app_state (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, now),
            )
            await db.commit()
