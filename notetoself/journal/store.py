"""EntryStore — journal entries via libsql."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from notetoself.db import connect, to_db_timestamp
from notetoself.journal.models import JournalEntry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from datetime import datetime
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS journal_entries (
    id        TEXT PRIMARY KEY,
    timestamp TEXT NOT NULL,
    mood      TEXT,
    text      TEXT NOT NULL DEFAULT ''
)
"""

_CREATE_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_journal_entries_timestamp "
    "ON journal_entries(timestamp)"
)


class EntryStore:
    """Persists journal entries in SQLite / Turso.

    The conversation core only reads from it; writes come from the
    journal-editing surface.  Singleton accessed via ``EntryStore.get()``.
    Pass an explicit *db_path* for test isolation.
    """

    _instance: EntryStore | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> EntryStore:
        """Return the shared EntryStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    # -- Internal helpers ------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _db(self) -> AsyncIterator:
        async with connect(self._db_path) as db:
            if not self._initialised:
                await db.execute(_CREATE_TABLE)
                await db.execute(_CREATE_INDEX)
                await db.commit()
                self._initialised = True
            yield db

    # -- CRUD ------------------------------------------------------------------

    async def add(self, entry: JournalEntry) -> JournalEntry:
        """Insert a new entry. Returns the same entry object."""
        async with self._db() as db:
            await db.execute(
                "INSERT INTO journal_entries (id, timestamp, mood, text) VALUES (?, ?, ?, ?)",
                entry.to_row(),
            )
            await db.commit()
        logger.info("Added journal entry %s (%s)", entry.id, entry.mood or "no mood")
        return entry

    async def list_entries(
        self, since: datetime | None = None, limit: int | None = None
    ) -> list[JournalEntry]:
        """Return entries newest first, optionally only those at or after *since*."""
        sql = "SELECT id, timestamp, mood, text FROM journal_entries"
        params: tuple = ()
        if since is not None:
            sql += " WHERE timestamp >= ?"
            params = (to_db_timestamp(since),)
        sql += " ORDER BY timestamp DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params = (*params, limit)

        async with self._db() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [JournalEntry.from_row(row) for row in rows]

    async def count(self) -> int:
        """Return the total number of entries."""
        async with self._db() as db:
            cursor = await db.execute("SELECT COUNT(*) FROM journal_entries")
            row = await cursor.fetchone()
        return row[0] if row else 0
