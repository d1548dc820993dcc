"""Journal retrieval agent.

Turns a free-text query ("what happened lately?", "show me everything")
into a time window, reads matching entries, and renders a bounded digest
that the conversation can inject into a model call.  It never writes.
"""

from __future__ import annotations

import logging
import zoneinfo
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from notetoself.config import settings

if TYPE_CHECKING:
    from notetoself.journal.models import JournalEntry
    from notetoself.journal.store import EntryStore

logger = logging.getLogger(__name__)

NO_ENTRIES = "No entries found for that timeframe."
NO_RECENT_ENTRIES = "No journal entries found."


def classify_window(query: str, recent_days: int | None = None) -> int | None:
    """Map a query to a look-back window in days, or None for all entries.

    Plain substring matching, checked in order: "lately"/"recent" wins over
    "all"/"everything", and anything else falls back to the recent window.
    """
    days = recent_days if recent_days is not None else settings.retrieval_recent_days
    normalized = query.lower()
    if "lately" in normalized or "recent" in normalized:
        return days
    if "all" in normalized or "everything" in normalized:
        return None
    return days


def format_entry(entry: JournalEntry, tz: zoneinfo.ZoneInfo | None = None) -> str:
    """Render one entry as ``[<date>] (<mood>) <text>``."""
    tz = tz or zoneinfo.ZoneInfo(settings.timezone)
    date_str = entry.timestamp.astimezone(tz).strftime("%Y-%m-%d")
    return f"[{date_str}] ({entry.mood or 'N/A'}) {entry.text}"


class RetrievalAgent:
    """Reads the entry store on behalf of the conversation."""

    def __init__(
        self,
        store: EntryStore,
        *,
        clock: Callable[[], datetime] | None = None,
        max_lines: int | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(UTC))
        self._max_lines = max_lines if max_lines is not None else settings.retrieval_max_lines

    async def fetch_digest(self, query: str) -> str:
        """Return the digest for *query*, or :data:`NO_ENTRIES` when empty.

        Raises ``StoreError`` when the entry store cannot be read.
        """
        days = classify_window(query)
        since = self._clock() - timedelta(days=days) if days is not None else None
        entries = await self._store.list_entries(since=since, limit=self._max_lines)
        logger.info(
            "Retrieval for %r: window=%s, %d entries",
            query[:80],
            f"{days}d" if days is not None else "all",
            len(entries),
        )
        if not entries:
            return NO_ENTRIES

        tz = zoneinfo.ZoneInfo(settings.timezone)
        lines = [format_entry(e, tz) for e in entries]
        return "\n".join(lines[: self._max_lines])

    async def latest_entries(self, limit: int = 3) -> str:
        """Render the *limit* most recent entries for inline attachment."""
        entries = await self._store.list_entries(limit=limit)
        if not entries:
            return NO_RECENT_ENTRIES
        tz = zoneinfo.ZoneInfo(settings.timezone)
        return "\n".join(format_entry(e, tz) for e in entries)
