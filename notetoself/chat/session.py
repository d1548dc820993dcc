"""Session anchors: which slice of the message log is the live conversation."""

from __future__ import annotations

import logging
import zoneinfo
from dataclasses import dataclass
from typing import TYPE_CHECKING

from notetoself.config import settings
from notetoself.db import from_db_timestamp, to_db_timestamp

if TYPE_CHECKING:
    from datetime import datetime

    from notetoself.chat.store import StateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    """The live session of one surface: every message at or after ``start``."""

    surface: str
    start: datetime

    def contains(self, timestamp: datetime) -> bool:
        return timestamp >= self.start


def same_calendar_day(a: datetime, b: datetime, tz: zoneinfo.ZoneInfo | None = None) -> bool:
    """True when *a* and *b* fall on the same local calendar day."""
    tz = tz or zoneinfo.ZoneInfo(settings.timezone)
    return a.astimezone(tz).date() == b.astimezone(tz).date()


class SessionAnchor:
    """Persists one surface's session start under its own state key."""

    def __init__(self, surface: str, state: StateStore) -> None:
        self.surface = surface
        self._state = state

    @property
    def key(self) -> str:
        return f"session_start.{self.surface}"

    async def load(self, now: datetime) -> SessionContext:
        """Return the stored session, starting a new one if none exists or
        the stored start is from an earlier calendar day."""
        raw = await self._state.get_value(self.key)
        if raw is None:
            return await self.reset(now)

        try:
            start = from_db_timestamp(raw)
        except ValueError:
            logger.warning("Unreadable %s session start %r, resetting", self.surface, raw)
            return await self.reset(now)
        if not same_calendar_day(start, now):
            logger.info("New day for %s session (was %s), resetting", self.surface, raw)
            return await self.reset(now)
        return SessionContext(surface=self.surface, start=start)

    async def reset(self, now: datetime) -> SessionContext:
        """Start a fresh session at *now*."""
        await self._state.set_value(self.key, to_db_timestamp(now))
        return SessionContext(surface=self.surface, start=now)
