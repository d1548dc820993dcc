"""Per-day send quota for a conversation surface."""

from __future__ import annotations

import json
import logging
import zoneinfo
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Protocol

from notetoself.config import settings
from notetoself.db import StoreError

if TYPE_CHECKING:
    from collections.abc import Callable

    from notetoself.chat.store import StateStore

logger = logging.getLogger(__name__)


class Entitlements(Protocol):
    def is_privileged(self) -> bool: ...


@dataclass
class QuotaState:
    daily_count: int = 0
    window_start: date | None = None

    def to_json(self) -> str:
        return json.dumps({
            "daily_count": self.daily_count,
            "window_start": self.window_start.isoformat() if self.window_start else None,
        })

    @classmethod
    def from_json(cls, raw: str) -> QuotaState:
        data = json.loads(raw)
        window = data.get("window_start")
        return cls(
            daily_count=int(data.get("daily_count", 0)),
            window_start=date.fromisoformat(window) if window else None,
        )


class QuotaGate:
    """Counts user-initiated sends per local calendar day.

    ``can_send()`` rolls the window over when the day has changed, then
    always grants for privileged users and otherwise compares the count to
    ``limit``.  Callers invoke ``record_send()`` exactly once per accepted
    send.  Counter persistence is best-effort: a state store failure is
    logged and the in-memory count stays authoritative.
    """

    def __init__(
        self,
        surface: str,
        limit: int,
        state: StateStore,
        entitlements: Entitlements,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.surface = surface
        self.limit = limit
        self._state_store = state
        self._entitlements = entitlements
        self._clock = clock or (lambda: datetime.now(UTC))
        self._state: QuotaState | None = None

    @property
    def key(self) -> str:
        return f"quota.{self.surface}"

    def _today(self) -> date:
        return self._clock().astimezone(zoneinfo.ZoneInfo(settings.timezone)).date()

    async def _load(self) -> QuotaState:
        if self._state is None:
            try:
                raw = await self._state_store.get_value(self.key)
                self._state = QuotaState.from_json(raw) if raw else QuotaState()
            except (StoreError, ValueError):
                logger.exception("Could not load %s quota state, starting fresh", self.surface)
                self._state = QuotaState()
        return self._state

    async def _save(self, state: QuotaState) -> None:
        try:
            await self._state_store.set_value(self.key, state.to_json())
        except StoreError:
            logger.exception("Could not persist %s quota state", self.surface)

    async def _normalize(self) -> QuotaState:
        state = await self._load()
        today = self._today()
        if state.window_start != today:
            if state.window_start is not None:
                logger.info("Quota window for %s rolled over to %s", self.surface, today)
            state.daily_count = 0
            state.window_start = today
            await self._save(state)
        return state

    async def can_send(self) -> bool:
        state = await self._normalize()
        if self._entitlements.is_privileged():
            return True
        return state.daily_count < self.limit

    async def record_send(self) -> None:
        state = await self._normalize()
        state.daily_count += 1
        await self._save(state)

    async def remaining(self) -> int | None:
        """Sends left today, or None when the user is privileged."""
        state = await self._normalize()
        if self._entitlements.is_privileged():
            return None
        return max(self.limit - state.daily_count, 0)
