"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from notetoself.chat import surfaces
from notetoself.chat.store import MessageStore, StateStore
from notetoself.journal.store import EntryStore
from notetoself.subscription import SubscriptionManager

# Midday in America/Chicago, so small nudges never cross a calendar day.
NOON = datetime(2026, 6, 15, 17, 0, tzinfo=UTC)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = NOON) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("notetoself.config.settings.turso_database_url", "")


@pytest.fixture(autouse=True)
def _pin_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Tests assume the default calendar and limits, whatever the environment says."""
    for name, value in {
        "timezone": "America/Chicago",
        "reflections_daily_limit": 3,
        "chat_daily_limit": 0,
        "retrieval_recent_days": 7,
        "retrieval_max_lines": 20,
        "subscribed": False,
    }.items():
        monkeypatch.setattr(f"notetoself.config.settings.{name}", value)


@pytest.fixture(autouse=True)
def _reset_singletons():
    """Each test gets fresh stores, orchestrators and entitlements."""
    yield
    MessageStore._reset()
    StateStore._reset()
    EntryStore._reset()
    SubscriptionManager._reset()
    surfaces._reset()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def message_store(db_path: Path) -> MessageStore:
    return MessageStore(db_path=db_path)


@pytest.fixture
def state_store(db_path: Path) -> StateStore:
    return StateStore(db_path=db_path)


@pytest.fixture
def entry_store(db_path: Path) -> EntryStore:
    return EntryStore(db_path=db_path)
