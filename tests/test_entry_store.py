"""Tests for EntryStore — libsql CRUD."""

from datetime import timedelta

from conftest import NOON

from notetoself.journal.models import JournalEntry
from notetoself.journal.store import EntryStore


def _entry(days_ago: float = 0, mood: str | None = "calm", text: str = "note") -> JournalEntry:
    return JournalEntry(timestamp=NOON - timedelta(days=days_ago), mood=mood, text=text)


async def test_add_and_list(entry_store: EntryStore) -> None:
    entry = _entry(text="Walked to the lake")
    await entry_store.add(entry)

    entries = await entry_store.list_entries()
    assert entries == [entry]


async def test_list_is_newest_first(entry_store: EntryStore) -> None:
    await entry_store.add(_entry(3, text="old"))
    await entry_store.add(_entry(1, text="new"))
    await entry_store.add(_entry(2, text="middle"))

    texts = [e.text for e in await entry_store.list_entries()]
    assert texts == ["new", "middle", "old"]


async def test_list_since(entry_store: EntryStore) -> None:
    await entry_store.add(_entry(10, text="old"))
    await entry_store.add(_entry(1, text="new"))

    entries = await entry_store.list_entries(since=NOON - timedelta(days=7))
    assert [e.text for e in entries] == ["new"]


async def test_list_limit(entry_store: EntryStore) -> None:
    for i in range(5):
        await entry_store.add(_entry(i, text=f"e{i}"))

    entries = await entry_store.list_entries(limit=2)
    assert [e.text for e in entries] == ["e0", "e1"]


async def test_missing_mood_roundtrips_as_none(entry_store: EntryStore) -> None:
    await entry_store.add(_entry(mood=None))
    entries = await entry_store.list_entries()
    assert entries[0].mood is None


async def test_count(entry_store: EntryStore) -> None:
    assert await entry_store.count() == 0
    await entry_store.add(_entry())
    await entry_store.add(_entry(1))
    assert await entry_store.count() == 2


async def test_empty_store(entry_store: EntryStore) -> None:
    assert await entry_store.list_entries() == []


def test_singleton() -> None:
    assert EntryStore.get() is EntryStore.get()
