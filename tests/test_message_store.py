"""Tests for MessageStore and StateStore — libsql CRUD."""

from datetime import timedelta

from conftest import NOON

from notetoself.chat.models import ConversationMessage, Role
from notetoself.chat.store import MessageStore, StateStore


def _msg(
    surface: str = "reflections",
    role: Role = Role.USER,
    content: str = "hello",
    seconds: float = 0,
) -> ConversationMessage:
    return ConversationMessage(
        surface=surface,
        role=role,
        content=content,
        timestamp=NOON + timedelta(seconds=seconds),
    )


# -- MessageStore --------------------------------------------------------------


async def test_append_and_list(message_store: MessageStore) -> None:
    msg = _msg()
    await message_store.append(msg)

    assert await message_store.list_since("reflections", NOON) == [msg]


async def test_list_is_oldest_first(message_store: MessageStore) -> None:
    await message_store.append(_msg(content="second", seconds=2))
    await message_store.append(_msg(content="first", seconds=1))

    listed = await message_store.list_since("reflections", NOON)
    assert [m.content for m in listed] == ["first", "second"]


async def test_list_since_excludes_earlier(message_store: MessageStore) -> None:
    await message_store.append(_msg(content="before", seconds=-1))
    await message_store.append(_msg(content="at", seconds=0))
    await message_store.append(_msg(content="after", seconds=1))

    listed = await message_store.list_since("reflections", NOON)
    assert [m.content for m in listed] == ["at", "after"]


async def test_surfaces_are_partitioned(message_store: MessageStore) -> None:
    await message_store.append(_msg(surface="chat", content="chat msg"))
    await message_store.append(_msg(surface="reflections", content="reflection"))

    chat = await message_store.list_since("chat", NOON)
    assert [m.content for m in chat] == ["chat msg"]


async def test_roles_roundtrip(message_store: MessageStore) -> None:
    await message_store.append(_msg(role=Role.ASSISTANT, content="hi"))
    listed = await message_store.list_since("reflections", NOON)
    assert listed[0].role is Role.ASSISTANT


async def test_delete_since(message_store: MessageStore) -> None:
    await message_store.append(_msg(content="old", seconds=-10))
    await message_store.append(_msg(content="a", seconds=1))
    await message_store.append(_msg(content="b", seconds=2))
    await message_store.append(_msg(surface="chat", content="other", seconds=3))

    deleted = await message_store.delete_since("reflections", NOON)
    assert deleted == 2

    remaining = await message_store.list_since("reflections", NOON - timedelta(days=1))
    assert [m.content for m in remaining] == ["old"]
    assert len(await message_store.list_since("chat", NOON)) == 1


# -- StateStore ----------------------------------------------------------------


async def test_state_missing_key(state_store: StateStore) -> None:
    assert await state_store.get_value("nope") is None


async def test_state_set_and_get(state_store: StateStore) -> None:
    await state_store.set_value("session_start.chat", "2026-06-15T17:00:00.000000+00:00")
    assert await state_store.get_value("session_start.chat") == "2026-06-15T17:00:00.000000+00:00"


async def test_state_overwrite(state_store: StateStore) -> None:
    await state_store.set_value("k", "1")
    await state_store.set_value("k", "2")
    assert await state_store.get_value("k") == "2"


async def test_state_and_messages_share_database(
    message_store: MessageStore, state_store: StateStore
) -> None:
    await state_store.set_value("k", "v")
    await message_store.append(_msg())
    assert await state_store.get_value("k") == "v"
    assert len(await message_store.list_since("reflections", NOON)) == 1
