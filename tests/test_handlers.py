"""Tests for the Telegram handlers."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import NOON

from notetoself.bot.handlers import (
    BUSY_TEXT,
    FAILED_TEXT,
    LIMIT_REACHED_TEXT,
    NOTE_USAGE,
    REFLECT_USAGE,
    _bind,
    handle_clear,
    handle_message,
    handle_note,
    handle_reflect,
    handle_start,
    handle_stop,
)
from notetoself.chat.models import ConversationMessage, Role
from notetoself.chat.orchestrator import TurnOutcome
from notetoself.journal.store import EntryStore


@pytest.fixture(autouse=True)
def _allow_user(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("notetoself.config.settings.allowed_user_ids", "12345")


@pytest.fixture
def mock_update():
    """Create a mock Telegram Update with the minimum viable structure."""
    update = MagicMock()
    update.effective_chat.id = 12345
    update.effective_user.id = 12345
    update.message.text = "hello"
    update.message.reply_text = AsyncMock()
    return update


@pytest.fixture
def mock_context():
    ctx = MagicMock()
    ctx.bot = MagicMock()
    ctx.bot.send_chat_action = AsyncMock()
    ctx.bot.send_message = AsyncMock()
    ctx.args = []
    return ctx


def _orchestrator(outcome: TurnOutcome = TurnOutcome.REPLIED) -> MagicMock:
    orch = MagicMock()
    orch.send = AsyncMock(return_value=outcome)
    orch.clear = AsyncMock()
    orch.is_busy = False
    orch.messages = ()
    return orch


# -- Authorization -------------------------------------------------------------


async def test_unknown_user_is_ignored(mock_update, mock_context) -> None:
    mock_update.effective_user.id = 999
    with patch("notetoself.bot.handlers.get_orchestrator") as get:
        await handle_message(mock_update, mock_context)

    get.assert_not_called()
    mock_update.message.reply_text.assert_not_awaited()


async def test_empty_allowlist_rejects_everyone(
    mock_update, mock_context, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("notetoself.config.settings.allowed_user_ids", "")
    with patch("notetoself.bot.handlers.get_orchestrator") as get:
        await handle_message(mock_update, mock_context)
    get.assert_not_called()


# -- Turns ---------------------------------------------------------------------


async def test_message_goes_to_chat(mock_update, mock_context) -> None:
    orch = _orchestrator()
    with patch("notetoself.bot.handlers.get_orchestrator", return_value=orch) as get:
        await handle_message(mock_update, mock_context)

    get.assert_called_once_with("chat")
    orch.send.assert_awaited_once_with("hello")
    mock_context.bot.send_chat_action.assert_awaited_once()
    mock_update.message.reply_text.assert_not_awaited()


@pytest.mark.parametrize(
    ("outcome", "text"),
    [
        (TurnOutcome.QUOTA_EXCEEDED, LIMIT_REACHED_TEXT),
        (TurnOutcome.BUSY, BUSY_TEXT),
        (TurnOutcome.FAILED, FAILED_TEXT),
    ],
)
async def test_outcome_notices(mock_update, mock_context, outcome, text) -> None:
    with patch("notetoself.bot.handlers.get_orchestrator", return_value=_orchestrator(outcome)):
        await handle_message(mock_update, mock_context)
    mock_update.message.reply_text.assert_awaited_once_with(text)


async def test_reflect_goes_to_reflections(mock_update, mock_context) -> None:
    mock_context.args = ["how", "have", "I", "been?"]
    orch = _orchestrator(TurnOutcome.RETRIEVED)
    with patch("notetoself.bot.handlers.get_orchestrator", return_value=orch) as get:
        await handle_reflect(mock_update, mock_context)

    get.assert_called_once_with("reflections")
    orch.send.assert_awaited_once_with("how have I been?")


async def test_reflect_without_text_shows_usage(mock_update, mock_context) -> None:
    with patch("notetoself.bot.handlers.get_orchestrator") as get:
        await handle_reflect(mock_update, mock_context)
    get.assert_not_called()
    mock_update.message.reply_text.assert_awaited_once_with(REFLECT_USAGE)


async def test_bind_delivers_to_chat() -> None:
    orch = MagicMock()
    bot = MagicMock()
    bot.send_message = AsyncMock()
    _bind(orch, bot, 42)

    msg = ConversationMessage(surface="chat", role=Role.ASSISTANT, content="Hi", timestamp=NOON)
    await orch.on_message(msg)
    bot.send_message.assert_awaited_once_with(chat_id=42, text="Hi")


# -- Stop / clear --------------------------------------------------------------


async def test_stop_busy_surface(mock_update, mock_context) -> None:
    busy = _orchestrator()
    busy.is_busy = True
    idle = _orchestrator()
    with patch("notetoself.bot.handlers.get_orchestrator", side_effect=[busy, idle]):
        await handle_stop(mock_update, mock_context)

    busy.stop.assert_called_once()
    idle.stop.assert_called_once()
    mock_update.message.reply_text.assert_awaited_once_with("Stopped.")


async def test_stop_when_idle(mock_update, mock_context) -> None:
    with patch("notetoself.bot.handlers.get_orchestrator", return_value=_orchestrator()):
        await handle_stop(mock_update, mock_context)
    mock_update.message.reply_text.assert_awaited_once_with("Nothing to stop.")


async def test_clear_defaults_to_chat(mock_update, mock_context) -> None:
    orch = _orchestrator()
    orch.messages = ("a", "b")
    with patch("notetoself.bot.handlers.get_orchestrator", return_value=orch) as get:
        await handle_clear(mock_update, mock_context)

    get.assert_called_once_with("chat")
    orch.clear.assert_awaited_once()
    mock_update.message.reply_text.assert_awaited_once_with("Cleared 2 messages. Starting fresh.")


async def test_clear_reflections(mock_update, mock_context) -> None:
    mock_context.args = ["Reflections"]
    orch = _orchestrator()
    with patch("notetoself.bot.handlers.get_orchestrator", return_value=orch) as get:
        await handle_clear(mock_update, mock_context)
    get.assert_called_once_with("reflections")


# -- Notes ---------------------------------------------------------------------


async def test_note_saves_entry(mock_update, mock_context, entry_store: EntryStore) -> None:
    mock_context.args = ["calm:", "long", "walk", "by", "the", "river"]
    with patch("notetoself.bot.handlers.EntryStore.get", return_value=entry_store):
        await handle_note(mock_update, mock_context)

    entries = await entry_store.list_entries()
    assert len(entries) == 1
    assert entries[0].mood == "calm"
    assert entries[0].text == "long walk by the river"
    mock_update.message.reply_text.assert_awaited_once_with("Saved to your journal.")


async def test_note_without_mood(mock_update, mock_context, entry_store: EntryStore) -> None:
    mock_context.args = ["just", "a", "thought"]
    with patch("notetoself.bot.handlers.EntryStore.get", return_value=entry_store):
        await handle_note(mock_update, mock_context)

    entries = await entry_store.list_entries()
    assert entries[0].mood is None
    assert entries[0].text == "just a thought"


async def test_note_without_text_shows_usage(mock_update, mock_context) -> None:
    mock_context.args = ["calm:"]
    await handle_note(mock_update, mock_context)
    mock_update.message.reply_text.assert_awaited_once_with(NOTE_USAGE)


async def test_start_opens_both_surfaces(mock_update, mock_context) -> None:
    chat, reflections = _orchestrator(), _orchestrator()
    chat.start = AsyncMock()
    reflections.start = AsyncMock()
    with patch("notetoself.bot.handlers.get_orchestrator", side_effect=[chat, reflections]):
        await handle_start(mock_update, mock_context)

    chat.start.assert_awaited_once()
    reflections.start.assert_awaited_once()
    mock_update.message.reply_text.assert_awaited_once()
