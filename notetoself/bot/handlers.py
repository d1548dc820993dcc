"""Telegram handlers: the presentation layer over the two conversation surfaces.

Plain text goes to the everyday chat; ``/reflect`` talks to the reflections
surface.  Assistant messages (greetings, the retrieval placeholder and
final replies) are pushed to the chat through each orchestrator's
``on_message`` callback as soon as they are created.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from telegram.constants import ChatAction

from notetoself.chat.orchestrator import TurnOutcome
from notetoself.chat.surfaces import CHAT, REFLECTIONS, get_orchestrator
from notetoself.config import settings
from notetoself.db import StoreError
from notetoself.journal.models import JournalEntry
from notetoself.journal.store import EntryStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from telegram import Bot, Update
    from telegram.ext import ContextTypes

    from notetoself.chat.models import ConversationMessage
    from notetoself.chat.orchestrator import Orchestrator

    Handler = Callable[[Update, ContextTypes.DEFAULT_TYPE], Awaitable[None]]

logger = logging.getLogger(__name__)

LIMIT_REACHED_TEXT = (
    "Daily Limit Reached\n\n"
    "You have reached the free daily limit for sending reflections. "
    "Please upgrade or come back tomorrow."
)
BUSY_TEXT = "Still working on your last message. Send /stop to cancel it."
FAILED_TEXT = "Something went wrong. Try sending that again."
REFLECT_USAGE = "Usage: /reflect <message>, e.g. /reflect how have I been lately?"
NOTE_USAGE = "Usage: /note <mood>: <text>, e.g. /note calm: long walk by the river"


def authorized(handler: Handler) -> Handler:
    """Silently drop updates from users outside ALLOWED_USER_IDS."""

    @functools.wraps(handler)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        allowed = settings.get_allowed_user_ids()
        if user is None or user.id not in allowed:
            if not allowed:
                logger.warning("ALLOWED_USER_IDS is empty, rejecting every update")
            return
        await handler(update, context)

    return wrapper


def _bind(orchestrator: Orchestrator, bot: Bot, chat_id: int) -> Orchestrator:
    """Route the orchestrator's assistant messages to this Telegram chat."""

    async def deliver(message: ConversationMessage) -> None:
        await bot.send_message(chat_id=chat_id, text=message.content)

    orchestrator.on_message = deliver
    return orchestrator


async def _run_turn(
    update: Update, context: ContextTypes.DEFAULT_TYPE, surface: str, text: str
) -> None:
    chat_id = update.effective_chat.id
    orchestrator = _bind(get_orchestrator(surface), context.bot, chat_id)

    await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
    outcome = await orchestrator.send(text)
    logger.info("%s turn finished: %s", surface, outcome)

    if outcome is TurnOutcome.QUOTA_EXCEEDED:
        await update.message.reply_text(LIMIT_REACHED_TEXT)
    elif outcome is TurnOutcome.BUSY:
        await update.message.reply_text(BUSY_TEXT)
    elif outcome is TurnOutcome.FAILED:
        await update.message.reply_text(FAILED_TEXT)


@authorized
async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — greet and open both sessions."""
    await update.message.reply_text(
        "Hi! I'm Note to Self. Write to me any time, jot entries with /note, "
        "and use /reflect to look back on your journal."
    )
    chat_id = update.effective_chat.id
    for surface in (CHAT, REFLECTIONS):
        await _bind(get_orchestrator(surface), context.bot, chat_id).start()


@authorized
async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle plain text — the everyday chat surface."""
    text = update.message.text or ""
    logger.info("Message from %s: %s", update.effective_chat.id, text[:80])
    await _run_turn(update, context, CHAT, text)


@authorized
async def handle_reflect(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reflect <text> — the reflections surface."""
    text = " ".join(context.args or [])
    if not text.strip():
        await update.message.reply_text(REFLECT_USAGE)
        return
    await _run_turn(update, context, REFLECTIONS, text)


@authorized
async def handle_stop(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /stop — drop whatever reply is pending on either surface."""
    stopped = False
    for surface in (CHAT, REFLECTIONS):
        orchestrator = get_orchestrator(surface)
        if orchestrator.is_busy:
            stopped = True
        orchestrator.stop()
    await update.message.reply_text("Stopped." if stopped else "Nothing to stop.")


@authorized
async def handle_clear(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /clear [reflect] — start a fresh conversation."""
    args = [a.lower() for a in (context.args or [])]
    surface = REFLECTIONS if args and args[0].startswith("reflect") else CHAT
    orchestrator = _bind(get_orchestrator(surface), context.bot, update.effective_chat.id)

    count = len(orchestrator.messages)
    await update.message.reply_text(f"Cleared {count} messages. Starting fresh.")
    await orchestrator.clear()


@authorized
async def handle_note(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /note <mood>: <text> — add a journal entry."""
    raw = " ".join(context.args or []).strip()
    mood, sep, text = raw.partition(":")
    if not sep:
        mood, text = "", raw
    mood, text = mood.strip(), text.strip()
    if not text:
        await update.message.reply_text(NOTE_USAGE)
        return

    try:
        await EntryStore.get().add(JournalEntry.now(mood=mood or None, text=text))
    except StoreError:
        logger.exception("Failed to save journal entry")
        await update.message.reply_text("Couldn't save that entry. Try again?")
        return
    await update.message.reply_text("Saved to your journal.")


@authorized
async def handle_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /status — show both surfaces' state."""
    lines = ["**Note to Self Status**"]
    for surface in (CHAT, REFLECTIONS):
        orchestrator = get_orchestrator(surface)
        lines.append(
            f"{surface}: {orchestrator.state}, {len(orchestrator.messages)} messages"
        )
    await update.message.reply_text("\n".join(lines), parse_mode="Markdown")
