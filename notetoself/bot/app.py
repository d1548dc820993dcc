"""Telegram application factory."""

from __future__ import annotations

import logging

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from notetoself.bot.handlers import (
    handle_clear,
    handle_message,
    handle_note,
    handle_reflect,
    handle_start,
    handle_status,
    handle_stop,
)
from notetoself.config import settings

logger = logging.getLogger(__name__)


def create_app() -> Application:
    """Build and configure the Telegram application.

    Updates are processed concurrently so that ``/stop`` reaches an
    orchestrator while its reply is still pending.
    """
    app = Application.builder().token(settings.telegram_bot_token).concurrent_updates(True).build()

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CommandHandler("reflect", handle_reflect))
    app.add_handler(CommandHandler("stop", handle_stop))
    app.add_handler(CommandHandler("clear", handle_clear))
    app.add_handler(CommandHandler("note", handle_note))
    app.add_handler(CommandHandler("status", handle_status))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))

    return app
