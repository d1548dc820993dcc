"""The two conversation surfaces and their process-wide orchestrators."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from notetoself.config import settings
from notetoself.llm.prompt import CHAT_PROMPT, REFLECTIONS_PROMPT

if TYPE_CHECKING:
    from collections.abc import Callable

    from notetoself.chat.orchestrator import MessageCallback, Orchestrator

logger = logging.getLogger(__name__)

CHAT = "chat"
REFLECTIONS = "reflections"


@dataclass(frozen=True)
class SurfaceConfig:
    """Per-surface policy for an orchestrator.

    Attributes:
        name: Record type for the surface's messages and state keys.
        role_prompt: Surface-specific system prompt section.
        daily_limit: Sends per calendar day; 0 means no quota.
        attach_recent_entries: Append the latest entries to user messages
            that mention the journal.
    """

    name: str
    role_prompt: str
    daily_limit: int = 0
    attach_recent_entries: bool = False


def chat_surface() -> SurfaceConfig:
    return SurfaceConfig(
        name=CHAT,
        role_prompt=CHAT_PROMPT,
        daily_limit=settings.chat_daily_limit,
        attach_recent_entries=True,
    )


def reflections_surface() -> SurfaceConfig:
    return SurfaceConfig(
        name=REFLECTIONS,
        role_prompt=REFLECTIONS_PROMPT,
        daily_limit=settings.reflections_daily_limit,
    )


_SURFACES: dict[str, Callable[[], SurfaceConfig]] = {
    CHAT: chat_surface,
    REFLECTIONS: reflections_surface,
}


def build_orchestrator(
    config: SurfaceConfig, on_message: MessageCallback | None = None
) -> Orchestrator:
    """Wire an orchestrator to the shared stores and entitlement manager."""
    from notetoself.chat.orchestrator import Orchestrator
    from notetoself.chat.quota import QuotaGate
    from notetoself.chat.store import MessageStore, StateStore
    from notetoself.journal.retrieval import RetrievalAgent
    from notetoself.journal.store import EntryStore
    from notetoself.subscription import SubscriptionManager

    state = StateStore.get()
    quota = None
    if config.daily_limit > 0:
        quota = QuotaGate(config.name, config.daily_limit, state, SubscriptionManager.get())

    return Orchestrator(
        config,
        message_store=MessageStore.get(),
        state_store=state,
        retrieval=RetrievalAgent(EntryStore.get()),
        quota=quota,
        on_message=on_message,
    )


# Global orchestrators keyed by surface name
_orchestrators: dict[str, Orchestrator] = {}


def get_orchestrator(surface: str) -> Orchestrator:
    """Get or create the orchestrator for a surface."""
    if surface not in _orchestrators:
        if surface not in _SURFACES:
            raise KeyError(f"Unknown surface: {surface}")
        _orchestrators[surface] = build_orchestrator(_SURFACES[surface]())
        logger.info("Created %s orchestrator", surface)
    return _orchestrators[surface]


def _reset() -> None:
    """Drop all orchestrators (for testing)."""
    _orchestrators.clear()
