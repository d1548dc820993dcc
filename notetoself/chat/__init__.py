"""Conversation core — message log, session anchors, quota and orchestration."""

from notetoself.chat.directive import PlainText, RetrievalDirective, parse_reply
from notetoself.chat.models import AppendResult, ConversationMessage, Role
from notetoself.chat.orchestrator import (
    CancellationToken,
    ConversationState,
    Orchestrator,
    TurnOutcome,
)
from notetoself.chat.quota import QuotaGate
from notetoself.chat.session import SessionAnchor, SessionContext
from notetoself.chat.store import MessageStore, StateStore
from notetoself.chat.surfaces import SurfaceConfig, get_orchestrator

__all__ = [
    "AppendResult",
    "CancellationToken",
    "ConversationMessage",
    "ConversationState",
    "MessageStore",
    "Orchestrator",
    "PlainText",
    "QuotaGate",
    "RetrievalDirective",
    "Role",
    "SessionAnchor",
    "SessionContext",
    "StateStore",
    "SurfaceConfig",
    "TurnOutcome",
    "get_orchestrator",
    "parse_reply",
]
