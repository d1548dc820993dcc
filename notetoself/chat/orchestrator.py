"""Conversation orchestrator: message log, model turns and journal hand-off.

One instance drives one surface.  A user turn persists the user message,
asks the model for a reply built from the whole session, and either shows
the reply or, when the reply carries a retrieval directive, shows a short
placeholder, fetches a journal digest and asks the model again with the
digest attached.  The hand-off happens at most once per turn.

Each turn carries its own :class:`CancellationToken`.  ``stop()`` cancels
the current token; every resumption point checks it, so a reply that
arrives after a stop (or after ``clear()``) is dropped without touching a
newer turn.
"""

from __future__ import annotations

import asyncio
import logging
import zoneinfo
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import TYPE_CHECKING

from notetoself.chat.directive import RetrievalDirective, parse_reply
from notetoself.chat.models import AppendResult, ConversationMessage, Role
from notetoself.chat.session import SessionAnchor, SessionContext
from notetoself.config import settings
from notetoself.db import StoreError
from notetoself.llm.client import ModelError, complete_text
from notetoself.llm.prompt import build_system_prompt

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from notetoself.chat.quota import QuotaGate
    from notetoself.chat.store import MessageStore, StateStore
    from notetoself.chat.surfaces import SurfaceConfig
    from notetoself.journal.retrieval import RetrievalAgent

    CompleteFn = Callable[[str, str], Awaitable[str]]
    MessageCallback = Callable[[ConversationMessage], Awaitable[None]]

logger = logging.getLogger(__name__)

CONFIRMATION_MESSAGE = "Please hold on a moment while I retrieve your data."
OPENING_SENTINEL = "init"
HANDOFF_LIMIT_REPLY = (
    "I couldn't pull anything more from your journal just now. "
    "What would you like to talk about?"
)
DIGEST_PREAMBLE = "System: The user also has these journal entries:"
RECENT_ENTRIES_HEADER = "[User's recent journal entries]"
JOURNAL_KEYWORDS = ("journal entries", "my journal")


class ConversationState(StrEnum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"
    AWAITING_RETRIEVAL = "awaiting_retrieval"
    STOPPING = "stopping"


class TurnOutcome(StrEnum):
    REPLIED = "replied"
    RETRIEVED = "retrieved"
    CANCELLED = "cancelled"
    FAILED = "failed"
    BUSY = "busy"
    QUOTA_EXCEEDED = "quota_exceeded"
    EMPTY = "empty"


class CancellationToken:
    """Cooperative cancellation for one turn. Does not abort in-flight calls."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def utc_now() -> datetime:
    return datetime.now(UTC)


def mentions_journal(text: str) -> bool:
    normalized = text.lower()
    return any(k in normalized for k in JOURNAL_KEYWORDS)


class Orchestrator:
    """Owns one surface's session log and drives its model turns."""

    def __init__(
        self,
        surface: SurfaceConfig,
        *,
        message_store: MessageStore,
        state_store: StateStore,
        retrieval: RetrievalAgent,
        quota: QuotaGate | None = None,
        complete: CompleteFn | None = None,
        clock: Callable[[], datetime] | None = None,
        on_message: MessageCallback | None = None,
        retrieval_delay: float | None = None,
        retrieval_timeout: float | None = None,
    ) -> None:
        self.surface = surface
        self.on_message = on_message
        self._store = message_store
        self._anchor = SessionAnchor(surface.name, state_store)
        self._retrieval = retrieval
        self._quota = quota
        self._complete = complete or complete_text
        self._clock = clock or utc_now
        self._retrieval_delay = (
            settings.retrieval_delay_seconds if retrieval_delay is None else retrieval_delay
        )
        self._retrieval_timeout = (
            settings.retrieval_timeout_seconds if retrieval_timeout is None else retrieval_timeout
        )

        self._log: list[ConversationMessage] = []
        self._session: SessionContext | None = None
        self._system_prompt = ""
        self._state = ConversationState.IDLE
        self._typing = False
        self._turn: CancellationToken | None = None
        self._last_timestamp: datetime | None = None
        self._opening: asyncio.Task[None] | None = None
        self.last_append: AppendResult | None = None

    # -- Read-only view for the presentation layer -----------------------------

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        return tuple(self._log)

    @property
    def state(self) -> ConversationState:
        return self._state

    @property
    def is_typing(self) -> bool:
        return self._typing

    @property
    def is_busy(self) -> bool:
        """True while a turn is outstanding and has not been stopped."""
        return self._turn is not None and not self._turn.cancelled

    @property
    def session(self) -> SessionContext | None:
        return self._session

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    # -- Lifecycle -------------------------------------------------------------

    async def start(self) -> None:
        """Load the current session and greet the user if it is empty.

        Concurrent callers share one opening; calls after it finished return
        immediately.
        """
        if self._opening is None:
            self._opening = asyncio.create_task(self._open())
        await asyncio.shield(self._opening)

    async def _open(self) -> None:
        now = self._clock()
        try:
            self._session = await self._anchor.load(now)
        except StoreError:
            logger.exception("Could not load %s session anchor", self.surface.name)
            self._session = SessionContext(surface=self.surface.name, start=now)
        self._system_prompt = self._build_prompt()

        await self._load_messages()
        logger.info("Loaded %d %s messages", len(self._log), self.surface.name)
        if not self._log:
            await self._open_session()

    async def send(self, text: str) -> TurnOutcome:
        """Run one user turn to completion (including any journal hand-off)."""
        text = text.strip()
        if not text:
            return TurnOutcome.EMPTY
        await self.start()
        if self.is_busy:
            logger.warning("Ignoring %s send while a reply is pending", self.surface.name)
            return TurnOutcome.BUSY

        token = self._begin_turn()
        if self._quota is not None and not await self._quota.can_send():
            logger.info("Daily limit reached on %s", self.surface.name)
            self._end_turn(token)
            return TurnOutcome.QUOTA_EXCEEDED

        logger.info("User message on %s: %s", self.surface.name, text[:80])
        content = text
        if self.surface.attach_recent_entries and mentions_journal(text):
            content = await self._attach_recent_entries(text)

        if self._turn is not token:
            # cleared while the message was being prepared
            return TurnOutcome.CANCELLED
        await self._append(Role.USER, content)
        if self._quota is not None:
            await self._quota.record_send()
        if token.cancelled:
            self._end_turn(token)
            return TurnOutcome.CANCELLED
        return await self._exchange(token)

    def stop(self) -> None:
        """Suppress the pending reply. The user's message stays saved."""
        logger.info("Stop requested on %s", self.surface.name)
        self._typing = False
        if self.is_busy:
            self._turn.cancel()
            self._state = ConversationState.STOPPING

    async def clear(self) -> None:
        """Delete the session's messages, start a new session and greet."""
        if self._opening is not None:
            await asyncio.shield(self._opening)
        logger.info("Clearing %s conversation", self.surface.name)
        if self._turn is not None:
            self._turn.cancel()
        self._turn = None
        self._typing = False
        self._state = ConversationState.IDLE

        if self._session is not None:
            try:
                await self._store.delete_since(self.surface.name, self._session.start)
            except StoreError:
                logger.exception("Could not delete %s messages", self.surface.name)

        now = self._next_timestamp()
        try:
            self._session = await self._anchor.reset(now)
        except StoreError:
            logger.exception("Could not persist %s session anchor", self.surface.name)
            self._session = SessionContext(surface=self.surface.name, start=now)
        self._system_prompt = self._build_prompt()
        self._log = []

        await self._load_messages()
        if not self._log:
            await self._open_session()

    # -- Turn machinery --------------------------------------------------------

    def _begin_turn(self) -> CancellationToken:
        token = CancellationToken()
        self._turn = token
        self._state = ConversationState.AWAITING_REPLY
        self._typing = True
        return token

    def _end_turn(self, token: CancellationToken) -> None:
        # A stale turn must not reset the state of a newer one.
        if self._turn is token:
            self._turn = None
            self._state = ConversationState.IDLE
            self._typing = False

    async def _open_session(self) -> TurnOutcome:
        logger.info("Opening %s session with a greeting", self.surface.name)
        token = self._begin_turn()
        return await self._exchange(token, user_input=OPENING_SENTINEL, allow_handoff=False)

    async def _exchange(
        self,
        token: CancellationToken,
        *,
        user_input: str | None = None,
        digest: str | None = None,
        allow_handoff: bool = True,
    ) -> TurnOutcome:
        """One model call and the handling of its reply."""
        prompt_input = user_input if user_input is not None else self.build_context(digest)
        try:
            reply = await self._complete(self._system_prompt, prompt_input)
        except ModelError as exc:
            logger.warning("Model call failed on %s: %s", self.surface.name, exc)
            self._end_turn(token)
            return TurnOutcome.CANCELLED if token.cancelled else TurnOutcome.FAILED

        if token.cancelled:
            logger.info("Discarding %s reply: stopped by user", self.surface.name)
            self._end_turn(token)
            return TurnOutcome.CANCELLED

        parsed = parse_reply(reply)
        if isinstance(parsed, RetrievalDirective):
            if not allow_handoff:
                logger.warning(
                    "Suppressing repeated retrieval directive on %s: %s",
                    self.surface.name,
                    parsed.query[:80],
                )
                await self._append(Role.ASSISTANT, HANDOFF_LIMIT_REPLY)
                self._end_turn(token)
                return TurnOutcome.REPLIED

            await self._append(Role.ASSISTANT, CONFIRMATION_MESSAGE)
            return await self._hand_off(token, parsed.query)

        await self._append(Role.ASSISTANT, parsed.text)
        self._end_turn(token)
        return TurnOutcome.REPLIED

    async def _hand_off(self, token: CancellationToken, query: str) -> TurnOutcome:
        if token.cancelled:
            self._end_turn(token)
            return TurnOutcome.CANCELLED

        logger.info("Handing off to journal retrieval on %s: %s", self.surface.name, query[:80])
        self._state = ConversationState.AWAITING_RETRIEVAL
        if self._retrieval_delay > 0:
            await asyncio.sleep(self._retrieval_delay)
        if token.cancelled:
            logger.info("Retrieval on %s stopped before it started", self.surface.name)
            self._end_turn(token)
            return TurnOutcome.CANCELLED

        try:
            digest = await asyncio.wait_for(
                self._retrieval.fetch_digest(query), timeout=self._retrieval_timeout
            )
        except (StoreError, TimeoutError):
            logger.exception("Journal retrieval failed on %s", self.surface.name)
            self._end_turn(token)
            return TurnOutcome.FAILED

        if token.cancelled:
            logger.info("Discarding %s digest: stopped by user", self.surface.name)
            self._end_turn(token)
            return TurnOutcome.CANCELLED

        self._state = ConversationState.AWAITING_REPLY
        outcome = await self._exchange(token, digest=digest, allow_handoff=False)
        return TurnOutcome.RETRIEVED if outcome is TurnOutcome.REPLIED else outcome

    # -- Context ---------------------------------------------------------------

    def build_context(self, digest: str | None = None) -> str:
        """Render the session as ``Role: content`` lines, plus an optional digest."""
        lines = [f"{m.label}: {m.content}" for m in self._log]
        if digest is not None:
            lines.append(f"{DIGEST_PREAMBLE}\n{digest}")
        return "\n".join(lines)

    def _build_prompt(self) -> str:
        today = self._clock().astimezone(zoneinfo.ZoneInfo(settings.timezone)).date()
        return build_system_prompt(self.surface.role_prompt, today)

    async def _attach_recent_entries(self, text: str) -> str:
        try:
            entries = await self._retrieval.latest_entries()
        except StoreError:
            logger.exception("Could not read recent entries for %s", self.surface.name)
            return text
        return f"{text}\n\n{RECENT_ENTRIES_HEADER}\n{entries}"

    # -- Message log -----------------------------------------------------------

    def _next_timestamp(self) -> datetime:
        """Current time, nudged forward so timestamps strictly increase."""
        now = self._clock()
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    async def _load_messages(self) -> None:
        try:
            self._log = await self._store.list_since(self.surface.name, self._session.start)
        except StoreError:
            logger.exception("Could not load %s messages", self.surface.name)
            self._log = []
        if self._log:
            newest = self._log[-1].timestamp
            if self._last_timestamp is None or newest > self._last_timestamp:
                self._last_timestamp = newest

    async def _append(self, role: Role, content: str) -> AppendResult:
        """Show a message immediately and persist it best-effort.

        A store failure is logged and the message stays in the visible log;
        the returned result records whether it was durably saved.
        """
        message = ConversationMessage(
            surface=self.surface.name,
            role=role,
            content=content,
            timestamp=self._next_timestamp(),
        )
        self._log.append(message)

        persisted = True
        try:
            await self._store.append(message)
        except StoreError:
            logger.exception("Failed to persist %s message on %s", role, self.surface.name)
            persisted = False

        result = AppendResult(message=message, persisted=persisted)
        self.last_append = result

        if role is Role.ASSISTANT and self.on_message is not None:
            try:
                await self.on_message(message)
            except Exception:
                logger.exception("Message callback failed on %s", self.surface.name)
        return result
