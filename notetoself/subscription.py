"""Subscription entitlement — decides who bypasses the daily quota."""

from __future__ import annotations

import logging

from notetoself.config import settings

logger = logging.getLogger(__name__)


class SubscriptionManager:
    """Tracks whether the user holds a paid subscription.

    Store purchases are handled outside this service; the flag is seeded from
    ``SUBSCRIBED`` and can be flipped at runtime.  Singleton accessed via
    ``SubscriptionManager.get()``.
    """

    _instance: SubscriptionManager | None = None

    def __init__(self, subscribed: bool | None = None) -> None:
        self._subscribed = settings.subscribed if subscribed is None else subscribed

    @classmethod
    def get(cls) -> SubscriptionManager:
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        cls._instance = None

    def is_privileged(self) -> bool:
        return self._subscribed

    def subscribe(self) -> None:
        self._subscribed = True
        logger.info("User subscribed")

    def unsubscribe(self) -> None:
        self._subscribed = False
        logger.info("User unsubscribed")
