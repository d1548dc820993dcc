"""Async Claude API client for single-shot completions."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import anthropic

from notetoself.config import settings

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


class ModelError(Exception):
    """The language model call failed: transport, auth, timeout or bad response."""


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


async def complete_text(
    system: str,
    user_input: str,
    *,
    model: str | None = None,
    max_tokens: int | None = None,
) -> str:
    """Single-shot Claude call: one system prompt, one user input, text out.

    No retries; any failure surfaces immediately as :class:`ModelError`,
    including a call that outlives ``model_timeout_seconds``.
    """
    client = _get_client()
    kwargs: dict[str, Any] = {
        "model": model or settings.claude_model,
        "max_tokens": max_tokens or settings.model_max_tokens,
        "system": system,
        "messages": [{"role": "user", "content": user_input}],
    }
    try:
        response = await asyncio.wait_for(
            client.messages.create(**kwargs),
            timeout=settings.model_timeout_seconds,
        )
    except TimeoutError as exc:
        raise ModelError(
            f"Model call timed out after {settings.model_timeout_seconds:.0f}s"
        ) from exc
    except anthropic.APIError as exc:
        raise ModelError(f"Model call failed: {exc}") from exc

    if not response.content:
        raise ModelError("Model returned no content")
    text = getattr(response.content[0], "text", None)
    if not isinstance(text, str) or not text.strip():
        raise ModelError("Model returned an empty response")
    return text
