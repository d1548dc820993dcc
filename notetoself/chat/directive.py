"""Parse model replies into plain text or a retrieval directive.

The model asks for journal data by embedding a JSON object in its reply::

    Let me look that up. {"action": "retrieve", "query": "lately"}

The object is taken from the first ``{`` to the last ``}``.  Anything that
does not parse into exactly that shape is ordinary text, braces included.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

RETRIEVE_ACTION = "retrieve"


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class RetrievalDirective:
    query: str
    raw: str = ""


ParsedReply = PlainText | RetrievalDirective


def parse_reply(text: str) -> ParsedReply:
    """Classify a model reply. Never raises."""
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        return PlainText(text)

    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return PlainText(text)

    if not isinstance(data, dict):
        return PlainText(text)

    action = data.get("action")
    query = data.get("query")
    if not isinstance(action, str) or action.lower() != RETRIEVE_ACTION:
        return PlainText(text)
    if not isinstance(query, str) or not query.strip():
        return PlainText(text)

    logger.debug("Found retrieval directive: %s", query[:80])
    return RetrievalDirective(query=query.strip(), raw=text)
