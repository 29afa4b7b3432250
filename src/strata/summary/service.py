"""One-line session summaries from a bounded window of the conversation.

The window keeps the opening and the closing of long conversations and drops
the middle. The model call is best-effort: timeouts and errors yield None.
"""

from __future__ import annotations

import asyncio
import logging
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from strata.providers.base import GenerationAborted, ModelClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 20
DEFAULT_TIMEOUT = 5.0  # seconds
MAX_MESSAGE_LENGTH = 500
DIALOG_ROLES = ("user", "assistant")

SUMMARY_PROMPT_TEMPLATE = """\
Summarize the user's primary intent or goal in this conversation in ONE sentence (max 80 characters).
Focus on what the user was trying to accomplish.

Examples:
- "Add dark mode to the app"
- "Fix authentication bug in login flow"
- "Understand how the API routing works"
- "Refactor database connection logic"
- "Debug memory leak in production"

Conversation:
{conversation}

Summary (max 80 chars):"""

_QUOTE_RE = re.compile(r"^[\"']|[\"']$")


@dataclass
class ConversationMessage:
    """One recorded message. ``content`` is a string or a list of parts."""

    role: str
    content: str | list[Any] = ""
    timestamp: datetime | None = None

    @property
    def text(self) -> str:
        """Plain text of the message; non-text parts are ignored."""
        if isinstance(self.content, str):
            return self.content
        if not isinstance(self.content, (list, tuple)):
            return ""
        pieces: list[str] = []
        for part in self.content:
            if isinstance(part, str):
                pieces.append(part)
            elif isinstance(part, Mapping) and isinstance(part.get("text"), str):
                pieces.append(part["text"])
        return "".join(pieces)


def select_window(items: Sequence, max_messages: int) -> list:
    """Keep the first ceil(n/2) and last floor(n/2) items when over the limit."""
    if len(items) <= max_messages:
        return list(items)
    first = math.ceil(max_messages / 2)
    last = max_messages // 2
    return list(items[:first]) + (list(items[-last:]) if last else [])


def build_transcript(messages: Sequence[ConversationMessage]) -> str:
    lines = []
    for msg in messages:
        role = "User" if msg.role == "user" else "Assistant"
        text = msg.text
        if len(text) > MAX_MESSAGE_LENGTH:
            text = text[:MAX_MESSAGE_LENGTH] + "..."
        lines.append(f"{role}: {text}")
    return "\n\n".join(lines)


def clean_summary(raw: str) -> str:
    """Collapse whitespace and strip one surrounding quote on each side."""
    collapsed = re.sub(r"\s+", " ", raw).strip()
    return _QUOTE_RE.sub("", collapsed)


class SessionSummaryService:
    """Generates a short summary of a finished conversation."""

    def __init__(self, client: ModelClient, *, logger: logging.Logger = logger) -> None:
        self._client = client
        self._log = logger

    async def generate_summary(
        self,
        messages: Sequence[ConversationMessage],
        max_messages: int = DEFAULT_MAX_MESSAGES,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> str | None:
        try:
            dialog = [m for m in messages if m.role in DIALOG_ROLES and m.text.strip()]
            window = select_window(dialog, max_messages)
            prompt = SUMMARY_PROMPT_TEMPLATE.format(conversation=build_transcript(window))
        except Exception as e:
            self._log.debug("[SessionSummary] Could not read conversation: %s", e)
            return None
        if not dialog:
            self._log.debug("[SessionSummary] No messages to summarize")
            return None

        abort_signal = asyncio.Event()
        timer = asyncio.get_running_loop().call_later(timeout, abort_signal.set)
        try:
            raw = await asyncio.wait_for(
                self._client.generate_content(prompt, abort_signal=abort_signal),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, GenerationAborted):
            self._log.debug("[SessionSummary] Timeout generating summary")
            return None
        except Exception as e:
            self._log.debug("[SessionSummary] Error generating summary: %s", e)
            return None
        finally:
            timer.cancel()

        if not raw or not raw.strip():
            self._log.debug("[SessionSummary] Empty summary returned")
            return None

        summary = clean_summary(raw)
        if not summary:
            return None
        self._log.debug('[SessionSummary] Generated: "%s"', summary)
        return summary
