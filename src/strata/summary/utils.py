"""End-of-session hook: summarize the recorded conversation and save it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from strata.providers.base import ModelClient
from strata.summary.service import ConversationMessage, SessionSummaryService

logger = logging.getLogger(__name__)


@dataclass
class Conversation:
    session_id: str
    messages: list[ConversationMessage] = field(default_factory=list)
    summary: str | None = None


class ChatRecorder(Protocol):
    """The chat-history store, as seen by the summary hook."""

    def get_conversation(self) -> Conversation | None: ...

    def save_summary(self, summary: str) -> None: ...


async def generate_and_save_summary(
    recorder: ChatRecorder | None,
    client: ModelClient,
    *,
    max_messages: int | None = None,
    timeout: float | None = None,
) -> None:
    """Best-effort: never raises, logs what happened."""
    try:
        if recorder is None:
            logger.debug("[SessionSummary] No chat recorder available")
            return

        conversation = recorder.get_conversation()
        if conversation is None:
            logger.debug("[SessionSummary] No conversation to summarize")
            return
        if conversation.summary:
            logger.debug("[SessionSummary] Summary already exists, skipping")
            return
        if not conversation.messages:
            logger.debug("[SessionSummary] No messages to summarize")
            return

        kwargs: dict = {}
        if max_messages is not None:
            kwargs["max_messages"] = max_messages
        if timeout is not None:
            kwargs["timeout"] = timeout
        summary = await SessionSummaryService(client).generate_summary(
            conversation.messages, **kwargs
        )

        if summary:
            recorder.save_summary(summary)
            logger.debug('[SessionSummary] Saved summary: "%s"', summary)
        else:
            logger.warning("[SessionSummary] Failed to generate summary")
    except Exception as e:
        logger.warning("[SessionSummary] Error in generate_and_save_summary: %s", e)
