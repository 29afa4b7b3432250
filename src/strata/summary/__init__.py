"""Session summaries: one model call at the end of a session."""

from strata.summary.service import ConversationMessage, SessionSummaryService
from strata.summary.utils import ChatRecorder, Conversation, generate_and_save_summary

__all__ = [
    "ChatRecorder",
    "Conversation",
    "ConversationMessage",
    "SessionSummaryService",
    "generate_and_save_summary",
]
