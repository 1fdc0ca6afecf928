"""Conversation client for the relay.

Keeps the transcript and pending attachments, builds relay requests and
tracks the single in-flight send. Used by the NiceGUI page.
"""

from src.client.conversation import (
    ATTACHMENT_ONLY_PROMPT,
    ConversationBusyError,
    ConversationManager,
    SendState,
    TurnResult,
    classify_relay_error,
)

__all__ = [
    "ATTACHMENT_ONLY_PROMPT",
    "ConversationBusyError",
    "ConversationManager",
    "SendState",
    "TurnResult",
    "classify_relay_error",
]
