"""
Conversation flow: dispatcher, qualifying, booking, question plan.

Re-exports for stable public API: from app.services.conversation import handle_inbound_message, ConversationDeps, etc.
"""

from app.services.conversation.conversation import (
    go_back_one_step,
    handle_image_message,
    handle_inbound_message,
    handle_interactive_message,
    handle_navigation_command,
    handle_text_message,
    handle_unsupported_message,
)
from app.services.conversation.conversation_deps import ConversationDeps, Exporter, Messenger
from app.services.conversation.questions import QUESTION_PLAN, FieldDescriptor

from . import conversation_booking, conversation_qualifying

__all__ = [
    "QUESTION_PLAN",
    "ConversationDeps",
    "Exporter",
    "FieldDescriptor",
    "Messenger",
    "conversation_booking",
    "conversation_qualifying",
    "go_back_one_step",
    "handle_image_message",
    "handle_inbound_message",
    "handle_interactive_message",
    "handle_navigation_command",
    "handle_text_message",
    "handle_unsupported_message",
]
