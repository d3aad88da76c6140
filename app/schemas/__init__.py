"""
Pydantic schemas for API request/response validation.
"""

from app.schemas.admin import (
    DemoConversationRequest,
    LeadActionResponse,
    LeadDetailResponse,
    LeadListResponse,
)
from app.schemas.whatsapp import (
    ImageMessage,
    InboundMessage,
    InteractiveMessage,
    TextMessage,
    UnsupportedMessage,
    WebhookPayload,
    parse_inbound_message,
)

__all__ = [
    "DemoConversationRequest",
    "LeadActionResponse",
    "LeadDetailResponse",
    "LeadListResponse",
    "ImageMessage",
    "InboundMessage",
    "InteractiveMessage",
    "TextMessage",
    "UnsupportedMessage",
    "WebhookPayload",
    "parse_inbound_message",
]
