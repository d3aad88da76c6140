# Messaging: WhatsApp Cloud API client, webhook verification, copy composer
# Re-export so "from app.services.messaging import ..." works for callers.

from app.services.messaging.message_composer import MessageComposer
from app.services.messaging.whatsapp_client import WhatsAppClient, WhatsAppSendError
from app.services.messaging.whatsapp_verification import (
    compute_signature,
    verify_subscription,
    verify_whatsapp_signature,
)

__all__ = [
    "MessageComposer",
    "WhatsAppClient",
    "WhatsAppSendError",
    "compute_signature",
    "verify_subscription",
    "verify_whatsapp_signature",
]
