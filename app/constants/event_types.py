"""
Event type constants for structured log records (logger extra={"event_type": ...}).

Use these instead of string literals to ensure consistency.
"""

# ---- WhatsApp ----
EVENT_WHATSAPP_INBOUND_RECEIVED = "whatsapp.inbound_received"
EVENT_WHATSAPP_SIGNATURE_VERIFICATION_FAILURE = "whatsapp.signature_verification_failure"
EVENT_WHATSAPP_MALFORMED_PAYLOAD = "whatsapp.malformed_payload"
EVENT_WHATSAPP_MESSAGE = "whatsapp.message"
EVENT_WHATSAPP_WEBHOOK_FAILURE = "whatsapp.webhook_failure"
EVENT_WHATSAPP_SEND_RETRY = "whatsapp.send_retry"
EVENT_WHATSAPP_SEND_FAILURE = "whatsapp.send_failure"

# ---- Conversation ----
EVENT_CONVERSATION_STEP_CHANGED = "conversation.step_changed"
EVENT_CONVERSATION_UNKNOWN_OPTION = "conversation.unknown_option"
EVENT_LEAD_CONFIRMED = "lead.confirmed"

# ---- Sheets ----
EVENT_SHEETS_EXPORT_FAILURE = "sheets.export_failure"

# ---- Housekeeping ----
EVENT_CONVERSATIONS_EXPIRED = "conversations.expired"
