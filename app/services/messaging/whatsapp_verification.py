"""
WhatsApp webhook verification: subscription handshake and payload signatures.

Meta signs deliveries with HMAC-SHA256 of the raw body in the
X-Hub-Signature-256 header ("sha256=<hex_digest>").
"""

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SUBSCRIBE_MODE = "subscribe"
SIGNATURE_PREFIX = "sha256="


def verify_subscription(mode: str | None, token: str | None, expected_token: str) -> bool:
    """
    True iff the GET handshake asks to subscribe with the configured verify token.

    Args:
        mode: hub.mode query value
        token: hub.verify_token query value
        expected_token: WHATSAPP_VERIFY_TOKEN
    """
    if mode != SUBSCRIBE_MODE or not token or not expected_token:
        return False
    return hmac.compare_digest(token, expected_token)


def compute_signature(payload: bytes, app_secret: str) -> str:
    """Header value Meta would send for payload ("sha256=...")."""
    digest = hmac.new(app_secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def verify_whatsapp_signature(
    payload: bytes,
    signature_header: str | None,
    app_secret: str | None,
) -> bool:
    """
    Verify WhatsApp webhook signature using HMAC-SHA256.

    Args:
        payload: Raw request body (bytes)
        signature_header: X-Hub-Signature-256 header value (e.g., "sha256=abc123...")
        app_secret: WHATSAPP_APP_SECRET; when unset verification is skipped

    Returns:
        True if signature is valid (or verification is disabled), False otherwise
    """
    if not app_secret:
        logger.warning(
            "WhatsApp app secret not configured - skipping signature verification. "
            "Set WHATSAPP_APP_SECRET in production."
        )
        return True

    if not signature_header:
        logger.warning("Missing X-Hub-Signature-256 header in WhatsApp webhook")
        return False

    if not signature_header.startswith(SIGNATURE_PREFIX):
        logger.warning(f"Invalid signature header format: {signature_header}")
        return False

    # Constant-time comparison
    is_valid = hmac.compare_digest(signature_header, compute_signature(payload, app_secret))

    if not is_valid:
        logger.warning("Invalid WhatsApp webhook signature - request rejected.")

    return is_valid
