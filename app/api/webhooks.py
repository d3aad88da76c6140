import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.api.dependencies import get_conversation_deps, get_settings
from app.constants.event_types import (
    EVENT_WHATSAPP_INBOUND_RECEIVED,
    EVENT_WHATSAPP_MALFORMED_PAYLOAD,
    EVENT_WHATSAPP_MESSAGE,
    EVENT_WHATSAPP_SIGNATURE_VERIFICATION_FAILURE,
    EVENT_WHATSAPP_WEBHOOK_FAILURE,
)
from app.core.config import Settings
from app.middleware.correlation_id import correlation_scope, get_correlation_id
from app.schemas.whatsapp import WebhookPayload, parse_inbound_message
from app.services.conversation import ConversationDeps, handle_inbound_message
from app.services.messaging.whatsapp_verification import (
    verify_subscription,
    verify_whatsapp_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _wa_error_response(status_code: int, error: str, **content_extras) -> JSONResponse:
    """Build JSONResponse for WhatsApp webhook errors: {"received": False, "error": ...}."""
    content: dict = {"received": False, "error": error, **content_extras}
    return JSONResponse(status_code=status_code, content=content)


@router.get("/whatsapp")
def whatsapp_verify(
    hub_mode: str | None = Query(default=None, alias="hub.mode"),
    hub_verify_token: str | None = Query(default=None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(default=None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
):
    if verify_subscription(hub_mode, hub_verify_token, settings.whatsapp_verify_token):
        logger.info("WhatsApp webhook subscription verified")
        return Response(content=hub_challenge or "", media_type="text/plain")
    logger.warning(f"WhatsApp webhook verification failed (mode={hub_mode})")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/whatsapp")
async def whatsapp_inbound(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    deps: ConversationDeps = Depends(get_conversation_deps),
):
    correlation_id = get_correlation_id(request)
    logger.info(
        f"whatsapp.inbound_received correlation_id={correlation_id}",
        extra={
            "correlation_id": correlation_id,
            "event_type": EVENT_WHATSAPP_INBOUND_RECEIVED,
        },
    )

    raw_body = await request.body()
    signature_header = request.headers.get("X-Hub-Signature-256")
    if not verify_whatsapp_signature(raw_body, signature_header, settings.whatsapp_app_secret):
        logger.warning(
            "WhatsApp webhook signature verification failed - rejecting request",
            extra={
                "correlation_id": correlation_id,
                "event_type": EVENT_WHATSAPP_SIGNATURE_VERIFICATION_FAILURE,
            },
        )
        return _wa_error_response(403, "Invalid webhook signature")

    # Malformed payloads are acknowledged so Meta does not keep redelivering them
    try:
        payload = WebhookPayload.model_validate(json.loads(raw_body.decode("utf-8")))
    except (ValueError, ValidationError) as e:
        logger.warning(
            f"Malformed WhatsApp webhook payload: {e}",
            extra={
                "correlation_id": correlation_id,
                "event_type": EVENT_WHATSAPP_MALFORMED_PAYLOAD,
            },
        )
        return {"received": True, "type": "malformed-payload"}

    messages = payload.iter_messages()
    if not messages:
        # Delivery/read statuses and other non-message events
        return {"received": True, "type": "non-message-event"}

    background_tasks.add_task(process_messages, deps, messages, correlation_id)
    return {"received": True, "type": "messages", "count": len(messages)}


async def process_messages(
    deps: ConversationDeps,
    messages: list[dict],
    correlation_id: str | None = None,
) -> list[dict]:
    """
    Run each raw message through the bot, isolated from the others.

    A message that fails to parse or raises while handled is logged and skipped.
    """
    with correlation_scope(correlation_id):
        return await _process_each(deps, messages, correlation_id)


async def _process_each(deps: ConversationDeps, messages: list[dict], correlation_id: str | None) -> list[dict]:
    results = []
    for raw in messages:
        message_id = raw.get("id") if isinstance(raw, dict) else None
        try:
            message = parse_inbound_message(raw)
        except (ValidationError, AttributeError) as e:
            logger.warning(
                f"Skipping malformed WhatsApp message {message_id}: {e}",
                extra={
                    "correlation_id": correlation_id,
                    "event_type": EVENT_WHATSAPP_MALFORMED_PAYLOAD,
                },
            )
            continue

        try:
            logger.info(
                f"Processing WhatsApp {message.type} message {message.id} from {message.sender}",
                extra={"correlation_id": correlation_id, "event_type": EVENT_WHATSAPP_MESSAGE},
            )
            result = await handle_inbound_message(deps, message)
            results.append(result)
        except Exception as e:
            logger.error(
                f"Failed to process WhatsApp message {message.id} from {message.sender}: {e}",
                exc_info=True,
                extra={
                    "correlation_id": correlation_id,
                    "event_type": EVENT_WHATSAPP_WEBHOOK_FAILURE,
                },
            )
    return results
