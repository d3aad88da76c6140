"""
Demo endpoints for local testing and demonstrations.

These endpoints are only available when DEMO_MODE=true.
In production (DEMO_MODE=false), all endpoints return 404.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from app.api.dependencies import get_conversation_deps, get_settings
from app.core.config import Settings
from app.schemas.admin import DemoConversationRequest
from app.schemas.whatsapp import TextMessage
from app.services.conversation import ConversationDeps, handle_inbound_message
from app.utils.datetime_utils import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()


def require_demo_mode(settings: Settings = Depends(get_settings)):
    """
    Dependency that enforces DEMO_MODE must be enabled.

    Raises:
        HTTPException: 404 if DEMO_MODE is False
    """
    if not settings.demo_mode:
        raise HTTPException(status_code=404, detail="Not found")


@router.post("/conversation")
async def demo_conversation(
    request: DemoConversationRequest,
    deps: ConversationDeps = Depends(get_conversation_deps),
    _demo_mode: None = Depends(require_demo_mode),
):
    """
    Run a text message through the same handler the WhatsApp webhook uses.

    Returns the handler result and the conversation state afterwards.
    """
    phone = request.phone.replace("+", "").replace(" ", "").strip()
    if not phone:
        raise HTTPException(status_code=400, detail="phone is required")

    now = utc_now()
    message = TextMessage.model_validate(
        {
            "from": phone,
            "id": f"demo-{phone}-{now.timestamp():.0f}",
            "timestamp": str(int(now.timestamp())),
            "type": "text",
            "text": {"body": request.message},
        }
    )
    result = await handle_inbound_message(deps, message)
    logger.info(f"Demo message from {phone} handled: {result.get('status')}")

    state = deps.store.get(phone)
    return {
        "result": result,
        "state": state.to_dict() if state else None,
    }
