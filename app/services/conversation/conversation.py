"""
Inbound message dispatcher - loads state, handles navigation, routes by step.

Qualifying handlers live in conversation_qualifying, booking handlers in
conversation_booking. Every handler returns a dict with at least "status" and
"current_step".
"""

import logging

from app.constants.event_types import EVENT_CONVERSATION_UNKNOWN_OPTION
from app.constants.steps import (
    SERVICE_OPTION_IDS,
    STEP_COLLECTING_CONTACT,
    STEP_COLLECTING_INFO,
    STEP_CONFIRMING_DATA,
    STEP_SCHEDULING,
    STEP_SHOWING_PRICING,
    STEP_WELCOME,
)
from app.schemas.whatsapp import ImageMessage, InboundMessage, InteractiveMessage, TextMessage
from app.services.conversation.conversation_booking import (
    handle_already_confirmed,
    handle_collecting_contact,
    handle_human_handoff,
    handle_scheduling,
    handle_showing_pricing,
    record_contact_answer,
    start_contact_collection,
)
from app.services.conversation.conversation_deps import ConversationDeps
from app.services.conversation.conversation_qualifying import (
    ask_field,
    handle_collecting_info,
    handle_confirming_data,
    handle_welcome,
    record_info_answer,
    select_service_type,
    send_welcome,
    start_edit,
)
from app.services.conversation.questions import (
    BUTTON_ANSWERS,
    PHASE_INFO,
    espacios_from_list_id,
    get_field,
    next_field,
    previous_answered_field,
)
from app.services.conversation_policy import (
    NAV_BACK,
    NAV_HUMAN,
    NAV_MENU,
    NAV_RESET,
    get_navigation_command,
)
from app.services.state_machine import transition
from app.services.state_store import ConversationState

logger = logging.getLogger(__name__)

STEP_HANDLERS = {
    STEP_WELCOME: handle_welcome,
    STEP_COLLECTING_INFO: handle_collecting_info,
    STEP_CONFIRMING_DATA: handle_confirming_data,
    STEP_SHOWING_PRICING: handle_showing_pricing,
    STEP_COLLECTING_CONTACT: handle_collecting_contact,
    STEP_SCHEDULING: handle_scheduling,
}

# Navigation still honored once a lead is confirmed
CONFIRMED_NAVIGATION = (NAV_RESET, NAV_HUMAN)


async def handle_inbound_message(deps: ConversationDeps, message: InboundMessage) -> dict:
    """
    Handle one inbound WhatsApp message.

    Args:
        deps: Store, messenger, exporter, composer and settings
        message: Parsed inbound message (text, interactive, image or unsupported)

    Returns:
        dict with status, message sent and current step
    """
    try:
        await deps.messenger.mark_as_read(message.id)
    except Exception as e:
        logger.warning(f"Failed to mark message {message.id} as read: {e}")

    state = deps.store.get_or_create(message.sender)

    if isinstance(message, TextMessage):
        return await handle_text_message(deps, state, message.text.body)
    if isinstance(message, InteractiveMessage):
        reply = message.interactive.reply
        return await handle_interactive_message(deps, state, reply.id if reply else "")
    if isinstance(message, ImageMessage):
        return await handle_image_message(deps, state, message.image.id)
    return await handle_unsupported_message(deps, state, message.type)


async def handle_text_message(deps: ConversationDeps, state: ConversationState, text: str) -> dict:
    """Navigation first, then the handler for the current step."""
    command = get_navigation_command(text)

    if state.confirmed:
        if command in CONFIRMED_NAVIGATION:
            return await handle_navigation_command(deps, state, command)
        return await handle_already_confirmed(deps, state)

    if command is not None:
        return await handle_navigation_command(deps, state, command)

    handler = STEP_HANDLERS[state.current_step]
    return await handler(deps, state, text)


async def handle_navigation_command(deps: ConversationDeps, state: ConversationState, command: str) -> dict:
    phone = state.user_phone
    logger.info(f"Conversation {phone}: navigation '{command}' at step {state.current_step}")

    if command == NAV_RESET:
        fresh = deps.store.reset(phone)
        return await send_welcome(deps, fresh)
    if command == NAV_MENU:
        return await send_welcome(deps, state)
    if command == NAV_HUMAN:
        return await handle_human_handoff(deps, state)
    if command == NAV_BACK:
        return await go_back_one_step(deps, state)
    raise ValueError(f"Unknown navigation command: {command}")


async def go_back_one_step(deps: ConversationDeps, state: ConversationState) -> dict:
    """Remove the answer just before the cursor and ask that question again."""
    if state.current_step == STEP_WELCOME:
        return await send_welcome(deps, state)

    descriptor = previous_answered_field(state.answers)
    if descriptor is None:
        # Nothing answered yet: repeat the current question
        current = next_field(state.answers)
        if current is None or state.service_type is None:
            return await send_welcome(deps, state)
        transition(deps.store, state, current.step, reason="back")
        return await ask_field(deps, state, current)

    deps.store.remove_answer(state.user_phone, descriptor.key)
    if descriptor.phase == PHASE_INFO:
        deps.store.set_pricing(state.user_phone, None)
    transition(deps.store, state, descriptor.step, reason="back")
    return await ask_field(deps, state, descriptor)


async def handle_interactive_message(deps: ConversationDeps, state: ConversationState, option_id: str) -> dict:
    """Map a button/list reply id to the equivalent typed answer."""
    step = state.current_step

    if state.confirmed:
        if option_id == "hablar_humano":
            return await handle_human_handoff(deps, state)
        return await handle_already_confirmed(deps, state)

    if option_id in SERVICE_OPTION_IDS and step == STEP_WELCOME:
        return await select_service_type(deps, state, SERVICE_OPTION_IDS[option_id])
    if option_id == "agendar" and step == STEP_SHOWING_PRICING:
        return await start_contact_collection(deps, state)
    if option_id == "editar_datos" and step in (STEP_CONFIRMING_DATA, STEP_SHOWING_PRICING):
        return await start_edit(deps, state)
    if option_id == "hablar_humano":
        return await handle_human_handoff(deps, state)

    if option_id in BUTTON_ANSWERS:
        key, value = BUTTON_ANSWERS[option_id]
        descriptor = get_field(key)
        # Only the question currently being asked accepts a button answer
        pending = next_field(state.answers, descriptor.phase) if descriptor is not None else None
        if descriptor is not None and pending is descriptor and descriptor.step == step:
            if descriptor.phase == PHASE_INFO:
                return await record_info_answer(deps, state, descriptor, value)
            return await record_contact_answer(deps, state, descriptor, value)

    espacios = espacios_from_list_id(option_id)
    espacios_field = get_field("nEspacios")
    pending = next_field(state.answers, PHASE_INFO)
    if espacios is not None and step == STEP_COLLECTING_INFO and pending is espacios_field:
        return await record_info_answer(deps, state, espacios_field, espacios)

    logger.warning(
        f"Unknown interactive option '{option_id}' from {state.user_phone} at step {step}",
        extra={"event_type": EVENT_CONVERSATION_UNKNOWN_OPTION},
    )
    message = await deps.say(state.user_phone, "unknown_option")
    return {
        "status": "unknown_option",
        "message": message,
        "current_step": step,
    }


async def handle_image_message(deps: ConversationDeps, state: ConversationState, media_id: str) -> dict:
    """Resolve and store the media reference; re-ask the pending info question."""
    phone = state.user_phone
    try:
        media_url = await deps.messenger.get_media_url(media_id)
    except Exception as e:
        logger.error(f"Failed to resolve media {media_id} for {phone}: {e}", exc_info=True)
        message = await deps.say(phone, "image_error")
        return {
            "status": "image_error",
            "message": message,
            "current_step": state.current_step,
        }

    deps.store.add_media_url(phone, media_url)
    message = await deps.say(phone, "image_received")

    if state.current_step == STEP_COLLECTING_INFO and not state.confirmed:
        descriptor = next_field(state.answers, PHASE_INFO)
        if descriptor is not None:
            result = await ask_field(deps, state, descriptor)
            result["media_url"] = media_url
            return result

    return {
        "status": "image_received",
        "message": message,
        "current_step": state.current_step,
        "media_url": media_url,
    }


async def handle_unsupported_message(deps: ConversationDeps, state: ConversationState, message_type: str) -> dict:
    message = await deps.say(state.user_phone, "unsupported_type", message_type=message_type)
    return {
        "status": "unsupported_type",
        "message": message,
        "current_step": state.current_step,
    }
