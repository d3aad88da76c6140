"""
Qualifying flow handlers - welcome/category selection, info questions, data
summary, confirmation and the edit path.
"""

import logging
from typing import Any

from app.constants.steps import (
    NOT_SPECIFIED,
    SERVICE_CATEGORIES,
    SERVICE_OPTION_IDS,
    STEP_COLLECTING_INFO,
    STEP_CONFIRMING_DATA,
    STEP_SHOWING_PRICING,
    STEP_WELCOME,
)
from app.services.classifier import classify_service_type
from app.services.conversation.conversation_deps import ConversationDeps
from app.services.conversation.questions import (
    ESPACIOS_LIST_CATEGORIES,
    ESPACIOS_LIST_PREFIX,
    PHASE_INFO,
    FieldDescriptor,
    find_field_by_name,
    next_field,
)
from app.services.conversation_policy import (
    contains_word,
    is_affirmative_message,
    is_edit_request_message,
)
from app.services.parsing.pricing_service import (
    calculate_pricing,
    generate_pricing_summary,
    pricing_input_from_answers,
)
from app.services.state_machine import transition
from app.services.state_store import ConversationState
from app.services.text_normalization import normalize_for_keywords

logger = logging.getLogger(__name__)

# Classifier confidence above which the category is picked without asking
AUTO_SELECT_CONFIDENCE = 0.3

DONE_EDITING_WORDS = ("listo", "terminé", "termine")

PRICING_BUTTONS = [
    ("agendar", "Agendar"),
    ("editar_datos", "Editar datos"),
    ("hablar_humano", "Hablar con humano"),
]

ESPACIOS_ROWS = [
    {"id": f"{ESPACIOS_LIST_PREFIX}1", "title": "1 espacio", "description": "Un solo ambiente"},
    {"id": f"{ESPACIOS_LIST_PREFIX}2", "title": "2 espacios", "description": "Dos ambientes"},
    {"id": f"{ESPACIOS_LIST_PREFIX}3", "title": "3 espacios", "description": "Tres ambientes"},
    {"id": f"{ESPACIOS_LIST_PREFIX}4", "title": "4 espacios", "description": "Cuatro ambientes"},
    {"id": f"{ESPACIOS_LIST_PREFIX}5", "title": "5+ espacios", "description": "Cinco o más ambientes"},
]


def match_service_category(text: str) -> str | None:
    """Exact category name ("Hotel") or option id ("venue_eventos"), else None."""
    lowered = normalize_for_keywords(text)
    if lowered in SERVICE_OPTION_IDS:
        return SERVICE_OPTION_IDS[lowered]
    for category in SERVICE_CATEGORIES:
        if lowered == category.lower():
            return category
    return None


async def send_welcome(deps: ConversationDeps, state: ConversationState) -> dict:
    """Send the category picker and move to welcome (answers are kept)."""
    phone = state.user_phone
    transition(deps.store, state, STEP_WELCOME, reason="welcome")

    body = deps.render("welcome", phone)
    rows = [{"id": option_id, "title": category} for option_id, category in SERVICE_OPTION_IDS.items()]
    await deps.messenger.send_list_message(
        phone,
        body,
        deps.render("welcome_list_button", phone),
        [{"title": deps.render("welcome_section_title", phone), "rows": rows}],
    )
    return {
        "status": "welcome_sent",
        "message": body,
        "current_step": STEP_WELCOME,
    }


async def handle_welcome(deps: ConversationDeps, state: ConversationState, text: str) -> dict:
    """Pick the category from an exact choice or the classifier, else show the picker."""
    category = match_service_category(text)
    if category is None:
        classification = classify_service_type(text)
        logger.debug(
            f"Classified welcome text for {state.user_phone}: {classification.type} "
            f"(confidence={classification.confidence:.2f}, keywords={classification.keywords})"
        )
        if classification.confidence > AUTO_SELECT_CONFIDENCE:
            category = classification.type

    if category is None:
        return await send_welcome(deps, state)
    return await select_service_type(deps, state, category)


async def select_service_type(deps: ConversationDeps, state: ConversationState, category: str) -> dict:
    phone = state.user_phone
    deps.store.set_service_type(phone, category)
    transition(deps.store, state, STEP_COLLECTING_INFO, reason="service selected")
    await deps.say(phone, "service_selected", service_type=category)

    result = await continue_info_collection(deps, state)
    result["service_type"] = category
    return result


async def ask_field(deps: ConversationDeps, state: ConversationState, descriptor: FieldDescriptor) -> dict:
    """Send the prompt for one field (text, buttons or the spaces list)."""
    phone = state.user_phone

    if descriptor.key == "nEspacios" and state.service_type in ESPACIOS_LIST_CATEGORIES:
        body = deps.render("ask_espacios_list", phone)
        await deps.messenger.send_list_message(
            phone,
            body,
            deps.render("espacios_list_button", phone),
            [{"title": deps.render("espacios_section_title", phone), "rows": ESPACIOS_ROWS}],
        )
    elif descriptor.buttons:
        body = deps.render(descriptor.prompt_key, phone)
        await deps.messenger.send_interactive_buttons(phone, body, list(descriptor.buttons))
    else:
        body = await deps.say(phone, descriptor.prompt_key)

    return {
        "status": "question_sent",
        "message": body,
        "current_step": state.current_step,
        "field": descriptor.key,
    }


async def continue_info_collection(deps: ConversationDeps, state: ConversationState) -> dict:
    """Ask the next info question, or show the summary once every info field is answered."""
    descriptor = next_field(state.answers, PHASE_INFO)
    if descriptor is None:
        return await show_data_summary(deps, state)
    return await ask_field(deps, state, descriptor)


async def record_info_answer(
    deps: ConversationDeps,
    state: ConversationState,
    descriptor: FieldDescriptor,
    value: Any,
) -> dict:
    """Store an info answer (typed or tapped) and move on."""
    deps.store.set_answer(state.user_phone, descriptor.key, value)
    if state.pricing is not None:
        # Quote no longer matches the answers
        deps.store.set_pricing(state.user_phone, None)
    return await continue_info_collection(deps, state)


async def handle_collecting_info(deps: ConversationDeps, state: ConversationState, text: str) -> dict:
    descriptor = next_field(state.answers, PHASE_INFO)
    if descriptor is None:
        # Every info answer is present: we are here to edit one of them
        return await handle_edit_request(deps, state, text)

    parsed = descriptor.parser(text, deps.today())
    if not parsed.is_valid:
        message = await deps.say(state.user_phone, descriptor.repair_key or descriptor.prompt_key)
        return {
            "status": "invalid_answer",
            "message": message,
            "current_step": state.current_step,
            "field": descriptor.key,
        }
    return await record_info_answer(deps, state, descriptor, parsed.value)


async def start_edit(deps: ConversationDeps, state: ConversationState) -> dict:
    """Back to collecting_info keeping answers; the user names the field to change."""
    transition(deps.store, state, STEP_COLLECTING_INFO, reason="edit")
    message = await deps.say(state.user_phone, "edit_prompt")
    return {
        "status": "edit_prompt_sent",
        "message": message,
        "current_step": STEP_COLLECTING_INFO,
    }


async def handle_edit_request(deps: ConversationDeps, state: ConversationState, text: str) -> dict:
    """Edit path: "fecha" clears and re-asks fecha, "listo" returns to the summary."""
    if is_affirmative_message(text) or contains_word(text, DONE_EDITING_WORDS):
        return await show_data_summary(deps, state)

    descriptor = find_field_by_name(text, PHASE_INFO)
    if descriptor is None:
        message = await deps.say(state.user_phone, "edit_prompt")
        return {
            "status": "edit_prompt_sent",
            "message": message,
            "current_step": state.current_step,
        }

    logger.info(f"Conversation {state.user_phone}: editing field {descriptor.key}")
    deps.store.remove_answer(state.user_phone, descriptor.key)
    deps.store.set_pricing(state.user_phone, None)
    return await ask_field(deps, state, descriptor)


def _summary_context(state: ConversationState) -> dict[str, Any]:
    answers = state.answers
    direccion = answers.get("direccion")
    return {
        "service_type": state.service_type or NOT_SPECIFIED,
        "comuna": answers.get("comuna", ""),
        "direccion": direccion if direccion and direccion != NOT_SPECIFIED else "No especificada",
        "fecha": answers.get("fecha", ""),
        "n_espacios": answers.get("nEspacios", ""),
        "edicion": answers.get("edicion", ""),
        "embed": "Sí" if answers.get("embed") else "No",
        "urgente": "Urgente" if answers.get("urgente") else "Normal",
    }


async def show_data_summary(deps: ConversationDeps, state: ConversationState) -> dict:
    transition(deps.store, state, STEP_CONFIRMING_DATA, reason="info complete")
    message = await deps.say(state.user_phone, "data_summary", **_summary_context(state))
    return {
        "status": "summary_sent",
        "message": message,
        "current_step": STEP_CONFIRMING_DATA,
    }


async def handle_confirming_data(deps: ConversationDeps, state: ConversationState, text: str) -> dict:
    """Edit tokens win over affirmative ones ("sí, quiero editar" edits)."""
    if is_edit_request_message(text):
        return await start_edit(deps, state)
    if is_affirmative_message(text):
        return await calculate_and_show_pricing(deps, state)

    message = await deps.say(state.user_phone, "confirm_reprompt")
    return {
        "status": "confirmation_reprompt",
        "message": message,
        "current_step": state.current_step,
    }


async def calculate_and_show_pricing(deps: ConversationDeps, state: ConversationState) -> dict:
    """Price the confirmed answers and offer Agendar / Editar datos / Hablar con humano."""
    phone = state.user_phone
    pricing_input = pricing_input_from_answers(state.service_type, state.answers)
    pricing = calculate_pricing(pricing_input)
    deps.store.set_pricing(phone, pricing)
    transition(deps.store, state, STEP_SHOWING_PRICING, reason="data confirmed")

    summary = generate_pricing_summary(pricing_input, pricing)
    await deps.messenger.send_interactive_buttons(phone, summary, PRICING_BUTTONS)
    return {
        "status": "pricing_sent",
        "message": summary,
        "current_step": STEP_SHOWING_PRICING,
        "pricing": pricing.to_payload(),
    }
