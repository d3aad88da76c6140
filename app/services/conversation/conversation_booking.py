"""
Booking flow handlers - quote reply, contact details, scheduling, human handoff.
"""

import logging
import re
from datetime import date
from typing import Any

from app.constants.event_types import EVENT_LEAD_CONFIRMED
from app.constants.steps import STEP_COLLECTING_CONTACT, STEP_SCHEDULING
from app.services.conversation.conversation_deps import ConversationDeps
from app.services.conversation.conversation_qualifying import ask_field, start_edit
from app.services.conversation.questions import PHASE_CONTACT, FieldDescriptor, next_field
from app.services.conversation_policy import (
    NAV_HUMAN,
    contains_word,
    get_navigation_command,
    is_edit_request_message,
    is_proceed_message,
)
from app.services.parsing.validators import ParsedDate, parse_date
from app.services.state_machine import transition
from app.services.state_store import ConversationState
from app.utils.datetime_utils import next_weekdays

logger = logging.getLogger(__name__)

SCHEDULING_OPTIONS = 3
WEEKDAY_NAMES = ("lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo")
DAY_MONTH_TOKEN = re.compile(r"\b\d{1,2}[/-]\d{1,2}\b")


async def handle_showing_pricing(deps: ConversationDeps, state: ConversationState, text: str) -> dict:
    """Quote reply: edit, human, then proceed (checked in that order)."""
    if is_edit_request_message(text):
        return await start_edit(deps, state)
    if get_navigation_command(text) == NAV_HUMAN:
        return await handle_human_handoff(deps, state)
    if is_proceed_message(text):
        return await start_contact_collection(deps, state)

    message = await deps.say(state.user_phone, "pricing_reprompt")
    return {
        "status": "pricing_reprompt",
        "message": message,
        "current_step": state.current_step,
    }


async def start_contact_collection(deps: ConversationDeps, state: ConversationState) -> dict:
    transition(deps.store, state, STEP_COLLECTING_CONTACT, reason="agendar")
    await deps.say(state.user_phone, "start_contact")
    return await continue_contact_collection(deps, state)


async def continue_contact_collection(deps: ConversationDeps, state: ConversationState) -> dict:
    """Ask the next contact question, or offer dates once contact details are complete."""
    descriptor = next_field(state.answers, PHASE_CONTACT)
    if descriptor is None:
        return await proceed_to_scheduling(deps, state)
    return await ask_field(deps, state, descriptor)


async def record_contact_answer(
    deps: ConversationDeps,
    state: ConversationState,
    descriptor: FieldDescriptor,
    value: Any,
) -> dict:
    deps.store.set_answer(state.user_phone, descriptor.key, value)
    return await continue_contact_collection(deps, state)


async def handle_collecting_contact(deps: ConversationDeps, state: ConversationState, text: str) -> dict:
    descriptor = next_field(state.answers, PHASE_CONTACT)
    if descriptor is None:
        return await proceed_to_scheduling(deps, state)

    parsed = descriptor.parser(text, deps.today())
    if not parsed.is_valid:
        message = await deps.say(state.user_phone, descriptor.repair_key or descriptor.prompt_key)
        return {
            "status": "invalid_answer",
            "message": message,
            "current_step": state.current_step,
            "field": descriptor.key,
        }
    return await record_contact_answer(deps, state, descriptor, parsed.value)


def offered_dates(deps: ConversationDeps) -> list[date]:
    """Next weekdays after today in the business timezone."""
    return next_weekdays(deps.today(), SCHEDULING_OPTIONS)


def format_offered_dates(deps: ConversationDeps) -> list[str]:
    """Offered dates as "• lunes 20/10"."""
    return [f"• {WEEKDAY_NAMES[day.weekday()]} {day.day}/{day.month}" for day in offered_dates(deps)]


def resolve_scheduling_reply(deps: ConversationDeps, text: str) -> ParsedDate:
    """
    Date chosen in a scheduling reply.

    Tries the whole text, then a D/M token inside it ("el lunes 20/10"),
    then a weekday name matching one of the offered dates ("martes").
    """
    today = deps.today()
    parsed = parse_date(text, today=today)
    if parsed.is_valid:
        return parsed

    token = DAY_MONTH_TOKEN.search(text or "")
    if token:
        parsed = parse_date(token.group(0), today=today)
        if parsed.is_valid:
            return parsed

    for day in offered_dates(deps):
        if contains_word(text, (WEEKDAY_NAMES[day.weekday()],)):
            return ParsedDate(is_valid=True, resolved_date=day, text=f"{day.day}/{day.month}")
    return parsed


async def proceed_to_scheduling(deps: ConversationDeps, state: ConversationState) -> dict:
    transition(deps.store, state, STEP_SCHEDULING, reason="contact complete")
    dates = format_offered_dates(deps)
    message = await deps.say(state.user_phone, "scheduling_offer", dates="\n".join(dates))
    return {
        "status": "scheduling_offered",
        "message": message,
        "current_step": STEP_SCHEDULING,
        "offered_dates": dates,
    }


async def handle_scheduling(deps: ConversationDeps, state: ConversationState, text: str) -> dict:
    """Any parseable date books the session: confirm, notify, export."""
    phone = state.user_phone
    parsed = resolve_scheduling_reply(deps, text)
    if not parsed.is_valid:
        message = await deps.say(phone, "scheduling_reprompt")
        return {
            "status": "invalid_answer",
            "message": message,
            "current_step": state.current_step,
            "field": "fechaAgendada",
        }

    deps.store.set_answer(phone, "fechaAgendada", parsed.text)
    deps.store.confirm(phone)
    logger.info(
        f"Lead {phone} scheduled for {parsed.text}",
        extra={"event_type": EVENT_LEAD_CONFIRMED},
    )
    message = await deps.say(phone, "scheduling_confirmed", date=parsed.text)
    exported = await deps.exporter.export_lead(state)
    return {
        "status": "scheduled",
        "message": message,
        "current_step": state.current_step,
        "scheduled_for": parsed.text,
        "exported": exported,
    }


async def handle_human_handoff(deps: ConversationDeps, state: ConversationState) -> dict:
    """Share contact info, confirm the lead and export it (any step)."""
    phone = state.user_phone
    message = await deps.say(phone, "human_handoff")
    deps.store.confirm(phone)
    logger.info(
        f"Lead {phone} handed off to a human at step {state.current_step}",
        extra={"event_type": EVENT_LEAD_CONFIRMED},
    )
    exported = await deps.exporter.export_lead(state)
    return {
        "status": "human_handoff",
        "message": message,
        "current_step": state.current_step,
        "exported": exported,
    }


async def handle_already_confirmed(deps: ConversationDeps, state: ConversationState) -> dict:
    message = await deps.say(state.user_phone, "already_confirmed")
    return {
        "status": "already_confirmed",
        "message": message,
        "current_step": state.current_step,
    }
