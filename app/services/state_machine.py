"""
State machine service - defines allowed step transitions and provides transition helper.

This centralizes step transition logic so every handler moves conversations
the same way and logs the change once.
"""

import logging

from app.constants.event_types import EVENT_CONVERSATION_STEP_CHANGED
from app.constants.steps import (
    ALL_STEPS,
    STEP_COLLECTING_CONTACT,
    STEP_COLLECTING_INFO,
    STEP_CONFIRMING_DATA,
    STEP_SCHEDULING,
    STEP_SHOWING_PRICING,
    STEP_WELCOME,
)
from app.services.state_store import ConversationState, ConversationStateStore

logger = logging.getLogger(__name__)

# Define allowed transitions
# Format: {from_step: [allowed_to_steps]}; welcome is always reachable (menu)
ALLOWED_TRANSITIONS = {
    STEP_WELCOME: [STEP_COLLECTING_INFO],
    STEP_COLLECTING_INFO: [STEP_CONFIRMING_DATA, STEP_WELCOME],
    STEP_CONFIRMING_DATA: [STEP_SHOWING_PRICING, STEP_COLLECTING_INFO, STEP_WELCOME],
    STEP_SHOWING_PRICING: [STEP_COLLECTING_CONTACT, STEP_COLLECTING_INFO, STEP_WELCOME],
    STEP_COLLECTING_CONTACT: [STEP_SCHEDULING, STEP_COLLECTING_INFO, STEP_WELCOME],
    STEP_SCHEDULING: [STEP_COLLECTING_CONTACT, STEP_WELCOME],
}


def get_allowed_transitions(from_step: str) -> list[str]:
    return ALLOWED_TRANSITIONS.get(from_step, [])


def is_transition_allowed(from_step: str, to_step: str) -> bool:
    """Staying on the same step is always allowed."""
    return from_step == to_step or to_step in get_allowed_transitions(from_step)


def transition(
    store: ConversationStateStore,
    state: ConversationState,
    to_step: str,
    reason: str | None = None,
) -> ConversationState:
    """
    Move a conversation to to_step.

    Args:
        store: State store owning the record
        state: Current record
        to_step: Target step
        reason: Short label for the log line (e.g. "back", "menu")

    Returns:
        Updated state

    Raises:
        ValueError: If to_step is unknown or not reachable from the current step
    """
    if to_step not in ALL_STEPS:
        raise ValueError(f"Unknown conversation step: {to_step}")

    from_step = state.current_step
    if not is_transition_allowed(from_step, to_step):
        raise ValueError(
            f"Invalid step transition for {state.user_phone}: {from_step} -> {to_step}. "
            f"Allowed: {get_allowed_transitions(from_step)}"
        )

    updated = store.set_step(state.user_phone, to_step)
    if from_step != to_step:
        logger.info(
            f"Conversation {state.user_phone}: {from_step} -> {to_step}"
            + (f" ({reason})" if reason else ""),
            extra={"event_type": EVENT_CONVERSATION_STEP_CHANGED},
        )
    return updated
