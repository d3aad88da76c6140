"""
Pure policy helpers for conversation flows (no store, no IO).

Centralizes keyword/intent checks so behavior is testable and consistent
across qualifying and booking.
"""

import re

from app.services.text_normalization import normalize_for_keywords, strip_accents

NAV_MENU = "menu"
NAV_BACK = "back"
NAV_RESET = "reset"
NAV_HUMAN = "human"

# Checked in this order; the first intent with a matching synonym wins
NAVIGATION_SYNONYMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    (NAV_MENU, ("menú", "menu", "inicio")),
    (NAV_BACK, ("atrás", "atras", "anterior", "volver")),
    (NAV_RESET, ("reiniciar", "reset", "empezar de nuevo")),
    (NAV_HUMAN, ("humano", "persona", "representante")),
)


def normalize_message(text: str | None) -> str:
    """Normalize inbound text for keyword matching (strip, lower)."""
    return normalize_for_keywords(text)


def contains_word(text: str | None, words) -> bool:
    """True if any of words/phrases appears in text as a whole word (accents ignored)."""
    lowered = strip_accents(normalize_message(text))
    if not lowered:
        return False
    for word in words:
        if re.search(rf"\b{re.escape(strip_accents(word.lower()))}\b", lowered):
            return True
    return False


# --- Navigation ---


def get_navigation_command(message_text: str | None) -> str | None:
    """Return menu | back | reset | human, or None if the text is not a command."""
    for command, synonyms in NAVIGATION_SYNONYMS:
        if contains_word(message_text, synonyms):
            return command
    return None


def is_navigation_command(message_text: str | None) -> bool:
    return get_navigation_command(message_text) is not None


# --- Confirmation / pricing replies ---

AFFIRMATIVE_WORDS = ("sí", "si", "yes", "ok", "dale", "correcto", "confirmo")
NEGATIVE_WORDS = ("no",)
EDIT_WORDS = ("editar", "edit", "cambiar")
PROCEED_WORDS = ("agendar", "agenda", "sí", "si")
OPTIONAL_SKIP_WORDS = ("no", "ninguno", "ninguna")


def is_affirmative_message(message_text: str | None) -> bool:
    return contains_word(message_text, AFFIRMATIVE_WORDS)


def is_negative_message(message_text: str | None) -> bool:
    return contains_word(message_text, NEGATIVE_WORDS)


def is_edit_request_message(message_text: str | None) -> bool:
    """True if the user asks to change the collected data."""
    return contains_word(message_text, EDIT_WORDS)


def is_proceed_message(message_text: str | None) -> bool:
    """True if the user accepts the quote and wants to book."""
    return contains_word(message_text, PROCEED_WORDS)


def is_skip_message(message_text: str | None) -> bool:
    """True for "no"/"ninguno" answers to optional questions."""
    return contains_word(message_text, OPTIONAL_SKIP_WORDS)


def is_bare_skip_message(message_text: str | None) -> bool:
    """True only when the whole reply is a skip word ("No.", "ninguna")."""
    lowered = strip_accents(normalize_message(message_text)).strip(" .!¡")
    return lowered in OPTIONAL_SKIP_WORDS
