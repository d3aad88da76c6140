"""
Question plan for the intake flow - ordered field descriptors with a cursor.

Progress is "the first applicable field without an answer". Going back removes
the answered field closest before that cursor, so the result never depends on
the order in which answers happened to be stored.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any

from app.constants.steps import (
    DOCUMENT_BOLETA,
    DOCUMENT_FACTURA,
    EDIT_ADVANCED,
    EDIT_BASIC,
    NOT_SPECIFIED,
    SERVICE_HOTEL,
    SERVICE_RESTAURANTE,
    SERVICE_VENUE,
    STEP_COLLECTING_CONTACT,
    STEP_COLLECTING_INFO,
)
from app.services.conversation_policy import (
    contains_word,
    is_affirmative_message,
    is_bare_skip_message,
    is_negative_message,
    is_skip_message,
)
from app.services.parsing.validators import (
    extract_url,
    parse_date,
    parse_number,
    sanitize_text,
    validate_email,
    validate_locality,
    validate_rut,
)

PHASE_INFO = "info"
PHASE_CONTACT = "contact"

PHASE_STEPS = {
    PHASE_INFO: STEP_COLLECTING_INFO,
    PHASE_CONTACT: STEP_COLLECTING_CONTACT,
}

# Categories that get the numbered list when asked for spaces
ESPACIOS_LIST_CATEGORIES = (SERVICE_RESTAURANTE, SERVICE_VENUE, SERVICE_HOTEL)
ESPACIOS_LIST_PREFIX = "espacios_"


@dataclass(frozen=True)
class ParsedAnswer:
    is_valid: bool
    value: Any = None


INVALID = ParsedAnswer(is_valid=False)


@dataclass(frozen=True)
class FieldDescriptor:
    """One question in the plan."""

    key: str
    phase: str
    prompt_key: str
    repair_key: str | None
    parser: Callable[[str, date], ParsedAnswer]  # (reply text, local today)
    label: str
    required: bool = True
    edit_aliases: tuple[str, ...] = ()
    buttons: tuple[tuple[str, str], ...] = ()  # (id, title) for interactive prompts
    condition: Callable[[dict[str, Any]], bool] | None = None

    @property
    def step(self) -> str:
        return PHASE_STEPS[self.phase]

    def applies(self, answers: dict[str, Any]) -> bool:
        return self.condition is None or self.condition(answers)


# --- Parsers ((text, today) -> ParsedAnswer) ---


def _parse_comuna(text: str, today: date) -> ParsedAnswer:
    result = validate_locality(text)
    return ParsedAnswer(True, result.value) if result.is_valid else INVALID


def _parse_optional(text: str, today: date) -> ParsedAnswer:
    """Optional free text: always accepted; "no"/"ninguno" store the placeholder."""
    if is_skip_message(text) or not sanitize_text(text):
        return ParsedAnswer(True, NOT_SPECIFIED)
    return ParsedAnswer(True, sanitize_text(text))


def _parse_direccion(text: str, today: date) -> ParsedAnswer:
    """Stored as typed; only a bare "no"/"ninguna" reply skips it."""
    if is_bare_skip_message(text) or not sanitize_text(text):
        return ParsedAnswer(True, NOT_SPECIFIED)
    return ParsedAnswer(True, sanitize_text(text))


def _parse_fecha(text: str, today: date) -> ParsedAnswer:
    parsed = parse_date(text, today=today)
    return ParsedAnswer(True, parsed.text) if parsed.is_valid else INVALID


def _parse_link(text: str, today: date) -> ParsedAnswer:
    url = extract_url(text)
    if url.is_valid:
        return ParsedAnswer(True, url.url)
    if is_skip_message(text):
        return ParsedAnswer(True, NOT_SPECIFIED)
    return INVALID


def _parse_espacios(text: str, today: date) -> ParsedAnswer:
    parsed = parse_number(text)
    return ParsedAnswer(True, parsed.lower_bound) if parsed.is_valid else INVALID


def _parse_edicion(text: str, today: date) -> ParsedAnswer:
    if contains_word(text, ("básica", "basica")):
        return ParsedAnswer(True, EDIT_BASIC)
    if contains_word(text, ("avanzada",)):
        return ParsedAnswer(True, EDIT_ADVANCED)
    return INVALID


def _parse_embed(text: str, today: date) -> ParsedAnswer:
    if is_affirmative_message(text):
        return ParsedAnswer(True, True)
    if is_negative_message(text):
        return ParsedAnswer(True, False)
    return INVALID


def _parse_urgente(text: str, today: date) -> ParsedAnswer:
    if contains_word(text, ("urgente", "urgent")):
        return ParsedAnswer(True, True)
    if contains_word(text, ("normal",)):
        return ParsedAnswer(True, False)
    return INVALID


def _parse_required_text(text: str, today: date) -> ParsedAnswer:
    cleaned = sanitize_text(text)
    return ParsedAnswer(True, cleaned) if cleaned else INVALID


def _parse_correo(text: str, today: date) -> ParsedAnswer:
    result = validate_email(text)
    return ParsedAnswer(True, result.value) if result.is_valid else INVALID


def _parse_factura(text: str, today: date) -> ParsedAnswer:
    if contains_word(text, ("factura",)):
        return ParsedAnswer(True, DOCUMENT_FACTURA)
    if contains_word(text, ("boleta",)):
        return ParsedAnswer(True, DOCUMENT_BOLETA)
    return INVALID


def _parse_rut(text: str, today: date) -> ParsedAnswer:
    result = validate_rut(text)
    return ParsedAnswer(True, result.value) if result.is_valid else INVALID


def _needs_factura(answers: dict[str, Any]) -> bool:
    return answers.get("factura") == DOCUMENT_FACTURA


QUESTION_PLAN: tuple[FieldDescriptor, ...] = (
    FieldDescriptor(
        key="comuna",
        phase=PHASE_INFO,
        prompt_key="ask_comuna",
        repair_key="repair_comuna",
        parser=_parse_comuna,
        label="Comuna/Ciudad",
        edit_aliases=("comuna", "ciudad"),
    ),
    FieldDescriptor(
        key="direccion",
        phase=PHASE_INFO,
        prompt_key="ask_direccion",
        repair_key=None,
        parser=_parse_direccion,
        label="Dirección",
        required=False,
        edit_aliases=("direccion", "dirección", "referencia"),
    ),
    FieldDescriptor(
        key="fecha",
        phase=PHASE_INFO,
        prompt_key="ask_fecha",
        repair_key="repair_fecha",
        parser=_parse_fecha,
        label="Fecha tentativa",
        edit_aliases=("fecha",),
    ),
    FieldDescriptor(
        key="link",
        phase=PHASE_INFO,
        prompt_key="ask_link",
        repair_key="repair_link",
        parser=_parse_link,
        label="Link del lugar",
        edit_aliases=("link", "enlace"),
    ),
    FieldDescriptor(
        key="nEspacios",
        phase=PHASE_INFO,
        prompt_key="ask_espacios",
        repair_key="repair_espacios",
        parser=_parse_espacios,
        label="Número de espacios",
        edit_aliases=("espacios", "ambientes"),
    ),
    FieldDescriptor(
        key="edicion",
        phase=PHASE_INFO,
        prompt_key="ask_edicion",
        repair_key="repair_edicion",
        parser=_parse_edicion,
        label="Tipo de edición",
        edit_aliases=("edicion", "edición"),
        buttons=(("basica", "Básica"), ("avanzada", "Avanzada")),
    ),
    FieldDescriptor(
        key="embed",
        phase=PHASE_INFO,
        prompt_key="ask_embed",
        repair_key="repair_embed",
        parser=_parse_embed,
        label="Embed para web",
        edit_aliases=("embed",),
        buttons=(("si_embed", "Sí"), ("no_embed", "No")),
    ),
    FieldDescriptor(
        key="urgente",
        phase=PHASE_INFO,
        prompt_key="ask_urgente",
        repair_key="repair_urgente",
        parser=_parse_urgente,
        label="Urgencia",
        edit_aliases=("urgencia", "urgente", "plazo"),
        buttons=(("normal", "Normal (48-72h)"), ("urgente", "Urgente (<24h)")),
    ),
    FieldDescriptor(
        key="presupuesto",
        phase=PHASE_INFO,
        prompt_key="ask_presupuesto",
        repair_key=None,
        parser=_parse_optional,
        label="Presupuesto referencial",
        required=False,
        edit_aliases=("presupuesto",),
    ),
    FieldDescriptor(
        key="nombre",
        phase=PHASE_CONTACT,
        prompt_key="ask_nombre",
        repair_key="repair_nombre",
        parser=_parse_required_text,
        label="Nombre y cargo",
    ),
    FieldDescriptor(
        key="correo",
        phase=PHASE_CONTACT,
        prompt_key="ask_correo",
        repair_key="repair_correo",
        parser=_parse_correo,
        label="Correo electrónico",
    ),
    FieldDescriptor(
        key="factura",
        phase=PHASE_CONTACT,
        prompt_key="ask_factura",
        repair_key="repair_factura",
        parser=_parse_factura,
        label="Tipo de documento",
        buttons=(("boleta", "Boleta"), ("factura", "Factura")),
    ),
    FieldDescriptor(
        key="razonSocial",
        phase=PHASE_CONTACT,
        prompt_key="ask_razon_social",
        repair_key="repair_razon_social",
        parser=_parse_required_text,
        label="Razón social",
        condition=_needs_factura,
    ),
    FieldDescriptor(
        key="rut",
        phase=PHASE_CONTACT,
        prompt_key="ask_rut",
        repair_key="repair_rut",
        parser=_parse_rut,
        label="RUT",
        condition=_needs_factura,
    ),
)

FIELDS_BY_KEY = {descriptor.key: descriptor for descriptor in QUESTION_PLAN}

# Interactive button id -> (field key, stored value)
BUTTON_ANSWERS: dict[str, tuple[str, Any]] = {
    "basica": ("edicion", EDIT_BASIC),
    "avanzada": ("edicion", EDIT_ADVANCED),
    "si_embed": ("embed", True),
    "no_embed": ("embed", False),
    "normal": ("urgente", False),
    "urgente": ("urgente", True),
    "boleta": ("factura", DOCUMENT_BOLETA),
    "factura": ("factura", DOCUMENT_FACTURA),
}


def get_field(key: str) -> FieldDescriptor | None:
    return FIELDS_BY_KEY.get(key)


def cursor_index(answers: dict[str, Any], phase: str | None = None) -> int:
    """
    Index of the first applicable field without an answer (len(plan) when done).

    Args:
        answers: Collected answers
        phase: Restrict the search to one phase (None = whole plan)
    """
    for index, descriptor in enumerate(QUESTION_PLAN):
        if phase is not None and descriptor.phase != phase:
            continue
        if descriptor.applies(answers) and descriptor.key not in answers:
            return index
    return len(QUESTION_PLAN)


def next_field(answers: dict[str, Any], phase: str | None = None) -> FieldDescriptor | None:
    """The field to ask next, or None when every applicable field has an answer."""
    index = cursor_index(answers, phase)
    if index >= len(QUESTION_PLAN):
        return None
    return QUESTION_PLAN[index]


def previous_answered_field(answers: dict[str, Any]) -> FieldDescriptor | None:
    """The answered field closest before the cursor, or None at the start."""
    index = cursor_index(answers)
    for descriptor in reversed(QUESTION_PLAN[:index]):
        if descriptor.applies(answers) and descriptor.key in answers:
            return descriptor
    return None


def is_phase_complete(answers: dict[str, Any], phase: str) -> bool:
    return next_field(answers, phase) is None


def find_field_by_name(text: str, phase: str = PHASE_INFO) -> FieldDescriptor | None:
    """Field whose edit alias appears in text as a whole word ("cambiar la fecha" -> fecha)."""
    for descriptor in QUESTION_PLAN:
        if descriptor.phase == phase and descriptor.edit_aliases:
            if contains_word(text, descriptor.edit_aliases):
                return descriptor
    return None


def espacios_from_list_id(list_id: str) -> int | None:
    """List reply id to a space count: espacios_3 -> 3, None for other ids."""
    if not list_id.startswith(ESPACIOS_LIST_PREFIX):
        return None
    suffix = list_id[len(ESPACIOS_LIST_PREFIX):]
    if suffix.isdigit() and int(suffix) > 0:
        return int(suffix)
    return None
