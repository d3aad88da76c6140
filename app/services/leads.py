"""
Lead helpers for the admin surface: readable summary, CSV export, statistics.
"""

import csv
import io
from collections import Counter

from app.constants.steps import NOT_SPECIFIED
from app.services.conversation.questions import FIELDS_BY_KEY
from app.services.parsing.pricing_service import format_clp
from app.services.state_store import ConversationState

EXTRA_LABELS = {
    "fechaAgendada": "Fecha agendada",
}

CSV_HEADERS = [
    "Timestamp",
    "Teléfono",
    "Tipo de Servicio",
    "Comuna",
    "Dirección",
    "Fecha",
    "Link",
    "Espacios",
    "Edición",
    "Embed",
    "Urgente",
    "Presupuesto",
    "Nombre",
    "Correo",
    "Factura",
    "Razón Social",
    "RUT",
    "Fecha Agendada",
    "Precio Mín",
    "Precio Máx",
    "Confirmado",
    "Media URLs",
]

CSV_ANSWER_KEYS = [
    "comuna",
    "direccion",
    "fecha",
    "link",
    "nEspacios",
    "edicion",
    "embed",
    "urgente",
    "presupuesto",
    "nombre",
    "correo",
    "factura",
    "razonSocial",
    "rut",
    "fechaAgendada",
]


def format_answer_key(key: str) -> str:
    """Human label for an answer key ("nEspacios" -> "Número de espacios")."""
    descriptor = FIELDS_BY_KEY.get(key)
    if descriptor:
        return descriptor.label
    if key in EXTRA_LABELS:
        return EXTRA_LABELS[key]
    return key[:1].upper() + key[1:]


def format_answer_value(value) -> str:
    if value is True:
        return "Sí"
    if value is False:
        return "No"
    return str(value)


def format_lead_summary(state: ConversationState) -> str:
    """Spanish summary of a lead for admins."""
    lines = [
        "📋 Resumen del Lead:",
        "",
        f"• Teléfono: {state.user_phone}",
        f"• Tipo de servicio: {state.service_type or NOT_SPECIFIED}",
        f"• Estado: {'✅ Confirmado' if state.confirmed else '⏳ Pendiente'}",
        f"• Paso actual: {state.current_step}",
        f"• Última actualización: {state.last_updated.strftime('%d-%m-%Y %H:%M')}",
        "",
        "📝 Respuestas:",
    ]
    for key, value in state.answers.items():
        if value == "" or value is None:
            continue
        lines.append(f"• {format_answer_key(key)}: {format_answer_value(value)}")

    if state.media_urls:
        lines.append("")
        lines.append(f"📎 Archivos adjuntos: {len(state.media_urls)}")
        for index, url in enumerate(state.media_urls, start=1):
            lines.append(f"  {index}. {url}")

    if state.pricing:
        lines.append("")
        lines.append("💰 Cotización:")
        lines.append(f"• Rango estimado: {format_clp(state.pricing.min)} - {format_clp(state.pricing.max)} CLP")
        lines.append(f"• Hosting anual: {format_clp(state.pricing.hosting_annual)} CLP")

    return "\n".join(lines)


def export_leads_csv(states: list[ConversationState]) -> str:
    """
    Export leads as CSV (header row + one row per lead).

    Returns:
        CSV text; just the header when there are no leads
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for state in states:
        answers = state.answers
        writer.writerow(
            [
                state.last_updated.isoformat(),
                state.user_phone,
                state.service_type or "",
                *[format_answer_value(answers[key]) if key in answers else "" for key in CSV_ANSWER_KEYS],
                state.pricing.min if state.pricing else "",
                state.pricing.max if state.pricing else "",
                "Sí" if state.confirmed else "No",
                ";".join(state.media_urls),
            ]
        )
    return buffer.getvalue()


def get_lead_stats(states: list[ConversationState]) -> dict:
    """
    Aggregate counts for the admin dashboard.

    Returns:
        {"total", "confirmed", "pending", "by_service_type", "by_date"}
    """
    confirmed = sum(1 for state in states if state.confirmed)
    by_service_type = Counter(state.service_type or NOT_SPECIFIED for state in states)
    by_date = Counter(state.last_updated.date().isoformat() for state in states)
    return {
        "total": len(states),
        "confirmed": confirmed,
        "pending": len(states) - confirmed,
        "by_service_type": dict(by_service_type),
        "by_date": dict(by_date),
    }
