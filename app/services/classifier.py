"""
Keyword classifier for the service category and free-text context.

No NLU: lower-cased substring hits against fixed keyword lists.
"""

import re
from dataclasses import dataclass, field

from app.constants.steps import (
    SERVICE_AIRBNB,
    SERVICE_HOTEL,
    SERVICE_OTRO,
    SERVICE_RESTAURANTE,
    SERVICE_VENUE,
)
from app.services.text_normalization import normalize_for_keywords, normalize_text

# Order matters: on equal scores the category declared first wins
SERVICE_KEYWORDS: dict[str, tuple[str, ...]] = {
    SERVICE_RESTAURANTE: (
        "restaurante", "restaurant", "comida", "food", "cena", "dinner", "almuerzo",
        "lunch", "bar", "pub", "café", "cafe", "pizzeria", "pizzería", "sushi",
        "peruano", "chino", "italiano", "mexicano", "gastronomía", "gastronomia",
        "chef", "cocina", "kitchen", "comedor", "dining", "terraza", "patio", "salón",
        "salon", "mesas", "tables", "aforo", "capacidad", "clientes", "customers",
        "horario", "schedule",
    ),
    SERVICE_VENUE: (
        "venue", "evento", "event", "fiesta", "party", "boda", "wedding", "cumpleaños",
        "birthday", "corporativo", "corporate", "conferencia", "conference",
        "seminario", "seminar", "exposición", "exposicion", "exhibition", "galería",
        "galeria", "gallery", "auditorio", "auditorium", "salón", "salon", "hall",
        "espacio", "space", "área", "area", "montaje", "setup", "iluminación",
        "iluminacion", "lighting", "sonido", "audio", "escenario", "stage", "pista",
        "dance floor", "decoración", "decoracion",
    ),
    SERVICE_AIRBNB: (
        "airbnb", "arriendo", "rental", "renta", "departamento", "apartment", "casa",
        "house", "habitación", "habitacion", "room", "bedroom", "living", "cocina",
        "kitchen", "baño", "bano", "bathroom", "terraza", "terrace", "balcón", "balcon",
        "balcony", "piso", "floor", "edificio", "building", "conserje", "porter",
        "clave", "key", "check-in", "checkin", "anfitrión", "anfitrion", "host",
        "huesped", "huespedes", "guest", "guests", "alojamiento", "accommodation",
    ),
    SERVICE_HOTEL: (
        "hotel", "hospedaje", "lodging", "habitación", "habitacion", "room", "suite",
        "lobby", "recepción", "recepcion", "reception", "gimnasio", "gym", "spa",
        "piscina", "pool", "restaurante", "restaurant", "bar", "concierge", "valet",
        "parking", "estacionamiento", "wifi", "internet", "tv", "television", "aire",
        "ac", "climatización", "climatizacion", "servicio", "service", "limpieza",
        "cleaning", "room service", "desayuno", "breakfast", "ocupación", "ocupacion",
    ),
    SERVICE_OTRO: (
        "otro", "other", "diferente", "different", "especial", "special", "único",
        "unico", "unique", "personalizado", "personalized", "custom", "específico",
        "especifico", "particular", "especializado", "especialista", "experto",
        "expert", "profesional", "professional",
    ),
}

URGENCY_KEYWORDS = (
    "urgente", "urgent", "rápido", "rapido", "fast", "inmediato", "immediate", "hoy", "mañana",
)

TIMEFRAME_KEYWORDS = (
    "esta semana", "próxima semana", "proxima semana", "este mes", "próximo mes",
    "proximo mes", "pronto", "rápido", "rapido",
)

BUDGET_PATTERN = re.compile(
    r"(?:presupuesto|budget|precio|price|valor|value|cost)\s*(?:de\s*)?"
    r"(?:aproximadamente\s*)?(?:alrededor\s*de\s*)?"
    r"(\d+(?:\.\d+)?(?:\s*(?:mil|k|millones|m))?)",
    re.IGNORECASE,
)

LOCATION_PATTERN = re.compile(
    r"(?:\ben|ubicado\s*en|situado\s*en|localizado\s*en)\s+"
    r"([a-zA-ZáéíóúÁÉÍÓÚñÑ\s\-]+?)(?:\s|,|\.|$)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class ServiceClassification:
    type: str
    confidence: float
    keywords: list[str] = field(default_factory=list)


def classify_service_type(text: str | None) -> ServiceClassification:
    """
    Score each category by keyword hits and return the best one.

    Strictly highest score wins; ties go to the first declared category.
    Confidence is hits / len(winner keywords), capped at 1.0. No hits -> Otro, 0.
    """
    lowered = normalize_for_keywords(text)

    best_type = SERVICE_OTRO
    best_score = 0
    best_hits: list[str] = []
    for category, keywords in SERVICE_KEYWORDS.items():
        hits = [keyword for keyword in keywords if keyword in lowered]
        if len(hits) > best_score:
            best_type, best_score, best_hits = category, len(hits), hits

    total = len(SERVICE_KEYWORDS[best_type])
    confidence = min(best_score / total, 1.0) if total else 0.0
    return ServiceClassification(type=best_type, confidence=confidence, keywords=best_hits)


def extract_context(text: str | None) -> dict:
    """
    Pull urgency, budget, location and timeframe hints out of free text.

    Returns:
        {"urgency": bool, "budget": str | None, "location": str | None, "timeframe": str | None}
    """
    raw = normalize_text(text)
    lowered = raw.lower()

    urgency = any(keyword in lowered for keyword in URGENCY_KEYWORDS)

    budget_match = BUDGET_PATTERN.search(raw)
    budget = budget_match.group(1) if budget_match else None

    location_match = LOCATION_PATTERN.search(raw)
    location = location_match.group(1).strip() if location_match else None

    timeframe = next((keyword for keyword in TIMEFRAME_KEYWORDS if keyword in lowered), None)

    return {
        "urgency": urgency,
        "budget": budget,
        "location": location,
        "timeframe": timeframe,
    }
