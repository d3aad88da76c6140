"""
Pricing service - computes the quoted price range for a 360 tour.

Order of operations (must not change, each step feeds the next):
1. base visit fee + per-space fee x spaces
2. advanced edit: x (1 + pct)
3. embed: + flat fee
4. urgent: x (1 + pct)
5. displacement: + subtotal x zone pct (first matching zone)
6. range: subtotal x 0.95 / x 1.15, rounded half-up to the nearest 1000

The annual hosting fee is reported alongside, never added.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from app.constants.steps import EDIT_ADVANCED, EDIT_BASIC

logger = logging.getLogger(__name__)

PRICING_RULES_PATH = Path(__file__).parent.parent.parent / "config" / "pricing.yml"


@dataclass(frozen=True)
class DisplacementZone:
    pattern: re.Pattern
    pct: Decimal


@dataclass(frozen=True)
class PricingRules:
    """Rule constants; amounts in CLP, percentages as fractions."""

    base_visit_fee: Decimal
    per_space_fee: Decimal
    advanced_edit_pct: Decimal
    embed_flat_fee: Decimal
    urgent_pct: Decimal
    range_low_factor: Decimal
    range_high_factor: Decimal
    rounding_step: Decimal
    hosting_annual_fee: Decimal
    displacement_zones: tuple[DisplacementZone, ...] = ()


@dataclass(frozen=True)
class PricingInput:
    service_category: str
    space_count: int
    edit_level: str = EDIT_BASIC
    needs_embed: bool = False
    is_urgent: bool = False
    locality: str = ""


@dataclass
class PricingResult:
    """Computed quote plus display lines for the markups that were applied."""

    subtotal: Decimal
    visit_base: int
    per_space_total: int
    min: int
    max: int
    hosting_annual: int
    displacement_pct: Decimal
    edit_line: str = ""
    embed_line: str = ""
    urgent_line: str = ""
    displacement_line: str = ""
    lines: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe dict for lead export and admin responses."""
        return {
            "subtotal": float(self.subtotal),
            "visitaBase": self.visit_base,
            "porEspacioTotal": self.per_space_total,
            "edicionLine": self.edit_line,
            "embedLine": self.embed_line,
            "urgenteLine": self.urgent_line,
            "desplazamientoLine": self.displacement_line,
            "desplazamientoPct": float(self.displacement_pct),
            "min": self.min,
            "max": self.max,
            "hostingAnual": self.hosting_annual,
        }


def _dec(value: Any) -> Decimal:
    return Decimal(str(value))


def _get_default_rules() -> dict[str, Any]:
    """Get default pricing rules if the YAML file is missing."""
    return {
        "base_visit_fee": 40000,
        "per_space_fee": 15000,
        "advanced_edit_pct": 0.25,
        "embed_flat_fee": 20000,
        "urgent_pct": 0.20,
        "range_low_factor": 0.95,
        "range_high_factor": 1.15,
        "rounding_step": 1000,
        "hosting_annual_fee": 250000,
        "displacement_zones": [
            {"pattern": "Las Condes|Providencia|Ñuñoa|Santiago", "pct": 0.00},
            {"pattern": "Maipú|La Florida|Puente Alto|Huechuraba|Quilicura", "pct": 0.05},
            {"pattern": "Colina|Lampa|Padre Hurtado|Talagante|Peñaflor", "pct": 0.08},
            {"pattern": "Valparaíso|Viña del Mar|Rancagua|Quillota", "pct": 0.12},
        ],
    }


def build_rules(raw: dict[str, Any]) -> PricingRules:
    """Build PricingRules from a plain dict; missing keys fall back to defaults."""
    defaults = _get_default_rules()
    merged = {**defaults, **(raw or {})}
    zones = tuple(
        DisplacementZone(pattern=re.compile(zone["pattern"], re.IGNORECASE), pct=_dec(zone["pct"]))
        for zone in merged["displacement_zones"]
    )
    return PricingRules(
        base_visit_fee=_dec(merged["base_visit_fee"]),
        per_space_fee=_dec(merged["per_space_fee"]),
        advanced_edit_pct=_dec(merged["advanced_edit_pct"]),
        embed_flat_fee=_dec(merged["embed_flat_fee"]),
        urgent_pct=_dec(merged["urgent_pct"]),
        range_low_factor=_dec(merged["range_low_factor"]),
        range_high_factor=_dec(merged["range_high_factor"]),
        rounding_step=_dec(merged["rounding_step"]),
        hosting_annual_fee=_dec(merged["hosting_annual_fee"]),
        displacement_zones=zones,
    )


@lru_cache(maxsize=1)
def load_pricing_rules() -> PricingRules:
    """
    Load pricing rules from app/config/pricing.yml.
    Cached for performance.

    Returns:
        PricingRules (defaults if the file is missing or unreadable)
    """
    try:
        if PRICING_RULES_PATH.exists():
            with open(PRICING_RULES_PATH, encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
            logger.info(f"Loaded pricing rules from {PRICING_RULES_PATH}")
            return build_rules(raw)
        logger.warning(f"Pricing rules file not found at {PRICING_RULES_PATH}, using defaults")
    except Exception as e:
        logger.error(f"Failed to load pricing rules: {e}, using defaults")
    return build_rules(_get_default_rules())


def round_half_up(amount: Decimal, step: Decimal) -> int:
    """Round amount to the nearest multiple of step, halves going up."""
    units = (amount / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(units * step)


def displacement_pct_for(locality: str, rules: PricingRules) -> Decimal:
    """Surcharge fraction for a comuna (first matching zone, otherwise 0)."""
    for zone in rules.displacement_zones:
        if zone.pattern.search(locality or ""):
            return zone.pct
    return Decimal("0")


def _pct_label(pct: Decimal) -> str:
    return f"+{round_half_up(pct * 100, Decimal('1'))}%"


def calculate_pricing(pricing_input: PricingInput, rules: PricingRules | None = None) -> PricingResult:
    """
    Calculate the price range for a tour.

    Args:
        pricing_input: Structured answers relevant to pricing
        rules: Rule constants (defaults to the configured rules)

    Returns:
        PricingResult with range, hosting fee and display lines
    """
    if rules is None:
        rules = load_pricing_rules()

    per_space_total = rules.per_space_fee * pricing_input.space_count
    subtotal = rules.base_visit_fee + per_space_total

    edit_line = embed_line = urgent_line = displacement_line = ""

    if pricing_input.edit_level == EDIT_ADVANCED and rules.advanced_edit_pct > 0:
        subtotal *= 1 + rules.advanced_edit_pct
        edit_line = f"• Edición avanzada: {_pct_label(rules.advanced_edit_pct)}"

    if pricing_input.needs_embed and rules.embed_flat_fee > 0:
        subtotal += rules.embed_flat_fee
        embed_line = f"• Embed web: {format_clp(rules.embed_flat_fee)}"

    if pricing_input.is_urgent and rules.urgent_pct > 0:
        subtotal *= 1 + rules.urgent_pct
        urgent_line = f"• Urgente: {_pct_label(rules.urgent_pct)}"

    displacement_pct = displacement_pct_for(pricing_input.locality, rules)
    if displacement_pct > 0:
        subtotal += subtotal * displacement_pct
        displacement_line = f"• Desplazamiento ({pricing_input.locality}): {_pct_label(displacement_pct)}"

    result = PricingResult(
        subtotal=subtotal,
        visit_base=int(rules.base_visit_fee),
        per_space_total=int(per_space_total),
        min=round_half_up(subtotal * rules.range_low_factor, rules.rounding_step),
        max=round_half_up(subtotal * rules.range_high_factor, rules.rounding_step),
        hosting_annual=int(rules.hosting_annual_fee),
        displacement_pct=displacement_pct,
        edit_line=edit_line,
        embed_line=embed_line,
        urgent_line=urgent_line,
        displacement_line=displacement_line,
    )
    result.lines = [line for line in (edit_line, embed_line, urgent_line, displacement_line) if line]

    logger.debug(
        f"Pricing computed: category={pricing_input.service_category}, "
        f"spaces={pricing_input.space_count}, subtotal={subtotal}, range={result.min}-{result.max}"
    )
    return result


def pricing_input_from_answers(service_type: str | None, answers: dict[str, Any]) -> PricingInput:
    """Map collected answers onto a PricingInput."""
    return PricingInput(
        service_category=service_type or "",
        space_count=int(answers.get("nEspacios") or 1),
        edit_level=answers.get("edicion") or EDIT_BASIC,
        needs_embed=bool(answers.get("embed")),
        is_urgent=bool(answers.get("urgente")),
        locality=str(answers.get("comuna") or ""),
    )


def format_clp(amount: int | Decimal) -> str:
    """Chilean pesos with dot thousands separators: 67000 -> "$67.000"."""
    rounded = round_half_up(_dec(amount), Decimal("1"))
    return "$" + f"{rounded:,}".replace(",", ".")


def format_price_range(min_amount: int, max_amount: int) -> str:
    return f"entre {format_clp(min_amount)} y {format_clp(max_amount)}"


def generate_pricing_summary(pricing_input: PricingInput, result: PricingResult) -> str:
    """Customer-facing quote text."""
    lines = [
        "Estimación Castello360:",
        f"• Visita y logística: {format_clp(result.visit_base)}",
        f"• {pricing_input.space_count} espacios: {format_clp(result.per_space_total)}",
        *result.lines,
        "---------------------------",
        f"Total estimado: {format_price_range(result.min, result.max)} CLP",
        f"Opcional: Hosting + soporte anual (link/embebido listo): {format_clp(result.hosting_annual)} CLP",
        "¿Agendamos? Puedo ofrecerte 3 fechas próximas.",
    ]
    return "\n".join(lines)
