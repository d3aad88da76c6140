"""
Input validators for the intake flow - dates, numbers, URLs, comunas, emails, RUT.

Every validator is pure and never raises: invalid input returns a result with
is_valid=False and the caller re-prompts with its own corrective message.
"""

import re
from dataclasses import dataclass
from datetime import date, timedelta

from app.services.text_normalization import normalize_for_keywords, normalize_text
from app.utils.datetime_utils import local_today

# Relative date literals -> day offset from today
RELATIVE_DATES = {
    "hoy": 0,
    "mañana": 1,
    "manana": 1,
    "esta semana": 3,
    "próxima semana": 10,
    "proxima semana": 10,
}

NUMBER_WORDS = {
    "uno": 1,
    "dos": 2,
    "tres": 3,
    "cuatro": 4,
    "cinco": 5,
    "seis": 6,
    "siete": 7,
    "ocho": 8,
    "nueve": 9,
    "diez": 10,
}

DAY_MONTH_PATTERN = re.compile(r"^(\d{1,2})[/-](\d{1,2})$")
RANGE_PATTERN = re.compile(r"^(\d+)\s*-\s*(\d+)$")
LEADING_INT_PATTERN = re.compile(r"^(\d+)\b")
URL_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)
LOCALITY_PATTERN = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑüÜ\s\-]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
RUT_SEPARATORS = re.compile(r"[.\-\s]")
RUT_BODY_PATTERN = re.compile(r"[0-9]{8}")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a simple validator; value is the normalized input when valid."""

    is_valid: bool
    value: str | None = None


@dataclass(frozen=True)
class ParsedDate:
    is_valid: bool
    resolved_date: date | None = None
    text: str | None = None  # Display text: the literal ("mañana") or "D/M"


@dataclass(frozen=True)
class ParsedNumber:
    is_valid: bool
    value: int | None = None
    range: tuple[int, int] | None = None  # (min, max) for "A-B" answers

    @property
    def lower_bound(self) -> int | None:
        """Scalar value, or the low end of a range."""
        if self.value is not None:
            return self.value
        if self.range is not None:
            return self.range[0]
        return None


@dataclass(frozen=True)
class ExtractedUrl:
    is_valid: bool
    url: str | None = None
    kind: str | None = None  # google_maps | airbnb | instagram | web


def _roll_forward(day: int, month: int, today: date) -> date | None:
    """First occurrence of day/month on or after today (None if it never exists)."""
    # 29/2 can need up to four years to reappear
    for offset in range(0, 5):
        try:
            candidate = date(today.year + offset, month, day)
        except ValueError:
            continue
        if candidate >= today:
            return candidate
    return None


def parse_date(text: str | None, today: date | None = None) -> ParsedDate:
    """
    Parse a tentative date.

    Accepts: "hoy", "mañana", "esta semana", "próxima semana", "DD/MM", "DD-MM".
    A DD/MM that already passed this year rolls forward to next year.

    Args:
        text: Raw user input
        today: Reference date (defaults to today in the business timezone)

    Returns:
        ParsedDate (is_valid=False when not understood)
    """
    if today is None:
        today = local_today()
    lowered = normalize_for_keywords(text)

    if lowered in RELATIVE_DATES:
        return ParsedDate(
            is_valid=True,
            resolved_date=today + timedelta(days=RELATIVE_DATES[lowered]),
            text=lowered,
        )

    match = DAY_MONTH_PATTERN.match(lowered)
    if match:
        day, month = int(match.group(1)), int(match.group(2))
        if 1 <= day <= 31 and 1 <= month <= 12:
            resolved = _roll_forward(day, month, today)
            if resolved is not None:
                return ParsedDate(is_valid=True, resolved_date=resolved, text=f"{day}/{month}")

    return ParsedDate(is_valid=False)


def parse_number(text: str | None) -> ParsedNumber:
    """
    Parse a count of spaces: "dos", "3", "3 espacios", "3-4".

    Returns:
        ParsedNumber with value (scalar) or range (min, max)
    """
    cleaned = normalize_for_keywords(text)

    if cleaned in NUMBER_WORDS:
        return ParsedNumber(is_valid=True, value=NUMBER_WORDS[cleaned])

    range_match = RANGE_PATTERN.match(cleaned)
    if range_match:
        low, high = int(range_match.group(1)), int(range_match.group(2))
        if low > 0 and high >= low:
            return ParsedNumber(is_valid=True, range=(low, high))
        return ParsedNumber(is_valid=False)

    int_match = LEADING_INT_PATTERN.match(cleaned)
    if int_match:
        value = int(int_match.group(1))
        if value > 0:
            return ParsedNumber(is_valid=True, value=value)

    return ParsedNumber(is_valid=False)


def extract_url(text: str | None) -> ExtractedUrl:
    """Find the first http(s) URL in text and classify it."""
    match = URL_PATTERN.search(text or "")
    if not match:
        return ExtractedUrl(is_valid=False)

    url = match.group(0)
    lowered = url.lower()
    if "google.com/maps" in lowered or "maps.google.com" in lowered or "maps.app.goo.gl" in lowered:
        kind = "google_maps"
    elif "airbnb.com" in lowered or "airbnb.cl" in lowered:
        kind = "airbnb"
    elif "instagram.com" in lowered:
        kind = "instagram"
    else:
        kind = "web"
    return ExtractedUrl(is_valid=True, url=url, kind=kind)


def validate_locality(text: str | None) -> ValidationResult:
    """Comuna/city: at least 2 chars of letters, spaces and hyphens."""
    cleaned = normalize_text(text)
    if len(cleaned) < 2:
        return ValidationResult(is_valid=False)
    if LOCALITY_PATTERN.match(cleaned):
        return ValidationResult(is_valid=True, value=cleaned)
    return ValidationResult(is_valid=False)


def validate_email(text: str | None) -> ValidationResult:
    cleaned = normalize_text(text)
    if EMAIL_PATTERN.match(cleaned):
        return ValidationResult(is_valid=True, value=cleaned)
    return ValidationResult(is_valid=False)


def compute_rut_check_digit(digits: str) -> str:
    """
    Modulus-11 check character for an RUT body.

    Weights 2..7 cycle from the rightmost digit; 11 -> "0", 10 -> "K".
    """
    total = 0
    multiplier = 2
    for ch in reversed(digits):
        total += int(ch) * multiplier
        multiplier = 2 if multiplier == 7 else multiplier + 1
    expected = 11 - (total % 11)
    if expected == 11:
        return "0"
    if expected == 10:
        return "K"
    return str(expected)


def validate_rut(text: str | None) -> ValidationResult:
    """
    Validate a Chilean RUT ("12.345.678-5", "12345678-5", "123456785").

    Returns:
        ValidationResult with canonical "12345678-5" form when valid
    """
    cleaned = RUT_SEPARATORS.sub("", normalize_text(text))
    if len(cleaned) != 9:
        return ValidationResult(is_valid=False)

    digits, check = cleaned[:8], cleaned[8:].upper()
    if not RUT_BODY_PATTERN.fullmatch(digits):
        return ValidationResult(is_valid=False)

    if check != compute_rut_check_digit(digits):
        return ValidationResult(is_valid=False)
    return ValidationResult(is_valid=True, value=f"{digits}-{check}")


def validate_phone(text: str | None) -> ValidationResult:
    """Chilean mobile number (569XXXXXXXX) -> "+569XXXXXXXX"."""
    digits = re.sub(r"\D", "", text or "")
    if digits.startswith("569") and len(digits) == 11:
        return ValidationResult(is_valid=True, value=f"+{digits}")
    return ValidationResult(is_valid=False)


def sanitize_text(text: str | None, max_length: int = 500) -> str:
    """Strip angle brackets and truncate free text before storing it."""
    sanitized = normalize_text(text).replace("<", "").replace(">", "")
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length] + "..."
    return sanitized
