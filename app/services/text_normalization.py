"""
Clean up WhatsApp message text before parsing (dates, counts, RUT, keywords).

Messages pasted from other apps carry no-break spaces, zero-width joiners
and decomposed accents; after normalize_text they compare like typed text.
"""

import re
import unicodedata

# Space-like characters become a plain space, invisible ones are dropped
_INVISIBLES = str.maketrans(
    {
        "\u00A0": " ",
        "\u2007": " ",
        "\u202F": " ",
        "\u200B": None,
        "\u200C": None,
        "\u200D": None,
        "\u2060": None,
        "\uFEFF": None,
    }
)
_WHITESPACE_RUN = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Trimmed, NFC-composed, single-spaced text; "" for None or non-strings."""
    if not isinstance(text, str):
        return ""
    composed = unicodedata.normalize("NFC", text.translate(_INVISIBLES))
    return _WHITESPACE_RUN.sub(" ", composed).strip()


def normalize_for_keywords(text: str | None) -> str:
    return normalize_text(text).lower()


def strip_accents(text: str) -> str:
    """"próxima" -> "proxima"; ñ becomes n."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))
