"""
Tests for WhatsApp text clean-up used by every parser.
"""

import pytest

from app.services.text_normalization import normalize_for_keywords, normalize_text, strip_accents


@pytest.mark.parametrize(
    "raw,expected",
    [
        (None, ""),
        (42, ""),
        ("   ", ""),
        ("  Las   Condes ", "Las Condes"),
        ("Las\u00A0Condes", "Las Condes"),
        ("10\u202F000", "10 000"),
        ("ho\u200Bla\uFEFF", "hola"),
        ("linea 1\n\nlinea 2", "linea 1 linea 2"),
    ],
)
def test_normalize_text(raw, expected):
    assert normalize_text(raw) == expected


def test_decomposed_accents_are_composed():
    decomposed = "man\u0303ana"
    assert normalize_text(decomposed) == "mañana"


def test_normalize_for_keywords_lowercases():
    assert normalize_for_keywords("  Próxima  SEMANA ") == "próxima semana"


def test_strip_accents():
    assert strip_accents("próxima ñuñoa ÁREA") == "proxima nunoa AREA"
