"""
Tests for message composer - variant selection and rendering.
"""

import pytest

import app.services.messaging.message_composer as mc
from app.services.messaging.message_composer import MessageComposer


def _write_copy(copy_file, content: str) -> None:
    """Write temp YAML with UTF-8 so ñ and accents load correctly."""
    copy_file.write_text(content, encoding="utf-8")


@pytest.fixture
def copy_file(tmp_path, monkeypatch):
    """Create a temporary copy dir and point the composer at it."""
    copy_dir = tmp_path / "copy"
    copy_dir.mkdir()
    monkeypatch.setattr(mc, "COPY_DIR", copy_dir)
    return copy_dir / "es_CL.yml"


def test_message_composer_loads_yaml(copy_file):
    _write_copy(
        copy_file,
        """
saludo:
  - "Hola {name}!"
  - "Buenas {name}!"
""",
    )
    composer = MessageComposer()
    assert composer.has_key("saludo")
    assert len(composer.copy["saludo"]) == 2


def test_message_composer_selects_variant_deterministically(copy_file):
    _write_copy(
        copy_file,
        """
mensaje:
  - "Variante 1"
  - "Variante 2"
  - "Variante 3"
""",
    )
    composer = MessageComposer()
    first = composer.render("mensaje", seed="56911112222")
    for _ in range(5):
        assert composer.render("mensaje", seed="56911112222") == first


def test_message_composer_without_seed_uses_first_variant(copy_file):
    _write_copy(copy_file, 'mensaje:\n  - "Uno"\n  - "Dos"\n')
    assert MessageComposer().render("mensaje") == "Uno"


def test_message_composer_plain_string_value(copy_file):
    _write_copy(copy_file, 'mensaje: "Hola {name}, ¿cómo estás?"\n')
    assert MessageComposer().render("mensaje", name="Ana") == "Hola Ana, ¿cómo estás?"


def test_message_composer_missing_key(copy_file):
    _write_copy(copy_file, 'mensaje: "Hola"\n')
    assert MessageComposer().render("no_existe") == "[MISSING: no_existe]"


def test_message_composer_missing_variable_returns_template(copy_file):
    _write_copy(copy_file, 'mensaje: "Hola {name}"\n')
    assert MessageComposer().render("mensaje") == "Hola {name}"


def test_message_composer_missing_file(copy_file):
    composer = MessageComposer(locale="xx_XX")
    assert composer.has_key("welcome") is False


def test_bundled_copy_has_every_prompt():
    """Every prompt/repair key referenced by the question plan exists in es_CL.yml."""
    from app.services.conversation.questions import QUESTION_PLAN

    composer = MessageComposer()
    for descriptor in QUESTION_PLAN:
        assert composer.has_key(descriptor.prompt_key), descriptor.prompt_key
        if descriptor.repair_key:
            assert composer.has_key(descriptor.repair_key), descriptor.repair_key


def test_bundled_copy_renders_business_placeholders():
    composer = MessageComposer()
    text = composer.render(
        "human_handoff",
        seed="56911112222",
        business_name="Castello360",
        business_phone="+56971219394",
        business_website="https://castello360.com",
    )
    assert "Castello360" in text
    assert "+56971219394" in text
    assert "{" not in text


def test_message_composer_unreadable_yaml_yields_empty_copy(copy_file):
    _write_copy(copy_file, "mensaje: [sin cerrar\n")
    composer = MessageComposer()
    assert composer.copy == {}
    assert composer.render("mensaje") == "[MISSING: mensaje]"


def test_message_composer_partial_variables(copy_file):
    _write_copy(copy_file, 'mensaje: "{saludo} {name}"\n')
    assert MessageComposer().render("mensaje", saludo="Hola") == "Hola {name}"
