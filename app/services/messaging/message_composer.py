"""
Bot copy: Spanish message templates loaded from app/copy/<locale>.yml.

A key maps either to one template or to a list of variants. With a seed
(the customer's phone) the same customer always sees the same variant, so
a conversation never flips wording mid-flow. Placeholders use str.format
syntax; unknown placeholders are left in place rather than raising.
"""

import hashlib
import logging
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

COPY_DIR = Path(__file__).resolve().parent.parent.parent / "copy"
DEFAULT_LOCALE = "es_CL"


class _KeepUnknown(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


def load_copy(path: Path) -> dict[str, Any]:
    """Read a copy file; a missing or unreadable file yields no copy at all."""
    if not path.exists():
        logger.warning(f"Copy file not found: {path}, bot will answer with placeholders")
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Could not read copy file {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.error(f"Copy file {path} must be a mapping of key -> template")
        return {}
    logger.info(f"Loaded {len(data)} copy keys from {path}")
    return data


def pick_variant(key: str, variants: list[Any], seed: str | None) -> str:
    if seed is None:
        return str(variants[0])
    digest = hashlib.sha256(f"{key}:{seed}".encode()).digest()
    return str(variants[int.from_bytes(digest[:8], "big") % len(variants)])


class MessageComposer:
    def __init__(self, locale: str = DEFAULT_LOCALE):
        self.locale = locale
        self.copy_file = COPY_DIR / f"{locale}.yml"
        self.copy = load_copy(self.copy_file)

    def has_key(self, key: str) -> bool:
        return key in self.copy

    def template(self, key: str, seed: str | None = None) -> str:
        entry = self.copy.get(key)
        if entry is None:
            logger.warning(f"Copy key not found: {key}")
            return f"[MISSING: {key}]"
        if isinstance(entry, list):
            if not entry:
                logger.warning(f"Copy key {key} has no variants")
                return ""
            return pick_variant(key, entry, seed)
        return str(entry)

    def render(self, key: str, seed: str | None = None, **kwargs: Any) -> str:
        """
        Render ``key`` with ``kwargs`` substituted.

        e.g. composer.render("service_selected", seed="56911112222", service_type="Hotel")
        """
        text = self.template(key, seed)
        try:
            return text.format_map(_KeepUnknown(kwargs))
        except (ValueError, IndexError, AttributeError) as e:
            logger.warning(f"Malformed template for copy key {key}: {e}")
            return text
