from __future__ import annotations

import re
import unicodedata

_ENTITIES = (
    ("&apos;", "'"),
    ("&quot;", '"'),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
)

_BOLD_CARET_RE = re.compile(r"\*\*\^\^([^^]+)\^\^\*\*")
_CARET_RE = re.compile(r"\^\^([^^]+)\^\^")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")


def decode_entities(value: str) -> str:
    """Replace the five predefined XML entities; anything else is left alone."""
    for entity, replacement in _ENTITIES:
        value = value.replace(entity, replacement)
    return value


def clean_effect(raw: str) -> str:
    """Rich ability text: ``^^word^^`` becomes markdown bold ``**word**``."""
    cleaned = decode_entities(raw or "")
    cleaned = _BOLD_CARET_RE.sub(r"**\1**", cleaned)
    return _CARET_RE.sub(r"**\1**", cleaned)


def strip_weapon_ability(raw: str) -> str:
    """Plain text with caret and asterisk emphasis markers removed."""
    cleaned = decode_entities(raw or "")
    cleaned = _CARET_RE.sub(r"\1", cleaned)
    cleaned = _BOLD_RE.sub(r"\1", cleaned)
    return cleaned.replace("^^", "").replace("**", "").strip()


def strip_markdown(value: str) -> str:
    cleaned = _BOLD_RE.sub(r"\1", value or "")
    cleaned = _ITALIC_RE.sub(r"\1", cleaned)
    cleaned = _CARET_RE.sub(r"\1", cleaned)
    return cleaned.replace("\n", " ").strip()


def build_ability_text(declare: str, effect: str, name: str) -> str:
    if declare and effect:
        return f"**Declare**: {clean_effect(declare)}\n**Effect**: {clean_effect(effect)}"
    if declare or effect:
        return clean_effect(declare or effect)
    return clean_effect(name)


def bold_references(value: str) -> list[str]:
    """Bold-emphasized phrases, excluding the synthetic Declare/Effect labels."""
    return [
        match.strip()
        for match in _BOLD_RE.findall(value or "")
        if match.strip() and match.strip() not in {"Declare", "Effect"}
    ]


def normalize_reference(value: str) -> str:
    unified = re.sub(r"[‘’‛`´]", "'", value or "")
    return re.sub(r"\s+", " ", unified).strip().lower()


def collation_key(value: str | None) -> tuple[str, str, str]:
    """Sort key for display names: letters first, then accents, then case.

    ``"aetherwings" < "Éowyn Riders" < "Liberators"``; a lowercase name sorts
    before the same name capitalised.
    """
    value = value or ""
    decomposed = unicodedata.normalize("NFKD", value)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return base.casefold(), value.casefold(), value.swapcase()
