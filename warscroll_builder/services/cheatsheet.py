"""Phase-ordered digest of every ability across a set of cards."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Pattern

from ..data.warscroll import Ability, ArmyCollection, BattleTrait, Warscroll
from .classifiers import TURN_OWNER
from .text import collation_key, strip_markdown

CHEAT_SHEET_STAGE_ORDER: tuple[str, ...] = (
    "Deployment Phase",
    "Start of Battle Round",
    "Start of Turn",
    "Hero Phase",
    "Movement Phase",
    "Shooting Phase",
    "Charge Phase",
    "Combat Phase",
    "End of Turn",
    "Passive",
)

COLOR_TO_PHASE: dict[str, str] = {
    "yellow": "Hero Phase",
    "blue": "Shooting Phase",
    "red": "Combat Phase",
    "orange": "Charge Phase",
    "grey": "Movement Phase",
    "purple": "End of Turn",
    "black": "Start of Turn",
    "green": "Passive",
}

UNTITLED_CARD = "Untitled"
UNRECOGNIZED_STAGE = "Unrecognized"

# Most specific first: "start of battle round" also reads as a start of turn.
TEXT_STAGE_RULES: list[tuple[Pattern[str], str]] = [
    (re.compile(r"\bdeploy", re.IGNORECASE), "Deployment Phase"),
    (
        re.compile(rf"\bstart\s+of\s+{TURN_OWNER}(?:battle\s+)?round\b", re.IGNORECASE),
        "Start of Battle Round",
    ),
    (re.compile(rf"\bstart\s+of\s+{TURN_OWNER}turn\b", re.IGNORECASE), "Start of Turn"),
]

BLACK_STAGE_RULES: list[tuple[Pattern[str], str]] = [
    (re.compile(r"\bdeploy", re.IGNORECASE), "Deployment Phase"),
    (re.compile(r"\bbattle\s+round\b", re.IGNORECASE), "Start of Battle Round"),
]

_STAGE_INDEX = {stage: index for index, stage in enumerate(CHEAT_SHEET_STAGE_ORDER)}


@dataclass(frozen=True)
class CheatSheetEntry:
    ability: Ability
    card_name: str
    stage: str


def _scan(rules: list[tuple[Pattern[str], str]], value: str) -> str | None:
    for pattern, stage in rules:
        if pattern.search(value):
            return stage
    return None


def resolve_stage(ability: Ability) -> str:
    if ability.phase:
        return "Deployment Phase" if ability.phase == "Deployment" else ability.phase
    if ability.timing == "Passive":
        return "Passive"

    combined = " ".join(
        part for part in (ability.reaction_phase, ability.name, ability.text) if part
    )
    stage = _scan(TEXT_STAGE_RULES, combined)
    if stage is not None:
        return stage

    if ability.color == "black":
        return _scan(BLACK_STAGE_RULES, combined) or "Start of Turn"
    return COLOR_TO_PHASE.get(ability.color, UNRECOGNIZED_STAGE)


def _sort_key(entry: CheatSheetEntry) -> tuple[int, tuple[str, str, str]]:
    return _STAGE_INDEX.get(entry.stage, len(CHEAT_SHEET_STAGE_ORDER)), collation_key(entry.card_name)


def build_cheat_sheet(
    units: Iterable[Warscroll], traits: Iterable[BattleTrait]
) -> list[CheatSheetEntry]:
    entries: list[CheatSheetEntry] = []
    for unit in units:
        card_name = unit.unit_name or UNTITLED_CARD
        for ability in unit.abilities:
            entries.append(CheatSheetEntry(ability, card_name, resolve_stage(ability)))
    for trait in traits:
        card_name = trait.name or UNTITLED_CARD
        for ability in trait.abilities:
            entries.append(CheatSheetEntry(ability, card_name, resolve_stage(ability)))
    return sorted(entries, key=_sort_key)


def ability_label(ability: Ability) -> str:
    """Header line shown above an ability, e.g. ``"Once Per Turn, Your Hero Phase"``."""
    if ability.timing == "Passive":
        return "Passive"
    if ability.timing == "Reaction":
        parts = ["Reaction"]
        parts.extend(
            value.strip()
            for value in (ability.reaction_ability_type, ability.reaction_phase)
            if value and value.strip()
        )
        return ", ".join(parts)

    parts = []
    if ability.ability_type:
        parts.append(ability.ability_type)
    when = " ".join(value for value in (ability.timing, ability.phase) if value)
    if when:
        parts.append(when)
    return ", ".join(parts)


def build_collection_cheat_sheet(
    collection: ArmyCollection,
    warscrolls: Iterable[Warscroll],
    traits: Iterable[BattleTrait],
) -> list[CheatSheetEntry]:
    warscrolls_by_id = {item.id: item for item in warscrolls}
    traits_by_id = {item.id: item for item in traits}
    units = [warscrolls_by_id[item] for item in collection.warscroll_ids if item in warscrolls_by_id]
    selected_traits = [
        traits_by_id[item] for item in collection.battle_trait_ids if item in traits_by_id
    ]
    return build_cheat_sheet(units, selected_traits)


def plain_text(entry: CheatSheetEntry) -> str:
    return strip_markdown(entry.ability.text)
