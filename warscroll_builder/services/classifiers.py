"""Ordered rule tables mapping free catalogue text onto the closed card vocabularies.

Each table is evaluated top to bottom and the first matching rule wins, so the
order of entries is significant (e.g. "start of battle round" must be tested
before "start of turn").
"""

from __future__ import annotations

import re
from typing import Iterable, Pattern, Sequence, TypeVar

from ..data.warscroll import (
    PHASE_TO_COLOR,
    PHASES,
    AbilityColor,
    AbilityPhase,
    AbilityTimingQualifier,
    AbilityType,
    BattleTraitType,
    UnitType,
)

T = TypeVar("T")


def _rule(pattern: str, result: T) -> tuple[Pattern[str], T]:
    return re.compile(pattern, re.IGNORECASE), result


# "end of your turn", "start of the enemy turn", ...
TURN_OWNER = r"(?:(?:any|your|the|enemy|opponent'?s)\s+){0,2}"

PHASE_RULES: list[tuple[Pattern[str], AbilityPhase]] = [
    _rule(r"\bhero\b", "Hero Phase"),
    _rule(r"\bshoot", "Shooting Phase"),
    _rule(r"\bcombat\b", "Combat Phase"),
    _rule(r"\bcharge\b", "Charge Phase"),
    _rule(r"\bmov(e|ement)\b", "Movement Phase"),
    _rule(rf"\bend\s+of\s+{TURN_OWNER}turn\b", "End of Turn"),
    _rule(r"\bdeploy", "Deployment"),
    _rule(rf"\bstart\s+of\s+{TURN_OWNER}battle\s+round\b", "Start of Battle Round"),
    _rule(rf"\bstart\s+of\s+{TURN_OWNER}turn\b", "Start of Turn"),
]

TIMING_RULES: list[tuple[Pattern[str], AbilityTimingQualifier]] = [
    _rule(r"passive", "Passive"),
    _rule(r"\byour\b", "Your"),
    _rule(r"\bany\b", "Any"),
    _rule(r"\benemy\b", "Enemy"),
    _rule(r"reaction", "Reaction"),
]

ABILITY_TYPE_RULES: list[tuple[Pattern[str], AbilityType]] = [
    _rule(r"once\s+per\s+turn\s*\(army\)", "Once Per Turn (Army)"),
    _rule(r"once\s+per\s+turn", "Once Per Turn"),
    _rule(r"once\s+per\s+battle", "Once Per Battle"),
]

TRAIT_TYPE_RULES: list[tuple[Pattern[str], BattleTraitType]] = [
    _rule(r"manifestation", "Manifestation Lores"),
    _rule(r"prayer", "Prayer lores"),
    _rule(r"spell", "Spell lores"),
    _rule(r"formation", "Battle formations"),
    _rule(r"heroic", "Heroic traits"),
    _rule(r"artefact|artifact|heirloom|marks\s+of", "Artefacts"),
    _rule(r"battle\s+trait", "Battle traits"),
]

COLOR_SYNONYMS: dict[str, AbilityColor] = {
    "grey": "grey",
    "gray": "grey",
    "blue": "blue",
    "green": "green",
    "orange": "orange",
    "yellow": "yellow",
    "red": "red",
    "purple": "purple",
    "black": "black",
}

UNIT_TYPE_TAGS: dict[str, UnitType] = {
    "HERO": "hero",
    "INFANTRY": "infantry",
    "CAVALRY": "cavalry",
    "BEAST": "beast",
    "MONSTER": "monster",
    "WAR MACHINE": "war machine",
    "MANIFESTATION": "manifestation",
}

DEFAULT_COLOR: AbilityColor = "grey"
DEFAULT_TRAIT_TYPE: BattleTraitType = "Battle traits"

_CANONICAL_PHASES = {phase.lower(): phase for phase in PHASES}


def collapse_whitespace(value: str) -> str:
    return re.sub(r"\s+", " ", value or "").strip()


def first_match(rules: Sequence[tuple[Pattern[str], T]], value: str) -> T | None:
    if not value:
        return None
    for pattern, result in rules:
        if pattern.search(value):
            return result
    return None


def _first_signal(rules: Sequence[tuple[Pattern[str], T]], signals: Iterable[str]) -> T | None:
    for signal in signals:
        result = first_match(rules, signal)
        if result is not None:
            return result
    return None


def phase_from_text(value: str) -> AbilityPhase | None:
    collapsed = collapse_whitespace(value)
    if not collapsed:
        return None
    canonical = _CANONICAL_PHASES.get(collapsed.lower())
    if canonical:
        return canonical
    return first_match(PHASE_RULES, collapsed)


def classify_phase(*signals: str) -> AbilityPhase | None:
    for signal in signals:
        phase = phase_from_text(signal)
        if phase is not None:
            return phase
    return None


def classify_timing(*signals: str) -> AbilityTimingQualifier | None:
    return _first_signal(TIMING_RULES, signals)


def classify_ability_type(*signals: str) -> AbilityType | None:
    return _first_signal(ABILITY_TYPE_RULES, signals)


def classify_color(value: str) -> AbilityColor:
    return COLOR_SYNONYMS.get((value or "").strip().lower(), DEFAULT_COLOR)


def color_for_phase(phase: AbilityPhase | None) -> AbilityColor:
    if phase is None:
        return DEFAULT_COLOR
    return PHASE_TO_COLOR.get(phase, DEFAULT_COLOR)


def classify_unit_type(category_names: Iterable[str]) -> UnitType | None:
    for name in category_names:
        unit_type = UNIT_TYPE_TAGS.get(collapse_whitespace(name).upper())
        if unit_type is not None:
            return unit_type
    return None


def classify_trait_type(group_name: str) -> BattleTraitType:
    return first_match(TRAIT_TYPE_RULES, group_name) or DEFAULT_TRAIT_TYPE
