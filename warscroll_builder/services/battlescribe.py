"""Parse BattleScribe catalogue XML (.cat) into warscroll records.

Targets the BSData Age of Sigmar 4th edition "Library" catalogues: every
top-level unit entry becomes one card, with weapon and ability profiles
gathered from its nested model and upgrade entries.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace

from lxml.etree import _Element as Element

from ..data.warscroll import (
    DEFAULT_FACTION,
    MISSING_VALUE,
    Ability,
    Warscroll,
    WeaponProfile,
    utc_now_iso,
)
from . import classifiers
from .text import (
    bold_references,
    build_ability_text,
    normalize_reference,
    strip_weapon_ability,
)
from .xml_nodes import CatalogueDocument, node_text

logger = logging.getLogger(__name__)

SUBFACTION_RE = re.compile(r"^(.+?)\s+\(([^)]+)\)\s*$")
LIBRARY_SUFFIX_RE = re.compile(r"\s*-\s*Library\s*$", re.IGNORECASE)
WARD_CATEGORY_RE = re.compile(r"^WARD\s*\((\d+\+)\)$", re.IGNORECASE)
PASSIVE_TYPE_RE = re.compile(r"ability\s*\(\s*passive\s*\)", re.IGNORECASE)
SPELL_TYPE_RE = re.compile(r"ability\s*\(\s*spell\s*\)", re.IGNORECASE)
PRAYER_TYPE_RE = re.compile(r"ability\s*\(\s*prayer\s*\)", re.IGNORECASE)
REACTION_MARKER_RE = re.compile(r"reaction\s*:", re.IGNORECASE)
REACTION_TEXT_RE = re.compile(r"reaction\s*:\s*([^\n.]+)", re.IGNORECASE)
BATTLE_DAMAGE_RE = re.compile(r"battle\s*damaged?", re.IGNORECASE)
NUMERIC_RANGE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)")

UNIT_ENTRY_TYPES = {"unit", "model"}
EMPTY_WEAPON_TAGS = {"", "-", "–"}

MOVE_NAMES = ("Move", "Movement")
HEALTH_NAMES = ("Wounds", "Health", "Damage")
SAVE_NAMES = ("Save",)
CONTROL_NAMES = ("Bravery", "Control")
WARD_NAMES = ("Ward",)


@dataclass
class CatalogueParseResult:
    units: list[Warscroll]
    faction: str


def split_subfaction(raw_name: str) -> tuple[str, str | None]:
    """``"Auric Runeson (Scourge of Ghyran)"`` -> ``("Auric Runeson", "Scourge of Ghyran")``."""
    name = (raw_name or "").strip()
    match = SUBFACTION_RE.match(name)
    if not match:
        return name, None
    return match.group(1).strip(), match.group(2).strip()


def faction_name(doc: CatalogueDocument) -> str:
    catalogue = doc.catalogue
    raw_name = catalogue.get("name") if catalogue is not None else None
    if not raw_name:
        return DEFAULT_FACTION
    return LIBRARY_SUFFIX_RE.sub("", raw_name).strip() or DEFAULT_FACTION


def profile_type(profile: Element) -> str:
    return (profile.get("typeName") or profile.get("type") or "").strip()


def _split_keywords(raw: str) -> list[str] | None:
    keywords = [strip_weapon_ability(item) for item in raw.split(",")]
    keywords = [item for item in keywords if item not in EMPTY_WEAPON_TAGS]
    return keywords or None


def is_passive_profile(raw_type: str, timing_text: str, type_text: str, has_body: bool) -> bool:
    # Catalogue authors usually leave the Timing characteristic out of passive
    # abilities, so a missing timing signal counts as passive.
    combined = f"{timing_text} {type_text}".strip()
    if PASSIVE_TYPE_RE.fullmatch(raw_type.strip()):
        return True
    if not timing_text and has_body:
        return True
    return bool(re.search("passive", type_text, re.IGNORECASE)) or bool(
        re.search("passive", combined, re.IGNORECASE)
    )


def parse_profile_ability(doc: CatalogueDocument, profile: Element) -> Ability | None:
    raw_type = profile_type(profile)
    lowered_type = raw_type.lower()
    if "ability" not in lowered_type and "effect" not in lowered_type:
        return None

    name = (profile.get("name") or "").strip()
    declare = doc.characteristic(profile, "Declare")
    effect = doc.characteristic(profile, "Effect", "Description", "Rules")
    if not declare and not effect and not name:
        return None

    explicit_color = doc.attribute(profile, "Color", "Colour") or doc.characteristic(
        profile, "Color", "Colour"
    )
    type_text = doc.attribute(profile, "Type") or doc.characteristic(profile, "Type", "Ability Type")
    timing_text = (
        doc.attribute(profile, "Timing")
        or doc.attribute(profile, "Phase")
        or doc.characteristic(profile, "Timing", "Phase", "When")
    )
    combined = f"{timing_text} {type_text}".strip()
    passive = is_passive_profile(raw_type, timing_text, type_text, bool(declare or effect or name))

    phase = None
    timing = None
    ability_type = None
    reaction_ability_type = None
    if passive:
        timing = "Passive"
        color = classifiers.classify_color(explicit_color)
    else:
        phase = classifiers.classify_phase(timing_text, combined)
        timing = classifiers.classify_timing(combined, timing_text)
        ability_type = classifiers.classify_ability_type(combined, type_text)
        if explicit_color:
            color = classifiers.classify_color(explicit_color)
        else:
            color = classifiers.color_for_phase(phase)
        if REACTION_MARKER_RE.search(combined) or REACTION_MARKER_RE.search(effect):
            timing = "Reaction"
            match = REACTION_TEXT_RE.search(effect) or REACTION_TEXT_RE.search(combined)
            if match:
                reaction_ability_type = strip_weapon_ability(match.group(1)) or None

    is_spell = bool(SPELL_TYPE_RE.search(raw_type))
    is_prayer = bool(PRAYER_TYPE_RE.search(raw_type))
    casting_value = doc.direct_characteristic(profile, "Casting Value") if is_spell else ""
    chanting_value = doc.direct_characteristic(profile, "Chanting Value") if is_prayer else ""
    battle_damage = any(BATTLE_DAMAGE_RE.search(value) for value in (name, effect, declare))

    return Ability(
        name=name or "Ability",
        color=color,
        text=build_ability_text(declare, effect, name),
        phase=phase,
        timing=timing,
        ability_type=ability_type,
        reaction_ability_type=reaction_ability_type,
        battle_damage=True if battle_damage else None,
        is_spell=True if is_spell else None,
        casting_value=casting_value or None,
        is_prayer=True if is_prayer else None,
        chanting_value=chanting_value or None,
        keywords=_split_keywords(doc.characteristic(profile, "Keywords")),
    )


def collect_profiles_from_entry(doc: CatalogueDocument, entry: Element) -> list[Element]:
    """Profiles of ``entry`` followed by those of its nested entries, in document order."""
    profiles = doc.grandchildren(entry, "profiles", "profile")
    for child in doc.grandchildren(entry, "selectionEntries", "selectionEntry"):
        profiles.extend(collect_profiles_from_entry(doc, child))
    return profiles


def collect_abilities(doc: CatalogueDocument, profiles: list[Element]) -> list[Ability]:
    abilities: list[Ability] = []
    for profile in profiles:
        ability = parse_profile_ability(doc, profile)
        if ability is not None:
            abilities.append(ability)
    return abilities


def _format_range(raw_range: str, is_ranged: bool) -> str:
    if raw_range:
        return raw_range if '"' in raw_range else f'{raw_range}"'
    return '12"' if is_ranged else '1"'


def parse_weapon_profile(doc: CatalogueDocument, profile: Element) -> WeaponProfile:
    lowered_type = profile_type(profile).lower()
    raw_range = doc.characteristic(profile, "Range", "Rng")
    range_match = NUMERIC_RANGE_RE.match(raw_range)
    is_ranged = "ranged" in lowered_type or bool(range_match and float(range_match.group(1)) > 0)
    raw_tags = doc.characteristic(profile, "Abilities", "Ability", "Special")
    tags = [strip_weapon_ability(tag) for tag in raw_tags.split(",")] if raw_tags else []
    return WeaponProfile(
        name=(profile.get("name") or "").strip() or "Weapon",
        is_ranged=is_ranged,
        range=_format_range(raw_range, is_ranged),
        attacks=doc.characteristic(profile, "Attacks", "Atk") or MISSING_VALUE,
        hit=doc.characteristic(profile, "To Hit", "Hit") or MISSING_VALUE,
        wound=doc.characteristic(profile, "To Wound", "Wnd", "Wound") or MISSING_VALUE,
        rend=doc.characteristic(profile, "Rend", "Rnd") or MISSING_VALUE,
        damage=doc.characteristic(profile, "Damage", "Dmg") or MISSING_VALUE,
        abilities=[tag for tag in tags if tag not in EMPTY_WEAPON_TAGS],
    )


def dedupe_weapons(weapons: list[WeaponProfile]) -> list[WeaponProfile]:
    seen: set[tuple[str, bool]] = set()
    unique: list[WeaponProfile] = []
    for weapon in weapons:
        key = (weapon.name, weapon.is_ranged)
        if key in seen:
            continue
        seen.add(key)
        unique.append(weapon)
    return unique


def default_melee_weapon() -> WeaponProfile:
    return WeaponProfile(name="Melee", is_ranged=False, range='1"')


def mark_battle_damaged_weapons(
    weapons: list[WeaponProfile], abilities: list[Ability]
) -> list[WeaponProfile]:
    references: set[str] = set()
    for ability in abilities:
        if ability.battle_damage:
            references.update(normalize_reference(ref) for ref in bold_references(ability.text))
    if not references:
        return weapons
    return [
        replace(weapon, suffers_battle_damage=True)
        if normalize_reference(weapon.name) in references
        else weapon
        for weapon in weapons
    ]


def category_names(doc: CatalogueDocument, entry: Element) -> list[str]:
    names: list[str] = []
    for link in doc.grandchildren(entry, "categoryLinks", "categoryLink"):
        name = (link.get("name") or "").strip() or node_text(link)
        if name:
            names.append(name)
    return names


def split_keywords_and_ward(names: list[str]) -> tuple[list[str], str | None]:
    keywords: list[str] = []
    ward: str | None = None
    for name in names:
        ward_match = WARD_CATEGORY_RE.match(name)
        if ward_match:
            ward = ward_match.group(1)
        elif name not in keywords:
            keywords.append(name)
    return keywords, ward


def _first_seen(current: str, profile_value: str) -> str:
    return current or profile_value


def parse_unit_entry(
    doc: CatalogueDocument, entry: Element, faction: str, timestamp: str
) -> Warscroll:
    unit_name, subfaction = split_subfaction(entry.get("name") or "")
    move = health = save = control = ""
    profile_ward = ""
    weapons: list[WeaponProfile] = []
    abilities: list[Ability] = []

    for profile in collect_profiles_from_entry(doc, entry):
        lowered_type = profile_type(profile).lower()
        if "unit" in lowered_type and "weapon" not in lowered_type and "ability" not in lowered_type:
            move = _first_seen(move, doc.characteristic(profile, *MOVE_NAMES))
            health = _first_seen(health, doc.characteristic(profile, *HEALTH_NAMES))
            save = _first_seen(save, doc.characteristic(profile, *SAVE_NAMES))
            control = _first_seen(control, doc.characteristic(profile, *CONTROL_NAMES))
            profile_ward = _first_seen(profile_ward, doc.characteristic(profile, *WARD_NAMES))
        elif "weapon" in lowered_type:
            weapons.append(parse_weapon_profile(doc, profile))
        else:
            ability = parse_profile_ability(doc, profile)
            if ability is not None:
                abilities.append(ability)

    names = category_names(doc, entry)
    keywords, category_ward = split_keywords_and_ward(names)

    weapons = dedupe_weapons(weapons) or [default_melee_weapon()]
    weapons = mark_battle_damaged_weapons(weapons, abilities)

    return Warscroll(
        unit_name=unit_name or "Unknown",
        faction=faction,
        subfaction=subfaction,
        unit_type=classifiers.classify_unit_type(names),
        move=move or MISSING_VALUE,
        health=health or MISSING_VALUE,
        save=save or MISSING_VALUE,
        control=control or MISSING_VALUE,
        ward=category_ward or profile_ward or None,
        weapons=weapons,
        abilities=abilities,
        keywords=keywords,
        created_at=timestamp,
        updated_at=timestamp,
    )


def unit_entries(doc: CatalogueDocument) -> list[Element]:
    """Top-level unit/model entries; nested entries are reached through their unit."""
    root = doc.catalogue if doc.catalogue is not None else doc.root
    shared = doc.child(root, "sharedSelectionEntries")
    if shared is None:
        shared = doc.child(root, "selectionEntries")
    return [
        entry
        for entry in doc.children(shared, "selectionEntry")
        if (entry.get("type") or "").strip().lower() in UNIT_ENTRY_TYPES
    ]


def parse_cat_xml(xml: str | bytes) -> CatalogueParseResult:
    doc = CatalogueDocument.parse(xml)
    if doc.is_empty:
        return CatalogueParseResult(units=[], faction=DEFAULT_FACTION)

    faction = faction_name(doc)
    timestamp = utc_now_iso()
    units = [parse_unit_entry(doc, entry, faction, timestamp) for entry in unit_entries(doc)]
    logger.info("Parsed %d units from catalogue %s", len(units), faction)
    return CatalogueParseResult(units=units, faction=faction)
