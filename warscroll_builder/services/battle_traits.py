"""Parse a faction's bare catalogue (e.g. ``Fyreslayers.cat``) into battle trait cards.

Traits, formations, heroic traits, artefacts and lores live in grouped entries.
Lore entries often only link into the shared ``Lores.cat`` document; when that
document is supplied the links are followed to collect the spells and prayers.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

from lxml.etree import _Element as Element

from .. import config
from ..data.warscroll import Ability, BattleTrait, BattleTraitType, utc_now_iso
from . import classifiers
from .battlescribe import (
    category_names,
    collect_abilities,
    collect_profiles_from_entry,
    faction_name,
    split_keywords_and_ward,
    split_subfaction,
)
from .xml_nodes import CatalogueDocument

logger = logging.getLogger(__name__)

SCOURGE_OF_GHYRAN = "Scourge of Ghyran"
SHARED_ENTRY_GROUP_NAME = "Battle traits"
LORE_TRAIT_TYPES: set[BattleTraitType] = {"Spell lores", "Prayer lores", "Manifestation Lores"}


@dataclass
class TraitParseResult:
    traits: list[BattleTrait]
    faction: str


def has_publication(element: Element, publication_id: str | None) -> bool:
    if not publication_id:
        return False
    for node in itertools.chain([element], element.iterancestors()):
        if node.get("publicationId") == publication_id:
            return True
    return False


def _collect_group_entries(
    doc: CatalogueDocument, group: Element, top_name: str
) -> list[tuple[Element, str]]:
    pairs = [(entry, top_name) for entry in doc.grandchildren(group, "selectionEntries", "selectionEntry")]
    for link in doc.grandchildren(group, "entryLinks", "entryLink"):
        target = doc.by_id(link.get("targetId"))
        if target is not None and doc.local_name(target) == "selectionEntry":
            pairs.append((target, top_name))
        else:
            # Unresolved here: probably points into Lores.cat, resolved later.
            pairs.append((link, top_name))
    for nested in doc.grandchildren(group, "selectionEntryGroups", "selectionEntryGroup"):
        pairs.extend(_collect_group_entries(doc, nested, top_name))
    return pairs


def collect_trait_entries(doc: CatalogueDocument) -> list[tuple[Element, str]]:
    """``(entry, group name)`` pairs; nested groups report their top-level group's name."""
    root = doc.catalogue if doc.catalogue is not None else doc.root
    pairs: list[tuple[Element, str]] = []
    for group in doc.grandchildren(root, "sharedSelectionEntryGroups", "selectionEntryGroup"):
        pairs.extend(_collect_group_entries(doc, group, (group.get("name") or "").strip()))
    for entry in doc.grandchildren(root, "sharedSelectionEntries", "selectionEntry"):
        pairs.append((entry, SHARED_ENTRY_GROUP_NAME))
    return pairs


def _link_target_ids(doc: CatalogueDocument, entry: Element) -> list[str]:
    if doc.local_name(entry) == "entryLink":
        links = [entry]
    else:
        links = doc.grandchildren(entry, "entryLinks", "entryLink")
    return [link.get("targetId") for link in links if link.get("targetId")]


def _group_abilities(lores: CatalogueDocument, group: Element, visited: set[str]) -> list[Ability]:
    abilities: list[Ability] = []
    for entry in lores.grandchildren(group, "selectionEntries", "selectionEntry"):
        abilities.extend(collect_abilities(lores, collect_profiles_from_entry(lores, entry)))
    for link in lores.grandchildren(group, "entryLinks", "entryLink"):
        abilities.extend(_target_abilities(lores, link.get("targetId"), visited))
    for nested in lores.grandchildren(group, "selectionEntryGroups", "selectionEntryGroup"):
        abilities.extend(_group_abilities(lores, nested, visited))
    return abilities


def _target_abilities(lores: CatalogueDocument, target_id: str | None, visited: set[str]) -> list[Ability]:
    if not target_id or target_id in visited:
        return []
    visited.add(target_id)
    target = lores.by_id(target_id)
    if target is None:
        logger.debug("Lore link target %s not found", target_id)
        return []
    kind = lores.local_name(target)
    if kind == "selectionEntryGroup":
        return _group_abilities(lores, target, visited)
    if kind == "selectionEntry":
        return collect_abilities(lores, collect_profiles_from_entry(lores, target))
    return []


def resolve_lore_links(
    doc: CatalogueDocument, entry: Element, lores: CatalogueDocument
) -> tuple[list[Ability], bool]:
    """Abilities behind ``entry``'s links into the lores document.

    The second value reports whether any resolved target is Scourge of Ghyran content.
    """
    abilities: list[Ability] = []
    scourge = False
    visited: set[str] = set()
    for target_id in _link_target_ids(doc, entry):
        target = lores.by_id(target_id)
        if target is None:
            logger.debug("Lore link %s could not be resolved", target_id)
            continue
        abilities.extend(_target_abilities(lores, target_id, visited))
        scourge = scourge or has_publication(target, config.SCOURGE_OF_GHYRAN_PUBLICATION_ID)
    return abilities, scourge


def parse_battle_trait_cat_xml(
    xml: str | bytes, lores_xml: str | bytes | None = None
) -> TraitParseResult:
    doc = CatalogueDocument.parse(xml)
    faction = faction_name(doc)
    if doc.is_empty:
        return TraitParseResult(traits=[], faction=faction)

    lores = CatalogueDocument.parse(lores_xml) if lores_xml else None
    denylist = set(config.TRAIT_NAME_DENYLIST)
    timestamp = utc_now_iso()
    seen: set[object] = set()
    traits: list[BattleTrait] = []

    for entry, group_name in collect_trait_entries(doc):
        raw_name = (entry.get("name") or "").strip()
        if not raw_name or raw_name in denylist:
            continue
        name, subfaction = split_subfaction(raw_name)
        if subfaction is None and has_publication(entry, config.SCOURGE_OF_GHYRAN_PUBLICATION_ID):
            subfaction = SCOURGE_OF_GHYRAN

        key = entry.get("id") or (name, faction, subfaction)
        if key in seen:
            continue
        seen.add(key)

        trait_type = classifiers.classify_trait_type(group_name)
        abilities = collect_abilities(doc, collect_profiles_from_entry(doc, entry))
        if not abilities and trait_type in LORE_TRAIT_TYPES and lores is not None:
            abilities, scourge = resolve_lore_links(doc, entry, lores)
            if scourge:
                subfaction = SCOURGE_OF_GHYRAN

        keywords, ward = split_keywords_and_ward(category_names(doc, entry))
        traits.append(
            BattleTrait(
                name=name,
                trait_type=trait_type,
                faction=faction,
                subfaction=subfaction,
                ward=ward,
                keywords=keywords,
                abilities=abilities,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )

    logger.info("Parsed %d battle traits from catalogue %s", len(traits), faction)
    return TraitParseResult(traits=traits, faction=faction)
