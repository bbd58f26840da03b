"""Parse ``Regiments of Renown.cat``.

A regiment upgrade and its member units never reference each other directly.
The upgrade carries a modifier whose force ``instanceOf`` condition names a
child id; member units are root-level entry links whose modifier groups test
the same child id. That shared id is the join key.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator

from lxml.etree import _Element as Element

from .. import config
from ..data.warscroll import BattleTrait, utc_now_iso
from .battlescribe import (
    category_names,
    collect_abilities,
    collect_profiles_from_entry,
    split_keywords_and_ward,
)
from .xml_nodes import CatalogueDocument

logger = logging.getLogger(__name__)

REGIMENT_NAME_RE = re.compile(r"^Regiment of Renown:\s*(.+?)\s*$", re.IGNORECASE)
LIBRARY_LINK_SUFFIX = " - Library"
REGIMENTS_FACTION = "RoR"
REGIMENT_TRAIT_TYPE = "Regiments of Renown"


@dataclass
class RegimentParseResult:
    traits: list[BattleTrait] = field(default_factory=list)
    regiment_mapping: dict[str, list[str]] = field(default_factory=dict)


def _root(doc: CatalogueDocument) -> Element | None:
    return doc.catalogue if doc.catalogue is not None else doc.root


def _force_instance_child_ids(doc: CatalogueDocument, element: Element) -> list[str]:
    child_ids: list[str] = []
    for condition in doc.descendants(element, "condition"):
        if condition.get("scope") != "force" or condition.get("type") != "instanceOf":
            continue
        child_id = condition.get("childId")
        if child_id and child_id not in child_ids:
            child_ids.append(child_id)
    return child_ids


def regiment_entries(
    doc: CatalogueDocument, only_regiment: str | None = None
) -> Iterator[tuple[str, Element]]:
    for entry in doc.grandchildren(_root(doc), "sharedSelectionEntries", "selectionEntry"):
        match = REGIMENT_NAME_RE.match((entry.get("name") or "").strip())
        if not match:
            continue
        publication_id = config.REGIMENTS_OF_RENOWN_PUBLICATION_ID
        if publication_id and entry.get("publicationId") != publication_id:
            continue
        regiment = match.group(1)
        if only_regiment is not None and regiment != only_regiment:
            continue
        yield regiment, entry


def regiment_join_ids(doc: CatalogueDocument, entry: Element) -> list[str]:
    child_ids: list[str] = []
    for modifier in doc.descendants(entry, "modifier"):
        for child_id in _force_instance_child_ids(doc, modifier):
            if child_id not in child_ids:
                child_ids.append(child_id)
    return child_ids


def member_links(doc: CatalogueDocument) -> Iterator[tuple[str, list[str]]]:
    """Root-level unit links with the child ids their modifier groups test for."""
    for link in doc.grandchildren(_root(doc), "entryLinks", "entryLink"):
        if link.get("type") != "selectionEntry":
            continue
        name = (link.get("name") or "").strip()
        if not name:
            continue
        child_ids: list[str] = []
        for group in doc.descendants(link, "modifierGroup"):
            child_ids.extend(_force_instance_child_ids(doc, group))
        if child_ids:
            yield name, child_ids


def parse_regiments_of_renown_cat_xml(
    xml: str | bytes, only_regiment: str | None = None
) -> RegimentParseResult:
    doc = CatalogueDocument.parse(xml)
    result = RegimentParseResult()
    if doc.is_empty:
        return result

    timestamp = utc_now_iso()
    regiment_by_child_id: dict[str, str] = {}
    for regiment, entry in regiment_entries(doc, only_regiment):
        result.regiment_mapping.setdefault(regiment, [])
        for child_id in regiment_join_ids(doc, entry):
            regiment_by_child_id.setdefault(child_id, regiment)

        abilities = collect_abilities(doc, collect_profiles_from_entry(doc, entry))
        if not abilities:
            logger.debug("Regiment %s has no abilities, skipping trait card", regiment)
            continue
        keywords, ward = split_keywords_and_ward(category_names(doc, entry))
        result.traits.append(
            BattleTrait(
                name=regiment,
                trait_type=REGIMENT_TRAIT_TYPE,
                regiment_of_renown=regiment,
                faction=REGIMENTS_FACTION,
                ward=ward,
                keywords=keywords,
                abilities=abilities,
                created_at=timestamp,
                updated_at=timestamp,
            )
        )

    for unit_name, child_ids in member_links(doc):
        for child_id in child_ids:
            regiment = regiment_by_child_id.get(child_id)
            if regiment is None:
                continue
            members = result.regiment_mapping[regiment]
            if unit_name not in members:
                members.append(unit_name)

    logger.info(
        "Parsed %d regiments of renown (%d with abilities)",
        len(result.regiment_mapping),
        len(result.traits),
    )
    return result


def get_library_paths_from_regiments_xml(xml: str | bytes) -> list[str]:
    """Library catalogue paths the regiments file links to, e.g. ``"Fyreslayers - Library.cat"``."""
    doc = CatalogueDocument.parse(xml)
    paths: list[str] = []
    for link in doc.descendants(doc.root, "catalogueLink"):
        name = (link.get("name") or "").strip()
        if not name.endswith(LIBRARY_LINK_SUFFIX):
            continue
        path = f"{name}.cat"
        if path not in paths:
            paths.append(path)
    return paths
