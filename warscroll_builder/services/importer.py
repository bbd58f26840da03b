"""Fetch, parse and optionally store catalogue content."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Union

import httpx
from sqlalchemy.orm import Session

from ..data.warscroll import BattleTrait, Warscroll
from . import catalogues, storage
from .battle_traits import parse_battle_trait_cat_xml
from .battlescribe import parse_cat_xml
from .regiments import (
    REGIMENT_TRAIT_TYPE,
    get_library_paths_from_regiments_xml,
    parse_regiments_of_renown_cat_xml,
)

logger = logging.getLogger(__name__)

Record = Union[Warscroll, BattleTrait]


class CatalogueImportError(Exception):
    """The catalogue an import is built on could not be fetched."""


@dataclass
class ImportSummary:
    faction: str
    records: list[Record] = field(default_factory=list)
    failed_paths: list[str] = field(default_factory=list)
    regiment_mapping: dict[str, list[str]] = field(default_factory=dict)

    @property
    def warscrolls(self) -> list[Warscroll]:
        return [record for record in self.records if isinstance(record, Warscroll)]

    @property
    def battle_traits(self) -> list[BattleTrait]:
        return [record for record in self.records if isinstance(record, BattleTrait)]


async def _fetch_primary(path: str, client: httpx.AsyncClient | None) -> str:
    try:
        return await catalogues.fetch_catalogue_xml(path, client)
    except catalogues.CatalogueFetchError as exc:
        raise CatalogueImportError(f"Could not fetch {path}") from exc


def _persist(session: Session | None, summary: ImportSummary) -> ImportSummary:
    if session is None:
        return summary
    stored: list[Record] = []
    for record in summary.records:
        if isinstance(record, Warscroll):
            stored.append(storage.save_warscroll(session, record))
        else:
            stored.append(storage.save_battle_trait(session, record))
    if summary.regiment_mapping:
        storage.save_regiment_mapping(session, summary.regiment_mapping)
    session.commit()
    summary.records = stored
    return summary


async def import_library(
    path: str,
    session: Session | None = None,
    client: httpx.AsyncClient | None = None,
) -> ImportSummary:
    xml = await _fetch_primary(path, client)
    result = parse_cat_xml(xml)
    logger.info("Imported %d warscrolls from %s", len(result.units), path)
    return _persist(session, ImportSummary(faction=result.faction, records=list(result.units)))


async def import_battle_traits(
    library_path: str,
    session: Session | None = None,
    client: httpx.AsyncClient | None = None,
) -> ImportSummary:
    """Import traits, formations and lores for the faction of ``library_path``."""
    path = catalogues.get_battle_trait_catalogue_path(library_path)
    xml = await _fetch_primary(path, client)

    failed: list[str] = []
    try:
        lores_xml: str | None = await catalogues.fetch_catalogue_xml(
            catalogues.LORES_CATALOGUE_PATH, client
        )
    except catalogues.CatalogueFetchError as exc:
        logger.warning("Lores catalogue unavailable, lore links stay unresolved: %s", exc)
        lores_xml = None
        failed.append(catalogues.LORES_CATALOGUE_PATH)

    result = parse_battle_trait_cat_xml(xml, lores_xml)
    summary = ImportSummary(faction=result.faction, records=list(result.traits), failed_paths=failed)
    return _persist(session, summary)


def _regiment_units(
    library_xml: dict[str, str], mapping: dict[str, list[str]]
) -> list[Warscroll]:
    units: list[Warscroll] = []
    seen: set[tuple[str, str]] = set()
    for path, xml in library_xml.items():
        parsed = parse_cat_xml(xml)
        by_name = {unit.unit_name: unit for unit in reversed(parsed.units)}
        for regiment, members in mapping.items():
            for unit_name in members:
                unit = by_name.get(unit_name)
                if unit is None or (regiment, unit_name) in seen:
                    continue
                seen.add((regiment, unit_name))
                units.append(replace(unit, regiment_of_renown=regiment))
        logger.debug("Scanned %s for regiment members", path)
    return units


async def import_regiments(
    only_regiment: str | None = None,
    session: Session | None = None,
    client: httpx.AsyncClient | None = None,
) -> ImportSummary:
    """Import regiment trait cards and the member warscrolls they bring along.

    Member units are looked up in the library catalogues the regiments file
    links to. Libraries that cannot be fetched are reported in
    ``failed_paths``; their units are simply missing from the result.
    """
    xml = await _fetch_primary(catalogues.REGIMENTS_OF_RENOWN_PATH, client)
    result = parse_regiments_of_renown_cat_xml(xml, only_regiment)
    traits = [
        replace(trait, trait_type=REGIMENT_TRAIT_TYPE, regiment_of_renown=trait.name)
        for trait in result.traits
    ]

    library_paths = get_library_paths_from_regiments_xml(xml)
    library_xml = await catalogues.fetch_many(library_paths, client)
    failed = [path for path in library_paths if path not in library_xml]
    if failed:
        logger.warning("Regiment import continues without %d library catalogues", len(failed))

    units = _regiment_units(library_xml, result.regiment_mapping)
    summary = ImportSummary(
        faction=REGIMENT_TRAIT_TYPE,
        records=[*traits, *units],
        failed_paths=failed,
        regiment_mapping=result.regiment_mapping,
    )
    logger.info(
        "Imported %d regiment traits and %d member warscrolls", len(traits), len(units)
    )
    return _persist(session, summary)
