"""Keyed record store for cards, collections and regiment mappings.

Records are kept as JSON payloads next to the columns they are looked up by.
Payloads written by older releases are upgraded on read (``migrate_ability``).
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from .. import models
from ..data.warscroll import (
    PHASE_TO_COLOR,
    PHASES,
    ArmyCollection,
    BattleTrait,
    Warscroll,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

LEGACY_DEFAULT_PHASE = "Hero Phase"


def migrate_ability(data: dict[str, Any]) -> dict[str, Any]:
    """Upgrade one stored ability payload to the current field set."""
    out = dict(data)
    if "phase" not in out:
        legacy_timing = out.pop("timing", None)
        legacy_type = out.pop("type", None)
        out["phase"] = legacy_timing if legacy_timing in PHASES else LEGACY_DEFAULT_PHASE
        if legacy_type == "Once Per Turn":
            out["ability_type"] = "Once Per Turn"
    if out.get("phase") == "Passive":
        out["phase"] = None
        out["timing"] = "Passive"
        if out.get("color") is None:
            out["color"] = "green"
    if out.get("color") is None:
        phase = out.get("phase") if out.get("phase") in PHASES else LEGACY_DEFAULT_PHASE
        out["color"] = PHASE_TO_COLOR[phase]
    if out.get("color") == "dark yellow":
        out["color"] = "yellow"
    return out


def _load_payload(raw: str) -> dict[str, Any]:
    data = json.loads(raw)
    data["abilities"] = [migrate_ability(item) for item in data.get("abilities") or []]
    return data


def _dump(record: Warscroll | BattleTrait | ArmyCollection) -> str:
    return json.dumps(record.to_dict(), ensure_ascii=False)


# Warscrolls


def _matches(column, value):
    return column.is_(None) if value is None else column == value


def find_warscroll(
    session: Session,
    unit_name: str,
    faction: str,
    subfaction: str | None = None,
    regiment_of_renown: str | None = None,
) -> Warscroll | None:
    """Card with the same natural key; regiment copies are distinct from the faction's own card."""
    row = session.execute(
        select(models.WarscrollRecord).where(
            models.WarscrollRecord.unit_name == unit_name,
            models.WarscrollRecord.faction == faction,
            _matches(models.WarscrollRecord.subfaction, subfaction),
            _matches(models.WarscrollRecord.regiment_of_renown, regiment_of_renown),
        )
    ).scalars().first()
    return Warscroll.from_dict(_load_payload(row.payload_json)) if row else None


def save_warscroll(session: Session, warscroll: Warscroll) -> Warscroll:
    """Insert or update; a re-imported card overwrites the stored one with the same natural key."""
    row = session.get(models.WarscrollRecord, warscroll.id)
    if row is None:
        existing = find_warscroll(
            session,
            warscroll.unit_name,
            warscroll.faction,
            warscroll.subfaction,
            warscroll.regiment_of_renown,
        )
        if existing is not None:
            warscroll = replace(warscroll, id=existing.id, created_at=existing.created_at)
            row = session.get(models.WarscrollRecord, existing.id)
    warscroll = replace(warscroll, updated_at=utc_now_iso())
    if row is None:
        row = models.WarscrollRecord(id=warscroll.id)
        session.add(row)
    row.unit_name = warscroll.unit_name
    row.faction = warscroll.faction
    row.subfaction = warscroll.subfaction
    row.regiment_of_renown = warscroll.regiment_of_renown
    row.unit_type = warscroll.unit_type
    row.payload_json = _dump(warscroll)
    session.flush()
    return warscroll


def get_all_warscrolls(session: Session, faction: str | None = None) -> list[Warscroll]:
    query = select(models.WarscrollRecord).order_by(
        models.WarscrollRecord.faction, models.WarscrollRecord.unit_name
    )
    if faction is not None:
        query = query.where(models.WarscrollRecord.faction == faction)
    rows = session.execute(query).scalars().all()
    return [Warscroll.from_dict(_load_payload(row.payload_json)) for row in rows]


def get_warscroll(session: Session, warscroll_id: str) -> Warscroll | None:
    row = session.get(models.WarscrollRecord, warscroll_id)
    return Warscroll.from_dict(_load_payload(row.payload_json)) if row else None


def delete_warscroll(session: Session, warscroll_id: str) -> bool:
    row = session.get(models.WarscrollRecord, warscroll_id)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    return True


# Battle traits


def find_battle_trait(
    session: Session, name: str, faction: str | None, subfaction: str | None = None
) -> BattleTrait | None:
    query = select(models.BattleTraitRecord).where(
        models.BattleTraitRecord.name == name,
        _matches(models.BattleTraitRecord.faction, faction),
        _matches(models.BattleTraitRecord.subfaction, subfaction),
    )
    row = session.execute(query).scalars().first()
    return BattleTrait.from_dict(_load_payload(row.payload_json)) if row else None


def save_battle_trait(session: Session, trait: BattleTrait) -> BattleTrait:
    row = session.get(models.BattleTraitRecord, trait.id)
    if row is None:
        existing = find_battle_trait(session, trait.name, trait.faction, trait.subfaction)
        if existing is not None:
            trait = replace(trait, id=existing.id, created_at=existing.created_at)
            row = session.get(models.BattleTraitRecord, existing.id)
    trait = replace(trait, updated_at=utc_now_iso())
    if row is None:
        row = models.BattleTraitRecord(id=trait.id)
        session.add(row)
    row.name = trait.name
    row.trait_type = trait.trait_type
    row.faction = trait.faction
    row.subfaction = trait.subfaction
    row.regiment_of_renown = trait.regiment_of_renown
    row.payload_json = _dump(trait)
    session.flush()
    return trait


def get_all_battle_traits(
    session: Session, faction: str | None = None, trait_type: str | None = None
) -> list[BattleTrait]:
    query = select(models.BattleTraitRecord).order_by(
        models.BattleTraitRecord.faction, models.BattleTraitRecord.name
    )
    if faction is not None:
        query = query.where(models.BattleTraitRecord.faction == faction)
    if trait_type is not None:
        query = query.where(models.BattleTraitRecord.trait_type == trait_type)
    rows = session.execute(query).scalars().all()
    return [BattleTrait.from_dict(_load_payload(row.payload_json)) for row in rows]


def get_battle_trait(session: Session, trait_id: str) -> BattleTrait | None:
    row = session.get(models.BattleTraitRecord, trait_id)
    return BattleTrait.from_dict(_load_payload(row.payload_json)) if row else None


def delete_battle_trait(session: Session, trait_id: str) -> bool:
    row = session.get(models.BattleTraitRecord, trait_id)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    return True


# Army collections


def save_army_collection(session: Session, collection: ArmyCollection) -> ArmyCollection:
    collection = replace(collection, updated_at=utc_now_iso())
    row = session.get(models.ArmyCollectionRecord, collection.id)
    if row is None:
        row = models.ArmyCollectionRecord(id=collection.id)
        session.add(row)
    row.name = collection.name
    row.faction = collection.faction
    row.payload_json = _dump(collection)
    session.flush()
    return collection


def get_all_army_collections(session: Session) -> list[ArmyCollection]:
    rows = session.execute(
        select(models.ArmyCollectionRecord).order_by(models.ArmyCollectionRecord.name)
    ).scalars().all()
    return [ArmyCollection.from_dict(json.loads(row.payload_json)) for row in rows]


def get_army_collection(session: Session, collection_id: str) -> ArmyCollection | None:
    row = session.get(models.ArmyCollectionRecord, collection_id)
    return ArmyCollection.from_dict(json.loads(row.payload_json)) if row else None


def delete_army_collection(session: Session, collection_id: str) -> bool:
    row = session.get(models.ArmyCollectionRecord, collection_id)
    if row is None:
        return False
    session.delete(row)
    session.flush()
    return True


# Regiments of renown


def save_regiment_mapping(session: Session, mapping: dict[str, list[str]]) -> None:
    """Merge ``mapping`` into the stored one; each listed regiment is replaced whole."""
    for regiment, units in mapping.items():
        row = session.get(models.RegimentMappingRecord, regiment)
        if row is None:
            row = models.RegimentMappingRecord(regiment=regiment)
            session.add(row)
        row.units_json = json.dumps(list(units), ensure_ascii=False)
    session.flush()
    logger.debug("Stored member lists for %d regiments", len(mapping))


def get_regiment_mapping(session: Session) -> dict[str, list[str]]:
    rows = session.execute(
        select(models.RegimentMappingRecord).order_by(models.RegimentMappingRecord.regiment)
    ).scalars().all()
    return {row.regiment: json.loads(row.units_json) for row in rows}


def regiment_for_unit(mapping: dict[str, list[str]], unit_name: str) -> str | None:
    for regiment, units in mapping.items():
        if unit_name in units:
            return regiment
    return None
