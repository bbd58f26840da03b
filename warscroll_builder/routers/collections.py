from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import schemas
from ..data.warscroll import ArmyCollection
from ..db import get_db
from ..services import cheatsheet, storage

router = APIRouter(prefix="/collections", tags=["collections"])


def _get_collection(db: Session, collection_id: str) -> ArmyCollection:
    collection = storage.get_army_collection(db, collection_id)
    if collection is None:
        raise HTTPException(status_code=404)
    return collection


@router.get("")
def list_collections(db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    return [item.to_dict() for item in storage.get_all_army_collections(db)]


@router.post("", status_code=201)
def create_collection(form: schemas.CollectionForm, db: Session = Depends(get_db)) -> dict[str, Any]:
    collection = storage.save_army_collection(
        db,
        ArmyCollection(
            name=form.name.strip(),
            faction=form.faction,
            warscroll_ids=list(form.warscroll_ids),
            battle_trait_ids=list(form.battle_trait_ids),
        ),
    )
    db.commit()
    return collection.to_dict()


@router.get("/{collection_id}")
def get_collection(collection_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    return _get_collection(db, collection_id).to_dict()


@router.delete("/{collection_id}", status_code=204)
def delete_collection(collection_id: str, db: Session = Depends(get_db)) -> None:
    if not storage.delete_army_collection(db, collection_id):
        raise HTTPException(status_code=404)
    db.commit()


@router.get("/{collection_id}/cheat-sheet")
def collection_cheat_sheet(collection_id: str, db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    collection = _get_collection(db, collection_id)
    entries = cheatsheet.build_collection_cheat_sheet(
        collection,
        storage.get_all_warscrolls(db),
        storage.get_all_battle_traits(db),
    )
    return [
        {
            "stage": entry.stage,
            "card_name": entry.card_name,
            "label": cheatsheet.ability_label(entry.ability),
            "text": cheatsheet.plain_text(entry),
            "ability": asdict(entry.ability),
        }
        for entry in entries
    ]
