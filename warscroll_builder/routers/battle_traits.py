from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..services import storage

router = APIRouter(prefix="/battle-traits", tags=["battle-traits"])


@router.get("")
def list_battle_traits(
    faction: str | None = None,
    trait_type: str | None = None,
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    return [item.to_dict() for item in storage.get_all_battle_traits(db, faction, trait_type)]


@router.get("/{trait_id}")
def get_battle_trait(trait_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    trait = storage.get_battle_trait(db, trait_id)
    if trait is None:
        raise HTTPException(status_code=404)
    return trait.to_dict()


@router.delete("/{trait_id}", status_code=204)
def delete_battle_trait(trait_id: str, db: Session = Depends(get_db)) -> None:
    if not storage.delete_battle_trait(db, trait_id):
        raise HTTPException(status_code=404)
    db.commit()
