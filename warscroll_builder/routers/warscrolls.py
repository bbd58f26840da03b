from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..db import get_db
from ..services import storage

router = APIRouter(prefix="/warscrolls", tags=["warscrolls"])


@router.get("")
def list_warscrolls(faction: str | None = None, db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    return [item.to_dict() for item in storage.get_all_warscrolls(db, faction)]


@router.get("/{warscroll_id}")
def get_warscroll(warscroll_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    warscroll = storage.get_warscroll(db, warscroll_id)
    if warscroll is None:
        raise HTTPException(status_code=404)
    return warscroll.to_dict()


@router.delete("/{warscroll_id}", status_code=204)
def delete_warscroll(warscroll_id: str, db: Session = Depends(get_db)) -> None:
    if not storage.delete_warscroll(db, warscroll_id):
        raise HTTPException(status_code=404)
    db.commit()
