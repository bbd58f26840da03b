from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import schemas
from ..db import get_db
from ..services import catalogues, importer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalogues", tags=["catalogues"])


def _summary_payload(summary: importer.ImportSummary) -> dict[str, Any]:
    return {
        "faction": summary.faction,
        "warscrolls": [record.to_dict() for record in summary.warscrolls],
        "battle_traits": [record.to_dict() for record in summary.battle_traits],
        "failed_paths": summary.failed_paths,
        "regiment_mapping": summary.regiment_mapping,
    }


@router.get("")
async def list_catalogues() -> list[dict[str, str]]:
    items = await catalogues.list_catalogues()
    return [{"name": item.name, "path": item.path, "label": item.label} for item in items]


@router.post("/import/library")
async def import_library(form: schemas.ImportLibraryForm, db: Session = Depends(get_db)):
    try:
        summary = await importer.import_library(form.path, session=db)
    except importer.CatalogueImportError as exc:
        logger.warning("Library import failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _summary_payload(summary)


@router.post("/import/battle-traits")
async def import_battle_traits(form: schemas.ImportLibraryForm, db: Session = Depends(get_db)):
    try:
        summary = await importer.import_battle_traits(form.path, session=db)
    except importer.CatalogueImportError as exc:
        logger.warning("Battle trait import failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _summary_payload(summary)


@router.post("/import/regiments")
async def import_regiments(form: schemas.ImportRegimentsForm, db: Session = Depends(get_db)):
    try:
        summary = await importer.import_regiments(form.only_regiment, session=db)
    except importer.CatalogueImportError as exc:
        logger.warning("Regiment import failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _summary_payload(summary)
