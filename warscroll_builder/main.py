from __future__ import annotations

import logging

from fastapi import FastAPI

from . import config
from .config import DEBUG, LOG_LEVEL
from .db import init_db
from .routers import battle_traits, catalogues, collections, warscrolls

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(debug=DEBUG, title="Warscroll Builder")


@app.on_event("startup")
def startup_event() -> None:
    init_db()
    for key in ("SCOURGE_OF_GHYRAN_PUBLICATION_ID", "REGIMENTS_OF_RENOWN_PUBLICATION_ID"):
        if not getattr(config, key):
            logger.warning("%s is not set, supplement content is not filtered by publication", key)
    logger.info("Application started")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(catalogues.router)
app.include_router(warscrolls.router)
app.include_router(battle_traits.router)
app.include_router(collections.router)
