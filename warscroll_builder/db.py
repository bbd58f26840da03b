import logging
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from .config import DB_URL

logger = logging.getLogger(__name__)

connect_args = {"check_same_thread": False} if DB_URL.startswith("sqlite") else {}
engine = create_engine(DB_URL, connect_args=connect_args, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

# Columns added after the first release of each table.
ADDED_COLUMNS: dict[str, dict[str, str]] = {
    "warscrolls": {
        "subfaction": "VARCHAR(120)",
        "regiment_of_renown": "VARCHAR(200)",
        "unit_type": "VARCHAR(40)",
    },
    "battle_traits": {
        "subfaction": "VARCHAR(120)",
        "regiment_of_renown": "VARCHAR(200)",
    },
}


class Base(DeclarativeBase):
    pass


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _migrate_schema(bind=None) -> None:
    bind = bind if bind is not None else engine
    if not str(bind.url).startswith("sqlite"):
        return

    with bind.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        for table_name, columns in ADDED_COLUMNS.items():
            if table_name not in table_names:
                continue
            existing = {column["name"] for column in inspector.get_columns(table_name)}
            for column_name, column_type in columns.items():
                if column_name in existing:
                    continue
                logger.info("Adding %s column to %s table", column_name, table_name)
                connection.execute(
                    text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_type}")
                )


def init_db(bind=None) -> None:
    from . import models  # noqa: F401 - registers tables on Base.metadata

    bind = bind if bind is not None else engine
    db_path = Path(DB_URL.split("///")[-1]) if DB_URL.startswith("sqlite") else None
    first_start = bind is engine and db_path is not None and not db_path.exists()

    Base.metadata.create_all(bind=bind)
    _migrate_schema(bind)

    if first_start:
        logger.info("Database created at %s", DB_URL)
