from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text, event
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)


def touch_timestamps(mapper, connection, target) -> None:  # pragma: no cover - SQLAlchemy hook
    now = datetime.utcnow()
    if getattr(target, "created_at", None) is None:
        target.created_at = now
    target.updated_at = now


class WarscrollRecord(TimestampMixin, Base):
    """Stored warscroll; the full card lives in ``payload_json``."""

    __tablename__ = "warscrolls"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    unit_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    faction: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    subfaction: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    regiment_of_renown: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    unit_type: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)


class BattleTraitRecord(TimestampMixin, Base):
    __tablename__ = "battle_traits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    trait_type: Mapped[str] = mapped_column(String(40), nullable=False)
    faction: Mapped[Optional[str]] = mapped_column(String(120), nullable=True, index=True)
    subfaction: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    regiment_of_renown: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)


class ArmyCollectionRecord(TimestampMixin, Base):
    __tablename__ = "army_collections"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    faction: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False)


class RegimentMappingRecord(TimestampMixin, Base):
    """Member unit names of one regiment of renown."""

    __tablename__ = "regiment_mappings"

    regiment: Mapped[str] = mapped_column(String(200), primary_key=True)
    units_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")


for cls in [WarscrollRecord, BattleTraitRecord, ArmyCollectionRecord, RegimentMappingRecord]:
    event.listen(cls, "before_insert", touch_timestamps)
    event.listen(cls, "before_update", touch_timestamps)
