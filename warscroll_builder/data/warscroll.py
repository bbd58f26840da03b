"""Card records produced by the catalogue parsers and kept by the record store."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

AbilityPhase = Literal[
    "Hero Phase",
    "Shooting Phase",
    "Combat Phase",
    "Charge Phase",
    "Movement Phase",
    "End of Turn",
    "Deployment",
    "Start of Battle Round",
    "Start of Turn",
]
AbilityColor = Literal["grey", "blue", "green", "orange", "yellow", "red", "purple", "black"]
AbilityTimingQualifier = Literal["Passive", "Your", "Any", "Enemy", "Reaction"]
AbilityType = Literal["Once Per Turn", "Once Per Turn (Army)", "Once Per Battle"]
UnitType = Literal[
    "hero", "infantry", "cavalry", "beast", "monster", "war machine", "manifestation"
]
BattleTraitType = Literal[
    "Prayer lores",
    "Artefacts",
    "Heroic traits",
    "Spell lores",
    "Manifestation Lores",
    "Battle formations",
    "Regiments of Renown",
    "Battle traits",
]

PHASES: tuple[AbilityPhase, ...] = (
    "Hero Phase",
    "Shooting Phase",
    "Combat Phase",
    "Charge Phase",
    "Movement Phase",
    "End of Turn",
    "Deployment",
    "Start of Battle Round",
    "Start of Turn",
)

PHASE_TO_COLOR: dict[AbilityPhase, AbilityColor] = {
    "Hero Phase": "yellow",
    "Shooting Phase": "blue",
    "Combat Phase": "red",
    "Charge Phase": "orange",
    "Movement Phase": "grey",
    "End of Turn": "purple",
    "Deployment": "black",
    "Start of Battle Round": "black",
    "Start of Turn": "black",
}

DEFAULT_FACTION = "Imported"
MISSING_VALUE = "-"


def new_id() -> str:
    return str(uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _known_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    names = {item.name for item in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass(slots=True)
class WeaponProfile:
    name: str
    is_ranged: bool = False
    range: str = '1"'
    attacks: str = MISSING_VALUE
    hit: str = MISSING_VALUE
    wound: str = MISSING_VALUE
    rend: str = MISSING_VALUE
    damage: str = MISSING_VALUE
    abilities: list[str] = field(default_factory=list)
    suffers_battle_damage: bool = False
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WeaponProfile":
        payload = _known_fields(cls, data)
        payload["abilities"] = list(payload.get("abilities") or [])
        payload["suffers_battle_damage"] = bool(payload.get("suffers_battle_damage"))
        return cls(**payload)


@dataclass(slots=True)
class Ability:
    """One ability block on a card.

    ``timing == "Passive"`` excludes ``phase`` and ``ability_type``; a
    ``"Reaction"`` ability is labelled from its ``reaction_*`` fields instead.
    """

    name: str
    color: AbilityColor = "grey"
    text: str = ""
    phase: AbilityPhase | None = None
    timing: AbilityTimingQualifier | None = None
    ability_type: AbilityType | None = None
    reaction_ability_type: str | None = None
    reaction_phase: str | None = None
    battle_damage: bool | None = None
    is_spell: bool | None = None
    casting_value: str | None = None
    is_prayer: bool | None = None
    chanting_value: str | None = None
    keywords: list[str] | None = None
    id: str = field(default_factory=new_id)

    def __post_init__(self) -> None:
        if self.timing == "Passive":
            self.phase = None
            self.ability_type = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ability":
        return cls(**_known_fields(cls, data))


@dataclass(slots=True)
class Warscroll:
    unit_name: str
    faction: str
    subfaction: str | None = None
    unit_type: UnitType | None = None
    regiment_of_renown: str | None = None
    move: str = MISSING_VALUE
    health: str = MISSING_VALUE
    save: str = MISSING_VALUE
    control: str = MISSING_VALUE
    ward: str | None = None
    weapons: list[WeaponProfile] = field(default_factory=list)
    abilities: list[Ability] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Warscroll":
        payload = _known_fields(cls, data)
        payload["weapons"] = [WeaponProfile.from_dict(item) for item in data.get("weapons") or []]
        payload["abilities"] = [Ability.from_dict(item) for item in data.get("abilities") or []]
        payload["keywords"] = list(data.get("keywords") or [])
        return cls(**payload)


@dataclass(slots=True)
class BattleTrait:
    """Trait card: a warscroll without weapons, grouped by ``trait_type``."""

    name: str
    trait_type: BattleTraitType = "Battle traits"
    regiment_of_renown: str | None = None
    faction: str | None = None
    subfaction: str | None = None
    move: str = MISSING_VALUE
    health: str = MISSING_VALUE
    save: str = MISSING_VALUE
    control: str = MISSING_VALUE
    ward: str | None = None
    keywords: list[str] = field(default_factory=list)
    abilities: list[Ability] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BattleTrait":
        payload = _known_fields(cls, data)
        payload["abilities"] = [Ability.from_dict(item) for item in data.get("abilities") or []]
        payload["keywords"] = list(data.get("keywords") or [])
        return cls(**payload)


@dataclass(slots=True)
class ArmyCollection:
    name: str
    faction: str | None = None
    warscroll_ids: list[str] = field(default_factory=list)
    battle_trait_ids: list[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArmyCollection":
        payload = _known_fields(cls, data)
        payload["warscroll_ids"] = list(data.get("warscroll_ids") or [])
        payload["battle_trait_ids"] = list(data.get("battle_trait_ids") or [])
        return cls(**payload)
