"""
progress/schemas.py - Progress record shapes

Per-player, per-mode completion records and the PlayerProgressDocument
tagged union (mode-split vs legacy flat).

Records are immutable; every change produces a new record through
with_updates(), which applies a field-level merge the same way the
document store applies dotted-path updates.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional, Union
import copy
import logging

from questline.core.constants import (
    DEFAULT_FACTION,
    DEFAULT_GAME_EDITION,
    DEFAULT_PLAYER_LEVEL,
)
from questline.core.enums import GameMode

logger = logging.getLogger(__name__)


class _Delete:
    """Sentinel: remove the field from the stored record."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DELETE"

    def __deepcopy__(self, memo):
        return self


DELETE = _Delete()


def _coerce_bool(value: Any) -> bool:
    return value is True


def _coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


# =============================================================================
# RECORDS
# =============================================================================

@dataclass(frozen=True)
class _Record:
    """Shared merge/serialize behaviour for progress records."""

    def with_updates(self, updates: Mapping[str, Any]) -> "_Record":
        known = {f.name: f for f in fields(self)}
        changes: Dict[str, Any] = {}
        for name, value in updates.items():
            if name not in known:
                logger.debug(f"Ignoring unknown field {name} on {type(self).__name__}")
                continue
            if value is DELETE:
                default = known[name].default
                changes[name] = default
            else:
                changes[name] = value
        return replace(self, **changes).normalized()

    def normalized(self) -> "_Record":
        return self

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[f.name] = value
        return data


@dataclass(frozen=True)
class QuestCompletion(_Record):
    """Stored state of one quest. invalid implies not complete."""
    complete: bool = False
    failed: bool = False
    invalid: bool = False
    timestamp: Optional[int] = None

    def normalized(self) -> "QuestCompletion":
        if self.invalid and self.complete:
            return replace(self, complete=False)
        return self

    @property
    def is_active(self) -> bool:
        return not self.complete and not self.failed and not self.invalid

    @property
    def completed_successfully(self) -> bool:
        return self.complete and not self.failed

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "QuestCompletion":
        return cls(
            complete=_coerce_bool(data.get("complete")),
            failed=_coerce_bool(data.get("failed")),
            invalid=_coerce_bool(data.get("invalid")),
            timestamp=_coerce_int(data.get("timestamp")),
        ).normalized()


@dataclass(frozen=True)
class ObjectiveProgress(_Record):
    complete: bool = False
    count: Optional[int] = None
    invalid: bool = False
    failed: bool = False
    timestamp: Optional[int] = None

    def normalized(self) -> "ObjectiveProgress":
        if self.invalid and self.complete:
            return replace(self, complete=False)
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ObjectiveProgress":
        return cls(
            complete=_coerce_bool(data.get("complete")),
            count=_coerce_int(data.get("count")),
            invalid=_coerce_bool(data.get("invalid")),
            failed=_coerce_bool(data.get("failed")),
            timestamp=_coerce_int(data.get("timestamp")),
        ).normalized()


@dataclass(frozen=True)
class FacilityProgress(_Record):
    """Facility tier or facility part progress."""
    complete: bool = False
    count: Optional[int] = None
    timestamp: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FacilityProgress":
        return cls(
            complete=_coerce_bool(data.get("complete")),
            count=_coerce_int(data.get("count")),
            timestamp=_coerce_int(data.get("timestamp")),
        )


# =============================================================================
# MODE PROGRESS
# =============================================================================

# wire key -> attribute; first spelling is the one written back
_COLLECTION_KEYS = {
    "quest_completions": ("taskCompletions", "questCompletions"),
    "objective_progress": ("taskObjectives", "objectiveProgress"),
    "facility_tiers": ("hideoutModules", "facilityTiers"),
    "facility_parts": ("hideoutParts", "facilityParts"),
}

_RECORD_TYPES = {
    "quest_completions": QuestCompletion,
    "objective_progress": ObjectiveProgress,
    "facility_tiers": FacilityProgress,
    "facility_parts": FacilityProgress,
}


def _read_collection(data: Mapping[str, Any], attr: str) -> Dict[str, Any]:
    record_type = _RECORD_TYPES[attr]
    for key in _COLLECTION_KEYS[attr]:
        raw = data.get(key)
        if isinstance(raw, Mapping):
            return {
                str(record_id): record_type.from_dict(value)
                for record_id, value in raw.items()
                if isinstance(value, Mapping)
            }
    return {}


@dataclass
class ModeProgress:
    """
    One game mode's worth of progress for one player.

    Treated as a snapshot: engine code copies before changing anything.
    """
    level: int = DEFAULT_PLAYER_LEVEL
    pmc_faction: str = DEFAULT_FACTION
    display_name: Optional[str] = None
    game_edition: Optional[int] = None

    trader_levels: Dict[str, int] = field(default_factory=dict)
    trader_standings: Dict[str, float] = field(default_factory=dict)

    quest_completions: Dict[str, QuestCompletion] = field(default_factory=dict)
    objective_progress: Dict[str, ObjectiveProgress] = field(default_factory=dict)
    facility_tiers: Dict[str, FacilityProgress] = field(default_factory=dict)
    facility_parts: Dict[str, FacilityProgress] = field(default_factory=dict)

    def quest(self, quest_id: str) -> Optional[QuestCompletion]:
        return self.quest_completions.get(quest_id)

    def objective(self, objective_id: str) -> Optional[ObjectiveProgress]:
        return self.objective_progress.get(objective_id)

    def is_quest_complete(self, quest_id: str) -> bool:
        record = self.quest_completions.get(quest_id)
        return bool(record and record.complete)

    def is_quest_failed(self, quest_id: str) -> bool:
        record = self.quest_completions.get(quest_id)
        return bool(record and record.failed)

    def is_objective_complete(self, objective_id: str) -> bool:
        record = self.objective_progress.get(objective_id)
        return bool(record and record.complete)

    def copy(self) -> "ModeProgress":
        """Shallow copy of every collection; records themselves are immutable."""
        return ModeProgress(
            level=self.level,
            pmc_faction=self.pmc_faction,
            display_name=self.display_name,
            game_edition=self.game_edition,
            trader_levels=dict(self.trader_levels),
            trader_standings=dict(self.trader_standings),
            quest_completions=dict(self.quest_completions),
            objective_progress=dict(self.objective_progress),
            facility_tiers=dict(self.facility_tiers),
            facility_parts=dict(self.facility_parts),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModeProgress":
        level = _coerce_int(data.get("level"))
        edition = data.get("gameEdition")
        if isinstance(edition, str):
            try:
                edition = int(edition)
            except ValueError:
                edition = None
        return cls(
            level=level if level is not None else DEFAULT_PLAYER_LEVEL,
            pmc_faction=data.get("pmcFaction") or DEFAULT_FACTION,
            display_name=data.get("displayName"),
            game_edition=_coerce_int(edition),
            trader_levels={
                str(k): int(v) for k, v in (data.get("traderLevels") or {}).items()
                if isinstance(v, (int, float))
            },
            trader_standings={
                str(k): float(v) for k, v in (data.get("traderStandings") or {}).items()
                if isinstance(v, (int, float))
            },
            quest_completions=_read_collection(data, "quest_completions"),
            objective_progress=_read_collection(data, "objective_progress"),
            facility_tiers=_read_collection(data, "facility_tiers"),
            facility_parts=_read_collection(data, "facility_parts"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "level": self.level,
            "pmcFaction": self.pmc_faction,
        }
        if self.display_name is not None:
            data["displayName"] = self.display_name
        if self.game_edition is not None:
            data["gameEdition"] = self.game_edition
        if self.trader_levels:
            data["traderLevels"] = dict(self.trader_levels)
        if self.trader_standings:
            data["traderStandings"] = dict(self.trader_standings)
        for attr, keys in _COLLECTION_KEYS.items():
            records = getattr(self, attr)
            data[keys[0]] = {record_id: record.to_dict() for record_id, record in records.items()}
        return data


# =============================================================================
# DOCUMENTS (tagged union)
# =============================================================================

@dataclass
class ModeSplitDocument:
    """Canonical document: one ModeProgress per game mode."""
    current_mode: GameMode = GameMode.PVP
    pvp: ModeProgress = field(default_factory=ModeProgress)
    pve: ModeProgress = field(default_factory=ModeProgress)
    display_name: Optional[str] = None
    game_edition: Optional[int] = None

    kind: str = field(default="mode_split", init=False)

    def mode(self, mode: Optional[GameMode] = None) -> ModeProgress:
        selected = mode or self.current_mode
        return self.pve if selected == GameMode.PVE else self.pvp

    def with_mode(self, mode: GameMode, progress: ModeProgress) -> "ModeSplitDocument":
        doc = ModeSplitDocument(
            current_mode=self.current_mode,
            pvp=self.pvp,
            pve=self.pve,
            display_name=self.display_name,
            game_edition=self.game_edition,
        )
        if mode == GameMode.PVE:
            doc.pve = progress
        else:
            doc.pvp = progress
        return doc

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "currentGameMode": self.current_mode.value,
            GameMode.PVP.value: self.pvp.to_dict(),
            GameMode.PVE.value: self.pve.to_dict(),
        }
        if self.display_name is not None:
            data["displayName"] = self.display_name
        if self.game_edition is not None:
            data["gameEdition"] = self.game_edition
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModeSplitDocument":
        return cls(
            current_mode=_parse_mode(data.get("currentGameMode")),
            pvp=ModeProgress.from_dict(data.get(GameMode.PVP.value) or {}),
            pve=ModeProgress.from_dict(data.get(GameMode.PVE.value) or {}),
            display_name=data.get("displayName"),
            game_edition=_coerce_int(data.get("gameEdition")),
        )


@dataclass
class LegacyDocument:
    """Flat pre-split document; its data is an implicit single mode."""
    progress: ModeProgress = field(default_factory=ModeProgress)
    declared_mode: Optional[GameMode] = None

    kind: str = field(default="legacy", init=False)

    def to_dict(self) -> Dict[str, Any]:
        data = self.progress.to_dict()
        if self.declared_mode is not None:
            data["currentGameMode"] = self.declared_mode.value
        return data


PlayerProgressDocument = Union[ModeSplitDocument, LegacyDocument]


def _parse_mode(value: Any) -> GameMode:
    try:
        return GameMode(value)
    except ValueError:
        if value is not None:
            logger.warning(f"Unknown game mode {value!r}, defaulting to pvp")
        return GameMode.PVP


def is_mode_split(raw: Mapping[str, Any]) -> bool:
    return bool(raw.get("currentGameMode")) and (
        GameMode.PVP.value in raw or GameMode.PVE.value in raw
    )


def parse_document(raw: Mapping[str, Any]) -> PlayerProgressDocument:
    """Interpret a raw stored document as one variant of the tagged union."""
    if is_mode_split(raw):
        return ModeSplitDocument.from_dict(raw)

    declared = raw.get("currentGameMode")
    legacy = {key: value for key, value in raw.items() if key != "currentGameMode"}
    return LegacyDocument(
        progress=ModeProgress.from_dict(legacy),
        declared_mode=_parse_mode(declared) if declared else None,
    )


def migrate_document(raw: Union[Mapping[str, Any], PlayerProgressDocument]) -> ModeSplitDocument:
    """
    Convert any stored shape into the mode-split document.

    Legacy data becomes the progress of its declared mode (pvp when none
    was declared); the other mode starts empty.
    """
    document = raw if isinstance(raw, (ModeSplitDocument, LegacyDocument)) else parse_document(raw)
    if isinstance(document, ModeSplitDocument):
        return document

    mode = document.declared_mode or GameMode.PVP
    migrated = ModeSplitDocument(
        current_mode=mode,
        display_name=document.progress.display_name,
        game_edition=document.progress.game_edition,
    )
    return migrated.with_mode(mode, document.progress)


def deep_copy_raw(raw: Mapping[str, Any]) -> Dict[str, Any]:
    return copy.deepcopy(dict(raw))
