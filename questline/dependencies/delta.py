"""
questline Progress Delta

Field-level updates produced by the reducers. A delta is applied to a
snapshot to produce a new snapshot; the input is never modified.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from questline.progress.schemas import (
    DELETE,
    FacilityProgress,
    ModeProgress,
    ObjectiveProgress,
    QuestCompletion,
)

FieldUpdates = Dict[str, Any]

_SCALARS = ("level", "pmc_faction", "display_name", "game_edition")


@dataclass
class ProgressDelta:
    """
    Ordered record updates for one ModeProgress.

    Updates to the same record merge; the later value of a field wins.
    """
    quests: Dict[str, FieldUpdates] = field(default_factory=dict)
    objectives: Dict[str, FieldUpdates] = field(default_factory=dict)
    facility_tiers: Dict[str, FieldUpdates] = field(default_factory=dict)
    facility_parts: Dict[str, FieldUpdates] = field(default_factory=dict)
    scalars: Dict[str, Any] = field(default_factory=dict)

    def set_quest(self, quest_id: str, **updates: Any) -> None:
        self.quests.setdefault(quest_id, {}).update(updates)

    def set_objective(self, objective_id: str, **updates: Any) -> None:
        self.objectives.setdefault(objective_id, {}).update(updates)

    def set_scalar(self, name: str, value: Any) -> None:
        if name not in _SCALARS:
            raise ValueError(f"Unknown progress attribute: {name}")
        self.scalars[name] = value

    def merge(self, other: "ProgressDelta") -> "ProgressDelta":
        """Fold other into self (other's fields win) and return self."""
        for target, source in (
            (self.quests, other.quests),
            (self.objectives, other.objectives),
            (self.facility_tiers, other.facility_tiers),
            (self.facility_parts, other.facility_parts),
        ):
            for record_id, updates in source.items():
                target.setdefault(record_id, {}).update(updates)
        self.scalars.update(other.scalars)
        return self

    @property
    def is_empty(self) -> bool:
        return not (
            self.quests or self.objectives or self.facility_tiers
            or self.facility_parts or self.scalars
        )

    def touched_quests(self) -> List[str]:
        return list(self.quests)

    def apply(self, snapshot: ModeProgress) -> ModeProgress:
        """Return a new snapshot with every update merged in."""
        result = snapshot.copy()
        _merge_into(result.quest_completions, self.quests, QuestCompletion)
        _merge_into(result.objective_progress, self.objectives, ObjectiveProgress)
        _merge_into(result.facility_tiers, self.facility_tiers, FacilityProgress)
        _merge_into(result.facility_parts, self.facility_parts, FacilityProgress)
        for name, value in self.scalars.items():
            setattr(result, name, None if value is DELETE else value)
        return result

    def to_dict(self) -> Dict[str, Any]:
        def _clean(updates: Mapping[str, FieldUpdates]) -> Dict[str, Any]:
            return {
                record_id: {k: (None if v is DELETE else v) for k, v in fields_.items()}
                for record_id, fields_ in updates.items()
            }

        return {
            "quests": _clean(self.quests),
            "objectives": _clean(self.objectives),
            "facility_tiers": _clean(self.facility_tiers),
            "facility_parts": _clean(self.facility_parts),
            "scalars": dict(self.scalars),
        }


def _merge_into(records: Dict[str, Any], updates: Mapping[str, FieldUpdates], record_type) -> None:
    for record_id, fields_ in updates.items():
        current: Optional[Any] = records.get(record_id)
        base = current if current is not None else record_type()
        records[record_id] = base.with_updates(fields_)
