"""
progress/report.py - Flattened progress report

Produces the stable external report shape third parties consume:

    {
        "tasksProgress":          [{id, complete, invalid?, failed?}],
        "taskObjectivesProgress": [{id, complete, count?, invalid?, failed?}],
        "hideoutModulesProgress": [{id, complete}],
        "hideoutPartsProgress":   [{id, complete, count?}],
        "displayName", "userId", "playerLevel", "gameEdition", "pmcFaction",
    }

Works on the raw stored document so fields that were never written stay
absent from the output.
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, TYPE_CHECKING, Union
import logging

from questline.core.constants import (
    CULTIST_CIRCLE_EDITIONS,
    CULTIST_CIRCLE_STATION_ID,
    DEFAULT_FACTION,
    DEFAULT_GAME_EDITION,
    DEFAULT_PLAYER_LEVEL,
    DISPLAY_NAME_LENGTH,
    STASH_STATION_ID,
)
from questline.core.enums import GameMode

from .modes import extract_mode_data

if TYPE_CHECKING:
    from questline.catalog import Catalog, FacilityTier

logger = logging.getLogger(__name__)

ReportItem = Dict[str, Any]


def format_records(
    records: Optional[Mapping[str, Any]],
    show_count: bool = False,
    show_invalid: bool = False,
) -> List[ReportItem]:
    """Flatten one record collection into report items."""
    items: List[ReportItem] = []
    if not records:
        return items

    for record_id, record in records.items():
        if not isinstance(record, Mapping):
            continue

        item: ReportItem = {
            "id": record_id,
            "complete": record.get("complete") if isinstance(record.get("complete"), bool) else False,
        }

        count = record.get("count")
        if show_count and isinstance(count, (int, float)) and not isinstance(count, bool):
            item["count"] = count

        if show_invalid and isinstance(record.get("invalid"), bool):
            item["invalid"] = record["invalid"]

        if record.get("failed"):
            item["failed"] = True

        # invalid records never report complete
        if item.get("invalid"):
            item["complete"] = False

        items.append(item)

    return items


def game_edition_of(data: Any) -> Optional[int]:
    if not isinstance(data, Mapping):
        return None
    candidate = data.get("gameEdition")
    if isinstance(candidate, bool):
        return None
    if isinstance(candidate, (int, float)):
        return int(candidate)
    if isinstance(candidate, str):
        try:
            return int(float(candidate))
        except ValueError:
            return None
    return None


def base_report(
    mode_data: Optional[Mapping[str, Any]],
    player_id: str,
    raw_document: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Scalar player attributes with their documented defaults."""
    mode_data = mode_data or {}
    edition = game_edition_of(mode_data)
    if edition is None:
        edition = game_edition_of(raw_document)
    if edition is None:
        edition = DEFAULT_GAME_EDITION

    return {
        "displayName": mode_data.get("displayName") or player_id[:DISPLAY_NAME_LENGTH],
        "userId": player_id,
        "playerLevel": mode_data.get("level") or DEFAULT_PLAYER_LEVEL,
        "gameEdition": edition,
        "pmcFaction": mode_data.get("pmcFaction") or DEFAULT_FACTION,
    }


def _mark_tier_complete(report: Dict[str, Any], tier: "FacilityTier") -> None:
    modules = report["hideoutModulesProgress"]
    existing = next((m for m in modules if m["id"] == tier.id), None)
    if existing is None:
        modules.append({"id": tier.id, "complete": True})
    else:
        existing["complete"] = True

    parts = report["hideoutPartsProgress"]
    for part in tier.parts:
        existing_part = next((p for p in parts if p["id"] == part.id), None)
        if existing_part is None:
            parts.append({"id": part.id, "complete": True, "count": part.count})
        else:
            existing_part["complete"] = True


def grant_starting_tiers(report: Dict[str, Any], catalog: "Catalog", game_edition: int) -> None:
    """
    Mark facility tiers included with the player's edition.

    Stash levels up to the edition number are complete; editions that ship
    the Cultist Circle get every level of it.
    """
    for tier in catalog.station_tiers(STASH_STATION_ID):
        if tier.level <= game_edition:
            _mark_tier_complete(report, tier)

    if game_edition in CULTIST_CIRCLE_EDITIONS:
        for tier in catalog.station_tiers(CULTIST_CIRCLE_STATION_ID):
            _mark_tier_complete(report, tier)


def format_progress(
    raw_document: Optional[Mapping[str, Any]],
    player_id: str,
    catalog: Optional["Catalog"] = None,
    mode: Optional[Union[GameMode, str]] = None,
    apply_sweep: bool = True,
) -> Dict[str, Any]:
    """
    Build the flattened report for one player and one mode.

    Args:
        raw_document: Stored document (mode-split or legacy), may be None
        player_id: Player the report is for
        catalog: Provides facility stations and the quest graph
        mode: Game mode to report; defaults to the document's current mode
        apply_sweep: Reflect consistency-sweep invalidations (needs catalog)
    """
    mode_data = extract_mode_data(raw_document, mode) if raw_document else None

    report = base_report(mode_data, player_id, raw_document)
    data = mode_data or {}
    report["tasksProgress"] = format_records(
        data.get("taskCompletions") or data.get("questCompletions"), show_invalid=True,
    )
    report["taskObjectivesProgress"] = format_records(
        data.get("taskObjectives") or data.get("objectiveProgress"),
        show_count=True,
        show_invalid=True,
    )
    report["hideoutModulesProgress"] = format_records(
        data.get("hideoutModules") or data.get("facilityTiers"),
    )
    report["hideoutPartsProgress"] = format_records(
        data.get("hideoutParts") or data.get("facilityParts"), show_count=True,
    )

    if catalog is not None:
        grant_starting_tiers(report, catalog, report["gameEdition"])
        if apply_sweep:
            apply_consistency_sweep(report, data, catalog, player_id)

    return report


def apply_consistency_sweep(
    report: Dict[str, Any],
    mode_data: Mapping[str, Any],
    catalog: "Catalog",
    player_id: str,
) -> None:
    """
    Reflect the consistency sweep in the report without touching storage.

    Invalidated quests and objectives are reported invalid and incomplete;
    ones with no stored record are added.
    """
    from questline.dependencies.sweep import ConsistencySweep
    from .schemas import ModeProgress

    try:
        snapshot = ModeProgress.from_dict(mode_data)
        results = ConsistencySweep(catalog).sweep(
            snapshot, faction=report["pmcFaction"], player_id=player_id,
        )
    except Exception as e:
        logger.error(f"Consistency sweep failed while formatting report for {player_id}: {e}")
        return

    for result in results:
        _mark_invalid(report["tasksProgress"], result.delta.quests, new_count=False)
        _mark_invalid(report["taskObjectivesProgress"], result.delta.objectives, new_count=True)


def _mark_invalid(items: List[ReportItem], updates: Mapping[str, Any], new_count: bool) -> None:
    by_id = {item["id"]: item for item in items}
    for record_id, fields_ in updates.items():
        if not fields_.get("invalid"):
            continue
        item = by_id.get(record_id)
        if item is None:
            item = {"id": record_id, "complete": False, "invalid": True}
            if new_count:
                item["count"] = 0
            items.append(item)
            by_id[record_id] = item
        else:
            item["invalid"] = True
            item["complete"] = False
