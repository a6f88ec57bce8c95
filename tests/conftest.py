"""
questline Test Configuration and Fixtures

Provides a small catalog builder and progress document helpers shared by
unit and integration tests.
"""

import pytest
from typing import Any, Dict, Iterable, List, Optional

from questline.catalog import Catalog
from questline.progress.schemas import ModeProgress


# =============================================================================
# BUILDERS
# =============================================================================

def quest(
    quest_id: str,
    requires: Iterable[str] = (),
    status: Iterable[str] = ("complete",),
    maps: Iterable[str] = (),
    trader: Optional[Dict[str, str]] = None,
    objectives: Optional[List[Dict[str, Any]]] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """
    Raw quest in the external dataset shape.

    Every quest gets one objective "<id>-obj" on the given maps unless
    objectives are passed explicitly.
    """
    data: Dict[str, Any] = {
        "id": quest_id,
        "name": quest_id.upper(),
        "trader": trader or {"id": "prapor", "name": "Prapor"},
        "objectives": objectives if objectives is not None else [
            {"id": f"{quest_id}-obj", "maps": [{"id": m} for m in maps]},
        ],
        "taskRequirements": [
            {"task": {"id": required}, "status": list(status)} for required in requires
        ],
    }
    data.update(extra)
    return data


def stash_station(levels: int = 4) -> Dict[str, Any]:
    return {
        "id": "5d484fc0654e76006657e0ab",
        "name": "Stash",
        "levels": [
            {
                "id": f"stash-{n}",
                "level": n,
                "itemRequirements": [{"id": f"stash-{n}-part", "count": n * 10}],
            }
            for n in range(1, levels + 1)
        ],
    }


def make_catalog(*quests: Dict[str, Any], **extra: Any) -> Catalog:
    data: Dict[str, Any] = {
        "tasks": list(quests),
        "maps": [
            {"id": "customs", "name": "Customs"},
            {"id": "factory-day", "name": "Factory"},
            {"id": "factory-night", "name": "Night Factory"},
            {"id": "gz", "name": "Ground Zero"},
            {"id": "gz-high", "name": "Ground Zero 21+"},
        ],
        "traders": [
            {"id": "prapor", "name": "Prapor"},
            {"id": "lk", "name": "Lightkeeper"},
        ],
    }
    data.update(extra)
    return Catalog.from_dict(data)


def progress_doc(
    completions: Optional[Dict[str, Dict[str, Any]]] = None,
    objectives: Optional[Dict[str, Dict[str, Any]]] = None,
    **scalars: Any,
) -> Dict[str, Any]:
    """Raw single-mode progress data."""
    data: Dict[str, Any] = {
        "level": scalars.pop("level", 15),
        "pmcFaction": scalars.pop("pmcFaction", "USEC"),
        "taskCompletions": completions or {},
        "taskObjectives": objectives or {},
    }
    data.update(scalars)
    return data


def snapshot(completions=None, objectives=None, **scalars) -> ModeProgress:
    return ModeProgress.from_dict(progress_doc(completions, objectives, **scalars))


def split_doc(pvp: Optional[Dict[str, Any]] = None, pve: Optional[Dict[str, Any]] = None, current: str = "pvp"):
    """Raw mode-split document."""
    return {
        "currentGameMode": current,
        "pvp": pvp if pvp is not None else progress_doc(),
        "pve": pve if pve is not None else progress_doc(),
    }


class FixedClock:
    """Deterministic millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def chain_catalog():
    """A -> B -> C requirement chain plus an unrelated quest D."""
    return make_catalog(
        quest("a", maps=["customs"]),
        quest("b", requires=["a"], maps=["customs"]),
        quest("c", requires=["b"], maps=["factory-day"]),
        quest("d", maps=["gz"]),
    )


@pytest.fixture
def alternatives_catalog():
    """C lists D as its alternative; D lists nothing (asymmetric)."""
    return make_catalog(
        quest("c", alternatives=[{"id": "d"}]),
        quest("d"),
        quest("e", requires=["c"]),
    )


@pytest.fixture
def clock():
    return FixedClock()
