"""
views/maps.py - Map variant normalization

Variants such as "Ground Zero 21+" and "Night Factory" are grouped under
their base map so quests on either show up together.
"""

from __future__ import annotations
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Sequence, Tuple

from questline.catalog import MapInfo


@dataclass(frozen=True)
class MapVariantConfig:
    canonical: str
    variants: Tuple[str, ...]


MAP_VARIANT_CONFIG: Tuple[MapVariantConfig, ...] = (
    MapVariantConfig(canonical="Ground Zero", variants=("Ground Zero 21+",)),
    MapVariantConfig(canonical="Factory", variants=("Night Factory",)),
)


@lru_cache(maxsize=256)
def canonical_map_name(map_name: str) -> str:
    """The base map name for a variant; other names pass through."""
    if not map_name:
        return map_name
    lowered = map_name.lower()
    for config in MAP_VARIANT_CONFIG:
        if any(variant.lower() == lowered for variant in config.variants):
            return config.canonical
    return map_name


def is_map_variant(map_name: str) -> bool:
    return bool(map_name) and canonical_map_name(map_name) != map_name


def map_id_group(map_id: str, maps: Sequence[MapInfo]) -> List[str]:
    """Every map id sharing map_id's canonical name (map_id alone if unknown)."""
    if not map_id or not maps:
        return [map_id]

    selected = next((m for m in maps if m.id == map_id), None)
    if selected is None:
        return [map_id]

    canonical = canonical_map_name(selected.name)
    group = [m.id for m in maps if canonical_map_name(m.name) == canonical]
    return group or [map_id]
