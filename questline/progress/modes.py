"""
progress/modes.py - Game mode selection on raw documents

Read-side helpers that pick one mode's data out of a stored document
without migrating it.
"""

from __future__ import annotations
from typing import Any, Dict, Mapping, Optional, Union
import logging

from questline.core.enums import GameMode

from .schemas import ModeProgress, ModeSplitDocument, migrate_document

logger = logging.getLogger(__name__)


def _mode_value(mode: Optional[Union[GameMode, str]]) -> Optional[str]:
    if mode is None:
        return None
    return mode.value if isinstance(mode, GameMode) else str(mode)


def extract_mode_data(
    raw: Optional[Mapping[str, Any]],
    mode: Optional[Union[GameMode, str]] = None,
) -> Optional[Dict[str, Any]]:
    """
    Pick one mode's data from a raw stored document.

    - mode-split document: data[mode or currentGameMode]; None when a
      requested mode is absent
    - currentGameMode without a split: the legacy data minus that key
    - anything else: the legacy data as-is
    """
    if not raw:
        return None

    requested = _mode_value(mode)
    current = raw.get("currentGameMode")
    has_split = GameMode.PVP.value in raw or GameMode.PVE.value in raw

    if current and has_split:
        selected = requested or current
        data = raw.get(selected)
        if data is None:
            if requested:
                logger.debug(f"Requested mode {requested} missing from document")
            return None
        return dict(data)

    if current:
        return {key: value for key, value in raw.items() if key != "currentGameMode"}

    return dict(raw)


def select_mode(
    raw: Mapping[str, Any],
    mode: Optional[Union[GameMode, str]] = None,
) -> ModeProgress:
    """Migrate a raw document and return the requested (or current) mode."""
    document: ModeSplitDocument = migrate_document(raw)
    requested = _mode_value(mode)
    return document.mode(GameMode(requested) if requested else None)
