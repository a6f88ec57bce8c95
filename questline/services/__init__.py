"""
services/ - Validated progress operations
"""

from .validation import (
    QuestTransition,
    validate_state,
    validate_id,
    validate_multi_update,
    validate_objective_state,
    validate_objective_update,
    validate_level,
)
from .progress_service import ProgressService, parse_mode, write_mode

__all__ = [
    "QuestTransition",
    "validate_state",
    "validate_id",
    "validate_multi_update",
    "validate_objective_state",
    "validate_objective_update",
    "validate_level",
    "ProgressService",
    "parse_mode",
    "write_mode",
]
