"""
questline Dependency & Invalidation Engine

Provides:
- InvalidationEngine: pure reducer for quest state transitions
- ConsistencySweep: recursive invalidation of contradicted progress
- ProgressDelta: field-level updates applied to snapshots
- InvalidationLog: audit trail of engine events
"""

from .delta import ProgressDelta, FieldUpdates
from .requirements import (
    expects_complete,
    satisfied_by_outcome,
    satisfied_by_transition,
    satisfied_by_record,
    propagates_invalidation,
    contradicted_failure,
)
from .invalidation import (
    InvalidationEngine,
    InvalidationEvent,
    TransitionResult,
    BatchResult,
    epoch_millis,
)
from .sweep import ConsistencySweep, InvalidationDepthExceeded
from .trigger_log import InvalidationLog

__all__ = [
    "ProgressDelta",
    "FieldUpdates",
    "expects_complete",
    "satisfied_by_outcome",
    "satisfied_by_transition",
    "satisfied_by_record",
    "propagates_invalidation",
    "contradicted_failure",
    "InvalidationEngine",
    "InvalidationEvent",
    "TransitionResult",
    "BatchResult",
    "epoch_millis",
    "ConsistencySweep",
    "InvalidationDepthExceeded",
    "InvalidationLog",
]
