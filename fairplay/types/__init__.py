"""
fairplay.types
==============

Typed primitives shared across the engine. Re-exported here so callers can
import them from a stable path.
"""

from __future__ import annotations

from .core import (
    LIVE_STATUSES,
    PLAYABLE_STATUSES,
    SETTLEABLE_STATUSES,
    GamePlayed,
    MoveResult,
    Session,
    SessionRecord,
    SessionStatus,
    Settlement,
    TxReceipt,
)
from .result import Failed, NeedsReset, Ok, StepResult

__all__ = [
    "SessionStatus",
    "LIVE_STATUSES",
    "PLAYABLE_STATUSES",
    "SETTLEABLE_STATUSES",
    "Session",
    "SessionRecord",
    "MoveResult",
    "GamePlayed",
    "TxReceipt",
    "Settlement",
    "Ok",
    "NeedsReset",
    "Failed",
    "StepResult",
]
