"""
Points ledger state

Provides:
  - EpochPointsLedger       : per-epoch supply, balances and claimed points
  - RewardScheduleRegistry  : epoch -> reward pool
"""

from .points import EpochPointsLedger, EpochPointsRecord
from .schedule import RewardScheduleRegistry

__all__ = [
    "EpochPointsLedger",
    "EpochPointsRecord",
    "RewardScheduleRegistry",
]
