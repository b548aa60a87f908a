"""
Audit Events

Append-only record of accruals, claims and reward schedule updates. The log
is written after an operation has committed and is never read back by the
ledger; it exists for auditors and indexers.
"""

import hashlib
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Union

from .logger import get_logger

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AccrualEvent:
    """Emitted on every successful accrual."""
    epoch: int
    user: str
    amount: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "PointsAccrued",
            "epoch": self.epoch,
            "user": self.user,
            "amount": self.amount,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ClaimEvent:
    """Emitted on every successful claim."""
    epoch: int
    user: str
    amount: int
    route: str
    receipt_hash: str
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "RewardClaimed",
            "epoch": self.epoch,
            "user": self.user,
            "amount": self.amount,
            "route": self.route,
            "receiptHash": self.receipt_hash,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class RewardScheduledEvent:
    """Emitted when the admin sets an epoch's reward pool."""
    epoch: int
    amount: int
    previous: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event": "RewardScheduled",
            "epoch": self.epoch,
            "amount": self.amount,
            "previous": self.previous,
            "timestamp": self.timestamp,
        }


AuditEvent = Union[AccrualEvent, ClaimEvent, RewardScheduledEvent]


def claim_receipt_hash(epoch: int, user: str, amount: int, sequence: int) -> str:
    """Deterministic receipt id for the *sequence*-th event of the log."""
    payload = (
        b"epochpoints.claim"
        + epoch.to_bytes(8, "big")
        + user.encode()
        + amount.to_bytes(8, "big")
        + sequence.to_bytes(8, "big")
    )
    return hashlib.blake2b(payload, digest_size=32).hexdigest()


# ══════════════════════════════════════════════════════════════════════
#  EVENT LOG
# ══════════════════════════════════════════════════════════════════════

class EventLog:
    """Append-only, write-only audit sink."""

    def __init__(self):
        self._events: List[AuditEvent] = []
        self._lock = threading.Lock()

    def append(self, event: AuditEvent) -> None:
        with self._lock:
            self._events.append(event)
        logger.debug(f"audit: {event.to_dict()}")

    @property
    def events(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.events]
