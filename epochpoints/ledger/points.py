"""
Epoch Points Ledger

Per-epoch aggregate of accrued points:

  - supply:        total points accrued in the epoch
  - user_balance:  cumulative points per user, never decreases
  - user_claimed:  points of user_balance already converted to payout

Records are created lazily on the first accrual that targets an epoch and
are never deleted. Reads for an unknown epoch or user return zero.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from ..exceptions import InvariantViolation
from ..validation import checked_add, require_u64


@dataclass
class EpochPointsRecord:
    """Points state of a single epoch."""
    epoch: int
    supply: int = 0
    user_balance: Dict[str, int] = field(default_factory=dict)
    user_claimed: Dict[str, int] = field(default_factory=dict)

    def balance_of(self, user: str) -> int:
        return self.user_balance.get(user, 0)

    def claimed_of(self, user: str) -> int:
        return self.user_claimed.get(user, 0)

    def unclaimed_of(self, user: str) -> int:
        return self.balance_of(user) - self.claimed_of(user)

    def add(self, user: str, amount: int) -> None:
        """Credit *amount* points to *user*. Both sums are checked before either is written."""
        new_supply = checked_add(self.supply, amount, f"epoch {self.epoch} supply")
        new_balance = checked_add(self.balance_of(user), amount, f"epoch {self.epoch} balance")
        self.supply = new_supply
        self.user_balance[user] = new_balance

    def settle(self, user: str) -> int:
        """
        Mark the user's whole current balance as claimed.

        Returns the previous claimed value so the caller can roll back.
        """
        previous = self.claimed_of(user)
        balance = self.balance_of(user)
        if previous > balance:
            raise InvariantViolation(
                f"epoch {self.epoch}: claimed {previous} > balance {balance} for {user}"
            )
        self.user_claimed[user] = balance
        return previous

    def restore_claimed(self, user: str, previous: int) -> None:
        if previous:
            self.user_claimed[user] = previous
        else:
            self.user_claimed.pop(user, None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epoch": self.epoch,
            "supply": self.supply,
            "userBalance": dict(self.user_balance),
            "userClaimed": dict(self.user_claimed),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EpochPointsRecord":
        return cls(
            epoch=int(data["epoch"]),
            supply=int(data.get("supply", 0)),
            user_balance={u: int(v) for u, v in data.get("userBalance", {}).items()},
            user_claimed={u: int(v) for u, v in data.get("userClaimed", {}).items()},
        )


class EpochPointsLedger:
    """
    Sparse map of epoch number to EpochPointsRecord.

    The ledger itself performs no authorization; RewardProgram gates the
    mutating calls.
    """

    def __init__(self):
        self._records: Dict[int, EpochPointsRecord] = {}

    # ── Read-only views ───────────────────────────────────────────────

    def get(self, epoch: int) -> Optional[EpochPointsRecord]:
        return self._records.get(epoch)

    def exists(self, epoch: int) -> bool:
        return epoch in self._records

    def epoch_supply(self, epoch: int) -> int:
        record = self._records.get(epoch)
        return record.supply if record else 0

    def user_balance(self, user: str, epoch: int) -> int:
        record = self._records.get(epoch)
        return record.balance_of(user) if record else 0

    def user_claimed(self, user: str, epoch: int) -> int:
        record = self._records.get(epoch)
        return record.claimed_of(user) if record else 0

    def epochs(self) -> Iterator[int]:
        return iter(sorted(self._records))

    # ── Mutation ──────────────────────────────────────────────────────

    def accrue(self, epoch: int, user: str, amount: int) -> EpochPointsRecord:
        require_u64(amount)
        record = self._records.get(epoch)
        if record is None:
            # Only materialize the record once the credit is known to fit
            record = EpochPointsRecord(epoch=epoch)
            record.add(user, amount)
            self._records[epoch] = record
        else:
            record.add(user, amount)
        return record

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        return {str(e): self._records[e].to_dict() for e in sorted(self._records)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EpochPointsLedger":
        ledger = cls()
        for raw in data.values():
            record = EpochPointsRecord.from_dict(raw)
            ledger._records[record.epoch] = record
        return ledger

    def __repr__(self) -> str:
        return f"<EpochPointsLedger epochs={len(self._records)}>"
