"""
Instrument holdings

Shared balance bookkeeping for the three payout instruments. Instruments
are external to the points program; these in-memory versions implement
only the calls the payout router makes, plus balance reads.
"""

import threading
from typing import Any, Dict, Optional

from ..capabilities import Capability, CapabilityKind, issue_capability
from ..exceptions import Unauthorized
from ..logger import get_logger
from ..validation import checked_add, require_address, require_u64

logger = get_logger(__name__)


class InstrumentError(Exception):
    """Base exception for instrument operations."""


class ValueConsumedError(InstrumentError):
    """Raised when a minted value is deposited twice."""


class Instrument:
    """Balances keyed by address, with a total supply."""

    symbol: str = ""

    def __init__(self, admin: str):
        self.admin = admin
        self._balances: Dict[str, int] = {}
        self._total_supply = 0
        self._lock = threading.RLock()

    # ── Read-only views ───────────────────────────────────────────────

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    # ── Bookkeeping ───────────────────────────────────────────────────

    def check_credit(self, address: str, amount: int) -> None:
        """Raise unless crediting *amount* to *address* would succeed."""
        require_address(address)
        require_u64(amount)
        with self._lock:
            checked_add(self.balance_of(address), amount, f"{self.symbol} balance")
            checked_add(self._total_supply, amount, f"{self.symbol} supply")

    def _credit(self, address: str, amount: int) -> None:
        require_address(address)
        require_u64(amount)
        with self._lock:
            new_balance = checked_add(self.balance_of(address), amount, f"{self.symbol} balance")
            new_supply = checked_add(self._total_supply, amount, f"{self.symbol} supply")
            self._balances[address] = new_balance
            self._total_supply = new_supply

    def _debit(self, address: str, amount: int) -> None:
        with self._lock:
            balance = self.balance_of(address)
            if amount > balance:
                raise InstrumentError(
                    f"{self.symbol}: cannot debit {amount} from {address} holding {balance}"
                )
            if amount == balance:
                self._balances.pop(address, None)
            else:
                self._balances[address] = balance - amount
            self._total_supply -= amount

    def _debit_all(self, address: str) -> int:
        with self._lock:
            amount = self._balances.pop(address, 0)
            self._total_supply -= amount
            return amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "totalSupply": self._total_supply,
            "holders": len([b for b in self._balances.values() if b > 0]),
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.symbol} supply={self._total_supply}>"


class CapabilityIssuer:
    """Mixin granting a single capability to the instrument's admin, once."""

    capability_kind: Optional[CapabilityKind] = None

    def _issue_once(self, admin: str) -> Capability:
        if admin != self.admin:
            raise Unauthorized(f"{admin} cannot obtain a {self.symbol} capability")
        if getattr(self, "_capability_issued", False):
            raise Unauthorized(f"{self.symbol} capability already issued")
        self._capability_issued = True
        logger.info(f"{self.symbol}: {self.capability_kind.value} capability issued to {admin}")
        return issue_capability(self, self.capability_kind)
