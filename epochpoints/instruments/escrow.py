"""
Escrow instrument

Post-transition rewards are minted here with the program's mint capability.
Minting produces an EscrowValue that must be deposited exactly once. The
instrument's supply and minted total only count deposited value, so a
minted value that is never deposited leaves no trace.
"""

from typing import Any, Dict

from ..capabilities import Capability, CapabilityKind, require_capability
from ..logger import get_logger
from ..validation import checked_add, require_u64
from .base import CapabilityIssuer, Instrument, ValueConsumedError

logger = get_logger(__name__)


class EscrowValue:
    """Freshly minted, not yet deposited escrow value."""

    __slots__ = ("issuer", "amount", "consumed")

    def __init__(self, issuer: "EscrowInstrument", amount: int):
        self.issuer = issuer
        self.amount = amount
        self.consumed = False

    def __repr__(self) -> str:
        return f"<EscrowValue amount={self.amount} consumed={self.consumed}>"


class EscrowInstrument(Instrument, CapabilityIssuer):

    symbol = "esLAUNCH"
    capability_kind = CapabilityKind.ESCROW_MINT

    def __init__(self, admin: str):
        super().__init__(admin)
        self._minted_total = 0

    @property
    def minted_total(self) -> int:
        return self._minted_total

    def issue_mint_capability(self, admin: str) -> Capability:
        return self._issue_once(admin)

    def mint_with_capability(self, capability: Capability, amount: int) -> EscrowValue:
        require_capability(capability, self, CapabilityKind.ESCROW_MINT)
        require_u64(amount)
        logger.debug(f"{self.symbol} mint: amount={amount}")
        return EscrowValue(self, amount)

    def deposit(self, caller: str, value: EscrowValue) -> None:
        if not isinstance(value, EscrowValue) or value.issuer is not self:
            raise ValueConsumedError(f"{value!r} was not minted by {self.symbol}")
        with self._lock:
            if value.consumed:
                raise ValueConsumedError(f"{value!r} already deposited")
            self.check_credit(caller, value.amount)
            self._minted_total = checked_add(self._minted_total, value.amount, f"{self.symbol} minted")
            self._credit(caller, value.amount)
            value.consumed = True
        logger.debug(f"{self.symbol} deposit: {caller} amount={value.amount}")

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["mintedTotal"] = self._minted_total
        return result
