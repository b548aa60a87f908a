"""
Pre-launch instrument

Placeholder holding used before the program launches. The points program
deposits into it with its claim capability; after launch, a holder's whole
pre-launch balance can be swapped 1:1 into the launch instrument.
"""

from ..capabilities import Capability, CapabilityKind, require_capability
from ..logger import get_logger
from .base import CapabilityIssuer, Instrument

logger = get_logger(__name__)


class PreLaunchInstrument(Instrument, CapabilityIssuer):

    symbol = "preLAUNCH"
    capability_kind = CapabilityKind.PRE_LAUNCH_CLAIM

    def issue_claim_capability(self, admin: str) -> Capability:
        return self._issue_once(admin)

    def deposit(self, capability: Capability, address: str, amount: int) -> None:
        require_capability(capability, self, CapabilityKind.PRE_LAUNCH_CLAIM)
        self._credit(address, amount)
        logger.debug(f"{self.symbol} deposit: {address} amount={amount}")

    def revert_deposit(self, capability: Capability, address: str, amount: int) -> None:
        """Take back *amount* previously deposited to *address* with *capability*."""
        require_capability(capability, self, CapabilityKind.PRE_LAUNCH_CLAIM)
        self._debit(address, amount)
        logger.warning(f"{self.symbol} deposit reverted: {address} amount={amount}")

    def swap_all_to_launch_instrument(self, caller: str) -> int:
        """Burn the caller's entire holding and return the amount to credit in the launch instrument."""
        amount = self._debit_all(caller)
        logger.info(f"{self.symbol} swap: {caller} amount={amount}")
        return amount
