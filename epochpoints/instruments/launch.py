"""
Launch instrument

The real post-launch asset. The payout router only ever credits a
claimant's primary holding with value swapped out of the pre-launch
instrument.
"""

from ..logger import get_logger
from .base import Instrument

logger = get_logger(__name__)


class LaunchInstrument(Instrument):

    symbol = "LAUNCH"

    def deposit_to_primary_holding(self, address: str, amount: int) -> None:
        self._credit(address, amount)
        logger.debug(f"{self.symbol} primary deposit: {address} amount={amount}")
