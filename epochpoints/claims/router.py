"""
Payout Router

Chooses where a claimed entitlement is paid, following the launch
migration timeline:

    before launch                  -> pre-launch instrument
    after launch, epoch <= cutover -> pre-launch, then the claimant's whole
                                      pre-launch holding is swapped into the
                                      launch instrument
    after launch, epoch > cutover  -> freshly minted escrow value

The transition-era swap sweeps every pre-launch unit the claimant holds,
including deposits from earlier claims, not just the current entitlement.

A payout either completes or leaves every instrument as it found it:
credit headroom is checked before the first mutation, and if a later step
still fails the completed steps are undone in reverse order.
"""

from enum import Enum

from ..capabilities import CapabilityStore
from ..clock import EpochClock, LaunchOracle
from ..constants import TRANSITION_CUTOVER_EPOCH
from ..instruments import EscrowInstrument, LaunchInstrument, PreLaunchInstrument
from ..logger import get_logger

logger = get_logger(__name__)


class PayoutRoute(str, Enum):
    PRE_LAUNCH = "PRE_LAUNCH"
    LAUNCH_SWAP = "LAUNCH_SWAP"
    ESCROW = "ESCROW"


class PayoutRouter:

    def __init__(
        self,
        pre_launch: PreLaunchInstrument,
        launch: LaunchInstrument,
        escrow: EscrowInstrument,
        oracle: LaunchOracle,
        clock: EpochClock,
        cutover_epoch: int = TRANSITION_CUTOVER_EPOCH,
    ):
        self.pre_launch = pre_launch
        self.launch = launch
        self.escrow = escrow
        self.oracle = oracle
        self.clock = clock
        self.cutover_epoch = cutover_epoch

    def select_route(self, epoch: int, now: int) -> PayoutRoute:
        if now < self.oracle.launch_time():
            return PayoutRoute.PRE_LAUNCH
        if epoch <= self.cutover_epoch:
            return PayoutRoute.LAUNCH_SWAP
        return PayoutRoute.ESCROW

    def pay(
        self,
        capabilities: CapabilityStore,
        claimant: str,
        epoch: int,
        amount: int,
    ) -> PayoutRoute:
        """Pay *amount* to *claimant* and return the route taken."""
        route = self.select_route(epoch, self.clock.now())

        if route is PayoutRoute.ESCROW:
            self.escrow.check_credit(claimant, amount)
            value = self.escrow.mint_with_capability(capabilities.escrow_mint, amount)
            self.escrow.deposit(claimant, value)
            return route

        self.pre_launch.check_credit(claimant, amount)
        if route is PayoutRoute.PRE_LAUNCH:
            self.pre_launch.deposit(capabilities.pre_launch, claimant, amount)
            return route

        self.launch.check_credit(claimant, self.pre_launch.balance_of(claimant) + amount)
        self._launch_swap(capabilities, claimant, amount)
        return route

    def _launch_swap(self, capabilities: CapabilityStore, claimant: str, amount: int) -> None:
        cap = capabilities.pre_launch
        self.pre_launch.deposit(cap, claimant, amount)
        swapped = None
        try:
            swapped = self.pre_launch.swap_all_to_launch_instrument(claimant)
            self.launch.deposit_to_primary_holding(claimant, swapped)
        except Exception:
            if swapped:
                self.pre_launch.deposit(cap, claimant, swapped)
            self.pre_launch.revert_deposit(cap, claimant, amount)
            logger.error(f"Launch swap failed for {claimant} amount={amount}, pre-launch holding restored")
            raise
        logger.debug(f"Swept {swapped} pre-launch units of {claimant} into {self.launch.symbol}")
