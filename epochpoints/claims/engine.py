"""
Claim Engine

Computes and settles pro-rata reward entitlements.

For user u and closed epoch e:

    entitlement = reward_pool(e) * (balance[u] - claimed[u]) // supply(e)

A claim settles against the user's balance at claim time: afterwards
claimed[u] == balance[u], so a second claim only pays for points accrued
in between. An epoch is claimable when

    claims_open_epoch <= e < current_epoch
    now - epoch_end_time(e) <= claim window

`claimable_amount` and `claim` share this predicate.
"""

from ..capabilities import CapabilityStore
from ..clock import EpochClock
from ..blocklist import BlockList
from ..constants import CLAIM_WINDOW_SECONDS, CLAIMS_OPEN_EPOCH, U64_MAX
from ..events import ClaimEvent, EventLog, claim_receipt_hash
from ..exceptions import ArithmeticOverflow, ClaimExpired, InvariantViolation, NoClaimable
from ..ledger import EpochPointsLedger, RewardScheduleRegistry
from ..logger import get_logger
from .router import PayoutRouter

logger = get_logger(__name__)


def compute_entitlement(reward_pool: int, balance: int, claimed: int, supply: int) -> int:
    """
    Multiply-then-divide share of *reward_pool*, truncated toward zero.

    Python integers carry the full-width product, so no precision is lost
    for 64-bit operands.
    """
    unclaimed = balance - claimed
    if unclaimed < 0:
        raise InvariantViolation(f"claimed {claimed} exceeds balance {balance}")
    if unclaimed == 0 or reward_pool == 0:
        return 0
    if supply <= 0:
        raise InvariantViolation(f"unclaimed points {unclaimed} in an epoch with supply {supply}")
    amount = reward_pool * unclaimed // supply
    if amount > U64_MAX:
        raise ArithmeticOverflow(f"entitlement {amount} exceeds u64")
    return amount


def claims_open(epoch: int, current_epoch: int, open_epoch: int = CLAIMS_OPEN_EPOCH) -> bool:
    """Program is past the claims-open epoch and *epoch* is a closed, claimable epoch."""
    return current_epoch > open_epoch and open_epoch <= epoch < current_epoch


def within_window(end_time: int, now: int, window_seconds: int = CLAIM_WINDOW_SECONDS) -> bool:
    """Boundary inclusive: a claim exactly *window_seconds* after epoch end is accepted."""
    return now - end_time <= window_seconds


class ClaimEngine:

    def __init__(
        self,
        ledger: EpochPointsLedger,
        schedule: RewardScheduleRegistry,
        clock: EpochClock,
        block_list: BlockList,
        router: PayoutRouter,
        events: EventLog,
        claims_open_epoch: int = CLAIMS_OPEN_EPOCH,
        claim_window_seconds: int = CLAIM_WINDOW_SECONDS,
    ):
        self.ledger = ledger
        self.schedule = schedule
        self.clock = clock
        self.block_list = block_list
        self.router = router
        self.events = events
        self.claims_open_epoch = claims_open_epoch
        self.claim_window_seconds = claim_window_seconds

    # ── Eligibility ───────────────────────────────────────────────────

    def claims_open(self, epoch: int, current_epoch: int) -> bool:
        return claims_open(epoch, current_epoch, self.claims_open_epoch)

    def within_window(self, epoch: int, now: int) -> bool:
        return within_window(self.clock.epoch_end_time(epoch), now, self.claim_window_seconds)

    def _entitlement(self, user: str, epoch: int) -> int:
        record = self.ledger.get(epoch)
        if record is None:
            return 0
        return compute_entitlement(
            self.schedule.reward_for(epoch),
            record.balance_of(user),
            record.claimed_of(user),
            record.supply,
        )

    # ── Read-only view ────────────────────────────────────────────────

    def claimable_amount(self, user: str, epoch: int) -> int:
        if not self.claims_open(epoch, self.clock.current_epoch()):
            return 0
        if not self.within_window(epoch, self.clock.now()):
            return 0
        if self.ledger.epoch_supply(epoch) == 0:
            return 0
        return self._entitlement(user, epoch)

    # ── Claim ─────────────────────────────────────────────────────────

    def claim(self, capabilities: CapabilityStore, caller: str, epoch: int) -> ClaimEvent:
        """
        Settle the caller's entitlement for *epoch* and pay it out.

        Callers hold the program lock; nothing here is re-entrant.

        Raises:
            Blocked: caller is on the block list
            NoClaimable: claims not open for the epoch, or nothing to claim
            ClaimExpired: the claim window has elapsed
        """
        self.block_list.check_not_blocked(caller)

        current = self.clock.current_epoch()
        if not self.claims_open(epoch, current):
            raise NoClaimable(f"Claims not open for epoch {epoch} (current={current})")

        now = self.clock.now()
        if not self.within_window(epoch, now):
            raise ClaimExpired(
                f"Claim window for epoch {epoch} closed at "
                f"{self.clock.epoch_end_time(epoch) + self.claim_window_seconds}"
            )

        amount = self._entitlement(caller, epoch)
        if amount == 0:
            raise NoClaimable(f"Nothing to claim for {caller} in epoch {epoch}")

        record = self.ledger.get(epoch)
        previous = record.settle(caller)
        try:
            route = self.router.pay(capabilities, caller, epoch, amount)
        except Exception:
            record.restore_claimed(caller, previous)
            logger.error(f"Payout failed for {caller} epoch={epoch} amount={amount}, claim rolled back")
            raise

        event = ClaimEvent(
            epoch=epoch,
            user=caller,
            amount=amount,
            route=route.value,
            receipt_hash=claim_receipt_hash(epoch, caller, amount, len(self.events)),
            timestamp=now,
        )
        self.events.append(event)
        logger.info(f"Claim: {caller} epoch={epoch} amount={amount} route {route.value}")
        return event
