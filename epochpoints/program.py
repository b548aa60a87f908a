"""
Reward Program

The single process-wide state object of the points program. It owns the
points ledger, the reward schedule, the capability store and the audit log,
and is the only entry point for collaborators:

  - accrue(caller, user, amount)    privileged accruers only, any time
  - claim(caller, epoch)            any address not on the block list
  - initialize(caller)              controlling admin, idempotent
  - set_reward(caller, epoch, amt)  controlling admin
  - read views                      never fail, zero for unknown inputs

Every mutating call is one transaction under the program lock: validation
runs before mutation and a failing call leaves the ledger unchanged.
"""

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence

from .blocklist import BlockList
from .capabilities import CapabilityStore
from .claims import ClaimEngine, PayoutRouter
from .clock import EpochClock, LaunchOracle
from .config import ProgramConfig
from .constants import (
    CLAIM_WINDOW_SECONDS,
    CLAIMS_OPEN_EPOCH,
    HISTORICAL_REWARD_SCHEDULE,
    TRANSITION_CUTOVER_EPOCH,
)
from .events import AccrualEvent, ClaimEvent, EventLog, RewardScheduledEvent
from .exceptions import (
    ConfigurationError,
    InvariantViolation,
    PointsError,
    ProgramNotInitialized,
    Unauthorized,
)
from .instruments import EscrowInstrument, LaunchInstrument, PreLaunchInstrument
from .ledger import EpochPointsLedger, RewardScheduleRegistry
from .logger import get_logger
from .validation import require_address, require_u64

logger = get_logger(__name__)


@dataclass(frozen=True)
class EpochSummary:
    """Aggregate view of one epoch."""
    epoch: int
    supply: int = 0
    reward_pool: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epoch": self.epoch,
            "supply": self.supply,
            "rewardPool": self.reward_pool,
        }


@dataclass(frozen=True)
class UserEpochSummary:
    """One user's position in one epoch."""
    user: str
    epoch: int
    balance: int = 0
    claimed: int = 0
    claimable: int = 0
    supply: int = 0
    reward_pool: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "epoch": self.epoch,
            "balance": self.balance,
            "claimed": self.claimed,
            "claimable": self.claimable,
            "supply": self.supply,
            "rewardPool": self.reward_pool,
        }


class RewardProgram:
    """
    Points program state and operations.

    Collaborators (clock, launch oracle, block list, instruments) are
    injected; the program never looks them up globally.
    """

    def __init__(
        self,
        admin: str,
        clock: EpochClock,
        oracle: LaunchOracle,
        block_list: BlockList,
        pre_launch: PreLaunchInstrument,
        launch: LaunchInstrument,
        escrow: EscrowInstrument,
        *,
        accruers: Iterable[str] = (),
        claims_open_epoch: int = CLAIMS_OPEN_EPOCH,
        claim_window_seconds: int = CLAIM_WINDOW_SECONDS,
        cutover_epoch: int = TRANSITION_CUTOVER_EPOCH,
        historical_schedule: Sequence[int] = HISTORICAL_REWARD_SCHEDULE,
        ledger: Optional[EpochPointsLedger] = None,
        schedule: Optional[RewardScheduleRegistry] = None,
    ):
        if claims_open_epoch < 1:
            raise ConfigurationError(f"claims_open_epoch must be >= 1, got {claims_open_epoch}")
        self.admin = require_address(admin)
        self.accruers = frozenset(require_address(a) for a in accruers)
        self.clock = clock
        self.oracle = oracle
        self.block_list = block_list
        self.pre_launch = pre_launch
        self.escrow = escrow
        self.launch = launch
        self.historical_schedule = tuple(historical_schedule)

        self.ledger = ledger if ledger is not None else EpochPointsLedger()
        self.schedule = schedule if schedule is not None else RewardScheduleRegistry()
        self.events = EventLog()

        self.router = PayoutRouter(pre_launch, launch, escrow, oracle, clock, cutover_epoch)
        self.engine = ClaimEngine(
            self.ledger,
            self.schedule,
            clock,
            block_list,
            self.router,
            self.events,
            claims_open_epoch=claims_open_epoch,
            claim_window_seconds=claim_window_seconds,
        )

        self._capabilities: Optional[CapabilityStore] = None
        self._lock = threading.RLock()

    @classmethod
    def from_config(
        cls,
        config: ProgramConfig,
        clock: EpochClock,
        block_list: BlockList,
        pre_launch: PreLaunchInstrument,
        launch: LaunchInstrument,
        escrow: EscrowInstrument,
    ) -> "RewardProgram":
        config.validate()
        return cls(
            admin=config.program.admin,
            clock=clock,
            oracle=LaunchOracle(config.program.launch_time),
            block_list=block_list,
            pre_launch=pre_launch,
            launch=launch,
            escrow=escrow,
            accruers=config.program.accruers,
            claims_open_epoch=config.claims.open_epoch,
            claim_window_seconds=config.claims.window_seconds,
            cutover_epoch=config.claims.cutover_epoch,
            historical_schedule=config.schedule.historical,
        )

    # ── Transactions ──────────────────────────────────────────────────

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        with self._lock:
            try:
                yield
            except InvariantViolation as e:
                logger.error(f"{operation} aborted, invariant violated: {e}")
                raise
            except PointsError as e:
                logger.warning(f"{operation} rejected: {type(e).__name__}: {e}")
                raise

    def _require_admin(self, caller: str) -> None:
        if caller != self.admin:
            raise Unauthorized(f"{caller} is not the program admin")

    def _require_initialized(self) -> CapabilityStore:
        if self._capabilities is None:
            raise ProgramNotInitialized("Program has not been initialized")
        return self._capabilities

    @property
    def is_initialized(self) -> bool:
        return self._capabilities is not None

    # ── Admin surface ─────────────────────────────────────────────────

    def initialize(self, caller: str) -> bool:
        """
        Obtain the payout capabilities and seed the historical reward schedule.

        Returns False without side effects if the program is already
        initialized.
        """
        with self._transaction("initialize"):
            self._require_admin(caller)
            if self._capabilities is not None:
                logger.debug("initialize: already initialized, skipping")
                return False

            capabilities = CapabilityStore(
                pre_launch=self.pre_launch.issue_claim_capability(caller),
                escrow_mint=self.escrow.issue_mint_capability(caller),
            )
            seeded = self.schedule.seed(self.historical_schedule, first_epoch=1)
            self._capabilities = capabilities

        logger.info(f"Program initialized by {caller}: {seeded} historical reward epochs seeded")
        return True

    def set_reward(self, caller: str, epoch: int, amount: int) -> RewardScheduledEvent:
        with self._transaction("set_reward"):
            self._require_admin(caller)
            self._require_initialized()
            previous = self.schedule.set_reward(epoch, amount)
            event = RewardScheduledEvent(
                epoch=epoch,
                amount=amount,
                previous=previous,
                timestamp=self.clock.now(),
            )
            self.events.append(event)

        logger.info(f"Reward scheduled: epoch={epoch} amount={amount} (was {previous})")
        return event

    # ── Accrual ───────────────────────────────────────────────────────

    def accrue(self, caller: str, user: str, amount: int) -> AccrualEvent:
        """Credit *amount* points to *user* in the current epoch."""
        with self._transaction("accrue"):
            if caller not in self.accruers:
                raise Unauthorized(f"{caller} is not a privileged accruer")
            require_address(user)
            require_u64(amount)

            epoch = self.clock.current_epoch()
            self.ledger.accrue(epoch, user, amount)
            event = AccrualEvent(epoch=epoch, user=user, amount=amount, timestamp=self.clock.now())
            self.events.append(event)

        logger.debug(f"Accrued: {user} epoch={epoch} amount={amount}")
        return event

    # ── Claim ─────────────────────────────────────────────────────────

    def claim(self, caller: str, epoch: int) -> ClaimEvent:
        with self._transaction("claim"):
            capabilities = self._require_initialized()
            require_address(caller)
            return self.engine.claim(capabilities, caller, epoch)

    # ── Read-only views ───────────────────────────────────────────────

    def current_epoch(self) -> int:
        return self.clock.current_epoch()

    def epoch_supply(self, epoch: int) -> int:
        with self._lock:
            return self.ledger.epoch_supply(epoch)

    def user_balance(self, user: str, epoch: int) -> int:
        with self._lock:
            return self.ledger.user_balance(user, epoch)

    def user_claimed(self, user: str, epoch: int) -> int:
        with self._lock:
            return self.ledger.user_claimed(user, epoch)

    def reward_for(self, epoch: int) -> int:
        with self._lock:
            return self.schedule.reward_for(epoch)

    def claimable_amount(self, user: str, epoch: int) -> int:
        with self._lock:
            return self.engine.claimable_amount(user, epoch)

    def current_epoch_summary(self) -> EpochSummary:
        with self._lock:
            epoch = self.clock.current_epoch()
            return EpochSummary(
                epoch=epoch,
                supply=self.ledger.epoch_supply(epoch),
                reward_pool=self.schedule.reward_for(epoch),
            )

    def user_epoch_summary(self, user: str, epoch: int) -> UserEpochSummary:
        with self._lock:
            return UserEpochSummary(
                user=user,
                epoch=epoch,
                balance=self.ledger.user_balance(user, epoch),
                claimed=self.ledger.user_claimed(user, epoch),
                claimable=self.engine.claimable_amount(user, epoch),
                supply=self.ledger.epoch_supply(epoch),
                reward_pool=self.schedule.reward_for(epoch),
            )

    # ── Serialization ─────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """State snapshot for diagnostics and offline inspection."""
        with self._lock:
            return {
                "admin": self.admin,
                "initialized": self.is_initialized,
                "currentEpoch": self.clock.current_epoch(),
                "ledger": self.ledger.to_dict(),
                "schedule": self.schedule.to_dict(),
            }

    def __repr__(self) -> str:
        return (
            f"<RewardProgram admin={self.admin} epoch={self.clock.current_epoch()} "
            f"initialized={self.is_initialized}>"
        )
