"""
Claim Engine & Payout Routing Test Suite

Coverage:
  - compute_entitlement : multiply-then-divide, truncation, invariants
  - Eligibility         : claims-open epoch, closed epochs, 28-day window
  - claim()             : proportionality, idempotent re-claim, block list,
                          rollback on payout failure, audit events
  - PayoutRouter        : pre-launch, launch swap (full-balance sweep),
                          escrow mint, cutover boundary, partial failure
  - Concurrency         : same-user claims serialize, users independent
"""

import os
import sys
import threading
from unittest.mock import MagicMock

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from epochpoints.blocklist import BlockList
from epochpoints.claims import (
    PayoutRoute,
    claims_open,
    compute_entitlement,
    within_window,
)
from epochpoints.clock import EpochClock, LaunchOracle
from epochpoints.constants import (
    CLAIM_WINDOW_SECONDS,
    CLAIMS_OPEN_EPOCH,
    SECONDS_PER_DAY,
    TRANSITION_CUTOVER_EPOCH,
    U64_MAX,
)
from epochpoints.events import ClaimEvent
from epochpoints.exceptions import (
    ArithmeticOverflow,
    Blocked,
    ClaimExpired,
    InvariantViolation,
    NoClaimable,
)
from epochpoints.instruments import EscrowInstrument, LaunchInstrument, PreLaunchInstrument
from epochpoints.program import RewardProgram


# ══════════════════════════════════════════════════════════════════════
#  HELPERS
# ══════════════════════════════════════════════════════════════════════

ADMIN = "0x" + "ad" * 20
ACCRUER = "0x" + "ac" * 20
ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20
CAROL = "0x" + "c3" * 20

DAY = SECONDS_PER_DAY
GENESIS_TIME = 1_700_000_000


class ManualTime:
    """Settable timestamp source for the epoch clock."""

    def __init__(self, now: int = GENESIS_TIME):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


def make_program(launch_time=None, historical=()):
    """Initialized program whose epochs each last one day. Launch defaults to a year out."""
    t = ManualTime()
    if launch_time is None:
        launch_time = GENESIS_TIME + 365 * DAY
    program = RewardProgram(
        admin=ADMIN,
        clock=EpochClock(ADMIN, time_fn=t),
        oracle=LaunchOracle(launch_time),
        block_list=BlockList(ADMIN),
        pre_launch=PreLaunchInstrument(ADMIN),
        launch=LaunchInstrument(ADMIN),
        escrow=EscrowInstrument(ADMIN),
        accruers=[ACCRUER],
        historical_schedule=historical,
    )
    assert program.initialize(ADMIN) is True
    return program, t


def advance_to_epoch(program, t, target):
    """Close epochs one day apart until *target* is current."""
    while program.current_epoch() < target:
        t.advance(DAY)
        program.clock.register_epoch(ADMIN, t.now)


def closed_epoch(program, t, epoch, balances, reward):
    """Accrue *balances* in *epoch*, set its reward, and close it."""
    advance_to_epoch(program, t, epoch)
    for user, amount in balances.items():
        program.accrue(ACCRUER, user, amount)
    program.set_reward(ADMIN, epoch, reward)
    advance_to_epoch(program, t, epoch + 1)
    return program.clock.epoch_end_time(epoch)


# ══════════════════════════════════════════════════════════════════════
#  ENTITLEMENT MATH
# ══════════════════════════════════════════════════════════════════════


class TestComputeEntitlement:

    def test_proportional_share(self):
        assert compute_entitlement(1000, 100, 0, 500) == 200

    def test_truncates_toward_zero(self):
        assert compute_entitlement(10, 1, 0, 3) == 3
        assert compute_entitlement(1, 1, 0, 3) == 0

    def test_only_unclaimed_points_count(self):
        assert compute_entitlement(1000, 150, 100, 500) == 100

    def test_full_width_intermediate(self):
        # R * B exceeds 64 bits but the result does not
        assert compute_entitlement(U64_MAX, U64_MAX, 0, U64_MAX) == U64_MAX
        assert compute_entitlement(U64_MAX, U64_MAX // 2, 0, U64_MAX) == U64_MAX // 2

    def test_nothing_unclaimed_is_zero(self):
        assert compute_entitlement(1000, 100, 100, 500) == 0

    def test_zero_pool_is_zero(self):
        assert compute_entitlement(0, 100, 0, 500) == 0

    def test_zero_supply_with_nothing_unclaimed_is_zero(self):
        assert compute_entitlement(1000, 0, 0, 0) == 0

    def test_zero_supply_with_points_is_invariant_violation(self):
        with pytest.raises(InvariantViolation):
            compute_entitlement(1000, 5, 0, 0)

    def test_claimed_above_balance_is_invariant_violation(self):
        with pytest.raises(InvariantViolation):
            compute_entitlement(1000, 5, 6, 10)

    def test_result_above_u64_is_overflow(self):
        with pytest.raises(ArithmeticOverflow):
            compute_entitlement(U64_MAX, 10, 0, 5)


# ══════════════════════════════════════════════════════════════════════
#  ELIGIBILITY
# ══════════════════════════════════════════════════════════════════════


class TestEligibilityPredicates:

    def test_claims_open(self):
        assert claims_open(16, 17, 16)
        assert not claims_open(15, 17, 16)   # before claims-open epoch
        assert not claims_open(16, 16, 16)   # epoch still current
        assert not claims_open(17, 17, 16)
        assert not claims_open(18, 17, 16)   # future epoch

    def test_within_window_is_inclusive(self):
        assert within_window(1000, 1000 + CLAIM_WINDOW_SECONDS)
        assert not within_window(1000, 1000 + CLAIM_WINDOW_SECONDS + 1)
        assert within_window(1000, 1000)

    def test_window_is_28_days(self):
        assert CLAIM_WINDOW_SECONDS == 28 * 86400


class TestClaimableAmount:

    def test_zero_before_claims_open_epoch(self):
        program, t = make_program()
        closed_epoch(program, t, CLAIMS_OPEN_EPOCH - 1, {ALICE: 10}, 1000)
        assert program.claimable_amount(ALICE, CLAIMS_OPEN_EPOCH - 1) == 0

    def test_zero_for_current_epoch(self):
        program, t = make_program()
        advance_to_epoch(program, t, 16)
        program.accrue(ACCRUER, ALICE, 10)
        program.set_reward(ADMIN, 16, 1000)
        assert program.claimable_amount(ALICE, 16) == 0

    def test_zero_for_missing_record(self):
        program, t = make_program()
        advance_to_epoch(program, t, 17)
        program.set_reward(ADMIN, 16, 1000)
        assert program.claimable_amount(ALICE, 16) == 0

    def test_zero_for_zero_supply_record(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 0}, 1000)
        assert program.claimable_amount(ALICE, 16) == 0

    def test_positive_inside_window(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 400}, 1000)
        assert program.claimable_amount(ALICE, 16) == 200
        assert program.claimable_amount(BOB, 16) == 800
        assert program.claimable_amount(CAROL, 16) == 0

    def test_zero_after_window(self):
        program, t = make_program()
        end = closed_epoch(program, t, 16, {ALICE: 100}, 1000)
        t.now = end + CLAIM_WINDOW_SECONDS + 1
        assert program.claimable_amount(ALICE, 16) == 0

    def test_zero_after_claim(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100}, 1000)
        program.claim(ALICE, 16)
        assert program.claimable_amount(ALICE, 16) == 0


# ══════════════════════════════════════════════════════════════════════
#  CLAIM
# ══════════════════════════════════════════════════════════════════════


class TestClaim:

    def test_scenario_epoch_16_pre_launch(self):
        program, t = make_program()
        pool = 1_000_000
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 400}, pool)

        a = program.claim(ALICE, 16)
        b = program.claim(BOB, 16)

        assert a.amount == pool // 5
        assert b.amount == 4 * pool // 5
        assert a.route == PayoutRoute.PRE_LAUNCH.value
        assert program.pre_launch.balance_of(ALICE) == pool // 5
        assert program.pre_launch.balance_of(BOB) == 4 * pool // 5
        assert program.launch.balance_of(ALICE) == 0
        assert program.escrow.balance_of(ALICE) == 0

    @pytest.mark.parametrize("order", [(ALICE, BOB), (BOB, ALICE)])
    def test_proportionality_is_order_independent(self, order):
        program, t = make_program()
        pool = 1_000_003
        closed_epoch(program, t, 16, {ALICE: 333, BOB: 667, CAROL: 1}, pool)

        paid = {user: program.claim(user, 16).amount for user in order}

        assert paid[ALICE] == pool * 333 // 1001
        assert paid[BOB] == pool * 667 // 1001

    def test_claim_settles_balance(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 400}, 1000)
        program.claim(ALICE, 16)
        assert program.user_claimed(ALICE, 16) == 100
        assert program.user_claimed(BOB, 16) == 0

    def test_second_claim_fails(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 400}, 1000)
        program.claim(ALICE, 16)
        with pytest.raises(NoClaimable):
            program.claim(ALICE, 16)
        assert program.pre_launch.balance_of(ALICE) == 200

    def test_points_added_after_claim_are_claimable(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 400}, 1000)
        program.claim(ALICE, 16)

        # Late accrual written straight to the closed epoch's record
        program.ledger.accrue(16, ALICE, 100)
        event = program.claim(ALICE, 16)

        assert event.amount == 1000 * 100 // 600
        assert program.user_claimed(ALICE, 16) == 200

    def test_claimed_never_exceeds_balance(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 400, CAROL: 7}, 1000)
        for user in (ALICE, BOB, CAROL):
            program.claim(user, 16)
            assert program.user_claimed(user, 16) <= program.user_balance(user, 16)

    def test_window_boundary_inclusive(self):
        program, t = make_program()
        end = closed_epoch(program, t, 16, {ALICE: 100, BOB: 400}, 1000)

        t.now = end + 28 * 86400
        assert program.claim(ALICE, 16).amount == 200

        t.now = end + 28 * 86400 + 1
        with pytest.raises(ClaimExpired):
            program.claim(BOB, 16)
        assert program.user_claimed(BOB, 16) == 0

    def test_claims_closed_before_threshold(self):
        program, t = make_program()
        closed_epoch(program, t, 15, {ALICE: 100}, 1000)
        assert program.current_epoch() == 16
        with pytest.raises(NoClaimable, match="not open"):
            program.claim(ALICE, 15)

    def test_epoch_below_threshold_not_claimable_later(self):
        program, t = make_program()
        closed_epoch(program, t, 15, {ALICE: 100}, 1000)
        advance_to_epoch(program, t, 18)
        with pytest.raises(NoClaimable):
            program.claim(ALICE, 15)
        assert program.claimable_amount(ALICE, 15) == 0

    def test_current_epoch_not_claimable(self):
        program, t = make_program()
        advance_to_epoch(program, t, 17)
        program.accrue(ACCRUER, ALICE, 10)
        program.set_reward(ADMIN, 17, 1000)
        with pytest.raises(NoClaimable):
            program.claim(ALICE, 17)

    def test_zero_reward_pool(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100}, 0)
        with pytest.raises(NoClaimable, match="Nothing to claim"):
            program.claim(ALICE, 16)

    def test_user_without_points(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100}, 1000)
        with pytest.raises(NoClaimable):
            program.claim(BOB, 16)

    def test_dust_share_is_not_claimable(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 1, BOB: 10_000}, 100)
        with pytest.raises(NoClaimable):
            program.claim(ALICE, 16)
        assert program.user_claimed(ALICE, 16) == 0

    def test_blocked_claimant(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100}, 1000)
        program.block_list.block(ADMIN, ALICE)
        with pytest.raises(Blocked):
            program.claim(ALICE, 16)
        assert program.user_claimed(ALICE, 16) == 0
        assert program.pre_launch.balance_of(ALICE) == 0

        program.block_list.unblock(ADMIN, ALICE)
        assert program.claim(ALICE, 16).amount == 1000

    def test_blocked_check_precedes_eligibility(self):
        program, t = make_program()
        program.block_list.block(ADMIN, ALICE)
        with pytest.raises(Blocked):
            program.claim(ALICE, 1)

    def test_claim_emits_event(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100}, 1000)
        before = len(program.events)
        event = program.claim(ALICE, 16)
        assert isinstance(event, ClaimEvent)
        assert len(program.events) == before + 1
        assert program.events.events[-1] is event
        assert event.timestamp == t.now
        assert len(event.receipt_hash) == 64

    def test_failed_payout_rolls_back(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100}, 1000)
        program.pre_launch.deposit = MagicMock(side_effect=RuntimeError("instrument offline"))
        events_before = len(program.events)

        with pytest.raises(RuntimeError, match="offline"):
            program.claim(ALICE, 16)

        assert program.user_claimed(ALICE, 16) == 0
        assert program.claimable_amount(ALICE, 16) == 1000
        assert len(program.events) == events_before

    def test_failed_payout_restores_prior_claim(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 100}, 1000)
        program.claim(ALICE, 16)
        program.ledger.accrue(16, ALICE, 50)
        program.pre_launch.deposit = MagicMock(side_effect=RuntimeError("instrument offline"))

        with pytest.raises(RuntimeError):
            program.claim(ALICE, 16)
        assert program.user_claimed(ALICE, 16) == 100


# ══════════════════════════════════════════════════════════════════════
#  PAYOUT ROUTING
# ══════════════════════════════════════════════════════════════════════


class TestPayoutRouting:

    def test_select_route(self):
        program, t = make_program(launch_time=5000)
        router = program.router
        assert router.select_route(TRANSITION_CUTOVER_EPOCH + 5, 4999) is PayoutRoute.PRE_LAUNCH
        assert router.select_route(TRANSITION_CUTOVER_EPOCH, 5000) is PayoutRoute.LAUNCH_SWAP
        assert router.select_route(TRANSITION_CUTOVER_EPOCH + 1, 5000) is PayoutRoute.ESCROW

    def test_epoch_18_after_launch_lands_in_launch_instrument(self):
        program, t = make_program(launch_time=GENESIS_TIME)
        closed_epoch(program, t, 18, {ALICE: 100, BOB: 300}, 4000)

        event = program.claim(ALICE, 18)

        assert event.route == PayoutRoute.LAUNCH_SWAP.value
        assert program.launch.balance_of(ALICE) == 1000
        assert program.pre_launch.balance_of(ALICE) == 0
        assert program.escrow.balance_of(ALICE) == 0

    def test_epoch_19_after_launch_mints_escrow(self):
        program, t = make_program(launch_time=GENESIS_TIME)
        closed_epoch(program, t, 19, {ALICE: 100, BOB: 300}, 4000)

        event = program.claim(ALICE, 19)

        assert event.route == PayoutRoute.ESCROW.value
        assert program.escrow.balance_of(ALICE) == 1000
        assert program.escrow.minted_total == 1000
        assert program.pre_launch.balance_of(ALICE) == 0
        assert program.pre_launch.total_supply == 0
        assert program.launch.balance_of(ALICE) == 0
        assert program.launch.total_supply == 0

    def test_transition_claim_sweeps_whole_pre_launch_holding(self):
        launch_time = GENESIS_TIME + 20 * DAY
        program, t = make_program(launch_time=launch_time)

        closed_epoch(program, t, 16, {ALICE: 100, BOB: 100}, 1000)
        program.claim(ALICE, 16)                      # pre-launch deposit of 500
        assert program.pre_launch.balance_of(ALICE) == 500

        closed_epoch(program, t, 17, {ALICE: 100, BOB: 300}, 400)
        closed_epoch(program, t, 18, {ALICE: 50, BOB: 50}, 600)
        t.now = launch_time

        program.claim(ALICE, 18)                      # 300, plus the earlier 500
        assert program.launch.balance_of(ALICE) == 800
        assert program.pre_launch.balance_of(ALICE) == 0

        program.claim(ALICE, 17)                      # 100, swept on its own
        assert program.launch.balance_of(ALICE) == 900
        assert program.pre_launch.total_supply == 0

    def test_pre_launch_claim_of_late_epoch_stays_in_pre_launch(self):
        program, t = make_program()
        closed_epoch(program, t, 20, {ALICE: 10}, 70)
        event = program.claim(ALICE, 20)
        assert event.route == PayoutRoute.PRE_LAUNCH.value
        assert program.pre_launch.balance_of(ALICE) == 70
        assert program.escrow.minted_total == 0

    def test_escrow_failure_rolls_back(self):
        program, t = make_program(launch_time=GENESIS_TIME)
        closed_epoch(program, t, 19, {ALICE: 10}, 70)
        program.escrow.mint_with_capability = MagicMock(side_effect=RuntimeError("mint paused"))
        with pytest.raises(RuntimeError):
            program.claim(ALICE, 19)
        assert program.user_claimed(ALICE, 19) == 0
        assert program.escrow.minted_total == 0

    def test_escrow_deposit_failure_leaves_no_mint(self):
        program, t = make_program(launch_time=GENESIS_TIME)
        closed_epoch(program, t, 19, {ALICE: 10}, 70)
        program.escrow.deposit = MagicMock(side_effect=RuntimeError("escrow offline"))

        with pytest.raises(RuntimeError):
            program.claim(ALICE, 19)

        assert program.user_claimed(ALICE, 19) == 0
        assert program.escrow.minted_total == 0
        assert program.escrow.total_supply == 0

        del program.escrow.deposit
        assert program.claim(ALICE, 19).amount == 70
        assert program.escrow.minted_total == 70


class TestLaunchSwapRollback:
    """A launch-swap claim that fails part way leaves every holding as it was."""

    def setup_swap(self):
        launch_time = GENESIS_TIME + 20 * DAY
        program, t = make_program(launch_time=launch_time)
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 100}, 1000)
        program.claim(ALICE, 16)                      # 500 held in pre-launch
        closed_epoch(program, t, 18, {ALICE: 50, BOB: 50}, 600)
        t.now = launch_time
        return program

    def assert_untouched(self, program):
        assert program.user_claimed(ALICE, 18) == 0
        assert program.pre_launch.balance_of(ALICE) == 500
        assert program.pre_launch.total_supply == 500
        assert program.launch.balance_of(ALICE) == 0
        assert program.launch.total_supply == 0

    def test_primary_deposit_failure(self):
        program = self.setup_swap()
        program.launch.deposit_to_primary_holding = MagicMock(side_effect=RuntimeError("launch offline"))

        with pytest.raises(RuntimeError, match="launch offline"):
            program.claim(ALICE, 18)
        self.assert_untouched(program)

        del program.launch.deposit_to_primary_holding
        program.claim(ALICE, 18)
        assert program.launch.balance_of(ALICE) == 800
        assert program.pre_launch.balance_of(ALICE) == 0

    def test_swap_failure(self):
        program = self.setup_swap()
        program.pre_launch.swap_all_to_launch_instrument = MagicMock(side_effect=RuntimeError("swap halted"))

        with pytest.raises(RuntimeError, match="swap halted"):
            program.claim(ALICE, 18)
        self.assert_untouched(program)

    def test_launch_overflow_rejected_before_any_deposit(self):
        program = self.setup_swap()
        program.launch.deposit_to_primary_holding(ALICE, U64_MAX - 700)

        with pytest.raises(ArithmeticOverflow):
            program.claim(ALICE, 18)

        assert program.user_claimed(ALICE, 18) == 0
        assert program.pre_launch.balance_of(ALICE) == 500
        assert program.launch.balance_of(ALICE) == U64_MAX - 700
        assert program.claimable_amount(ALICE, 18) == 300


# ══════════════════════════════════════════════════════════════════════
#  CONCURRENCY
# ══════════════════════════════════════════════════════════════════════


def run_concurrently(calls):
    """Start every call at once; return (results, errors) in call order."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)
    errors = [None] * len(calls)

    def worker(i, fn):
        barrier.wait()
        try:
            results[i] = fn()
        except Exception as e:
            errors[i] = e

    threads = [threading.Thread(target=worker, args=(i, fn)) for i, fn in enumerate(calls)]
    for th in threads:
        th.start()
    for th in threads:
        th.join(timeout=10)
    return results, errors


class TestConcurrentClaims:

    def test_same_user_claims_serialize(self):
        program, t = make_program()
        closed_epoch(program, t, 16, {ALICE: 100, BOB: 400}, 1000)

        results, errors = run_concurrently([lambda: program.claim(ALICE, 16)] * 8)

        succeeded = [r for r in results if r is not None]
        assert len(succeeded) == 1
        assert succeeded[0].amount == 200
        assert sum(isinstance(e, NoClaimable) for e in errors) == 7
        assert program.user_claimed(ALICE, 16) == 100
        assert program.pre_launch.balance_of(ALICE) == 200
        assert program.pre_launch.total_supply == 200

    def test_different_users_do_not_interfere(self):
        users = ["0x" + f"{i:02x}" * 20 for i in range(1, 9)]
        program, t = make_program()
        closed_epoch(program, t, 16, {u: 10 * (i + 1) for i, u in enumerate(users)}, 36_000)

        results, errors = run_concurrently([lambda u=u: program.claim(u, 16) for u in users])

        assert errors == [None] * len(users)
        for i, (user, event) in enumerate(zip(users, results)):
            assert event.amount == 36_000 * 10 * (i + 1) // 360
            assert program.pre_launch.balance_of(user) == event.amount
            assert program.user_claimed(user, 16) == 10 * (i + 1)
        assert program.pre_launch.total_supply == 36_000
