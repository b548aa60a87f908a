"""
Claims

Provides:
  - ClaimEngine   : eligibility, entitlement math and claim settlement
  - PayoutRouter  : pre-launch / launch-swap / escrow payout routing
"""

from .engine import ClaimEngine, claims_open, compute_entitlement, within_window
from .router import PayoutRoute, PayoutRouter

__all__ = [
    "ClaimEngine",
    "claims_open",
    "compute_entitlement",
    "within_window",
    "PayoutRoute",
    "PayoutRouter",
]
