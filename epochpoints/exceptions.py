"""
Epoch Points Exceptions

Every failure of a ledger operation aborts the whole operation and leaves
state unchanged. User-facing rejections and internal invariant violations
share the PointsError base.
"""


class PointsError(Exception):
    """Base exception for the points program."""
    pass


class Unauthorized(PointsError):
    """Caller is not the controlling admin or a privileged accruer."""
    pass


class Blocked(PointsError):
    """Claimant address is on the block list."""
    pass


class NoClaimable(PointsError):
    """Claims are not open for the epoch, or the entitlement is zero."""
    pass


class ClaimExpired(PointsError):
    """The claim window for the epoch has elapsed."""
    pass


class ProgramNotInitialized(PointsError):
    """A mutating operation ran before the program was initialized."""
    pass


class InvalidAmount(PointsError):
    """Amount is not an unsigned 64-bit integer."""
    pass


class InvalidAddress(PointsError):
    """Address is not a 0x-prefixed hex account address."""
    pass


class CapabilityError(PointsError):
    """Attempt to construct or duplicate a capability handle."""
    pass


class InvariantViolation(PointsError):
    """Internal ledger invariant broken. Never a recoverable user error."""
    pass


class ArithmeticOverflow(InvariantViolation):
    """A ledger quantity left the unsigned 64-bit range."""
    pass


class ConfigurationError(PointsError):
    """Configuration error."""
    pass
