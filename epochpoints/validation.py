"""
Argument validation shared by every ledger entry point.
"""

from .constants import U64_MAX, VALID_ADDRESS_PATTERN
from .exceptions import ArithmeticOverflow, InvalidAddress, InvalidAmount


def require_address(address: str) -> str:
    """Return *address* if it is a 0x-prefixed hex account address."""
    if not isinstance(address, str) or not VALID_ADDRESS_PATTERN.match(address):
        raise InvalidAddress(f"Invalid address: {address!r}")
    return address


def require_u64(value: int, what: str = "amount") -> int:
    """Return *value* if it is an integer in [0, 2**64 - 1]."""
    # bool is an int subclass; True is not a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount(f"{what} must be an integer, got {type(value).__name__}")
    if value < 0:
        raise InvalidAmount(f"{what} cannot be negative: {value}")
    if value > U64_MAX:
        raise InvalidAmount(f"{what} exceeds u64 range: {value}")
    return value


def checked_add(a: int, b: int, what: str) -> int:
    """u64 addition; overflow is fatal."""
    total = a + b
    if total > U64_MAX:
        raise ArithmeticOverflow(f"{what} overflow: {a} + {b} > {U64_MAX}")
    return total
