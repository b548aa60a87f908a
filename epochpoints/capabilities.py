"""
Payout Capabilities

A capability is an opaque handle proving that its holder may deposit into,
or mint in, a particular instrument. Handles are only created by the
issuing instrument through `issue_capability`, are bound to that issuer, and
cannot be copied, deep-copied or pickled.

The program keeps the two handles it needs in a CapabilityStore, created once
during initialization.
"""

from enum import Enum
from typing import Any

from .exceptions import CapabilityError, Unauthorized

# Module-private issuance key. Capability() without it is a forgery.
_ISSUE_KEY = object()


class CapabilityKind(Enum):
    PRE_LAUNCH_CLAIM = "pre_launch_claim"
    ESCROW_MINT = "escrow_mint"


class Capability:
    """Opaque, non-copyable authorization handle."""

    __slots__ = ("_issuer", "_kind")

    def __init__(self, issuer: Any, kind: CapabilityKind, _key: object = None):
        if _key is not _ISSUE_KEY:
            raise CapabilityError("Capabilities can only be created by their issuer")
        object.__setattr__(self, "_issuer", issuer)
        object.__setattr__(self, "_kind", kind)

    @property
    def kind(self) -> CapabilityKind:
        return self._kind

    def issued_by(self, issuer: Any) -> bool:
        return self._issuer is issuer

    def __setattr__(self, name, value):
        raise CapabilityError("Capabilities are immutable")

    def __copy__(self):
        raise CapabilityError("Capabilities cannot be copied")

    def __deepcopy__(self, memo):
        raise CapabilityError("Capabilities cannot be copied")

    def __reduce_ex__(self, protocol):
        raise CapabilityError("Capabilities cannot be serialized")

    def __repr__(self) -> str:
        return f"<Capability {self._kind.value}>"


def issue_capability(issuer: Any, kind: CapabilityKind) -> Capability:
    """Create a handle bound to *issuer*. Only instruments call this."""
    return Capability(issuer, kind, _key=_ISSUE_KEY)


def require_capability(capability: Any, issuer: Any, kind: CapabilityKind) -> None:
    """Raise Unauthorized unless *capability* was issued by *issuer* for *kind*."""
    if not isinstance(capability, Capability):
        raise Unauthorized("Missing capability")
    if not capability.issued_by(issuer) or capability.kind is not kind:
        raise Unauthorized(f"Capability {capability!r} is not valid for this instrument")


class CapabilityStore:
    """Holds the pre-launch claim and escrow mint capabilities."""

    __slots__ = ("_pre_launch", "_escrow_mint")

    def __init__(self, pre_launch: Capability, escrow_mint: Capability):
        if pre_launch.kind is not CapabilityKind.PRE_LAUNCH_CLAIM:
            raise CapabilityError(f"Expected pre-launch claim capability, got {pre_launch!r}")
        if escrow_mint.kind is not CapabilityKind.ESCROW_MINT:
            raise CapabilityError(f"Expected escrow mint capability, got {escrow_mint!r}")
        self._pre_launch = pre_launch
        self._escrow_mint = escrow_mint

    @property
    def pre_launch(self) -> Capability:
        return self._pre_launch

    @property
    def escrow_mint(self) -> Capability:
        return self._escrow_mint

    def __copy__(self):
        raise CapabilityError("CapabilityStore cannot be copied")

    def __deepcopy__(self, memo):
        raise CapabilityError("CapabilityStore cannot be copied")

    def __repr__(self) -> str:
        return "<CapabilityStore pre_launch, escrow_mint>"
