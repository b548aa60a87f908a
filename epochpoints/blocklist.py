"""
Block List Gate

Addresses on the block list cannot claim rewards. Points already accrued by
a blocked address stay on the ledger and become claimable again if the
address is unblocked within the claim window.
"""

import threading
from typing import Iterable, Optional, Set

from .exceptions import Blocked, Unauthorized
from .logger import get_logger

logger = get_logger(__name__)


class BlockList:

    def __init__(self, admin: str, blocked: Optional[Iterable[str]] = None):
        self.admin = admin
        self._blocked: Set[str] = set(blocked or ())
        self._lock = threading.Lock()

    def _require_admin(self, caller: str) -> None:
        if caller != self.admin:
            raise Unauthorized(f"{caller} cannot modify the block list")

    def block(self, caller: str, address: str) -> None:
        self._require_admin(caller)
        with self._lock:
            self._blocked.add(address)
        logger.warning(f"Address blocked: {address}")

    def unblock(self, caller: str, address: str) -> None:
        self._require_admin(caller)
        with self._lock:
            self._blocked.discard(address)
        logger.info(f"Address unblocked: {address}")

    def is_blocked(self, address: str) -> bool:
        return address in self._blocked

    def check_not_blocked(self, address: str) -> None:
        if address in self._blocked:
            raise Blocked(f"{address} is blocked")

    @property
    def count(self) -> int:
        return len(self._blocked)
