"""
Epoch Clock and Launch Oracle

The epoch clock numbers accrual periods from 1. Registering an end time
closes the current epoch and makes the next one current, so epoch `e` is
closed exactly when `e < current_epoch()`.

`now()` is the timestamp source for every time comparison in the program.
It defaults to wall-clock seconds and is injectable for tests and replays.
"""

import threading
import time
from typing import Callable, List

from .exceptions import InvalidAmount, Unauthorized
from .logger import get_logger
from .validation import require_u64

logger = get_logger(__name__)


def _wall_clock() -> int:
    return int(time.time())


class EpochClock:
    """In-memory epoch numbering with admin-registered end times."""

    def __init__(self, admin: str, time_fn: Callable[[], int] = _wall_clock):
        self.admin = admin
        self._time_fn = time_fn
        self._end_times: List[int] = []
        self._lock = threading.Lock()

    def now(self) -> int:
        return int(self._time_fn())

    def current_epoch(self) -> int:
        return len(self._end_times) + 1

    def epoch_end_time(self, epoch: int) -> int:
        """End timestamp of a closed epoch."""
        if not 1 <= epoch <= len(self._end_times):
            raise ValueError(f"Epoch {epoch} has not ended (current={self.current_epoch()})")
        return self._end_times[epoch - 1]

    def register_epoch(self, caller: str, end_time: int) -> int:
        """Close the current epoch at *end_time*. Returns the closed epoch number."""
        if caller != self.admin:
            raise Unauthorized(f"{caller} cannot register epochs")
        require_u64(end_time, "end_time")
        with self._lock:
            if self._end_times and end_time < self._end_times[-1]:
                raise InvalidAmount(
                    f"end_time {end_time} precedes previous epoch end {self._end_times[-1]}"
                )
            self._end_times.append(end_time)
            closed = len(self._end_times)
        logger.info(f"Epoch closed: epoch={closed} end_time={end_time}")
        return closed

    def __repr__(self) -> str:
        return f"<EpochClock current={self.current_epoch()}>"


class LaunchOracle:
    """Reports the one-time program launch timestamp."""

    def __init__(self, launch_time: int):
        self._launch_time = require_u64(launch_time, "launch_time")

    def launch_time(self) -> int:
        return self._launch_time

    def __repr__(self) -> str:
        return f"<LaunchOracle launch_time={self._launch_time}>"
