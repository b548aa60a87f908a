"""
Reward Schedule Registry

Maps epoch number to the reward pool assigned to it. Entries may be set for
future epochs and overwritten any number of times; an unset epoch has a
reward pool of zero.
"""

from typing import Any, Dict, Iterable

from ..validation import require_u64


class RewardScheduleRegistry:
    """epoch -> reward pool, last write wins."""

    def __init__(self):
        self._rewards: Dict[int, int] = {}

    def reward_for(self, epoch: int) -> int:
        return self._rewards.get(epoch, 0)

    def set_reward(self, epoch: int, amount: int) -> int:
        """Store *amount* for *epoch* and return the value it replaced."""
        require_u64(epoch, "epoch")
        require_u64(amount)
        previous = self._rewards.get(epoch, 0)
        self._rewards[epoch] = amount
        return previous

    def seed(self, rewards: Iterable[int], first_epoch: int = 1) -> int:
        """Write a contiguous schedule starting at *first_epoch*. Returns the number of entries."""
        count = 0
        for offset, amount in enumerate(rewards):
            self.set_reward(first_epoch + offset, amount)
            count += 1
        return count

    @property
    def count(self) -> int:
        return len(self._rewards)

    def to_dict(self) -> Dict[str, int]:
        return {str(e): self._rewards[e] for e in sorted(self._rewards)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RewardScheduleRegistry":
        registry = cls()
        for epoch, amount in data.items():
            registry.set_reward(int(epoch), int(amount))
        return registry

    def __repr__(self) -> str:
        return f"<RewardScheduleRegistry entries={len(self._rewards)}>"
