"""Reward allocation — budget-safe proportional splitting of epoch tokens."""

from zapdist.compensation.allocator import RewardAllocator
from zapdist.compensation.rounding import round_down

__all__ = ["RewardAllocator", "round_down"]
