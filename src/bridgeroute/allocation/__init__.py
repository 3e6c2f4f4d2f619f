"""Route allocation across source chains.

Strategies:
- greedy_by_balance: drain the largest holdings first
- greedy_by_fee: cheapest bridge lane to the target first
- proportional_split: draw from every chain by balance share
- exhaustive_subset: cheapest covering subset (bounded candidate count)
"""

from bridgeroute.allocation.engine import RouteAllocationEngine
from bridgeroute.allocation.split import order_candidates, proportional_shares, split_by_balance
from bridgeroute.config import AllocationStrategy

__all__ = [
    "AllocationStrategy",
    "RouteAllocationEngine",
    "order_candidates",
    "proportional_shares",
    "split_by_balance",
]
