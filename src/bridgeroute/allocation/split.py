"""Candidate ordering and proportional splitting for route allocation."""

from decimal import Decimal
from typing import Sequence

from bridgeroute.chains import get_bridge_fee_percent
from bridgeroute.config import AllocationStrategy
from bridgeroute.models import ChainBalance, quantize_down


def order_candidates(
    candidates: Sequence[ChainBalance],
    target_chain: str,
    strategy: AllocationStrategy,
) -> list[ChainBalance]:
    """Order source chains for selection.

    GREEDY_BY_FEE puts the cheapest lane to the target first (ties by larger
    balance). Every other strategy drains the largest holdings first. Chain
    name breaks remaining ties so ordering is deterministic.
    """
    if strategy == AllocationStrategy.GREEDY_BY_FEE:
        return sorted(
            candidates,
            key=lambda c: (get_bridge_fee_percent(c.chain, target_chain), -c.balance, c.chain),
        )
    return sorted(candidates, key=lambda c: (-c.balance, c.chain))


def split_by_balance(members: Sequence[ChainBalance], needed: Decimal) -> list[tuple[ChainBalance, Decimal]]:
    """Split ``needed`` across members in proportion to their balances.

    Shares are rounded down to 6 places; the last member takes the rounding
    remainder. No share exceeds its member's balance.
    """
    total = sum((m.balance for m in members), Decimal("0"))
    if total <= 0:
        return []

    shares: list[tuple[ChainBalance, Decimal]] = []
    allocated = Decimal("0")
    for index, member in enumerate(members):
        if index == len(members) - 1:
            share = quantize_down(needed - allocated)
        else:
            share = quantize_down(needed * member.balance / total)
        share = min(share, member.balance)
        shares.append((member, share))
        allocated += share
    return shares


def proportional_shares(
    members: Sequence[ChainBalance],
    needed: Decimal,
    dust_threshold: Decimal,
) -> list[tuple[ChainBalance, Decimal]]:
    """Proportional split that drops members whose share is dust.

    The smallest holder under the threshold is removed and shares are
    recomputed until every remaining share clears the threshold.
    """
    remaining = list(members)
    while remaining:
        shares = split_by_balance(remaining, needed)
        dust = [member for member, share in shares if share < dust_threshold]
        if not dust:
            return shares
        smallest = min(dust, key=lambda m: (m.balance, m.chain))
        remaining.remove(smallest)
    return []
