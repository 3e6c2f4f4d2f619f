"""Route allocation engine.

Decides which source chains to draw from, how much to draw from each, and
what each draw costs, so that the target chain ends up holding the
required amount.
"""

import asyncio
import itertools
import logging
from decimal import Decimal
from typing import Optional, Sequence

from bridgeroute.allocation.split import order_candidates, proportional_shares, split_by_balance
from bridgeroute.chains import get_chain
from bridgeroute.config import AllocationStrategy
from bridgeroute.fees.base import FeeQuoter
from bridgeroute.models import BridgeRoute, ChainBalance, RouteResponse, quantize_down

logger = logging.getLogger(__name__)

DEFAULT_DUST_THRESHOLD = Decimal("0.1")
DEFAULT_MAX_EXHAUSTIVE_CANDIDATES = 12

# Quotes already obtained within one exhaustive search, keyed (chain, amount)
QuoteMemo = dict[tuple[str, Decimal], Optional[BridgeRoute]]


class RouteAllocationEngine:
    """Plans the cheapest set of bridge routes that covers a requirement.

    Never raises: a source chain that cannot be priced is skipped and the
    plan is built from the rest.
    """

    def __init__(
        self,
        fee_quoter: FeeQuoter,
        strategy: AllocationStrategy = AllocationStrategy.GREEDY_BY_BALANCE,
        dust_threshold: Decimal = DEFAULT_DUST_THRESHOLD,
        max_exhaustive_candidates: int = DEFAULT_MAX_EXHAUSTIVE_CANDIDATES,
    ):
        """Initialize the engine.

        Args:
            fee_quoter: Prices each selected draw
            strategy: Default allocation strategy
            dust_threshold: Draws below this are not worth bridging
            max_exhaustive_candidates: Above this many candidates the
                exhaustive search falls back to greedy-by-balance
        """
        self.fee_quoter = fee_quoter
        self.strategy = strategy
        self.dust_threshold = dust_threshold
        self.max_exhaustive_candidates = max_exhaustive_candidates

    async def find_optimal_routes(
        self,
        balances: Sequence[ChainBalance],
        target_chain: str,
        required_amount: Decimal,
        token_address: str,
        owner: str,
        strategy: Optional[AllocationStrategy] = None,
    ) -> RouteResponse:
        """Plan routes bringing ``required_amount`` onto ``target_chain``.

        Args:
            balances: Owner's balance on every chain
            target_chain: Chain that must end up funded
            required_amount: Amount needed on the target chain
            token_address: Token being bridged
            owner: Owner address
            strategy: Overrides the engine's default strategy

        Returns:
            RouteResponse with the selected routes and totals
        """
        strategy = strategy or self.strategy
        target_balance = next(
            (b.balance for b in balances if b.chain == target_chain), Decimal("0")
        )
        needed = max(Decimal("0"), required_amount - target_balance)
        available = sum((b.balance for b in balances), Decimal("0"))

        # Target chain already holds enough
        if needed <= 0:
            return RouteResponse(
                required_amount=required_amount,
                total_amount=target_balance,
                available_balance=available,
                target_chain=target_chain,
            )

        candidates = [b for b in balances if b.chain != target_chain and b.balance > 0]
        source_funds = sum((c.balance for c in candidates), Decimal("0"))

        # Not enough liquidity anywhere, don't bother quoting
        if source_funds < needed:
            logger.info(
                f"Insufficient funds for {target_chain}: need {needed}, "
                f"source chains hold {source_funds}"
            )
            return RouteResponse(
                required_amount=required_amount,
                total_amount=target_balance + source_funds,
                available_balance=available,
                insufficient_funds=True,
                target_chain=target_chain,
            )

        logger.info(
            f"Planning {strategy.value} routes to {target_chain}: need {needed} "
            f"from {len(candidates)} source chain(s)"
        )

        try:
            routes = await self._allocate(strategy, candidates, target_chain, needed, token_address, owner)
        except Exception as e:
            logger.exception(f"Route allocation failed: {type(e).__name__}: {e}")
            routes = []

        return self._aggregate(routes, target_chain, target_balance, required_amount, available)

    async def _allocate(
        self,
        strategy: AllocationStrategy,
        candidates: list[ChainBalance],
        target_chain: str,
        needed: Decimal,
        token_address: str,
        owner: str,
    ) -> list[BridgeRoute]:
        if strategy == AllocationStrategy.EXHAUSTIVE_SUBSET:
            if len(candidates) <= self.max_exhaustive_candidates:
                return await self._allocate_exhaustive(candidates, target_chain, needed, token_address, owner)
            logger.warning(
                f"{len(candidates)} candidates exceed exhaustive limit of "
                f"{self.max_exhaustive_candidates}, falling back to greedy_by_balance"
            )
            strategy = AllocationStrategy.GREEDY_BY_BALANCE

        ordered = order_candidates(candidates, target_chain, strategy)

        if strategy == AllocationStrategy.PROPORTIONAL_SPLIT:
            return await self._allocate_proportional(ordered, target_chain, needed, token_address, owner)

        return await self._allocate_greedy(ordered, target_chain, needed, token_address, owner)

    async def _allocate_greedy(
        self,
        ordered: list[ChainBalance],
        target_chain: str,
        needed: Decimal,
        token_address: str,
        owner: str,
    ) -> list[BridgeRoute]:
        """Walk candidates in order, drawing as much as each can give."""
        routes: list[BridgeRoute] = []
        remaining = needed

        for candidate in ordered:
            if remaining <= 0:
                break

            amount = quantize_down(min(candidate.balance, remaining))
            if amount < self.dust_threshold:
                logger.debug(f"Skipping {candidate.chain}: draw {amount} below dust threshold")
                continue

            route = await self._price_route(candidate, target_chain, amount, token_address, owner)
            if route is None:
                continue

            routes.append(route)
            remaining -= amount
            logger.info(f"Added route from {candidate.chain} for {amount}, remaining: {remaining}")

        return routes

    async def _allocate_proportional(
        self,
        ordered: list[ChainBalance],
        target_chain: str,
        needed: Decimal,
        token_address: str,
        owner: str,
    ) -> list[BridgeRoute]:
        """Draw from every candidate in proportion to its balance."""
        shares = proportional_shares(ordered, needed, self.dust_threshold)
        results = await asyncio.gather(
            *(
                self._price_route(member, target_chain, amount, token_address, owner)
                for member, amount in shares
            )
        )
        return [route for route in results if route is not None]

    async def _allocate_exhaustive(
        self,
        candidates: list[ChainBalance],
        target_chain: str,
        needed: Decimal,
        token_address: str,
        owner: str,
    ) -> list[BridgeRoute]:
        """Try every subset of candidates and keep the cheapest that covers ``needed``.

        Subsets are visited smallest first, so on equal fees the plan with
        fewer routes wins.
        """
        ordered = order_candidates(candidates, target_chain, AllocationStrategy.GREEDY_BY_BALANCE)
        memo: QuoteMemo = {}
        best: Optional[list[BridgeRoute]] = None
        best_fee: Optional[Decimal] = None

        for size in range(1, len(ordered) + 1):
            for subset in itertools.combinations(ordered, size):
                if sum((m.balance for m in subset), Decimal("0")) < needed:
                    continue

                shares = split_by_balance(subset, needed)
                if any(amount < self.dust_threshold for _, amount in shares):
                    continue

                routes = await self._price_shares(shares, target_chain, token_address, owner, memo)
                if routes is None:
                    continue

                fee = sum((r.fee for r in routes), Decimal("0"))
                if best_fee is None or fee < best_fee:
                    best, best_fee = routes, fee

        if best is None:
            logger.warning(f"No subset of source chains could be priced to {target_chain}")
            return []

        logger.info(
            f"Cheapest subset to {target_chain}: "
            f"{', '.join(r.source_chain for r in best)} (fee {best_fee})"
        )
        return best

    async def _price_shares(
        self,
        shares: list[tuple[ChainBalance, Decimal]],
        target_chain: str,
        token_address: str,
        owner: str,
        memo: QuoteMemo,
    ) -> Optional[list[BridgeRoute]]:
        """Price every share of a subset; None if any member can't be priced."""
        missing = [(m, a) for m, a in shares if (m.chain, a) not in memo]
        results = await asyncio.gather(
            *(self._price_route(m, target_chain, a, token_address, owner) for m, a in missing)
        )
        for (member, amount), route in zip(missing, results):
            memo[(member.chain, amount)] = route

        routes = [memo[(m.chain, a)] for m, a in shares]
        if any(route is None for route in routes):
            return None
        return routes

    async def _price_route(
        self,
        candidate: ChainBalance,
        target_chain: str,
        amount: Decimal,
        token_address: str,
        owner: str,
    ) -> Optional[BridgeRoute]:
        """Quote one draw, or None if the quote failed."""
        try:
            quote = await self.fee_quoter.quote(candidate.chain, target_chain, amount, token_address, owner)
        except Exception as e:
            logger.warning(f"Failed to get route from {candidate.chain}: {type(e).__name__}: {e}")
            return None

        chain = get_chain(candidate.chain)
        return BridgeRoute(
            source_chain=candidate.chain,
            amount=amount,
            fee=quote.total_fee,
            estimated_time_seconds=quote.estimated_time,
            protocol=quote.protocol or "unknown",
            gas_token=chain.native_token if chain else "ETH",
            source_balance=candidate.balance,
        )

    @staticmethod
    def _aggregate(
        routes: list[BridgeRoute],
        target_chain: str,
        target_balance: Decimal,
        required_amount: Decimal,
        available: Decimal,
    ) -> RouteResponse:
        total_amount = target_balance + sum((r.amount for r in routes), Decimal("0"))
        return RouteResponse(
            required_amount=required_amount,
            total_amount=total_amount,
            available_balance=available,
            routes=routes,
            total_fee=sum((r.fee for r in routes), Decimal("0")),
            estimated_total_time=max((r.estimated_time_seconds for r in routes), default=0),
            insufficient_funds=total_amount < required_amount,
            no_valid_routes=not routes,
            target_chain=target_chain,
        )
