"""Route service: orchestrates balance queries, caching and allocation.

This service plans and prices bridge routes but never signs or submits
a transaction.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from bridgeroute.allocation import RouteAllocationEngine
from bridgeroute.balances import BalanceSource, create_balance_source, fetch_all_balances
from bridgeroute.cache import ResponseCache, create_cache, route_cache_key
from bridgeroute.chains import CHAINS, is_supported_chain
from bridgeroute.config import Settings, get_settings
from bridgeroute.errors import UnsupportedChainError
from bridgeroute.fees import create_fee_quoter
from bridgeroute.models import RouteResponse
from bridgeroute.rpc import RpcClientRegistry
from bridgeroute.web.contracts.routes import BridgeRouteRequest

logger = logging.getLogger(__name__)

INSUFFICIENT_FUNDS_MESSAGE = "Insufficient funds across all chains"
NO_VALID_ROUTES_MESSAGE = "No valid routes available"


class RouteService:
    """Service for planning cross-chain funding routes."""

    def __init__(
        self,
        balance_source: BalanceSource,
        engine: RouteAllocationEngine,
        cache: ResponseCache,
        cache_ttl: int = 300,
        chains: Optional[list[str]] = None,
    ):
        """Initialize route service.

        Args:
            balance_source: Per-chain balance collaborator
            engine: Route allocation engine
            cache: Response cache
            cache_ttl: Seconds a computed response stays cached
            chains: Chains to gather balances from (default: all configured)
        """
        self.balance_source = balance_source
        self.engine = engine
        self.cache = cache
        self.cache_ttl = cache_ttl
        self.chains = chains or list(CHAINS.keys())

    async def get_optimal_routes(self, request: BridgeRouteRequest) -> dict[str, Any]:
        """Get the cheapest routes funding the request's target chain.

        Args:
            request: Validated route request

        Returns:
            Envelope dict ``{success, data, error, code}``

        Raises:
            UnsupportedChainError: if the target chain is not configured
        """
        target_chain = request.target_chain
        if not is_supported_chain(target_chain):
            raise UnsupportedChainError(target_chain)

        logger.info(
            f"Starting route calculation: target={target_chain}, amount={request.amount}, "
            f"user={request.user_address[:10]}..."
        )

        cache_key = route_cache_key(
            request.user_address, target_chain, request.amount, request.token_address
        )

        try:
            cached = await self._cache_get(cache_key)
            if cached is not None:
                logger.info("Returning cached result")
                return cached

            balances = await fetch_all_balances(self.balance_source, request.user_address, self.chains)
            target_balance = next(
                (b.balance for b in balances if b.chain == target_chain), Decimal("0")
            )
            logger.info(f"Target chain ({target_chain}) balance: {target_balance}")

            if target_balance >= request.amount:
                plan = RouteResponse(
                    required_amount=request.amount,
                    total_amount=target_balance,
                    available_balance=sum((b.balance for b in balances), Decimal("0")),
                    target_chain=target_chain,
                )
            else:
                plan = await self.engine.find_optimal_routes(
                    balances,
                    target_chain,
                    request.amount,
                    request.token_address,
                    request.user_address,
                )

            result = self._envelope(plan)
            await self._cache_set(cache_key, result)
            return result

        except Exception as e:
            logger.exception(f"Error in get_optimal_routes: {e}")
            return {
                "success": False,
                "data": RouteResponse.worst_case(request.amount, target_chain).to_dict(),
                "error": str(e) or type(e).__name__,
                "code": "EXECUTION_ERROR",
            }

    @staticmethod
    def _envelope(plan: RouteResponse) -> dict[str, Any]:
        error = None
        if plan.insufficient_funds:
            error = INSUFFICIENT_FUNDS_MESSAGE
        elif plan.no_valid_routes:
            error = NO_VALID_ROUTES_MESSAGE

        return {
            "success": plan.is_fulfilled,
            "data": plan.to_dict(),
            "error": error,
            "code": None,
        }

    async def _cache_get(self, key: str) -> Optional[dict[str, Any]]:
        try:
            return await self.cache.get_json(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    async def _cache_set(self, key: str, value: dict[str, Any]) -> None:
        try:
            await self.cache.set_json(key, value, self.cache_ttl)
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")


def create_route_service(
    settings: Optional[Settings] = None,
    registry: Optional[RpcClientRegistry] = None,
    cache: Optional[ResponseCache] = None,
) -> RouteService:
    """Create a route service wired from settings."""
    settings = settings or get_settings()
    cache = cache or create_cache(settings)

    if registry is None and (not settings.static_balances or settings.gas_price_aware_fees):
        registry = RpcClientRegistry(settings)

    engine = RouteAllocationEngine(
        fee_quoter=create_fee_quoter(settings, registry=registry, cache=cache),
        strategy=settings.allocation_strategy,
        dust_threshold=settings.dust_threshold,
        max_exhaustive_candidates=settings.exhaustive_max_candidates,
    )

    return RouteService(
        balance_source=create_balance_source(registry, settings),
        engine=engine,
        cache=cache,
        cache_ttl=settings.route_cache_ttl,
    )
