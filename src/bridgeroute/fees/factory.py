"""Factory for creating the fee quoter.

Uses the Socket API when an API key is configured, otherwise the local
fallback formula.
"""

import logging
from typing import Optional

from bridgeroute.cache import ResponseCache
from bridgeroute.config import Settings, get_settings
from bridgeroute.fees.base import FeeQuoter
from bridgeroute.fees.cached import CachingFeeQuoter
from bridgeroute.fees.fallback import FallbackFeeModel
from bridgeroute.fees.socket_api import SocketFeeQuoter
from bridgeroute.rpc import RpcClientRegistry

logger = logging.getLogger(__name__)


def create_fallback_model(
    settings: Optional[Settings] = None,
    registry: Optional[RpcClientRegistry] = None,
) -> FallbackFeeModel:
    """Create the local fee model."""
    settings = settings or get_settings()
    return FallbackFeeModel(
        min_fee=settings.min_fee,
        registry=registry,
        gas_price_aware=settings.gas_price_aware_fees,
    )


def create_fee_quoter(
    settings: Optional[Settings] = None,
    registry: Optional[RpcClientRegistry] = None,
    cache: Optional[ResponseCache] = None,
) -> FeeQuoter:
    """Create the fee quoter for the current settings.

    Args:
        settings: Application settings
        registry: RPC clients for gas-price-aware fallback fees
        cache: Cache for per-quote caching (when enabled)

    Returns:
        Configured FeeQuoter
    """
    settings = settings or get_settings()
    fallback = create_fallback_model(settings, registry)

    quoter: FeeQuoter
    if settings.has_socket_api:
        quoter = SocketFeeQuoter(
            api_key=settings.socket_api_key,
            fallback=fallback,
            base_url=settings.socket_api_url,
            timeout=settings.socket_timeout,
        )
        logger.info("Using Socket fee quoter")
    else:
        quoter = fallback
        logger.warning("SOCKET_API_KEY not set - using fallback fee formula")

    if settings.cache_fee_quotes and cache is not None:
        quoter = CachingFeeQuoter(quoter, cache, ttl=settings.fee_cache_ttl)
        logger.info(f"Caching fee quotes for {settings.fee_cache_ttl}s")

    return quoter
