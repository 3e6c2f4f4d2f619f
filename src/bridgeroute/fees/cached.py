"""Per-quote caching wrapper for fee quoters."""

import logging
from decimal import Decimal
from typing import Optional

from bridgeroute.cache import ResponseCache, fee_cache_key
from bridgeroute.chains import get_chain
from bridgeroute.errors import QuoteUnavailableError
from bridgeroute.fees.base import FeeQuote, FeeQuoter

logger = logging.getLogger(__name__)


class CachingFeeQuoter(FeeQuoter):
    """Caches quotes from another quoter for ``ttl`` seconds."""

    def __init__(self, inner: FeeQuoter, cache: ResponseCache, ttl: int = 300):
        self.inner = inner
        self.cache = cache
        self.ttl = ttl

    @property
    def name(self) -> str:
        return f"cached({self.inner.name})"

    async def quote(
        self,
        source_chain: str,
        target_chain: str,
        amount: Decimal,
        token_address: str,
        owner: str,
    ) -> FeeQuote:
        source = get_chain(source_chain)
        target = get_chain(target_chain)
        if source is None or target is None:
            raise QuoteUnavailableError(source_chain, target_chain, "chain not configured")

        key = fee_cache_key(source.chain_id, target.chain_id, amount, token_address)
        cached = await self._cache_get(key)
        if cached is not None:
            logger.debug(f"Fee cache hit: {key}")
            return FeeQuote(
                gas_fee=Decimal(cached["gasFee"]),
                bridge_fee=Decimal(cached["bridgeFee"]),
                estimated_time=int(cached["estimatedTime"]),
                protocol=cached["protocol"],
            )

        quote = await self.inner.quote(source_chain, target_chain, amount, token_address, owner)
        await self._cache_set(
            key,
            {
                "gasFee": str(quote.gas_fee),
                "bridgeFee": str(quote.bridge_fee),
                "estimatedTime": quote.estimated_time,
                "protocol": quote.protocol,
            },
        )
        return quote

    async def _cache_get(self, key: str) -> Optional[dict]:
        try:
            return await self.cache.get_json(key)
        except Exception as e:
            logger.warning(f"Fee cache read failed for {key}: {e}")
            return None

    async def _cache_set(self, key: str, value: dict) -> None:
        try:
            await self.cache.set_json(key, value, self.ttl)
        except Exception as e:
            logger.warning(f"Fee cache write failed for {key}: {e}")
