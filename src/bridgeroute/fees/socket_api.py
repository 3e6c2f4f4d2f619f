"""Socket bridge aggregator integration.

Prices a single-tx bridge between two chains with the Socket quote API.
API docs: https://docs.socket.tech/socket-api/v2/quote
"""

import logging
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Optional

import httpx

from bridgeroute.chains import get_chain
from bridgeroute.errors import QuoteUnavailableError
from bridgeroute.fees.base import DEFAULT_ESTIMATED_TIME, FeeQuote, FeeQuoter
from bridgeroute.fees.fallback import FallbackFeeModel
from bridgeroute.models import quantize_amount

logger = logging.getLogger(__name__)

SOCKET_API_V2 = "https://api.socket.tech/v2"


class SocketQuoteError(Exception):
    """The Socket API gave no usable route."""


class SocketFeeQuoter(FeeQuoter):
    """Bridge fee quoter backed by the Socket API.

    Falls back to ``FallbackFeeModel`` when the API fails, has no route,
    or reports fees below the minimum.
    """

    def __init__(
        self,
        api_key: str,
        fallback: FallbackFeeModel,
        base_url: str = SOCKET_API_V2,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Socket quoter.

        Args:
            api_key: Socket API key
            fallback: Local fee model used when the API can't be trusted
            base_url: Socket API base URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.fallback = fallback
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def name(self) -> str:
        return "socket"

    def _get_headers(self) -> dict:
        return {"API-KEY": self.api_key, "Accept": "application/json"}

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

        from_amount = int((amount * (Decimal(10) ** source.token_decimals)).to_integral_value(rounding=ROUND_FLOOR))
        params = {
            "fromChainId": str(source.chain_id),
            "toChainId": str(target.chain_id),
            "fromTokenAddress": source.token_address,
            "toTokenAddress": target.token_address,
            "fromAmount": str(from_amount),
            "userAddress": owner,
            "uniqueRoutesPerBridge": "true",
            "sort": "output",
            "singleTxOnly": "true",
        }

        logger.debug(f"Requesting Socket quote: {source_chain} -> {target_chain}, fromAmount={from_amount}")

        try:
            best_route = await self._fetch_best_route(params)
            gas_fee = Decimal(str(best_route.get("totalGasFeeUSD") or 0))
            bridge_fee = Decimal(str(best_route.get("totalBridgeFeeUSD") or 0))
            estimated_time = int(best_route.get("serviceTime") or DEFAULT_ESTIMATED_TIME)
        except (httpx.HTTPError, SocketQuoteError, TypeError, ValueError, InvalidOperation) as e:
            logger.warning(
                f"Socket quote failed for {source_chain} -> {target_chain}: "
                f"{type(e).__name__}: {e}, using fallback fees"
            )
            return await self.fallback.quote(source_chain, target_chain, amount, token_address, owner)

        protocol = self._protocol_name(best_route.get("protocol"))

        # Zero or very low fees are not believable, price locally instead
        if gas_fee < self.fallback.min_fee or bridge_fee < self.fallback.min_fee:
            logger.info(
                f"Socket fees too low for {source_chain} -> {target_chain} "
                f"(gas={gas_fee}, bridge={bridge_fee}), using fallback fees"
            )
            local = await self.fallback.quote(source_chain, target_chain, amount, token_address, owner)
            gas_fee, bridge_fee = local.gas_fee, local.bridge_fee

        return FeeQuote(
            gas_fee=quantize_amount(gas_fee),
            bridge_fee=quantize_amount(bridge_fee),
            estimated_time=estimated_time,
            protocol=protocol,
        )

    async def _fetch_best_route(self, params: dict) -> dict:
        """Call the quote endpoint and return the first (best) route."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/quote",
                headers=self._get_headers(),
                params=params,
            )

        if response.status_code != 200:
            raise SocketQuoteError(f"HTTP {response.status_code}")

        data = response.json()
        if not isinstance(data, dict):
            raise SocketQuoteError(f"unexpected response body: {type(data).__name__}")
        if not data.get("success"):
            raise SocketQuoteError(f"request failed: {data.get('message', 'Unknown error')}")

        result = data.get("result") or {}
        if not isinstance(result, dict):
            raise SocketQuoteError(f"unexpected result: {type(result).__name__}")

        routes = result.get("routes") or []
        if not routes:
            raise SocketQuoteError(
                f"no valid routes from chain {params['fromChainId']} to {params['toChainId']}"
            )
        if not isinstance(routes, list) or not isinstance(routes[0], dict):
            raise SocketQuoteError("malformed route entry")

        return routes[0]

    @staticmethod
    def _protocol_name(protocol) -> str:
        # Newer responses nest the bridge name in an object
        if isinstance(protocol, dict):
            return protocol.get("name") or protocol.get("displayName") or "unknown"
        return str(protocol) if protocol else "unknown"
