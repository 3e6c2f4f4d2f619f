"""Tests for fee quoting: Socket API, fallback formula and caching."""

import json
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from bridgeroute.allocation import RouteAllocationEngine
from bridgeroute.cache import MemoryCache
from bridgeroute.config import Settings
from bridgeroute.errors import QuoteUnavailableError
from bridgeroute.fees import (
    CachingFeeQuoter,
    FallbackFeeModel,
    SocketFeeQuoter,
    create_fee_quoter,
    volume_discount,
)
from bridgeroute.models import ChainBalance
from bridgeroute.rpc import RpcClientRegistry

from conftest import OWNER, TOKEN, RecordingFeeQuoter


def socket_transport(payload=None, status_code=200, seen=None):
    """MockTransport answering every Socket quote with ``payload``."""

    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload if payload is not None else {})

    return httpx.MockTransport(handler)


def socket_route(gas="1.25", bridge="2.5", service_time=180, protocol=None):
    return {
        "success": True,
        "result": {
            "routes": [
                {
                    "totalGasFeeUSD": gas,
                    "totalBridgeFeeUSD": bridge,
                    "serviceTime": service_time,
                    "protocol": protocol if protocol is not None else {"name": "hop", "displayName": "Hop"},
                }
            ]
        },
    }


def make_socket(transport, min_fee=Decimal("0.5")):
    return SocketFeeQuoter(
        api_key="test-key",
        fallback=FallbackFeeModel(min_fee=min_fee),
        base_url="https://socket.test/v2",
        transport=transport,
    )


class TestFallbackFeeModel:
    """Tests for the deterministic fee formula."""

    def test_volume_discount_tiers(self):
        assert volume_discount(Decimal("100")) == Decimal("1")
        assert volume_discount(Decimal("500")) == Decimal("1")
        assert volume_discount(Decimal("501")) == Decimal("0.9")
        assert volume_discount(Decimal("1000")) == Decimal("0.9")
        assert volume_discount(Decimal("1001")) == Decimal("0.8")

    @pytest.mark.asyncio
    async def test_small_amount_hits_min_gas_fee(self):
        model = FallbackFeeModel()
        quote = await model.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.gas_fee == Decimal("0.5")
        assert quote.bridge_fee == Decimal("0.6")
        assert quote.total_fee == Decimal("1.1")
        assert quote.estimated_time == 300
        assert quote.protocol == "fallback"

    @pytest.mark.asyncio
    async def test_mid_volume_discount(self):
        model = FallbackFeeModel()
        quote = await model.quote("base", "polygon", Decimal("600"), TOKEN, OWNER)

        # 600 * 0.5% * 0.9
        assert quote.bridge_fee == Decimal("2.7")
        # max(0.1% of 600, 0.001 * 0.8 * 600)
        assert quote.gas_fee == Decimal("0.6")

    @pytest.mark.asyncio
    async def test_unlisted_lane_uses_default_percent(self):
        model = FallbackFeeModel()
        quote = await model.quote("arbitrum", "base", Decimal("2000"), TOKEN, OWNER)

        # 2000 * 1.5% * 0.8
        assert quote.bridge_fee == Decimal("24")
        # 0.001 * 1.2 * 2000 beats 0.1% of 2000
        assert quote.gas_fee == Decimal("2.4")

    @pytest.mark.asyncio
    async def test_min_fee_floor_is_configurable(self):
        model = FallbackFeeModel(min_fee=Decimal("2"))
        quote = await model.quote("gnosis", "polygon", Decimal("10"), TOKEN, OWNER)

        assert quote.gas_fee == Decimal("2")
        assert quote.bridge_fee == Decimal("2")

    @pytest.mark.asyncio
    async def test_unknown_chain_raises(self):
        model = FallbackFeeModel()
        with pytest.raises(QuoteUnavailableError):
            await model.quote("solana", "polygon", Decimal("10"), TOKEN, OWNER)


class TestGasPriceAwareFees:
    """Tests for live gas price estimates."""

    @staticmethod
    def registry_with_gas_price(result=None, error=None):
        def handler(request: httpx.Request) -> httpx.Response:
            body = json.loads(request.content)
            if error is not None:
                return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

        return RpcClientRegistry(Settings(), transport=httpx.MockTransport(handler))

    @pytest.mark.asyncio
    async def test_gas_fee_from_live_price(self):
        # 20 gwei * 250k gas = 0.005 ETH at 3000 USD
        registry = self.registry_with_gas_price(result=hex(20 * 10**9))
        model = FallbackFeeModel(registry=registry, gas_price_aware=True)

        quote = await model.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.gas_fee == Decimal("15.000000")
        assert quote.bridge_fee == Decimal("0.6")
        await registry.close()

    @pytest.mark.asyncio
    async def test_gas_price_failure_falls_back_to_formula(self):
        registry = self.registry_with_gas_price(error={"code": -32000, "message": "boom"})
        model = FallbackFeeModel(registry=registry, gas_price_aware=True)

        quote = await model.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.gas_fee == Decimal("0.5")
        await registry.close()

    def test_gas_aware_requires_registry(self):
        model = FallbackFeeModel(gas_price_aware=True)
        assert model.gas_price_aware is False


class TestSocketFeeQuoter:
    """Tests for the Socket API quoter."""

    @pytest.mark.asyncio
    async def test_successful_quote(self):
        seen = []
        quoter = make_socket(socket_transport(socket_route(), seen=seen))

        quote = await quoter.quote("arbitrum", "polygon", Decimal("60.5"), TOKEN, OWNER)

        assert quote.gas_fee == Decimal("1.25")
        assert quote.bridge_fee == Decimal("2.5")
        assert quote.estimated_time == 180
        assert quote.protocol == "hop"

        request = seen[0]
        assert request.url.path == "/v2/quote"
        assert request.headers["API-KEY"] == "test-key"
        params = request.url.params
        assert params["fromChainId"] == "42161"
        assert params["toChainId"] == "137"
        assert params["fromAmount"] == "60500000"
        assert params["userAddress"] == OWNER
        assert params["singleTxOnly"] == "true"
        assert params["sort"] == "output"

    @pytest.mark.asyncio
    async def test_string_protocol(self):
        quoter = make_socket(socket_transport(socket_route(protocol="across")))
        quote = await quoter.quote("base", "polygon", Decimal("100"), TOKEN, OWNER)

        assert quote.protocol == "across"

    @pytest.mark.asyncio
    async def test_http_error_uses_fallback(self):
        quoter = make_socket(socket_transport({"message": "down"}, status_code=503))
        quote = await quoter.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.protocol == "fallback"
        assert quote.total_fee == Decimal("1.1")

    @pytest.mark.asyncio
    async def test_unsuccessful_response_uses_fallback(self):
        quoter = make_socket(socket_transport({"success": False, "message": "bad request"}))
        quote = await quoter.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.protocol == "fallback"

    @pytest.mark.asyncio
    async def test_empty_routes_uses_fallback(self):
        quoter = make_socket(socket_transport({"success": True, "result": {"routes": []}}))
        quote = await quoter.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.protocol == "fallback"
        assert quote.estimated_time == 300

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            [],
            "ok",
            {"success": True, "result": ["routes"]},
            {"success": True, "result": {"routes": [None]}},
            {"success": True, "result": {"routes": ["hop"]}},
            {"success": True, "result": {"routes": {"0": {}}}},
            {"success": True, "result": {"routes": [{"totalGasFeeUSD": "1", "serviceTime": [60]}]}},
        ],
    )
    async def test_malformed_body_uses_fallback(self, payload):
        quoter = make_socket(socket_transport(payload))
        quote = await quoter.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.protocol == "fallback"
        assert quote.total_fee == Decimal("1.1")

    @pytest.mark.asyncio
    async def test_transport_failure_uses_fallback(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        quoter = make_socket(httpx.MockTransport(handler))
        quote = await quoter.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.protocol == "fallback"

    @pytest.mark.asyncio
    async def test_low_fees_replaced_keeps_protocol(self):
        """Implausibly low API fees are swapped for fallback fees."""
        quoter = make_socket(socket_transport(socket_route(gas="0", bridge="0.01", service_time=90)))
        quote = await quoter.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.gas_fee == Decimal("0.5")
        assert quote.bridge_fee == Decimal("0.6")
        assert quote.protocol == "hop"
        assert quote.estimated_time == 90

    @pytest.mark.asyncio
    async def test_unknown_chain_raises(self):
        quoter = make_socket(socket_transport(socket_route()))
        with pytest.raises(QuoteUnavailableError):
            await quoter.quote("arbitrum", "solana", Decimal("10"), TOKEN, OWNER)


class TestCachingFeeQuoter:
    """Tests for per-quote caching."""

    @pytest.mark.asyncio
    async def test_second_quote_served_from_cache(self):
        inner = RecordingFeeQuoter(fees={"arbitrum": Decimal("3")})
        cache = MemoryCache()
        quoter = CachingFeeQuoter(inner, cache, ttl=60)

        first = await quoter.quote("arbitrum", "polygon", Decimal("10"), TOKEN, OWNER)
        second = await quoter.quote("arbitrum", "polygon", Decimal("10"), TOKEN, OWNER)

        assert first == second
        assert len(inner.calls) == 1
        assert await cache.get(f"bridge_fee:42161:137:10:{TOKEN}") is not None

    @pytest.mark.asyncio
    async def test_different_amount_is_a_miss(self):
        inner = RecordingFeeQuoter()
        quoter = CachingFeeQuoter(inner, MemoryCache(), ttl=60)

        await quoter.quote("arbitrum", "polygon", Decimal("10"), TOKEN, OWNER)
        await quoter.quote("arbitrum", "polygon", Decimal("11"), TOKEN, OWNER)

        assert len(inner.calls) == 2

    @pytest.mark.asyncio
    async def test_failures_are_not_cached(self):
        inner = RecordingFeeQuoter(failing=("arbitrum",))
        cache = MemoryCache()
        quoter = CachingFeeQuoter(inner, cache, ttl=60)

        with pytest.raises(QuoteUnavailableError):
            await quoter.quote("arbitrum", "polygon", Decimal("10"), TOKEN, OWNER)

        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_unreachable_cache_still_quotes(self):
        cache = AsyncMock()
        cache.get_json.side_effect = ConnectionError("redis down")
        cache.set_json.side_effect = ConnectionError("redis down")
        quoter = CachingFeeQuoter(FallbackFeeModel(), cache, ttl=60)

        quote = await quoter.quote("arbitrum", "polygon", Decimal("60"), TOKEN, OWNER)

        assert quote.protocol == "fallback"
        assert quote.total_fee == Decimal("1.1")
        cache.set_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unreachable_cache_does_not_drop_routes(self):
        cache = AsyncMock()
        cache.get_json.side_effect = ConnectionError("redis down")
        engine = RouteAllocationEngine(fee_quoter=CachingFeeQuoter(FallbackFeeModel(), cache))
        balances = [ChainBalance("polygon", Decimal("0")), ChainBalance("arbitrum", Decimal("100"))]

        result = await engine.find_optimal_routes(balances, "polygon", Decimal("50"), TOKEN, OWNER)

        assert [r.source_chain for r in result.routes] == ["arbitrum"]
        assert result.no_valid_routes is False
        assert result.total_amount == Decimal("50")


class TestFeeQuoterFactory:
    """Tests for fee quoter selection."""

    def test_without_api_key_uses_fallback(self):
        quoter = create_fee_quoter(Settings(socket_api_key=""))
        assert isinstance(quoter, FallbackFeeModel)

    def test_with_api_key_uses_socket(self):
        quoter = create_fee_quoter(Settings(socket_api_key="key", min_fee=Decimal("1")))
        assert isinstance(quoter, SocketFeeQuoter)
        assert quoter.fallback.min_fee == Decimal("1")

    def test_fee_caching_wraps_quoter(self):
        settings = Settings(socket_api_key="", cache_fee_quotes=True, fee_cache_ttl=30)
        quoter = create_fee_quoter(settings, cache=MemoryCache())

        assert isinstance(quoter, CachingFeeQuoter)
        assert isinstance(quoter.inner, FallbackFeeModel)
        assert quoter.ttl == 30

    def test_fee_caching_needs_a_cache(self):
        settings = Settings(socket_api_key="", cache_fee_quotes=True)
        assert isinstance(create_fee_quoter(settings), FallbackFeeModel)
