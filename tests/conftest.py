"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from typing import Callable, Optional

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["SOCKET_API_KEY"] = ""
os.environ["REDIS_URL"] = ""
os.environ["STATIC_BALANCES"] = "{}"
os.environ["DEBUG"] = "true"

from bridgeroute.allocation import RouteAllocationEngine
from bridgeroute.balances import StaticBalanceSource
from bridgeroute.cache import MemoryCache
from bridgeroute.config import AllocationStrategy, get_settings
from bridgeroute.errors import QuoteUnavailableError
from bridgeroute.fees.base import FeeQuoter
from bridgeroute.models import ChainBalance, FeeQuote
from bridgeroute.web.services.route_service import RouteService

get_settings.cache_clear()

OWNER = "0x" + "ab" * 20
TOKEN = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"  # Polygon USDC


class RecordingFeeQuoter(FeeQuoter):
    """Fee quoter that records every call and returns fixed fees per chain."""

    def __init__(
        self,
        fees: Optional[dict[str, Decimal]] = None,
        failing: tuple[str, ...] = (),
        times: Optional[dict[str, int]] = None,
        default_fee: Decimal = Decimal("1"),
        fee_fn: Optional[Callable[[str, Decimal], Decimal]] = None,
    ):
        self.fees = fees or {}
        self.failing = set(failing)
        self.times = times or {}
        self.default_fee = default_fee
        self.fee_fn = fee_fn
        self.calls: list[tuple[str, str, Decimal]] = []

    @property
    def name(self) -> str:
        return "recording"

    async def quote(self, source_chain, target_chain, amount, token_address, owner) -> FeeQuote:
        self.calls.append((source_chain, target_chain, amount))
        if source_chain in self.failing:
            raise QuoteUnavailableError(source_chain, target_chain, "simulated outage")

        if self.fee_fn is not None:
            fee = self.fee_fn(source_chain, amount)
        else:
            fee = self.fees.get(source_chain, self.default_fee)

        return FeeQuote(
            gas_fee=fee / 2,
            bridge_fee=fee / 2,
            estimated_time=self.times.get(source_chain, 300),
            protocol="test-bridge",
        )


class CountingBalanceSource(StaticBalanceSource):
    """Static balances that count how often they are queried."""

    def __init__(self, balances: dict[str, Decimal]):
        super().__init__(balances)
        self.calls = 0

    async def get_balance(self, chain, token_address, owner) -> Decimal:
        self.calls += 1
        return await super().get_balance(chain, token_address, owner)


def make_balances(**amounts) -> list[ChainBalance]:
    """Build a balance list, e.g. make_balances(polygon=40, arbitrum=100)."""
    return [ChainBalance(chain=chain, balance=Decimal(str(amount))) for chain, amount in amounts.items()]


@pytest.fixture
def quoter() -> RecordingFeeQuoter:
    return RecordingFeeQuoter()


@pytest.fixture
def engine(quoter: RecordingFeeQuoter) -> RouteAllocationEngine:
    return RouteAllocationEngine(fee_quoter=quoter, strategy=AllocationStrategy.GREEDY_BY_BALANCE)


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache()


@pytest.fixture
def make_service(memory_cache: MemoryCache):
    """Factory for a RouteService backed by static balances and a recording quoter."""

    def _make(balances: dict[str, Decimal], quoter: Optional[RecordingFeeQuoter] = None) -> RouteService:
        return RouteService(
            balance_source=CountingBalanceSource(balances),
            engine=RouteAllocationEngine(fee_quoter=quoter or RecordingFeeQuoter()),
            cache=memory_cache,
            cache_ttl=300,
        )

    return _make
