"""Deterministic fallback fee formula.

Used whenever the external quote API fails or returns implausibly low fees:

    bridge_fee = amount * fee_pct[source][target] / 100 * volume_discount
    gas_fee    = max(amount * 0.001, BASE_GAS_FEE * gas_multiplier[source] * amount)

Both components are floored at ``min_fee``. With ``gas_price_aware`` the gas
component comes from a live gas price sample instead.
"""

import logging
from decimal import Decimal
from typing import Optional

from bridgeroute.chains import (
    AVERAGE_BRIDGE_GAS_UNITS,
    BASE_GAS_FEE,
    NATIVE_TOKEN_PRICES_USD,
    get_bridge_fee_percent,
    get_chain,
    get_gas_multiplier,
)
from bridgeroute.errors import QuoteUnavailableError, RpcError
from bridgeroute.fees.base import DEFAULT_ESTIMATED_TIME, FeeQuote, FeeQuoter
from bridgeroute.models import quantize_amount
from bridgeroute.rpc import RpcClientRegistry

logger = logging.getLogger(__name__)

MIN_GAS_FEE_RATE = Decimal("0.001")  # 0.1% of amount
WEI_PER_NATIVE = Decimal(10) ** 18


def volume_discount(amount: Decimal) -> Decimal:
    """Discount factor for larger transfers."""
    if amount > 1000:
        return Decimal("0.8")
    if amount > 500:
        return Decimal("0.9")
    return Decimal("1")


class FallbackFeeModel(FeeQuoter):
    """Local fee estimate from the configured fee tables."""

    def __init__(
        self,
        min_fee: Decimal = Decimal("0.5"),
        registry: Optional[RpcClientRegistry] = None,
        gas_price_aware: bool = False,
    ):
        """Initialize the fee model.

        Args:
            min_fee: Floor for each fee component
            registry: RPC clients, required for gas-price-aware estimates
            gas_price_aware: Derive gas fee from a live gas price sample
        """
        self.min_fee = min_fee
        self.registry = registry
        self.gas_price_aware = gas_price_aware and registry is not None

    @property
    def name(self) -> str:
        return "fallback"

    def bridge_fee(self, source_chain: str, target_chain: str, amount: Decimal) -> Decimal:
        percent = get_bridge_fee_percent(source_chain, target_chain)
        fee = amount * percent / 100 * volume_discount(amount)
        return max(quantize_amount(fee), self.min_fee)

    def gas_fee(self, source_chain: str, amount: Decimal) -> Decimal:
        fee = max(
            amount * MIN_GAS_FEE_RATE,
            BASE_GAS_FEE * get_gas_multiplier(source_chain) * amount,
        )
        return max(quantize_amount(fee), self.min_fee)

    async def live_gas_fee(self, source_chain: str) -> Optional[Decimal]:
        """Gas fee from the chain's current gas price, in USD-pegged token units."""
        config = get_chain(source_chain)
        native_price = NATIVE_TOKEN_PRICES_USD.get(config.native_token) if config else None
        if native_price is None or self.registry is None:
            return None

        try:
            gas_price_wei = await self.registry.get(source_chain).gas_price()
        except RpcError as e:
            logger.warning(f"Gas price unavailable on {source_chain}: {e}")
            return None

        fee = Decimal(gas_price_wei) * AVERAGE_BRIDGE_GAS_UNITS / WEI_PER_NATIVE * native_price
        return max(quantize_amount(fee), self.min_fee)

    def calculate(self, source_chain: str, target_chain: str, amount: Decimal) -> FeeQuote:
        """Amount-based fallback quote."""
        return FeeQuote(
            gas_fee=self.gas_fee(source_chain, amount),
            bridge_fee=self.bridge_fee(source_chain, target_chain, amount),
            estimated_time=DEFAULT_ESTIMATED_TIME,
            protocol=self.name,
        )

    async def quote(
        self,
        source_chain: str,
        target_chain: str,
        amount: Decimal,
        token_address: str,
        owner: str,
    ) -> FeeQuote:
        if get_chain(source_chain) is None or get_chain(target_chain) is None:
            raise QuoteUnavailableError(source_chain, target_chain, "chain not configured")

        fallback = self.calculate(source_chain, target_chain, amount)
        if not self.gas_price_aware:
            return fallback

        gas_fee = await self.live_gas_fee(source_chain)
        if gas_fee is None:
            return fallback

        return FeeQuote(
            gas_fee=gas_fee,
            bridge_fee=fallback.bridge_fee,
            estimated_time=fallback.estimated_time,
            protocol=fallback.protocol,
        )
