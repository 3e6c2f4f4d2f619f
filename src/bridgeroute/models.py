"""Route planning data model.

All amounts are Decimal token units. Rounding to 6 places happens only at
fee computation and draw sizing, never mid-aggregation.
"""

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Optional

SIX_PLACES = Decimal("0.000001")

# Smallest fee a bridged route may carry
FEE_EPSILON = SIX_PLACES


def quantize_amount(value: Decimal) -> Decimal:
    """Round to 6 decimal places (half up)."""
    return value.quantize(SIX_PLACES, rounding=ROUND_HALF_UP)


def quantize_down(value: Decimal) -> Decimal:
    """Round down to 6 decimal places so a draw never exceeds its balance."""
    return value.quantize(SIX_PLACES, rounding=ROUND_DOWN)


def format_amount(value: Decimal) -> str:
    """Canonical string form of an amount (no exponent, no trailing zeros)."""
    text = format(value.normalize(), "f")
    return text if text != "-0" else "0"


@dataclass(frozen=True)
class ChainBalance:
    """Owner's token holding on one chain at query time."""

    chain: str
    balance: Decimal


@dataclass(frozen=True)
class FeeQuote:
    """Price of bridging an amount from a source chain to a target chain."""

    gas_fee: Decimal
    bridge_fee: Decimal
    estimated_time: int  # Seconds
    protocol: str

    @property
    def total_fee(self) -> Decimal:
        """Combined fee, rounded and floored at the fee epsilon."""
        total = quantize_amount(self.gas_fee + self.bridge_fee)
        return total if total > 0 else FEE_EPSILON


@dataclass(frozen=True)
class BridgeRoute:
    """A planned transfer from one source chain to the target chain."""

    source_chain: str
    amount: Decimal
    fee: Decimal
    estimated_time_seconds: int
    protocol: str
    gas_token: str
    source_balance: Decimal  # Balance at quote time

    def to_dict(self) -> dict:
        """Convert to the camelCase wire shape."""
        return {
            "sourceChain": self.source_chain,
            "amount": float(self.amount),
            "fee": float(self.fee),
            "estimatedTime": self.estimated_time_seconds,
            "protocol": self.protocol,
            "gasToken": self.gas_token,
            "sourceBalance": float(self.source_balance),
        }


@dataclass
class RouteResponse:
    """Aggregate result of a route plan.

    ``routes`` keeps selection order. ``estimated_total_time`` is the max
    across routes since they can execute in parallel.
    """

    required_amount: Decimal
    total_amount: Decimal
    available_balance: Decimal
    routes: list[BridgeRoute] = field(default_factory=list)
    total_fee: Decimal = Decimal("0")
    estimated_total_time: int = 0
    insufficient_funds: bool = False
    no_valid_routes: bool = False
    target_chain: Optional[str] = None

    @property
    def shortfall(self) -> Decimal:
        """Positive gap between required and achievable amount."""
        return max(Decimal("0"), self.required_amount - self.total_amount)

    @property
    def is_fulfilled(self) -> bool:
        return self.total_amount >= self.required_amount

    @classmethod
    def worst_case(cls, required_amount: Decimal, target_chain: Optional[str] = None) -> "RouteResponse":
        """Result used when planning failed outright."""
        return cls(
            required_amount=required_amount,
            total_amount=Decimal("0"),
            available_balance=Decimal("0"),
            insufficient_funds=True,
            no_valid_routes=True,
            target_chain=target_chain,
        )

    def to_dict(self) -> dict:
        """Convert to the camelCase wire shape."""
        return {
            "routes": [route.to_dict() for route in self.routes],
            "totalFee": float(self.total_fee),
            "totalAmount": float(self.total_amount),
            "estimatedTotalTime": self.estimated_total_time,
            "availableBalance": float(self.available_balance),
            "requiredAmount": float(self.required_amount),
            "insufficientFunds": self.insufficient_funds,
            "noValidRoutes": self.no_valid_routes,
            "targetChain": self.target_chain,
            "shortfall": float(self.shortfall),
        }
