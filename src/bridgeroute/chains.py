"""Static configuration for the supported chains.

Five EVM chains hold the bridged token (USDC):
- Polygon, Arbitrum One, Base, Gnosis, Blast

Also holds the fee tables used by the fallback fee formula.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a blockchain."""

    name: str
    chain_id: int
    native_token: str
    token_address: str  # Bridged token (USDC) contract
    rpc_url: str
    token_decimals: int = 6


# ======================
# Chain Configurations
# ======================

CHAINS: dict[str, ChainConfig] = {
    "polygon": ChainConfig(
        name="Polygon",
        chain_id=137,
        native_token="MATIC",
        token_address="0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174",
        rpc_url="https://polygon.llamarpc.com",
    ),
    "arbitrum": ChainConfig(
        name="Arbitrum One",
        chain_id=42161,
        native_token="ETH",
        token_address="0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8",
        rpc_url="https://arbitrum.llamarpc.com",
    ),
    "base": ChainConfig(
        name="Base",
        chain_id=8453,
        native_token="ETH",
        token_address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        rpc_url="https://base.llamarpc.com",
    ),
    "gnosis": ChainConfig(
        name="Gnosis",
        chain_id=100,
        native_token="xDAI",
        token_address="0xDDAfbb505ad214D7b80b1f830fcCc89B60fb7A83",
        rpc_url="https://gnosis.drpc.org",
    ),
    "blast": ChainConfig(
        name="Blast",
        chain_id=81457,
        native_token="ETH",
        token_address="0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
        rpc_url="https://blast.blockpi.network/v1/rpc/public",
    ),
}


# ======================
# Fee Tables
# ======================

# Bridge fee percentage, keyed [source][target]
BRIDGE_FEES: dict[str, dict[str, Decimal]] = {
    "arbitrum": {"polygon": Decimal("1")},
    "base": {"polygon": Decimal("0.5")},
    "gnosis": {"polygon": Decimal("0.1")},
    "blast": {"polygon": Decimal("0.2")},
}
DEFAULT_BRIDGE_FEE_PERCENT = Decimal("1.5")

# Relative gas cost per source chain
GAS_MULTIPLIERS: dict[str, Decimal] = {
    "polygon": Decimal("1"),
    "arbitrum": Decimal("1.2"),
    "base": Decimal("0.8"),
    "gnosis": Decimal("0.5"),
    "blast": Decimal("0.9"),
}
DEFAULT_GAS_MULTIPLIER = Decimal("1")

# Gas fee per token unit bridged, before the chain multiplier
BASE_GAS_FEE = Decimal("0.001")

# Gas units a single-tx bridge typically consumes
AVERAGE_BRIDGE_GAS_UNITS = 250_000

# Rough native token prices for the gas-price-aware fee estimate
NATIVE_TOKEN_PRICES_USD: dict[str, Decimal] = {
    "ETH": Decimal("3000"),
    "MATIC": Decimal("0.7"),
    "xDAI": Decimal("1"),
}


def get_chain(chain: str) -> Optional[ChainConfig]:
    """Get chain configuration by identifier."""
    return CHAINS.get(chain.lower())


def is_supported_chain(chain: str) -> bool:
    """Check if a chain identifier is in the supported set."""
    return chain.lower() in CHAINS


def get_bridge_fee_percent(source: str, target: str) -> Decimal:
    """Get the bridge fee percentage for a source -> target lane."""
    return BRIDGE_FEES.get(source, {}).get(target, DEFAULT_BRIDGE_FEE_PERCENT)


def get_gas_multiplier(chain: str) -> Decimal:
    """Get the gas multiplier for a source chain."""
    return GAS_MULTIPLIERS.get(chain, DEFAULT_GAS_MULTIPLIER)
