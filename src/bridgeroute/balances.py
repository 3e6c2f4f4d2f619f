"""Balance query collaborator.

Reads the owner's token balance on each supported chain. A chain whose
balance cannot be determined contributes zero instead of failing the
request.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from bridgeroute.chains import CHAINS, get_chain
from bridgeroute.config import Settings, get_settings
from bridgeroute.errors import BalanceUnavailableError, RpcError, RpcErrorCode
from bridgeroute.models import ChainBalance
from bridgeroute.rpc import RpcClientRegistry

logger = logging.getLogger(__name__)

# Errors worth another attempt
RETRYABLE_CODES = frozenset({RpcErrorCode.CALL_EXCEPTION, RpcErrorCode.TIMEOUT})

# Per-chain errors that mean "verified zero balance" rather than a fault.
# Gnosis' token contract reverts balance reads for unfunded accounts.
ZERO_BALANCE_OVERRIDES: dict[str, frozenset[RpcErrorCode]] = {
    "gnosis": frozenset({RpcErrorCode.CALL_EXCEPTION}),
}


class BalanceSource(ABC):
    """Abstract source of per-chain token balances."""

    @abstractmethod
    async def get_balance(self, chain: str, token_address: str, owner: str) -> Decimal:
        """
        Get the owner's token balance on a chain.

        Args:
            chain: Chain identifier (e.g., "polygon")
            token_address: Token contract on that chain
            owner: Owner address

        Returns:
            Balance in token units

        Raises:
            BalanceUnavailableError: if the balance cannot be determined
        """
        pass


class StaticBalanceSource(BalanceSource):
    """Fixed balances, for dry runs and tests. Unlisted chains hold zero."""

    def __init__(self, balances: dict[str, Decimal]):
        self.balances = {chain.lower(): Decimal(str(amount)) for chain, amount in balances.items()}

    async def get_balance(self, chain: str, token_address: str, owner: str) -> Decimal:
        return self.balances.get(chain.lower(), Decimal("0"))


class RpcBalanceSource(BalanceSource):
    """Reads ERC-20 balances over JSON-RPC with retry and backoff."""

    def __init__(
        self,
        registry: RpcClientRegistry,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        zero_balance_overrides: Optional[dict[str, frozenset[RpcErrorCode]]] = None,
    ):
        """Initialize the balance source.

        Args:
            registry: Shared per-chain RPC clients
            max_attempts: Attempts before giving up
            backoff_base: Delay unit; attempt ``n`` waits ``base * 2**n`` seconds
            zero_balance_overrides: Chain -> error codes that mean zero balance
        """
        self.registry = registry
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.zero_balance_overrides = (
            ZERO_BALANCE_OVERRIDES if zero_balance_overrides is None else zero_balance_overrides
        )

    async def get_balance(self, chain: str, token_address: str, owner: str) -> Decimal:
        client = self.registry.get(chain)
        last_error: Optional[RpcError] = None

        for attempt in range(self.max_attempts):
            try:
                raw_balance, decimals = await asyncio.gather(
                    client.balance_of(token_address, owner),
                    client.decimals(token_address),
                )
                balance = Decimal(raw_balance) / (Decimal(10) ** decimals)
                logger.debug(f"Balance on {chain}: {balance} (raw={raw_balance}, decimals={decimals})")
                return balance

            except RpcError as e:
                last_error = e
                logger.warning(f"Balance attempt {attempt + 1} failed for {chain}: {e}")

                if e.rpc_code in self.zero_balance_overrides.get(chain, frozenset()):
                    logger.warning(f"{chain} balance check failed with {e.rpc_code.value}, assuming zero balance")
                    return Decimal("0")

                if e.rpc_code not in RETRYABLE_CODES:
                    break

                if attempt + 1 < self.max_attempts:
                    await asyncio.sleep(self.backoff_base * (2 ** attempt))

        raise BalanceUnavailableError(chain, str(last_error) if last_error else "")


async def fetch_chain_balance(source: BalanceSource, chain: str, owner: str) -> ChainBalance:
    """Fetch one chain's balance, substituting zero on failure."""
    config = get_chain(chain)
    if config is None:
        logger.error(f"No configuration for chain {chain}, using zero balance")
        return ChainBalance(chain=chain, balance=Decimal("0"))

    try:
        balance = await source.get_balance(chain, config.token_address, owner)
    except BalanceUnavailableError as e:
        logger.error(f"All attempts failed for {chain}: {e}")
        balance = Decimal("0")
    except Exception as e:
        logger.error(f"Unexpected balance error on {chain}: {type(e).__name__}: {e}")
        balance = Decimal("0")

    logger.info(f"Balance for {chain}: {balance}")
    return ChainBalance(chain=chain, balance=balance)


async def fetch_all_balances(
    source: BalanceSource,
    owner: str,
    chains: Optional[list[str]] = None,
) -> list[ChainBalance]:
    """Fetch balances for all chains concurrently.

    Completes once every chain has resolved, either with its balance or
    with the zero fallback.
    """
    chains = chains or list(CHAINS.keys())
    logger.info(f"Fetching balances from chains: {', '.join(chains)}")
    return list(await asyncio.gather(*(fetch_chain_balance(source, chain, owner) for chain in chains)))


def create_balance_source(
    registry: Optional[RpcClientRegistry] = None,
    settings: Optional[Settings] = None,
) -> BalanceSource:
    """Create the balance source for the current settings.

    Uses static balances when configured, otherwise RPC.
    """
    settings = settings or get_settings()

    if settings.static_balances:
        logger.warning("Using static balances - RPC balance queries disabled")
        return StaticBalanceSource(settings.static_balances)

    if registry is None:
        registry = RpcClientRegistry(settings)

    return RpcBalanceSource(
        registry,
        max_attempts=settings.balance_retry_attempts,
        backoff_base=settings.balance_backoff_base,
    )
