"""Abstract fee quoting interface."""

from abc import ABC, abstractmethod
from decimal import Decimal

from bridgeroute.models import FeeQuote

# Fallback quotes assume a five minute bridge
DEFAULT_ESTIMATED_TIME = 300


class FeeQuoter(ABC):
    """Abstract base class for bridge fee quoters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Quoter name identifier."""
        pass

    @abstractmethod
    async def quote(
        self,
        source_chain: str,
        target_chain: str,
        amount: Decimal,
        token_address: str,
        owner: str,
    ) -> FeeQuote:
        """
        Price a bridge transfer.

        Args:
            source_chain: Chain the funds leave from (e.g., "arbitrum")
            target_chain: Chain the funds arrive on
            amount: Amount in token units
            token_address: Token being bridged
            owner: Address that owns the funds

        Returns:
            FeeQuote with gas fee, bridge fee, time and protocol

        Raises:
            QuoteUnavailableError: if no price can be produced
        """
        pass
