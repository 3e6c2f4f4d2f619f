"""Error taxonomy for route planning.

Only validation and unsupported-chain errors reach the caller. Quote and
balance errors are recovered where they happen. Insufficient funds is a
normal result (``insufficient_funds=True``), never an exception.
"""

from enum import Enum
from typing import Optional


class BridgeRouteError(Exception):
    """Base class for route planning errors."""

    code = "BRIDGE_ROUTE_ERROR"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(BridgeRouteError):
    """Malformed route request."""

    code = "VALIDATION_ERROR"
    status_code = 400


class UnsupportedChainError(BridgeRouteError):
    """Target or source chain is not in the supported set."""

    code = "UNSUPPORTED_CHAIN"
    status_code = 400

    def __init__(self, chain: str):
        self.chain = chain
        super().__init__(f"Unsupported target chain: {chain}")


class QuoteUnavailableError(BridgeRouteError):
    """No fee quote could be produced for a source chain."""

    code = "QUOTE_UNAVAILABLE"

    def __init__(self, source_chain: str, target_chain: str, reason: str = ""):
        self.source_chain = source_chain
        self.target_chain = target_chain
        message = f"No quote for {source_chain} -> {target_chain}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class BalanceUnavailableError(BridgeRouteError):
    """Balance for a chain could not be determined."""

    code = "BALANCE_UNAVAILABLE"

    def __init__(self, chain: str, reason: str = ""):
        self.chain = chain
        message = f"Balance unavailable on {chain}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class RpcErrorCode(str, Enum):
    """Classification of JSON-RPC failures."""

    CALL_EXCEPTION = "CALL_EXCEPTION"  # Reverted / empty eth_call
    TIMEOUT = "TIMEOUT"
    SERVER_ERROR = "SERVER_ERROR"  # Transport or HTTP failure
    BAD_RESPONSE = "BAD_RESPONSE"  # Unparseable payload


class RpcError(BridgeRouteError):
    """A JSON-RPC call failed."""

    code = "RPC_ERROR"

    def __init__(self, rpc_code: RpcErrorCode, message: str, chain: Optional[str] = None):
        self.rpc_code = rpc_code
        self.chain = chain
        super().__init__(f"{rpc_code.value}: {message}")
