"""JSON-RPC access to EVM chains.

Reads token balances and gas prices with raw ``eth_call`` /
``eth_gasPrice`` requests. One ``httpx.AsyncClient`` per chain is held by
``RpcClientRegistry`` for the process lifetime.
"""

import logging
from typing import Any, Optional

import httpx

from bridgeroute.chains import CHAINS
from bridgeroute.config import Settings, get_settings
from bridgeroute.errors import RpcError, RpcErrorCode

logger = logging.getLogger(__name__)

# ERC-20 function selectors
BALANCE_OF_SELECTOR = "0x70a08231"
DECIMALS_SELECTOR = "0x313ce567"


class RpcClient:
    """JSON-RPC client bound to a single chain."""

    def __init__(self, chain: str, rpc_url: str, client: httpx.AsyncClient):
        self.chain = chain
        self.rpc_url = rpc_url
        self._client = client
        self._request_id = 0

    async def request(self, method: str, params: list) -> Any:
        """Send a JSON-RPC request and return its ``result``."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._request_id,
        }

        try:
            response = await self._client.post(self.rpc_url, json=payload)
        except httpx.TimeoutException as e:
            raise RpcError(RpcErrorCode.TIMEOUT, f"{method} timed out", chain=self.chain) from e
        except httpx.HTTPError as e:
            raise RpcError(
                RpcErrorCode.SERVER_ERROR, f"{method} failed: {e}", chain=self.chain
            ) from e

        if response.status_code != 200:
            raise RpcError(
                RpcErrorCode.SERVER_ERROR,
                f"{method} returned HTTP {response.status_code}",
                chain=self.chain,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RpcError(
                RpcErrorCode.BAD_RESPONSE, f"{method} returned invalid JSON", chain=self.chain
            ) from e

        if "error" in data:
            error = data["error"] or {}
            message = error.get("message", "unknown error") if isinstance(error, dict) else str(error)
            # Reverted or rejected contract reads
            code = RpcErrorCode.CALL_EXCEPTION if method == "eth_call" else RpcErrorCode.SERVER_ERROR
            raise RpcError(code, f"{method}: {message}", chain=self.chain)

        if "result" not in data:
            raise RpcError(RpcErrorCode.BAD_RESPONSE, f"{method} missing result", chain=self.chain)

        return data["result"]

    async def eth_call(self, to: str, data: str) -> str:
        """Execute a read-only contract call."""
        result = await self.request("eth_call", [{"to": to, "data": data}, "latest"])
        if not result or result == "0x":
            raise RpcError(
                RpcErrorCode.CALL_EXCEPTION,
                f"empty result from {to}",
                chain=self.chain,
            )
        return result

    async def balance_of(self, token_address: str, owner: str) -> int:
        """Get raw ERC-20 balance in base units."""
        data = BALANCE_OF_SELECTOR + owner[2:].lower().zfill(64)
        return self._to_int(await self.eth_call(token_address, data))

    async def decimals(self, token_address: str) -> int:
        """Get ERC-20 decimals."""
        return self._to_int(await self.eth_call(token_address, DECIMALS_SELECTOR))

    async def gas_price(self) -> int:
        """Get current gas price in wei."""
        return self._to_int(await self.request("eth_gasPrice", []))

    async def aclose(self) -> None:
        await self._client.aclose()

    def _to_int(self, value: str) -> int:
        try:
            return int(value, 16)
        except (TypeError, ValueError) as e:
            raise RpcError(
                RpcErrorCode.BAD_RESPONSE, f"not a hex quantity: {value!r}", chain=self.chain
            ) from e


class RpcClientRegistry:
    """Process-scoped RPC clients keyed by chain identifier."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Build one client per configured chain.

        Args:
            settings: Settings for RPC overrides and timeout
            transport: Optional httpx transport (used by tests)
        """
        settings = settings or get_settings()
        self._clients: dict[str, RpcClient] = {}

        for chain, config in CHAINS.items():
            rpc_url = settings.get_rpc_url(chain) or config.rpc_url
            http_client = httpx.AsyncClient(timeout=settings.rpc_timeout, transport=transport)
            self._clients[chain] = RpcClient(chain, rpc_url, http_client)

        logger.info(f"RPC registry ready for {len(self._clients)} chains")

    def get(self, chain: str) -> RpcClient:
        """Get the client for a chain."""
        try:
            return self._clients[chain.lower()]
        except KeyError:
            raise RpcError(
                RpcErrorCode.SERVER_ERROR, f"no RPC client for chain '{chain}'", chain=chain
            ) from None

    async def close(self) -> None:
        """Close all underlying HTTP connections."""
        for client in self._clients.values():
            await client.aclose()
        logger.info("RPC registry closed")
