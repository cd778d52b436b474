"""
JSON-RPC client for EVM chains.

Features:
- Async httpx transport
- Chain ID validation on first use
- Hex quantity decoding for the handful of methods the updater needs
- RPC errors surfaced with their node error code and data
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import httpx

from .config import ChainConfig, get_chain_config
from .errors import ConfigurationError, RPCError

logger = logging.getLogger(__name__)


def _to_int(value: Any) -> int:
    if isinstance(value, str):
        return int(value, 16)
    return int(value)


class ChainRPCClient:
    """
    JSON-RPC client bound to one chain.

    The chain id reported by the node is checked against the configured one
    before the first real call, so a mis-pointed RPC URL fails fast instead
    of signing for the wrong network.
    """

    def __init__(
        self,
        chain_config: ChainConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        validate_chain_id: bool = True,
    ):
        self._config = chain_config
        self._rpc_url = chain_config.require_rpc_url()
        self._http_client = http_client
        self._owns_client = http_client is None
        self._validate_chain_id = validate_chain_id
        self._verified_chain_id: Optional[int] = None
        self._request_id = 0

    @property
    def chain_id(self) -> int:
        return self._config.chain_id

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.http_timeout_seconds, connect=10.0),
            )
        return self._http_client

    async def connect(self) -> None:
        """
        Validate the node's chain ID against configuration.

        Raises:
            ConfigurationError: on a chain ID mismatch
        """
        if self._verified_chain_id is not None or not self._validate_chain_id:
            return

        chain_id = _to_int(await self._post("eth_chainId", []))
        if chain_id != self._config.chain_id:
            logger.error(
                f"Chain ID mismatch for {self._config.slug}! "
                f"Expected {self._config.chain_id}, got {chain_id}."
            )
            raise ConfigurationError(
                f"RPC endpoint for {self._config.slug} reports chain id {chain_id}, "
                f"expected {self._config.chain_id}",
                details={"expected": self._config.chain_id, "received": chain_id},
            )
        self._verified_chain_id = chain_id

    async def _post(self, method: str, params: List[Any]) -> Any:
        """Make JSON-RPC call."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        client = await self._get_client()
        start_time = time.time()
        try:
            response = await client.post(
                self._rpc_url,
                json=payload,
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RPCError(f"RPC transport error calling {method}: {e}") from e

        try:
            result = response.json()
        except ValueError as e:
            raise RPCError(f"Invalid JSON-RPC response for {method}") from e
        if not isinstance(result, dict):
            raise RPCError(f"Invalid JSON-RPC response for {method}")

        latency_ms = (time.time() - start_time) * 1000

        if "error" in result:
            error = result["error"]
            if isinstance(error, dict):
                raise RPCError(
                    message=error.get("message", str(error)),
                    code=error.get("code"),
                    data=error.get("data"),
                )
            raise RPCError(str(error))

        logger.debug(f"RPC {method} on {self._config.slug} in {latency_ms:.0f}ms")
        return result.get("result")

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Make a JSON-RPC call.

        Raises:
            ConfigurationError: If chain ID validation fails
            RPCError: If the node returns an error or the transport fails
        """
        await self.connect()
        return await self._post(method, params or [])

    async def eth_call(self, tx: Dict[str, Any], block: str = "latest") -> str:
        """Execute a read-only call."""
        return await self.call("eth_call", [tx, block])

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        """Estimate gas for a transaction."""
        return _to_int(await self.call("eth_estimateGas", [tx]))

    async def get_gas_price(self) -> int:
        """Get current gas price in wei."""
        return _to_int(await self.call("eth_gasPrice"))

    async def get_max_priority_fee(self) -> int:
        """Get max priority fee for EIP-1559."""
        try:
            return _to_int(await self.call("eth_maxPriorityFeePerGas"))
        except RPCError:
            # Fallback for chains that don't support this
            return 1_000_000_000  # 1 gwei

    async def get_base_fee(self) -> Optional[int]:
        """Get base fee of the latest block, None on pre-London chains."""
        block = await self.call("eth_getBlockByNumber", ["latest", False])
        if block and block.get("baseFeePerGas") is not None:
            return _to_int(block["baseFeePerGas"])
        return None

    async def get_nonce(self, address: str, block: str = "pending") -> int:
        """Get transaction count (account nonce) for address."""
        return _to_int(await self.call("eth_getTransactionCount", [address, block]))

    async def send_raw_transaction(self, signed_tx: str) -> str:
        """Broadcast signed transaction."""
        return await self.call("eth_sendRawTransaction", [signed_tx])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """Get transaction receipt, None while pending."""
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def close(self) -> None:
        """Close HTTP client if this instance created it."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    async def __aenter__(self) -> "ChainRPCClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


_rpc_clients: Dict[int, ChainRPCClient] = {}


def get_rpc_client(chain_id: int, chain_config: Optional[ChainConfig] = None) -> ChainRPCClient:
    """Get or create the RPC client for a chain."""
    chain_id = int(chain_id)
    if chain_id not in _rpc_clients:
        _rpc_clients[chain_id] = ChainRPCClient(chain_config or get_chain_config(chain_id))
    return _rpc_clients[chain_id]


async def close_all_clients() -> None:
    """Close all RPC clients."""
    for client in _rpc_clients.values():
        await client.close()
    _rpc_clients.clear()
