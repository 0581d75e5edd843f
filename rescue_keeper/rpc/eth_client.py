"""EVM JSON-RPC client with fallback support."""
from __future__ import annotations

import logging
import ssl
from typing import Any

import aiohttp
import certifi

from ..config import ChainConfig

logger = logging.getLogger(__name__)


class RpcError(RuntimeError):
    """JSON-RPC error response (the node answered; retrying elsewhere won't help)."""

    def __init__(self, error: dict[str, Any]) -> None:
        self.code = error.get("code")
        self.data = error.get("data")
        self.rpc_message = str(error.get("message", ""))
        detail = f" data={self.data}" if self.data else ""
        super().__init__(f"RPC Error {self.code}: {self.rpc_message}{detail}")


class EthRpcClient:
    """EVM JSON-RPC client with automatic endpoint fallback."""

    def __init__(self, config: ChainConfig) -> None:
        self.endpoints = list(config.rpc_endpoints)
        self.timeout = config.rpc_timeout
        self.current_rpc_index = 0

    async def rpc_call(self, method: str, params: list[Any]) -> Any:
        """Make RPC call with fallback to alternative endpoints."""
        if not self.endpoints:
            raise RuntimeError("No RPC endpoints configured")

        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        ssl_context = ssl.create_default_context(cafile=certifi.where())

        last_error: Exception | None = None
        for attempt in range(len(self.endpoints)):
            rpc_index = (self.current_rpc_index + attempt) % len(self.endpoints)
            rpc_url = self.endpoints[rpc_index]

            try:
                connector = aiohttp.TCPConnector(ssl=ssl_context)
                async with aiohttp.ClientSession(connector=connector) as session:
                    async with session.post(
                        rpc_url,
                        json=payload,
                        timeout=aiohttp.ClientTimeout(total=self.timeout),
                    ) as response:
                        result = await response.json(content_type=None)
            except Exception as e:
                last_error = e
                logger.warning("RPC endpoint %s failed: %s", rpc_url, e)
                if attempt < len(self.endpoints) - 1:
                    logger.info("Trying next endpoint...")
                continue

            if rpc_index != self.current_rpc_index:
                logger.info("Switched to RPC endpoint: %s", rpc_url)
                self.current_rpc_index = rpc_index

            if "error" in result:
                raise RpcError(result["error"])
            return result.get("result")

        raise RuntimeError(f"All RPC endpoints failed. Last error: {last_error}")

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        """Execute a read-only call; returns the hex-encoded return data."""
        result = await self.rpc_call("eth_call", [{"to": to, "data": data}, block])
        return result or "0x"

    async def estimate_gas(self, tx: dict[str, Any]) -> int:
        return int(await self.rpc_call("eth_estimateGas", [tx]), 16)

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """Submit a transaction signed by the node-managed ``from`` account."""
        return await self.rpc_call("eth_sendTransaction", [tx])

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.rpc_call("eth_getTransactionReceipt", [tx_hash])
