"""ENS text-record policy store."""
from __future__ import annotations

import asyncio
import logging

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, keccak

from ..policy.defaults import POLICY_KEYS
from ..rpc import EthRpcClient

logger = logging.getLogger(__name__)

# Mainnet ENS registry
ENS_REGISTRY_ADDRESS = "0x00000000000C2E074eC69A0dFb2997BA6C7d2e1e"

ZERO_ADDRESS = "0x" + "0" * 40


def namehash(name: str) -> bytes:
    """EIP-137 namehash of a (lower-cased) ENS name."""
    node = b"\x00" * 32
    name = name.strip().lower()
    if name:
        for label in reversed(name.split(".")):
            node = keccak(node + keccak(text=label))
    return node


def _call_data(signature: str, types: list[str], args: list) -> str:
    return "0x" + (function_signature_to_4byte_selector(signature) + encode(types, args)).hex()


def _payload(result: str) -> bytes:
    return bytes.fromhex(result[2:] if result.startswith("0x") else result)


class EnsPolicyStore:
    """Read ``rescue.*`` text records from a name's ENS resolver."""

    def __init__(self, client: EthRpcClient, registry: str = ENS_REGISTRY_ADDRESS) -> None:
        self._client = client
        self._registry = registry

    async def _resolver(self, node: bytes) -> str | None:
        result = await self._client.eth_call(
            self._registry, _call_data("resolver(bytes32)", ["bytes32"], [node])
        )
        payload = _payload(result)
        if len(payload) < 32:
            return None
        (resolver,) = decode(["address"], payload)
        if not resolver or resolver.lower() == ZERO_ADDRESS:
            return None
        return resolver

    async def _text(self, resolver: str, node: bytes, key: str) -> str | None:
        try:
            result = await self._client.eth_call(
                resolver, _call_data("text(bytes32,string)", ["bytes32", "string"], [node, key])
            )
            payload = _payload(result)
            if not payload:
                return None
            (value,) = decode(["string"], payload)
        except Exception as e:
            logger.warning("Failed to read ENS text record %s: %s", key, e)
            return None
        return value or None

    async def read_raw(self, name: str) -> dict[str, str] | None:
        node = namehash(name)
        resolver = await self._resolver(node)
        if resolver is None:
            logger.info("No ENS resolver set for %s", name)
            return None

        values = await asyncio.gather(*(self._text(resolver, node, key) for key in POLICY_KEYS))
        records = {key: value for key, value in zip(POLICY_KEYS, values) if value is not None}
        logger.debug("Read %d rescue records for %s", len(records), name)
        return records or None
