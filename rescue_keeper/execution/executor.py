"""RescueExecutor contract client.

Transactions are sent with ``eth_sendTransaction`` from the keeper account,
so signing stays with the node (e.g. an Anvil fork or a node-managed key).
"""
from __future__ import annotations

import asyncio
import logging
import time

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, is_address, to_checksum_address

from ..models import ExecutionFailure, Quote, SubmitResult, VerifiedStablecoin
from ..rpc import EthRpcClient
from .errors import classify_execution_error

logger = logging.getLogger(__name__)

LAST_RESCUE_TIME = "lastRescueTime(address)"
EXECUTE_RESCUE = "executeRescue(address,address,uint256,address,bytes,uint256)"

# Headroom over the node's gas estimate.
GAS_BUFFER_PERCENT = 120


def encode_execute_rescue(
    user: str, token: str, amount: int, quote: Quote
) -> str:
    call_data = bytes.fromhex(quote.call_data[2:] if quote.call_data.startswith("0x") else quote.call_data)
    args = encode(
        ["address", "address", "uint256", "address", "bytes", "uint256"],
        [
            to_checksum_address(user),
            to_checksum_address(token),
            amount,
            to_checksum_address(quote.target),
            call_data,
            quote.value,
        ],
    )
    return "0x" + (function_signature_to_4byte_selector(EXECUTE_RESCUE) + args).hex()


def _receipt_succeeded(receipt: dict) -> bool:
    """A missing or malformed status counts as a revert."""
    status = receipt.get("status")
    if status is None:
        return False
    try:
        return int(str(status), 16) == 1
    except ValueError:
        return False


class RescueExecutorClient:
    """Submit rescues to, and read cooldown state from, the executor contract."""

    def __init__(
        self,
        client: EthRpcClient,
        executor_address: str,
        keeper_address: str,
        receipt_timeout: float = 120.0,
        receipt_poll_interval: float = 2.0,
    ) -> None:
        self._client = client
        self._executor = executor_address
        self._keeper = keeper_address
        self._receipt_timeout = receipt_timeout
        self._receipt_poll_interval = receipt_poll_interval

    async def last_rescue_time(self, user: str) -> int:
        data = "0x" + (
            function_signature_to_4byte_selector(LAST_RESCUE_TIME)
            + encode(["address"], [to_checksum_address(user)])
        ).hex()
        result = await self._client.eth_call(self._executor, data)
        payload = bytes.fromhex(result[2:])
        if len(payload) < 32:
            return 0
        (value,) = decode(["uint256"], payload)
        return value

    def _failure(self, message: str, tx_id: str | None = None) -> SubmitResult:
        failure = classify_execution_error(message)
        return SubmitResult(success=False, tx_id=tx_id, error=message[:300], failure=failure)

    async def submit(
        self,
        user: str,
        token: VerifiedStablecoin,
        amount: int,
        quote: Quote,
    ) -> SubmitResult:
        """Submit ``executeRescue`` and wait for the receipt. Never raises."""
        if not is_address(self._executor):
            return SubmitResult(
                success=False,
                error="Invalid executor address",
                failure=ExecutionFailure.INVALID_REQUEST,
            )
        if not quote.target or not quote.call_data or amount <= 0:
            return SubmitResult(
                success=False,
                error="Quote is missing required fields",
                failure=ExecutionFailure.INVALID_REQUEST,
            )

        try:
            tx = {
                "from": self._keeper,
                "to": self._executor,
                "data": encode_execute_rescue(user, token.address, amount, quote),
                "value": hex(quote.value),
            }
        except Exception as e:
            return SubmitResult(
                success=False, error=f"Encoding failed: {e}", failure=ExecutionFailure.INVALID_REQUEST
            )

        try:
            gas = await self._client.estimate_gas(tx)
        except Exception as e:
            result = self._failure(f"Gas estimation failed: {e}")
            logger.error(
                "Gas estimation failed — user=%s failure=%s", user, result.failure.value
            )
            return result

        tx["gas"] = hex(gas * GAS_BUFFER_PERCENT // 100)

        try:
            tx_hash = await self._client.send_transaction(tx)
        except Exception as e:
            return self._failure(f"Transaction submission failed: {e}")

        logger.info("Rescue transaction submitted — user=%s tx=%s", user, tx_hash)
        return await self._wait_for_receipt(tx_hash)

    async def _wait_for_receipt(self, tx_hash: str) -> SubmitResult:
        deadline = time.monotonic() + self._receipt_timeout
        while True:
            try:
                receipt = await self._client.get_transaction_receipt(tx_hash)
            except Exception as e:
                logger.warning("Receipt lookup failed for %s: %s", tx_hash, e)
                receipt = None

            if receipt:
                if _receipt_succeeded(receipt):
                    return SubmitResult(success=True, tx_id=tx_hash)
                return SubmitResult(
                    success=False,
                    tx_id=tx_hash,
                    error="Transaction was mined but reverted",
                    failure=ExecutionFailure.REVERTED,
                )

            if time.monotonic() >= deadline:
                return SubmitResult(
                    success=False,
                    tx_id=tx_hash,
                    error=f"No receipt after {self._receipt_timeout:.0f}s",
                    failure=ExecutionFailure.TIMEOUT,
                )
            await asyncio.sleep(self._receipt_poll_interval)
