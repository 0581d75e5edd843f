"""Integration tests for the RescueExecutor client with a mocked RPC client."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector

from rescue_keeper.chains import LIFI_DIAMOND
from rescue_keeper.execution import RescueExecutorClient
from rescue_keeper.execution.executor import EXECUTE_RESCUE
from rescue_keeper.models import ExecutionFailure, Quote, VerifiedStablecoin
from rescue_keeper.rpc import RpcError

USER = "0x1111111111111111111111111111111111111111"
EXECUTOR = "0x3333333333333333333333333333333333333333"
KEEPER = "0x4444444444444444444444444444444444444444"
USDC = VerifiedStablecoin(
    symbol="USDC",
    address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
    decimals=6,
    chain_id=8453,
)
QUOTE = Quote(target=LIFI_DIAMOND, call_data="0xdeadbeef", value=7)
TX_HASH = "0x" + "ab" * 32


@pytest.fixture()
def rpc() -> AsyncMock:
    client = AsyncMock()
    client.estimate_gas.return_value = 200_000
    client.send_transaction.return_value = TX_HASH
    client.get_transaction_receipt.return_value = {"status": "0x1", "transactionHash": TX_HASH}
    return client


@pytest.fixture()
def executor(rpc: AsyncMock) -> RescueExecutorClient:
    return RescueExecutorClient(
        rpc, EXECUTOR, KEEPER, receipt_timeout=0.05, receipt_poll_interval=0.01
    )


class TestSubmit:
    @pytest.mark.asyncio
    async def test_success(self, executor: RescueExecutorClient, rpc: AsyncMock) -> None:
        result = await executor.submit(USER, USDC, 376_470_588, QUOTE)

        assert result.success is True
        assert result.tx_id == TX_HASH
        assert result.failure is ExecutionFailure.NONE

        tx = rpc.send_transaction.call_args[0][0]
        assert tx["from"] == KEEPER
        assert tx["to"] == EXECUTOR
        assert tx["value"] == "0x7"
        assert tx["gas"] == hex(240_000)

        payload = bytes.fromhex(tx["data"][2:])
        assert payload[:4] == function_signature_to_4byte_selector(EXECUTE_RESCUE)
        user, token, amount, target, lifi_data, lifi_value = decode(
            ["address", "address", "uint256", "address", "bytes", "uint256"], payload[4:]
        )
        assert user.lower() == USER
        assert token.lower() == USDC.address.lower()
        assert amount == 376_470_588
        assert target.lower() == LIFI_DIAMOND.lower()
        assert lifi_data == bytes.fromhex("deadbeef")
        assert lifi_value == 7

    @pytest.mark.asyncio
    async def test_gas_estimation_failure_is_classified(
        self, executor: RescueExecutorClient, rpc: AsyncMock
    ) -> None:
        rpc.estimate_gas.side_effect = RpcError(
            {"code": 3, "message": "execution reverted: CooldownActive()"}
        )

        result = await executor.submit(USER, USDC, 1_000_000, QUOTE)

        assert result.success is False
        assert result.failure is ExecutionFailure.COOLDOWN_ACTIVE
        rpc.send_transaction.assert_not_called()

    @pytest.mark.asyncio
    async def test_send_failure_is_classified(
        self, executor: RescueExecutorClient, rpc: AsyncMock
    ) -> None:
        rpc.send_transaction.side_effect = RpcError(
            {"code": -32000, "message": "insufficient funds for gas * price + value"}
        )

        result = await executor.submit(USER, USDC, 1_000_000, QUOTE)

        assert result.failure is ExecutionFailure.INSUFFICIENT_FUNDS
        assert result.tx_id is None

    @pytest.mark.asyncio
    async def test_reverted_receipt(self, executor: RescueExecutorClient, rpc: AsyncMock) -> None:
        rpc.get_transaction_receipt.return_value = {"status": "0x0"}

        result = await executor.submit(USER, USDC, 1_000_000, QUOTE)

        assert result.success is False
        assert result.tx_id == TX_HASH
        assert result.failure is ExecutionFailure.REVERTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [None, "", "pending"])
    async def test_receipt_without_usable_status_is_reverted(
        self, executor: RescueExecutorClient, rpc: AsyncMock, status: object
    ) -> None:
        rpc.get_transaction_receipt.return_value = {"status": status, "transactionHash": TX_HASH}

        result = await executor.submit(USER, USDC, 1_000_000, QUOTE)

        assert result.success is False
        assert result.tx_id == TX_HASH
        assert result.failure is ExecutionFailure.REVERTED

    @pytest.mark.asyncio
    async def test_receipt_timeout_keeps_tx_hash(
        self, executor: RescueExecutorClient, rpc: AsyncMock
    ) -> None:
        rpc.get_transaction_receipt.return_value = None

        result = await executor.submit(USER, USDC, 1_000_000, QUOTE)

        assert result.success is False
        assert result.failure is ExecutionFailure.TIMEOUT
        assert result.tx_id == TX_HASH
        assert rpc.get_transaction_receipt.await_count >= 2

    @pytest.mark.asyncio
    async def test_receipt_lookup_errors_are_retried(
        self, executor: RescueExecutorClient, rpc: AsyncMock
    ) -> None:
        rpc.get_transaction_receipt.side_effect = [
            RuntimeError("All RPC endpoints failed"),
            {"status": "0x1"},
        ]

        result = await executor.submit(USER, USDC, 1_000_000, QUOTE)

        assert result.success is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "quote, amount",
        [
            (Quote(target="", call_data="0xdeadbeef"), 1_000_000),
            (Quote(target=LIFI_DIAMOND, call_data=""), 1_000_000),
            (QUOTE, 0),
        ],
    )
    async def test_invalid_request(
        self, executor: RescueExecutorClient, rpc: AsyncMock, quote: Quote, amount: int
    ) -> None:
        result = await executor.submit(USER, USDC, amount, quote)

        assert result.failure is ExecutionFailure.INVALID_REQUEST
        rpc.estimate_gas.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_executor_address(self, rpc: AsyncMock) -> None:
        executor = RescueExecutorClient(rpc, "not-an-address", KEEPER)

        result = await executor.submit(USER, USDC, 1_000_000, QUOTE)

        assert result.failure is ExecutionFailure.INVALID_REQUEST


class TestLastRescueTime:
    @pytest.mark.asyncio
    async def test_decodes_timestamp(self, executor: RescueExecutorClient, rpc: AsyncMock) -> None:
        rpc.eth_call.return_value = "0x" + encode(["uint256"], [1_700_000_000]).hex()

        assert await executor.last_rescue_time(USER) == 1_700_000_000
        to, data = rpc.eth_call.call_args[0]
        assert to == EXECUTOR
        assert data.startswith(
            "0x" + function_signature_to_4byte_selector("lastRescueTime(address)").hex()
        )

    @pytest.mark.asyncio
    async def test_empty_result_is_zero(self, executor: RescueExecutorClient, rpc: AsyncMock) -> None:
        rpc.eth_call.return_value = "0x"
        assert await executor.last_rescue_time(USER) == 0
