"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from rescue_keeper.chains import BASE, LIFI_DIAMOND, build_trusted_targets, get_chain
from rescue_keeper.models import (
    MonitoredUser,
    PositionSnapshot,
    Quote,
    RawAccountData,
    RescuePolicy,
    SubmitResult,
)
from rescue_keeper.services import HealthMonitor, QuoteValidator, TickOrchestrator

USER_ADDRESS = "0x1111111111111111111111111111111111111111"
OTHER_USER_ADDRESS = "0x2222222222222222222222222222222222222222"
EXECUTOR_ADDRESS = "0x3333333333333333333333333333333333333333"
KEEPER_ADDRESS = "0x4444444444444444444444444444444444444444"


# ---------------------------------------------------------------------------
# Policy fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def enabled_policy() -> RescuePolicy:
    return RescuePolicy(
        enabled=True,
        min_health_factor=1.0,
        target_health_factor=1.3,
        max_amount_usd=10_000.0,
        cooldown_seconds=3600,
        allowed_tokens=("USDC", "USDT", "DAI"),
        allowed_chains=(1, 10, 8453),
    )


@pytest.fixture()
def enabled_record() -> dict[str, str]:
    """Raw policy record matching ``enabled_policy``."""
    return {
        "rescue.enabled": "true",
        "rescue.minHF": "1.0",
        "rescue.targetHF": "1.3",
        "rescue.maxAmountUSD": "10000",
        "rescue.cooldownSeconds": "3600",
        "rescue.allowedTokens": "USDC,USDT,DAI",
        "rescue.allowedChains": "1,10,8453",
    }


# ---------------------------------------------------------------------------
# Position fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def unhealthy_position() -> PositionSnapshot:
    """collateral $1000, debt $900, LT 0.85 → HF 0.944."""
    return PositionSnapshot(
        health_factor=1000 * 0.85 / 900,
        total_collateral_usd=1000.0,
        total_debt_usd=900.0,
        liquidation_threshold=0.85,
    )


@pytest.fixture()
def unhealthy_account_data() -> RawAccountData:
    """Raw Aave account data for ``unhealthy_position``."""
    return RawAccountData(
        total_collateral_base=1000 * 10**8,
        total_debt_base=900 * 10**8,
        available_borrows_base=0,
        current_liquidation_threshold=8500,
        ltv=8000,
        health_factor=944_444_444_444_444_444,
    )


@pytest.fixture()
def healthy_account_data() -> RawAccountData:
    return RawAccountData(
        total_collateral_base=2000 * 10**8,
        total_debt_base=900 * 10**8,
        available_borrows_base=500 * 10**8,
        current_liquidation_threshold=8500,
        ltv=8000,
        health_factor=1_888_888_888_888_888_888,
    )


# ---------------------------------------------------------------------------
# Orchestrator fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def user() -> MonitoredUser:
    return MonitoredUser(address=USER_ADDRESS, ens_name="alice.eth", label="alice")


@pytest.fixture()
def trusted_quote() -> Quote:
    return Quote(target=LIFI_DIAMOND, call_data="0xdeadbeef", value=0, estimated_output="376470000")


@pytest.fixture()
def policy_store(enabled_record: dict[str, str]) -> AsyncMock:
    store = AsyncMock()
    store.read_raw.return_value = enabled_record
    return store


@pytest.fixture()
def position_reader(unhealthy_account_data: RawAccountData) -> AsyncMock:
    reader = AsyncMock()
    reader.read.return_value = unhealthy_account_data
    return reader


@pytest.fixture()
def quoter(trusted_quote: Quote) -> AsyncMock:
    q = AsyncMock()
    q.quote.return_value = trusted_quote
    return q


@pytest.fixture()
def submitter() -> AsyncMock:
    s = AsyncMock()
    s.submit.return_value = SubmitResult(success=True, tx_id="0xabc123")
    return s


@pytest.fixture()
def notifier() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def orchestrator(
    user: MonitoredUser,
    policy_store: AsyncMock,
    position_reader: AsyncMock,
    quoter: AsyncMock,
    submitter: AsyncMock,
    notifier: AsyncMock,
) -> TickOrchestrator:
    return TickOrchestrator(
        chain=get_chain(BASE),
        users=[user],
        policy_store=policy_store,
        health_monitor=HealthMonitor(position_reader, timeout=1.0),
        quote_validator=QuoteValidator(quoter, build_trusted_targets(), timeout=1.0),
        submitter=submitter,
        executor_address=EXECUTOR_ADDRESS,
        notifiers=[notifier],
        call_timeout=1.0,
    )


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent(f"""\
    keeper:
      chain_id: 8453
      poll_interval_seconds: 30
      call_timeout_seconds: 10
      receipt_timeout_seconds: 90
      executor_address: "{EXECUTOR_ADDRESS}"
      keeper_address: "{KEEPER_ADDRESS}"
    users:
      - address: "{USER_ADDRESS}"
        ens_name: alice.eth
        label: alice
    chains:
      1:
        rpc_endpoints: ["https://eth.example.com"]
      8453:
        rpc_endpoints: ["https://base1.example.com", "https://base2.example.com"]
        rpc_timeout: 10
    policy_store:
      provider: ens
    lifi:
      api_url: "https://li.example.com/v1/"
      integrator: test-keeper
    trusted_targets:
      8453: ["0x5555555555555555555555555555555555555555"]
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
