"""Unit tests for fixed-point conversions and formatting."""
from __future__ import annotations

import math

import pytest

from rescue_keeper.models import VerifiedStablecoin
from rescue_keeper.units import (
    UINT256_MAX,
    base_currency_to_usd,
    bps_to_decimal,
    format_health_factor,
    format_usd,
    token_units_to_usd,
    usd_to_token_units,
    wad_to_decimal,
)

USDC = VerifiedStablecoin(symbol="USDC", address="0xusdc", decimals=6, chain_id=8453)
DAI = VerifiedStablecoin(symbol="DAI", address="0xdai", decimals=18, chain_id=8453)


class TestAaveUnits:
    def test_base_currency(self) -> None:
        assert base_currency_to_usd(1_234_567_890_000) == pytest.approx(12345.6789)

    def test_wad(self) -> None:
        assert wad_to_decimal(1_500_000_000_000_000_000) == 1.5

    def test_wad_max_is_infinite(self) -> None:
        assert wad_to_decimal(UINT256_MAX) == math.inf

    def test_bps(self) -> None:
        assert bps_to_decimal(8250) == 0.825


class TestUsdToTokenUnits:
    def test_six_decimals(self) -> None:
        assert usd_to_token_units(376.47, USDC) == 376_470_000

    def test_floors_fractional_units(self) -> None:
        assert usd_to_token_units(1.0000009, USDC) == 1_000_000

    def test_eighteen_decimals(self) -> None:
        assert usd_to_token_units(2.5, DAI) == 2_500_000_000_000_000_000

    @pytest.mark.parametrize("amount", [0.0, -1.0, math.nan, math.inf])
    def test_non_positive_or_non_finite_is_zero(self, amount: float) -> None:
        assert usd_to_token_units(amount, USDC) == 0

    def test_dust_rounds_to_zero(self) -> None:
        assert usd_to_token_units(0.0000001, USDC) == 0

    def test_rejects_unverified_token(self) -> None:
        with pytest.raises(TypeError):
            usd_to_token_units(10.0, "USDC")  # type: ignore[arg-type]

    def test_back_to_usd(self) -> None:
        assert token_units_to_usd(1_250_000, USDC) == 1.25


class TestFormatting:
    def test_usd(self) -> None:
        assert format_usd(1234.5) == "$1,234.50"

    def test_health_factor(self) -> None:
        assert format_health_factor(1.23456) == "1.2346"

    @pytest.mark.parametrize("value", [math.inf, 1e9, math.nan])
    def test_health_factor_infinite(self, value: float) -> None:
        assert format_health_factor(value) == "∞"
