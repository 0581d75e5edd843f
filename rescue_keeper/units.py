"""Fixed-point conversions between Aave-native integers and decimals."""
from __future__ import annotations

import math
from decimal import ROUND_FLOOR, Decimal

from .constants import (
    BASE_CURRENCY_DECIMALS,
    BPS_DENOMINATOR,
    STABLECOIN_PRICE_USD,
    WAD_DECIMALS,
)
from .models import VerifiedStablecoin

# Aave reports type(uint256).max as the health factor of a debt-free account.
UINT256_MAX = 2**256 - 1


def base_currency_to_usd(value: int) -> float:
    return value / 10**BASE_CURRENCY_DECIMALS


def wad_to_decimal(value: int) -> float:
    if value >= UINT256_MAX:
        return math.inf
    return value / 10**WAD_DECIMALS


def bps_to_decimal(value: int) -> float:
    return value / BPS_DENOMINATOR


def usd_to_token_units(amount_usd: float, token: VerifiedStablecoin) -> int:
    """Convert USD into token base units at a fixed $1.00 price (floored).

    Only ``VerifiedStablecoin`` is accepted; the price assumption is wrong for
    anything else.
    """
    if not isinstance(token, VerifiedStablecoin):
        raise TypeError(
            f"usd_to_token_units requires a VerifiedStablecoin, got {type(token).__name__}"
        )
    if not math.isfinite(amount_usd) or amount_usd <= 0:
        return 0
    token_amount = Decimal(repr(amount_usd)) / Decimal(repr(STABLECOIN_PRICE_USD))
    scaled = token_amount.scaleb(token.decimals).to_integral_value(rounding=ROUND_FLOOR)
    return int(scaled)


def token_units_to_usd(units: int, token: VerifiedStablecoin) -> float:
    return units / 10**token.decimals * STABLECOIN_PRICE_USD


def format_usd(value: float) -> str:
    return f"${value:,.2f}"


def format_health_factor(value: float) -> str:
    if not math.isfinite(value) or value > 100:
        return "∞"
    return f"{value:.4f}"
