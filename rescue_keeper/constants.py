"""Protocol and token constants shared across the keeper."""
from __future__ import annotations

# Tokens for which a fixed $1.00 price is a valid assumption.
STABLECOIN_SYMBOLS: tuple[str, ...] = ("USDC", "USDT", "DAI", "FRAX", "LUSD", "GUSD", "USDP")

STABLECOIN_DECIMALS: dict[str, int] = {
    "USDC": 6,
    "USDT": 6,
    "DAI": 18,
    "FRAX": 18,
    "LUSD": 18,
    "GUSD": 2,
    "USDP": 18,
}

STABLECOIN_PRICE_USD = 1.0

# Aave V3 fixed-point scales
BASE_CURRENCY_DECIMALS = 8
WAD_DECIMALS = 18
BPS_DENOMINATOR = 10_000

# Risk tiers (observability only)
CRITICAL_HEALTH_FACTOR = 1.05
WARNING_HEALTH_FACTOR = 1.2


def is_stablecoin(symbol: str) -> bool:
    return symbol.strip().upper() in STABLECOIN_SYMBOLS
