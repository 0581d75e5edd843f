"""Health monitoring — normalizes raw account data into position snapshots."""
from __future__ import annotations

import asyncio
import logging
import math

from ..constants import CRITICAL_HEALTH_FACTOR, WARNING_HEALTH_FACTOR
from ..interfaces.position_reader import PositionReader
from ..models import PositionSnapshot, RawAccountData, RiskLevel
from ..units import base_currency_to_usd, bps_to_decimal, format_health_factor, wad_to_decimal

logger = logging.getLogger(__name__)

# Reported and derived HF must disagree by both margins before the derived one wins.
HF_MISMATCH_ABSOLUTE = 0.05
HF_MISMATCH_RELATIVE = 0.03


def classify_risk(health_factor: float) -> RiskLevel:
    if health_factor < CRITICAL_HEALTH_FACTOR:
        return RiskLevel.CRITICAL
    if health_factor < WARNING_HEALTH_FACTOR:
        return RiskLevel.WARNING
    return RiskLevel.HEALTHY


def needs_rescue(position: PositionSnapshot, min_health_factor: float) -> bool:
    if position.total_debt_usd <= 0:
        return False
    return position.health_factor < min_health_factor


def derive_health_factor(
    collateral_usd: float, debt_usd: float, liquidation_threshold: float
) -> float:
    if debt_usd <= 0:
        return math.inf
    if collateral_usd <= 0:
        return 0.0
    return collateral_usd * liquidation_threshold / debt_usd


def select_health_factor(reported: float, derived: float) -> tuple[float, bool]:
    """Pick the health factor to trust; returns ``(value, used_derived)``."""
    if reported == 0 or not math.isfinite(reported):
        return derived, True

    diff = abs(reported - derived)
    if diff > HF_MISMATCH_ABSOLUTE:
        relative = diff / max(reported, derived)
        if relative > HF_MISMATCH_RELATIVE:
            return derived, True
    return reported, False


def normalize_account_data(raw: RawAccountData) -> PositionSnapshot:
    """Convert Aave-native integers into a decimal snapshot.

    Raises:
        ValueError: when the raw values cannot describe a real position.
    """
    if raw.health_factor < 0 or raw.total_collateral_base < 0 or raw.total_debt_base < 0:
        raise ValueError("negative values in account data")

    collateral = base_currency_to_usd(raw.total_collateral_base)
    debt = base_currency_to_usd(raw.total_debt_base)
    lt = bps_to_decimal(raw.current_liquidation_threshold)
    if not 0 <= lt <= 1:
        raise ValueError(f"liquidation threshold {lt} outside [0, 1]")

    if debt <= 0:
        return PositionSnapshot(math.inf, collateral, debt, lt)

    reported = wad_to_decimal(raw.health_factor)
    derived = derive_health_factor(collateral, debt, lt)
    health_factor, used_derived = select_health_factor(reported, derived)
    if used_derived:
        logger.warning(
            "Reported health factor %s disagrees with derived %s, using derived",
            format_health_factor(reported),
            format_health_factor(derived),
        )
    return PositionSnapshot(health_factor, collateral, debt, lt)


class HealthMonitor:
    """Reads positions through a ``PositionReader``; never raises."""

    def __init__(self, reader: PositionReader, timeout: float = 15.0) -> None:
        self._reader = reader
        self._timeout = timeout

    async def read_position(self, pool: str, user: str) -> PositionSnapshot | None:
        """Return a fresh snapshot, or ``None`` when the position is unavailable."""
        try:
            raw = await asyncio.wait_for(self._reader.read(pool, user), self._timeout)
        except asyncio.TimeoutError:
            logger.error("Position read timed out after %.1fs — user=%s", self._timeout, user)
            return None
        except Exception as e:
            logger.error("Position read failed — user=%s error=%s", user, e)
            return None

        try:
            snapshot = normalize_account_data(raw)
        except (ValueError, TypeError, AttributeError) as e:
            logger.error("Invalid account data — user=%s error=%s", user, e)
            return None

        logger.debug(
            "Position — user=%s collateral=$%.2f debt=$%.2f lt=%.4f hf=%s",
            user,
            snapshot.total_collateral_usd,
            snapshot.total_debt_usd,
            snapshot.liquidation_threshold,
            format_health_factor(snapshot.health_factor),
        )
        return snapshot
