"""Supply amount calculator — pure math, no I/O.

Aave V3 health factor::

    HF = (collateral_usd * liquidation_threshold) / debt_usd

Solving for the collateral to add to reach a target::

    supply = target_hf * debt_usd / liquidation_threshold - collateral_usd

A capped supply that would leave HF below the trigger is refused
(``insufficient_cap``); executing it would repeat every cycle without ever
fixing the position.
"""
from __future__ import annotations

import logging
import math

from .models import PositionSnapshot, RescuePolicy, SupplyDecision, SupplyReason

logger = logging.getLogger(__name__)


def estimate_health_factor_after_supply(
    position: PositionSnapshot, amount_usd: float
) -> float:
    """Health factor after adding ``amount_usd`` of collateral."""
    if position.total_debt_usd <= 0:
        return math.inf
    new_collateral = position.total_collateral_usd + amount_usd
    return new_collateral * position.liquidation_threshold / position.total_debt_usd


def compute_required_supply(
    position: PositionSnapshot, policy: RescuePolicy
) -> SupplyDecision:
    """Compute the collateral (USD) needed to bring ``position`` to the policy target."""
    if position.total_debt_usd <= 0:
        return SupplyDecision(0.0, math.inf, True, SupplyReason.NO_DEBT)

    if position.health_factor >= policy.min_health_factor:
        return SupplyDecision(
            0.0, position.health_factor, True, SupplyReason.HEALTHY
        )

    required_collateral = (
        policy.target_health_factor * position.total_debt_usd / position.liquidation_threshold
        if position.liquidation_threshold > 0
        else math.inf
    )
    required = required_collateral - position.total_collateral_usd

    if required <= 0:
        logger.warning(
            "Non-positive supply computed for unhealthy position — hf=%.4f required=%.2f",
            position.health_factor,
            required,
        )
        return SupplyDecision(
            0.0, position.health_factor, True, SupplyReason.HEALTHY
        )

    capped = min(required, policy.max_amount_usd)
    expected = estimate_health_factor_after_supply(position, capped)

    if expected < policy.min_health_factor:
        return SupplyDecision(capped, expected, False, SupplyReason.INSUFFICIENT_CAP)

    reason = (
        SupplyReason.CAPPED_BY_POLICY if capped < required else SupplyReason.SUPPLY_NEEDED
    )
    return SupplyDecision(capped, expected, True, reason)


def is_valid_supply_amount(amount_usd: float, policy: RescuePolicy) -> bool:
    return 0 < amount_usd <= policy.max_amount_usd
