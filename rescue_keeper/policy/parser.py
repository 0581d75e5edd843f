"""Pure policy resolution and validation — no I/O.

Raw records are string maps (one value per ENS text record). Resolution is
total: every input, including garbage, yields a complete policy within
``POLICY_BOUNDS``. A bad field falls back or clamps on its own and never
rejects the whole record.
"""
from __future__ import annotations

import dataclasses
import logging
import math
from typing import Mapping

from ..constants import is_stablecoin
from ..models import RescuePolicy
from .defaults import (
    DEFAULT_POLICY,
    KEY_ALIASES,
    KEY_ALLOWED_CHAINS,
    KEY_ALLOWED_TOKENS,
    KEY_COOLDOWN,
    KEY_ENABLED,
    KEY_MAX_AMOUNT,
    KEY_MIN_HF,
    KEY_TARGET_HF,
    POLICY_BOUNDS,
    TARGET_HEALTH_FACTOR_BUMP,
)

logger = logging.getLogger(__name__)

_TRUTHY = frozenset({"true", "1", "yes", "on"})


# ---------------------------------------------------------------------------
# Fallback paths
# ---------------------------------------------------------------------------


def default_policy() -> RescuePolicy:
    """Policy used when no record exists. Rescue stays disabled."""
    return DEFAULT_POLICY


def force_enabled_policy() -> RescuePolicy:
    """Default policy with consent overridden by the operator.

    Only meant for controlled test environments; every use is logged.
    """
    logger.warning(
        "FORCE_ENABLE: rescue enabled without a user policy record — "
        "default policy in use (minHF=%.2f targetHF=%.2f maxAmountUSD=%.2f). "
        "Never use this in production.",
        DEFAULT_POLICY.min_health_factor,
        DEFAULT_POLICY.target_health_factor,
        DEFAULT_POLICY.max_amount_usd,
    )
    return dataclasses.replace(DEFAULT_POLICY, enabled=True)


def resolve_policy(
    raw: Mapping[str, str] | None, force_enable: bool = False
) -> RescuePolicy:
    """Resolve a raw record into a usable policy. Never raises."""
    if not raw:
        return force_enabled_policy() if force_enable else default_policy()
    try:
        return parse_policy(raw)
    except Exception as e:  # pragma: no cover - parse_policy handles each field
        logger.error("Unexpected error parsing policy record, using default: %s", e)
        return default_policy()


# ---------------------------------------------------------------------------
# Field parsers
# ---------------------------------------------------------------------------


def _lookup(raw: Mapping[str, str], key: str) -> str:
    value = raw.get(key)
    if value is None:
        for alias in KEY_ALIASES.get(key, ()):
            value = raw.get(alias)
            if value is not None:
                break
    if value is None:
        return ""
    return str(value).strip()


def _parse_enabled(raw: Mapping[str, str]) -> bool:
    return _lookup(raw, KEY_ENABLED).lower() in _TRUTHY


def _parse_bounded(
    raw: Mapping[str, str], key: str, field_name: str, default: float
) -> float:
    """Parse a number; default on missing/garbage, clamp when out of bounds."""
    text = _lookup(raw, key)
    if not text:
        return default

    try:
        value = float(text)
    except ValueError:
        logger.warning("Policy field %s: invalid number %r, using default %s", key, text, default)
        return default

    if not math.isfinite(value):
        logger.warning("Policy field %s: non-finite value %r, using default %s", key, text, default)
        return default

    bounds = POLICY_BOUNDS[field_name]
    if not bounds.contains(value):
        clamped = bounds.clamp(value)
        logger.warning(
            "Policy field %s: %s outside [%s, %s], clamped to %s",
            key, value, bounds.min, bounds.max, clamped,
        )
        return clamped
    return value


def parse_token_list(value: str) -> tuple[str, ...]:
    """"usdc, ETH,DAI" → ("USDC", "DAI") — stablecoins only, order kept."""
    tokens: list[str] = []
    for part in value.split(","):
        symbol = part.strip().upper()
        if not symbol or symbol in tokens:
            continue
        if not is_stablecoin(symbol):
            logger.warning("Policy token %s is not an allow-listed stablecoin, ignored", symbol)
            continue
        tokens.append(symbol)
    return tuple(tokens)


def parse_chain_list(value: str) -> tuple[int, ...]:
    """"1, 10, x, 8453" → (1, 10, 8453)."""
    chains: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            chain_id = int(part)
        except ValueError:
            logger.warning("Policy chain %r is not an integer, ignored", part)
            continue
        if chain_id <= 0 or chain_id in chains:
            continue
        chains.append(chain_id)
    return tuple(chains)


def parse_policy(raw: Mapping[str, str]) -> RescuePolicy:
    """Parse a non-empty record field by field."""
    min_hf = _parse_bounded(
        raw, KEY_MIN_HF, "min_health_factor", DEFAULT_POLICY.min_health_factor
    )
    target_hf = _parse_bounded(
        raw, KEY_TARGET_HF, "target_health_factor", DEFAULT_POLICY.target_health_factor
    )
    if target_hf <= min_hf:
        adjusted = POLICY_BOUNDS["target_health_factor"].clamp(
            min_hf + TARGET_HEALTH_FACTOR_BUMP
        )
        logger.warning(
            "Policy targetHF %.2f must exceed minHF %.2f, adjusted to %.2f",
            target_hf, min_hf, adjusted,
        )
        target_hf = adjusted

    max_amount = _parse_bounded(
        raw, KEY_MAX_AMOUNT, "max_amount_usd", DEFAULT_POLICY.max_amount_usd
    )
    cooldown = _parse_bounded(
        raw, KEY_COOLDOWN, "cooldown_seconds", DEFAULT_POLICY.cooldown_seconds
    )

    tokens = parse_token_list(_lookup(raw, KEY_ALLOWED_TOKENS))
    if not tokens:
        tokens = DEFAULT_POLICY.allowed_tokens

    chains = parse_chain_list(_lookup(raw, KEY_ALLOWED_CHAINS))
    if not chains:
        chains = DEFAULT_POLICY.allowed_chains

    policy = RescuePolicy(
        enabled=_parse_enabled(raw),
        min_health_factor=min_hf,
        target_health_factor=target_hf,
        max_amount_usd=max_amount,
        cooldown_seconds=int(cooldown),
        allowed_tokens=tokens,
        allowed_chains=chains,
    )
    logger.debug(
        "Parsed policy record — enabled=%s minHF=%.2f targetHF=%.2f maxAmountUSD=%.2f "
        "cooldown=%ds tokens=%s chains=%s",
        policy.enabled,
        policy.min_health_factor,
        policy.target_health_factor,
        policy.max_amount_usd,
        policy.cooldown_seconds,
        ",".join(policy.allowed_tokens),
        ",".join(str(c) for c in policy.allowed_chains),
    )
    return policy


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_policy(policy: RescuePolicy) -> list[str]:
    """Return human-readable violations; empty when the policy is sound."""
    errors: list[str] = []

    for field_name, bounds in POLICY_BOUNDS.items():
        value = getattr(policy, field_name)
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            errors.append(f"{field_name} is not a finite number: {value!r}")
        elif not bounds.contains(value):
            errors.append(
                f"{field_name} {value} is outside allowed range [{bounds.min}, {bounds.max}]"
            )

    if policy.target_health_factor <= policy.min_health_factor:
        errors.append(
            f"target_health_factor ({policy.target_health_factor}) must be greater "
            f"than min_health_factor ({policy.min_health_factor})"
        )

    if not policy.allowed_tokens:
        errors.append("allowed_tokens is empty")
    for symbol in policy.allowed_tokens:
        if not is_stablecoin(symbol):
            errors.append(f"allowed token {symbol} is not an allow-listed stablecoin")

    if not policy.allowed_chains:
        errors.append("allowed_chains is empty")
    for chain_id in policy.allowed_chains:
        if not isinstance(chain_id, int) or chain_id <= 0:
            errors.append(f"allowed chain {chain_id!r} is not a positive chain id")

    return errors


def is_chain_allowed(chain_id: int, policy: RescuePolicy) -> bool:
    return chain_id in policy.allowed_chains
