"""Default rescue policy, validation bounds and policy record keys."""
from __future__ import annotations

from dataclasses import dataclass

from ..models import RescuePolicy


@dataclass(frozen=True)
class Bounds:
    min: float
    max: float

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, value))

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


POLICY_BOUNDS: dict[str, Bounds] = {
    "min_health_factor": Bounds(1.0, 2.0),
    "target_health_factor": Bounds(1.1, 3.0),
    "max_amount_usd": Bounds(1, 100_000),
    "cooldown_seconds": Bounds(60, 86_400 * 7),
}

# Applied when target <= min, before re-clamping.
TARGET_HEALTH_FACTOR_BUMP = 0.3

# Rescues require explicit opt-in: enabled is False unless the record says so.
DEFAULT_POLICY = RescuePolicy(
    enabled=False,
    min_health_factor=1.2,
    target_health_factor=1.5,
    max_amount_usd=1000.0,
    cooldown_seconds=3600,
    allowed_tokens=("USDC", "USDT", "DAI"),
    allowed_chains=(1, 10, 8453),
)

# Raw record keys, namespaced the way they are stored as ENS text records.
KEY_ENABLED = "rescue.enabled"
KEY_MIN_HF = "rescue.minHF"
KEY_TARGET_HF = "rescue.targetHF"
KEY_MAX_AMOUNT = "rescue.maxAmountUSD"
KEY_COOLDOWN = "rescue.cooldownSeconds"
KEY_ALLOWED_TOKENS = "rescue.allowedTokens"
KEY_ALLOWED_CHAINS = "rescue.allowedChains"

# Older records use the short key names.
KEY_ALIASES: dict[str, tuple[str, ...]] = {
    KEY_MAX_AMOUNT: ("rescue.maxAmount",),
    KEY_COOLDOWN: ("rescue.cooldown",),
}

POLICY_KEYS: tuple[str, ...] = (
    KEY_ENABLED,
    KEY_MIN_HF,
    KEY_TARGET_HF,
    KEY_MAX_AMOUNT,
    KEY_COOLDOWN,
    KEY_ALLOWED_TOKENS,
    KEY_ALLOWED_CHAINS,
    *(alias for aliases in KEY_ALIASES.values() for alias in aliases),
)
