"""Classification of execution errors into operator-facing reasons."""
from __future__ import annotations

from ..models import ExecutionFailure

# Checked in order; the first matching pattern wins.
_PATTERNS: tuple[tuple[ExecutionFailure, tuple[str, ...]], ...] = (
    (ExecutionFailure.APPROVAL_MISSING, ("transferfrom", "allowance", "erc20")),
    (ExecutionFailure.COOLDOWN_ACTIVE, ("cooldownactive", "cooldown")),
    (ExecutionFailure.UNAUTHORIZED_SIGNER, ("onlykeeper", "not keeper", "unauthorized")),
    (ExecutionFailure.TARGET_INVALID, ("invalidtarget", "untrustedtarget", "target not allowed")),
    (ExecutionFailure.INSUFFICIENT_FUNDS, ("insufficient funds", "insufficient_funds")),
    (ExecutionFailure.NONCE_ERROR, ("nonce", "replacement")),
    (ExecutionFailure.TIMEOUT, ("timeout", "timed out")),
    (ExecutionFailure.REVERTED, ("revert",)),
)


def classify_execution_error(message: str) -> ExecutionFailure:
    text = (message or "").lower()
    for failure, needles in _PATTERNS:
        if any(needle in text for needle in needles):
            return failure
    return ExecutionFailure.UNKNOWN
