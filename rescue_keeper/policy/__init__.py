"""Rescue policy model: defaults, parsing and validation."""
from .defaults import DEFAULT_POLICY, POLICY_BOUNDS, POLICY_KEYS
from .parser import (
    default_policy,
    force_enabled_policy,
    is_chain_allowed,
    resolve_policy,
    validate_policy,
)

__all__ = [
    "DEFAULT_POLICY",
    "POLICY_BOUNDS",
    "POLICY_KEYS",
    "default_policy",
    "force_enabled_policy",
    "is_chain_allowed",
    "resolve_policy",
    "validate_policy",
]
