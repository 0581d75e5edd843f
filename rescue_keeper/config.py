"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .chains import is_chain_supported

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeeperConfig:
    chain_id: int = 8453
    poll_interval_seconds: float = 30.0
    call_timeout_seconds: float = 15.0
    receipt_timeout_seconds: float = 120.0
    executor_address: str = ""
    keeper_address: str = ""
    force_enable: bool = False


@dataclass(frozen=True)
class UserConfig:
    address: str = ""
    ens_name: str = ""
    label: str = ""


@dataclass(frozen=True)
class ChainConfig:
    rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class PolicyStoreConfig:
    provider: str = "ens"
    path: str = ""
    ens_rpc_endpoints: tuple[str, ...] = ()
    rpc_timeout: int = 30


@dataclass(frozen=True)
class LiFiConfig:
    api_url: str = "https://li.quest/v1"
    integrator: str = "rescue-keeper"
    api_key: str = ""
    timeout: int = 30


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class AppConfig:
    keeper: KeeperConfig = field(default_factory=KeeperConfig)
    users: tuple[UserConfig, ...] = ()
    chains: dict[int, ChainConfig] = field(default_factory=dict)
    policy_store: PolicyStoreConfig = field(default_factory=PolicyStoreConfig)
    lifi: LiFiConfig = field(default_factory=LiFiConfig)
    trusted_targets: dict[int, tuple[str, ...]] = field(default_factory=dict)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")

_TRUTHY = {"true", "1", "yes", "on"}


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_keeper(raw: dict[str, Any]) -> KeeperConfig:
    return KeeperConfig(
        chain_id=int(raw.get("chain_id", 8453)),
        poll_interval_seconds=float(raw.get("poll_interval_seconds", 30.0)),
        call_timeout_seconds=float(raw.get("call_timeout_seconds", 15.0)),
        receipt_timeout_seconds=float(raw.get("receipt_timeout_seconds", 120.0)),
        executor_address=str(raw.get("executor_address", "") or ""),
        keeper_address=str(raw.get("keeper_address", "") or ""),
        force_enable=_as_bool(raw.get("force_enable", False)),
    )


def _build_users(raw: list[dict[str, Any]]) -> tuple[UserConfig, ...]:
    users: list[UserConfig] = []
    for u in raw:
        users.append(
            UserConfig(
                address=str(u.get("address", "") or ""),
                ens_name=str(u.get("ens_name", "") or ""),
                label=str(u.get("label", "") or ""),
            )
        )
    return tuple(users)


def _build_chains(raw: dict[Any, Any]) -> dict[int, ChainConfig]:
    chains: dict[int, ChainConfig] = {}
    for chain_id, cfg in raw.items():
        chains[int(chain_id)] = ChainConfig(
            rpc_endpoints=tuple(e for e in cfg.get("rpc_endpoints", []) if e),
            rpc_timeout=int(cfg.get("rpc_timeout", 30)),
        )
    return chains


def _build_policy_store(raw: dict[str, Any]) -> PolicyStoreConfig:
    return PolicyStoreConfig(
        provider=str(raw.get("provider", "ens")),
        path=str(raw.get("path", "") or ""),
        ens_rpc_endpoints=tuple(e for e in raw.get("ens_rpc_endpoints", []) if e),
        rpc_timeout=int(raw.get("rpc_timeout", 30)),
    )


def _build_lifi(raw: dict[str, Any]) -> LiFiConfig:
    return LiFiConfig(
        api_url=str(raw.get("api_url", LiFiConfig.api_url)).rstrip("/"),
        integrator=str(raw.get("integrator", LiFiConfig.integrator)),
        api_key=str(raw.get("api_key", "") or ""),
        timeout=int(raw.get("timeout", 30)),
    )


def _build_trusted_targets(raw: dict[Any, Any]) -> dict[int, tuple[str, ...]]:
    return {int(chain_id): tuple(addrs or ()) for chain_id, addrs in raw.items()}


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=_as_bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (one level up from this package).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    # An operator can force-enable from the environment without editing YAML.
    keeper_raw = dict(raw.get("keeper") or {})
    if _as_bool(os.environ.get("RESCUE_FORCE_ENABLE", "")):
        keeper_raw["force_enable"] = True

    cfg = AppConfig(
        keeper=_build_keeper(keeper_raw),
        users=_build_users(raw.get("users") or []),
        chains=_build_chains(raw.get("chains") or {}),
        policy_store=_build_policy_store(raw.get("policy_store") or {}),
        lifi=_build_lifi(raw.get("lifi") or {}),
        trusted_targets=_build_trusted_targets(raw.get("trusted_targets") or {}),
        notifications=_build_notifications(raw.get("notifications") or {}),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    if cfg.keeper.force_enable:
        logger.warning(
            "FORCE_ENABLE is set — users without a policy record will be rescued "
            "with the default policy"
        )
    return cfg


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    keeper = cfg.keeper

    if not is_chain_supported(keeper.chain_id):
        raise ValueError(f"Unsupported chain_id {keeper.chain_id}")
    chain = cfg.chains.get(keeper.chain_id)
    if chain is None or not chain.rpc_endpoints:
        raise ValueError(f"No rpc_endpoints configured for chain {keeper.chain_id}")

    if keeper.poll_interval_seconds <= 0:
        raise ValueError("poll_interval_seconds must be positive")
    if keeper.call_timeout_seconds <= 0:
        raise ValueError("call_timeout_seconds must be positive")
    if keeper.receipt_timeout_seconds <= 0:
        raise ValueError("receipt_timeout_seconds must be positive")

    for user in cfg.users:
        if not user.address:
            raise ValueError(f"User '{user.label or user.ens_name}' has no address")

    if cfg.users and not keeper.executor_address.startswith("0x"):
        raise ValueError("executor_address must be a 0x-prefixed address")

    if cfg.policy_store.provider not in ("ens", "file"):
        raise ValueError(f"Unknown policy_store provider '{cfg.policy_store.provider}'")
    if cfg.policy_store.provider == "file" and not cfg.policy_store.path:
        raise ValueError("policy_store.path is required for the file provider")
