"""Unit tests for config loading, env interpolation, and validation."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from rescue_keeper.config import AppConfig, _as_bool, _interpolate_env, load_config


def _write(tmp_path: Path, sample_yaml_path: Path, **overrides: object) -> Path:
    """Copy the sample config with top-level sections replaced."""
    raw = yaml.safe_load(sample_yaml_path.read_text())
    for section, value in overrides.items():
        if isinstance(value, dict) and isinstance(raw.get(section), dict):
            raw[section] = {**raw[section], **value}
        else:
            raw[section] = value
    path = tmp_path / "override.yaml"
    path.write_text(yaml.safe_dump(raw))
    return path


@pytest.fixture(autouse=True)
def _no_force_enable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RESCUE_FORCE_ENABLE", raising=False)


class TestInterpolateEnv:
    def test_simple_substitution(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_VAR", "hello")
        assert _interpolate_env("${MY_VAR}") == "hello"

    def test_missing_var_becomes_empty(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR_XYZ", raising=False)
        assert _interpolate_env("${NONEXISTENT_VAR_XYZ}") == ""

    def test_nested(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TOK", "secret")
        result = _interpolate_env({"key": "${TOK}", "items": ["${TOK}", "y"]})
        assert result == {"key": "secret", "items": ["secret", "y"]}

    def test_non_string_passthrough(self) -> None:
        assert _interpolate_env(42) == 42
        assert _interpolate_env(True) is True


class TestAsBool:
    def test_values(self) -> None:
        assert _as_bool(True) is True
        assert _as_bool("yes") is True
        assert _as_bool("0") is False
        assert _as_bool("") is False


class TestLoadConfig:
    def test_loads_valid_yaml(self, sample_yaml_path: Path) -> None:
        cfg = load_config(sample_yaml_path)
        assert isinstance(cfg, AppConfig)
        assert cfg.keeper.chain_id == 8453
        assert cfg.keeper.call_timeout_seconds == 10
        assert cfg.keeper.receipt_timeout_seconds == 90
        assert cfg.keeper.force_enable is False
        assert len(cfg.users) == 1
        assert cfg.users[0].ens_name == "alice.eth"
        assert cfg.chains[8453].rpc_endpoints == (
            "https://base1.example.com",
            "https://base2.example.com",
        )
        assert cfg.chains[1].rpc_timeout == 30
        assert cfg.policy_store.provider == "ens"
        assert cfg.lifi.api_url == "https://li.example.com/v1"
        assert cfg.lifi.integrator == "test-keeper"
        assert cfg.trusted_targets == {8453: ("0x5555555555555555555555555555555555555555",)}
        assert cfg.notifications.telegram.enabled is True
        assert cfg.notifications.telegram.chat_id == "999"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_env_interpolation(
        self, tmp_path: Path, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("TEST_LIFI_KEY", "k-123")
        path = _write(tmp_path, sample_yaml_path, lifi={"api_key": "${TEST_LIFI_KEY}"})
        assert load_config(path).lifi.api_key == "k-123"

    def test_force_enable_from_env(
        self, sample_yaml_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("RESCUE_FORCE_ENABLE", "true")
        assert load_config(sample_yaml_path).keeper.force_enable is True

    def test_empty_file_fails_validation(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValueError, match="rpc_endpoints"):
            load_config(path)


class TestValidation:
    @pytest.mark.parametrize(
        "overrides, match",
        [
            ({"keeper": {"chain_id": 56}}, "Unsupported chain_id"),
            ({"chains": {8453: {"rpc_endpoints": []}}}, "No rpc_endpoints"),
            ({"keeper": {"poll_interval_seconds": 0}}, "poll_interval_seconds"),
            ({"keeper": {"call_timeout_seconds": -1}}, "call_timeout_seconds"),
            ({"keeper": {"receipt_timeout_seconds": 0}}, "receipt_timeout_seconds"),
            ({"users": [{"label": "nobody"}]}, "has no address"),
            ({"keeper": {"executor_address": ""}}, "executor_address"),
            ({"policy_store": {"provider": "redis"}}, "Unknown policy_store provider"),
            ({"policy_store": {"provider": "file"}}, "policy_store.path"),
        ],
    )
    def test_invalid_config_raises(
        self,
        tmp_path: Path,
        sample_yaml_path: Path,
        overrides: dict,
        match: str,
    ) -> None:
        path = _write(tmp_path, sample_yaml_path, **overrides)
        with pytest.raises(ValueError, match=match):
            load_config(path)

    def test_no_users_needs_no_executor(self, tmp_path: Path, sample_yaml_path: Path) -> None:
        path = _write(
            tmp_path, sample_yaml_path, users=[], keeper={"executor_address": ""}
        )
        assert load_config(path).users == ()
