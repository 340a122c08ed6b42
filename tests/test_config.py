"""Tests for configuration loading."""

from __future__ import annotations

import pytest

from attendcode.config import (
    DEFAULT_POLICY_PATH,
    SecretStoreBackend,
    Settings,
    engine_config_from_settings,
    load_policy,
)
from attendcode.errors import ConfigurationError
from attendcode.models import HashAlgorithm


def test_settings_defaults():
    s = Settings(_env_file=None)
    assert s.code_digits == 6
    assert s.code_step_seconds == 30
    assert s.code_drift_steps == 1
    assert s.code_algorithm == "sha1"
    assert s.refresh_seconds is None
    assert s.secret_store == SecretStoreBackend.MEMORY


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("ATTENDCODE_CODE_DIGITS", "8")
    monkeypatch.setenv("ATTENDCODE_SECRET_STORE", "postgres")
    monkeypatch.setenv("ATTENDCODE_REFRESH_SECONDS", "10")
    s = Settings(_env_file=None)
    assert s.code_digits == 8
    assert s.secret_store == SecretStoreBackend.POSTGRES
    assert s.refresh_seconds == 10.0


def test_engine_config_from_settings():
    cfg = engine_config_from_settings(
        Settings(_env_file=None, code_step_seconds=60, code_algorithm="SHA256")
    )
    assert cfg.step_seconds == 60
    assert cfg.algorithm == HashAlgorithm.SHA256


def test_engine_config_unknown_algorithm():
    with pytest.raises(ConfigurationError, match="md5"):
        engine_config_from_settings(Settings(_env_file=None, code_algorithm="md5"))


def test_default_policy_file():
    assert DEFAULT_POLICY_PATH.exists(), f"Policy file not found at {DEFAULT_POLICY_PATH}"
    policy = load_policy(DEFAULT_POLICY_PATH)
    assert "admin" in policy["provision_roles"]
    assert policy["rotate_roles"] == ["admin"]
    assert "employee" not in policy["provision_roles"]


def test_policy_fills_missing_keys(tmp_path):
    path = tmp_path / "policy.yaml"
    path.write_text("provision_roles: [admin]\n")
    policy = load_policy(path)
    assert policy["rotate_roles"] == []
    assert policy["verify_roles"] == []


def test_load_missing_policy(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_policy(tmp_path / "nope.yaml")
