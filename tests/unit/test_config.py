"""Tests for settings and pool configuration."""

from __future__ import annotations

from promptdeck.config import Settings
from promptdeck.dao import PoolConfig


def test_defaults() -> None:
    settings = Settings(_env_file=None)
    assert settings.port == 5000
    assert settings.default_model == "gpt-5-nano"
    assert settings.db_max_connections == 20


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_MAX_CONNECTIONS", "3")
    monkeypatch.setenv("DB_CONNECTION_TIMEOUT", "500")
    settings = Settings(_env_file=None)
    config = settings.pool_config()
    assert config.host == "db.internal"
    assert config.max_size == 3
    assert config.acquire_timeout == 0.5


def test_pool_config_hides_password() -> None:
    config = PoolConfig(user="app", password="s3cret", host="h", port=1, database="d")
    assert config.safe_dsn() == "postgresql://app:***@h:1/d"
    assert config.idle_timeout == 30.0
