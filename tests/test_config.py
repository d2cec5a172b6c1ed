"""Tests for keyservice.config — centralized configuration."""

import pytest

from keyservice.config import Config, DatabaseConfig, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_config(clean_env):
    """Start every test from an empty environment and a fresh singleton."""
    yield


class TestDatabaseConfig:
    def test_defaults(self):
        db = DatabaseConfig()
        assert db.host == ""
        assert db.port == 5432
        assert db.name == "keyservice"
        assert db.user == "keyservice"

    def test_dict(self):
        d = DatabaseConfig(host="localhost", port=5432, name="test", user="u", password="p").dict
        assert d == {"dbname": "test", "port": 5432, "host": "localhost", "user": "u", "password": "p"}

    def test_dict_socket(self):
        assert "host" not in DatabaseConfig().dict


class TestConfig:
    def test_defaults(self):
        cfg = get_config()
        assert cfg.host == "0.0.0.0"
        assert cfg.port == 3001
        assert cfg.log_level == "INFO"
        assert cfg.requirement_retention_days is None
        assert cfg.service_key_configured is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("KEY_SERVICE_API_KEY", "svc")
        monkeypatch.setenv("ENCRYPTION_KEY", "ab" * 32)
        monkeypatch.setenv("KEYSERVICE_DB_HOST", "pg.internal")
        monkeypatch.setenv("KEYSERVICE_DB_PORT", "6543")
        monkeypatch.setenv("KEYSERVICE_PORT", "8080")
        monkeypatch.setenv("KEYSERVICE_LOG_LEVEL", "debug")
        monkeypatch.setenv("KEYSERVICE_REQUIREMENT_RETENTION_DAYS", "90")

        cfg = get_config()
        assert cfg.service_api_key == "svc"
        assert cfg.service_key_configured is True
        assert cfg.encryption_key == "ab" * 32
        assert cfg.db.host == "pg.internal"
        assert cfg.db.port == 6543
        assert cfg.port == 8080
        assert cfg.log_level == "DEBUG"
        assert cfg.requirement_retention_days == 90

    def test_port_fallback(self, monkeypatch):
        monkeypatch.setenv("PORT", "4000")
        assert get_config().port == 4000

    def test_blank_retention_is_none(self, monkeypatch):
        monkeypatch.setenv("KEYSERVICE_REQUIREMENT_RETENTION_DAYS", "  ")
        assert get_config().requirement_retention_days is None

    def test_whitespace_service_key_not_configured(self):
        assert Config(service_api_key="   ").service_key_configured is False

    def test_singleton(self):
        assert get_config() is get_config()

    def test_reset(self, monkeypatch):
        first = get_config()
        monkeypatch.setenv("KEYSERVICE_PORT", "9999")
        reset_config()
        second = get_config()
        assert first is not second
        assert second.port == 9999

    def test_frozen(self):
        with pytest.raises(AttributeError):
            get_config().port = 1
