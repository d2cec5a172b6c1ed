"""
Key service configuration, read from the environment once per process.

A ``.env`` file at the repository root is loaded first when it exists;
variables already set in the environment win over it.

    from keyservice.config import get_config
    cfg = get_config()
    cfg.db.name        # "keyservice"
    cfg.port           # 3001
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

ENV_FILE = Path(__file__).resolve().parent.parent / ".env"


@dataclass(frozen=True)
class DatabaseConfig:
    """Where the key store lives. An empty host means the local Unix socket."""

    host: str = ""
    port: int = 5432
    name: str = "keyservice"
    user: str = "keyservice"
    password: str = ""

    @property
    def dict(self) -> dict[str, str | int]:
        """Keyword arguments for psycopg2.connect(); blank fields are omitted."""
        params: dict[str, str | int] = {"dbname": self.name, "port": self.port}
        params.update(
            (key, value)
            for key, value in (("host", self.host), ("user", self.user), ("password", self.password))
            if value
        )
        return params


@dataclass(frozen=True)
class Config:
    # Shared secret for /internal/* callers; blank makes every internal call fail closed
    service_api_key: str = ""

    # 64 hex chars (AES-256) protecting every stored secret and session key
    encryption_key: str = ""

    db: DatabaseConfig = field(default_factory=DatabaseConfig)

    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "INFO"

    # Days a provider requirement survives without being observed; None keeps it forever
    requirement_retention_days: int | None = None

    @property
    def service_key_configured(self) -> bool:
        return bool(self.service_api_key.strip())


_config: Config | None = None


def get_config() -> Config:
    """The process-wide Config, built from the environment on first call."""
    global _config
    if _config is None:
        _config = _load_from_env()
    return _config


def reset_config() -> None:
    """Forget the cached Config so the next get_config() re-reads the environment."""
    global _config
    _config = None


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else default


def _load_from_env() -> Config:
    if ENV_FILE.exists():
        load_dotenv(ENV_FILE)

    env = os.environ.get
    return Config(
        service_api_key=env("KEY_SERVICE_API_KEY", ""),
        encryption_key=env("ENCRYPTION_KEY", ""),
        db=DatabaseConfig(
            host=env("KEYSERVICE_DB_HOST", ""),
            port=_env_int("KEYSERVICE_DB_PORT", 5432),
            name=env("KEYSERVICE_DB_NAME", "keyservice"),
            user=env("KEYSERVICE_DB_USER", "keyservice"),
            password=env("KEYSERVICE_DB_PASSWORD", ""),
        ),
        host=env("KEYSERVICE_HOST", "0.0.0.0"),
        port=_env_int("KEYSERVICE_PORT", _env_int("PORT", 3001)),
        log_level=env("KEYSERVICE_LOG_LEVEL", "INFO").upper(),
        requirement_retention_days=_env_int("KEYSERVICE_REQUIREMENT_RETENTION_DAYS", None),
    )
