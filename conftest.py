"""
Root-level shared test fixtures.

Inherited by the package-local suites under keyservice/*/tests and by the
API suites under tests/. Everything runs against the in-memory DALs in
tests/fakes.py; only tests marked ``integration`` need PostgreSQL.
"""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from keyservice.api.app import create_app
from keyservice.config import reset_config
from keyservice.vault.crypto import load_encryption_key
from tests.fakes import ENCRYPTION_KEY, SERVICE_KEY, FakeBackend


@pytest.fixture
def test_prefix():
    """Unique prefix for test isolation."""
    return f"test_{uuid.uuid4().hex[:8]}"


@pytest.fixture
def clean_env(monkeypatch):
    """Remove env vars that leak between tests."""
    for key in [
        "KEY_SERVICE_API_KEY",
        "ENCRYPTION_KEY",
        "PORT",
        "KEYSERVICE_HOST",
        "KEYSERVICE_PORT",
        "KEYSERVICE_LOG_LEVEL",
        "KEYSERVICE_REQUIREMENT_RETENTION_DAYS",
        "KEYSERVICE_DB_HOST",
        "KEYSERVICE_DB_PORT",
        "KEYSERVICE_DB_NAME",
        "KEYSERVICE_DB_USER",
        "KEYSERVICE_DB_PASSWORD",
    ]:
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def encryption_key() -> bytes:
    return load_encryption_key(ENCRYPTION_KEY)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def services(backend):
    return backend.services()


@pytest.fixture
def app(services):
    return create_app(services)


@pytest_asyncio.fixture
async def client(app):
    """Async HTTP client wrapping the key service app via ASGITransport."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def service_headers() -> dict[str, str]:
    return {"X-API-Key": SERVICE_KEY}


@pytest.fixture
def caller_headers() -> dict[str, str]:
    return {
        "X-Caller-Service": "apollo",
        "X-Caller-Method": "POST",
        "X-Caller-Path": "/leads/search",
    }


@pytest.fixture
def mock_db():
    """A connection factory whose connection hands out one MagicMock cursor.

    Returns (connect, conn, cur); pass ``connect`` to a DAL constructor.
    """
    cur = MagicMock()
    cur.__enter__.return_value = cur
    cur.__exit__.return_value = False
    conn = MagicMock()
    conn.cursor.return_value = cur
    connect = MagicMock()
    connect.return_value.__enter__.return_value = conn
    connect.return_value.__exit__.return_value = False
    return connect, conn, cur
