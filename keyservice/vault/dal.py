"""
Vault DAL — CRUD on the three encrypted-secret tables.

    byok_keys      unique (org_id, provider)   tenant-supplied keys
    app_keys       unique (app_id, provider)   keys owned by a registered app
    platform_keys  unique (provider)           platform-wide keys

Values arrive already encrypted; this layer never sees plaintext. Writes are
single ``INSERT ... ON CONFLICT`` statements so concurrent saves for the same
natural key cannot produce duplicates.
"""

from __future__ import annotations

import enum
import logging
from datetime import UTC, datetime

from psycopg2 import sql
from psycopg2.extras import RealDictCursor

from keyservice.db.connection import ConnectionFactory, get_connection

logger = logging.getLogger(__name__)


class SecretScope(str, enum.Enum):
    BYOK = "byok"
    APP = "app"
    PLATFORM = "platform"


# scope -> (table, owner column or None for platform-wide)
_TABLES: dict[SecretScope, tuple[str, str | None]] = {
    SecretScope.BYOK: ("byok_keys", "org_id"),
    SecretScope.APP: ("app_keys", "app_id"),
    SecretScope.PLATFORM: ("platform_keys", None),
}

_COLUMNS = sql.SQL("provider, encrypted_key, created_at, updated_at")


class SecretDAL:
    """Encrypted-secret rows for one scope."""

    def __init__(self, scope: SecretScope, connect: ConnectionFactory = get_connection) -> None:
        self.scope = scope
        self._connect = connect
        table, owner_column = _TABLES[scope]
        self._table = sql.Identifier(table)
        self._owner = sql.Identifier(owner_column) if owner_column else None

    def _where(self, owner: str | None, provider: str | None = None) -> tuple[sql.Composable, list]:
        clauses: list[sql.Composable] = []
        params: list = []
        if self._owner is not None:
            if owner is None:
                raise ValueError(f"{self.scope.value} secrets require an owner")
            clauses.append(sql.SQL("{} = %s").format(self._owner))
            params.append(owner)
        if provider is not None:
            clauses.append(sql.SQL("provider = %s"))
            params.append(provider)
        if not clauses:
            return sql.SQL("TRUE"), params
        return sql.SQL(" AND ").join(clauses), params

    def upsert(self, owner: str | None, provider: str, encrypted_key: str) -> None:
        """Insert or replace the encrypted value for (owner, provider)."""
        now = datetime.now(UTC)
        if self._owner is not None:
            if owner is None:
                raise ValueError(f"{self.scope.value} secrets require an owner")
            query = sql.SQL(
                """
                INSERT INTO {table} ({owner}, provider, encrypted_key, updated_at)
                VALUES (%s, %s, %s, %s)
                ON CONFLICT ({owner}, provider)
                DO UPDATE SET encrypted_key = EXCLUDED.encrypted_key,
                              updated_at = EXCLUDED.updated_at
                """
            ).format(table=self._table, owner=self._owner)
            params: tuple = (owner, provider, encrypted_key, now)
        else:
            query = sql.SQL(
                """
                INSERT INTO {table} (provider, encrypted_key, updated_at)
                VALUES (%s, %s, %s)
                ON CONFLICT (provider)
                DO UPDATE SET encrypted_key = EXCLUDED.encrypted_key,
                              updated_at = EXCLUDED.updated_at
                """
            ).format(table=self._table)
            params = (provider, encrypted_key, now)

        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)

    def get(self, owner: str | None, provider: str) -> dict | None:
        """Return the row for (owner, provider), or None."""
        where, params = self._where(owner, provider)
        query = sql.SQL("SELECT {cols} FROM {table} WHERE {where}").format(
            cols=_COLUMNS, table=self._table, where=where
        )
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(query, params)
            row = cur.fetchone()
            return dict(row) if row else None

    def list(self, owner: str | None) -> list[dict]:
        """All rows for an owner (every row for platform scope), by provider."""
        where, params = self._where(owner)
        query = sql.SQL("SELECT {cols} FROM {table} WHERE {where} ORDER BY provider").format(
            cols=_COLUMNS, table=self._table, where=where
        )
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(query, params)
            return [dict(r) for r in cur.fetchall()]

    def delete(self, owner: str | None, provider: str) -> bool:
        """Delete the row for (owner, provider). Returns True if a row was deleted."""
        where, params = self._where(owner, provider)
        query = sql.SQL("DELETE FROM {table} WHERE {where}").format(table=self._table, where=where)
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                return cur.rowcount > 0
