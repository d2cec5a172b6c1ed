"""
Credentials DAL — orgs, user API keys and registered apps.

Every get-or-create in here is a single statement arbitrated by a unique
index (orgs.org_id, apps.name, the partial "Default" session index on
api_keys), never a SELECT followed by a conditional INSERT.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from psycopg2 import errors as pg_errors
from psycopg2.extras import RealDictCursor

from keyservice.db.connection import ConnectionFactory, get_connection
from keyservice.errors import ValidationError

logger = logging.getLogger(__name__)

SESSION_KEY_NAME = "Default"

_API_KEY_COLUMNS = """
    k.id::text AS id, k.org_id::text AS org_id, o.org_id AS external_org_id,
    k.app_id, k.user_id::text AS user_id, k.created_by::text AS created_by,
    k.key_prefix, k.encrypted_key, k.name, k.created_at, k.last_used_at
"""


# ─── Orgs ────────────────────────────────────────────────────────────────


class OrgDAL:
    def __init__(self, connect: ConnectionFactory = get_connection) -> None:
        self._connect = connect

    def ensure(self, external_org_id: str) -> str:
        """Return the internal UUID for an external org id, creating the row if needed."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO orgs (org_id) VALUES (%s)
                    ON CONFLICT (org_id) DO UPDATE SET org_id = EXCLUDED.org_id
                    RETURNING id::text
                    """,
                    (external_org_id,),
                )
                return cur.fetchone()[0]

    def find(self, external_org_id: str) -> str | None:
        """Internal UUID for an external org id, or None if never seen."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT id::text FROM orgs WHERE org_id = %s", (external_org_id,))
                row = cur.fetchone()
                return row[0] if row else None


# ─── User API keys ───────────────────────────────────────────────────────


class ApiKeyDAL:
    def __init__(self, connect: ConnectionFactory = get_connection) -> None:
        self._connect = connect

    def _select_one(self, cur, where: str, params: tuple) -> dict | None:
        cur.execute(
            f"SELECT {_API_KEY_COLUMNS} FROM api_keys k JOIN orgs o ON o.id = k.org_id WHERE {where}",
            params,
        )
        row = cur.fetchone()
        return dict(row) if row else None

    def insert(
        self,
        *,
        org_id: str,
        app_id: str,
        user_id: str,
        created_by: str,
        key_hash: str,
        key_prefix: str,
        name: str | None,
    ) -> dict:
        """Store a new (non-session) key. Returns the stored row."""
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            try:
                cur.execute(
                    """
                    INSERT INTO api_keys
                        (org_id, app_id, user_id, created_by, key_hash, key_prefix, name)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    RETURNING id::text
                    """,
                    (org_id, app_id, user_id, created_by, key_hash, key_prefix, name),
                )
            except pg_errors.UniqueViolation as e:
                raise ValidationError(
                    f"A '{SESSION_KEY_NAME}' key already exists for this user"
                ) from e
            key_id = cur.fetchone()["id"]
            return self._select_one(cur, "k.id = %s", (key_id,))

    def list(self, org_id: str, user_id: str | None = None) -> list[dict]:
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            if user_id:
                cur.execute(
                    f"""
                    SELECT {_API_KEY_COLUMNS} FROM api_keys k JOIN orgs o ON o.id = k.org_id
                    WHERE k.org_id = %s AND k.user_id = %s ORDER BY k.created_at
                    """,
                    (org_id, user_id),
                )
            else:
                cur.execute(
                    f"""
                    SELECT {_API_KEY_COLUMNS} FROM api_keys k JOIN orgs o ON o.id = k.org_id
                    WHERE k.org_id = %s ORDER BY k.created_at
                    """,
                    (org_id,),
                )
            return [dict(r) for r in cur.fetchall()]

    def delete(self, key_id: str, org_id: str) -> bool:
        """Delete a key belonging to ``org_id``. Returns True if a row was deleted."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM api_keys WHERE id = %s AND org_id = %s",
                    (key_id, org_id),
                )
                return cur.rowcount > 0

    def find_by_hash(self, key_hash: str) -> dict | None:
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            return self._select_one(cur, "k.key_hash = %s", (key_hash,))

    def touch(self, key_id: str) -> None:
        """Record a successful authentication with this key."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE api_keys SET last_used_at = %s WHERE id = %s",
                    (datetime.now(UTC), key_id),
                )

    # Session ("Default") keys

    def get_session(self, org_id: str, app_id: str, user_id: str) -> dict | None:
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            return self._select_one(
                cur,
                "k.org_id = %s AND k.app_id = %s AND k.user_id = %s AND k.name = %s",
                (org_id, app_id, user_id, SESSION_KEY_NAME),
            )

    def insert_session(
        self,
        *,
        org_id: str,
        app_id: str,
        user_id: str,
        key_hash: str,
        key_prefix: str,
        encrypted_key: str,
    ) -> dict | None:
        """Insert the session key unless one already exists. None means another writer won."""
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(
                """
                INSERT INTO api_keys
                    (org_id, app_id, user_id, created_by, key_hash, key_prefix,
                     encrypted_key, name)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (org_id, app_id, user_id) WHERE name = 'Default'
                DO NOTHING
                RETURNING id::text
                """,
                (org_id, app_id, user_id, user_id, key_hash, key_prefix, encrypted_key,
                 SESSION_KEY_NAME),
            )
            row = cur.fetchone()
            if row is None:
                return None
            return self._select_one(cur, "k.id = %s", (row["id"],))

    def delete_by_id(self, key_id: str) -> None:
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM api_keys WHERE id = %s", (key_id,))


# ─── Apps ────────────────────────────────────────────────────────────────


class AppDAL:
    def __init__(self, connect: ConnectionFactory = get_connection) -> None:
        self._connect = connect

    def insert(self, name: str, key_hash: str, key_prefix: str) -> dict | None:
        """Register an app. Returns None if the name is already taken."""
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(
                """
                INSERT INTO apps (name, key_hash, key_prefix)
                VALUES (%s, %s, %s)
                ON CONFLICT (name) DO NOTHING
                RETURNING id::text AS id, name, key_prefix, created_at
                """,
                (name, key_hash, key_prefix),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def get_by_name(self, name: str) -> dict | None:
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(
                "SELECT id::text AS id, name, key_prefix, created_at FROM apps WHERE name = %s",
                (name,),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def find_by_hash(self, key_hash: str) -> dict | None:
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(
                "SELECT id::text AS id, name, key_prefix, created_at FROM apps WHERE key_hash = %s",
                (key_hash,),
            )
            row = cur.fetchone()
            return dict(row) if row else None

    def touch(self, app_id: str) -> None:
        """Record a successful authentication with this app's key."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE apps SET last_used_at = %s WHERE id = %s",
                    (datetime.now(UTC), app_id),
                )
