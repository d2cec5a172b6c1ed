"""
Provider-requirement DAL — the provider_requirements table.

The unique index on (service, method, path, provider) is the only
concurrency control: the observe operation is one INSERT ... ON CONFLICT
statement, so two first observations racing each other end as one row.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from psycopg2.extras import RealDictCursor, execute_values

from keyservice.db.connection import ConnectionFactory, get_connection

logger = logging.getLogger(__name__)

_RETURNING = "service, method, path, provider, created_at, last_seen_at"


class RequirementDAL:
    def __init__(self, connect: ConnectionFactory = get_connection) -> None:
        self._connect = connect

    def upsert(self, service: str, method: str, path: str, provider: str, seen_at: datetime) -> dict:
        """Insert the 4-tuple or advance its last_seen_at. Returns the stored row."""
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute(
                f"""
                INSERT INTO provider_requirements
                    (service, method, path, provider, last_seen_at, created_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                ON CONFLICT (service, method, path, provider)
                DO UPDATE SET last_seen_at = GREATEST(
                    provider_requirements.last_seen_at, EXCLUDED.last_seen_at
                )
                RETURNING {_RETURNING}
                """,
                (service, method, path, provider, seen_at, seen_at),
            )
            return dict(cur.fetchone())

    def find(self, endpoints: Iterable[tuple[str, str, str]]) -> list[dict]:
        """All requirements whose (service, method, path) is in ``endpoints``."""
        endpoints = list(endpoints)
        if not endpoints:
            return []
        with self._connect() as conn:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            rows = execute_values(
                cur,
                """
                SELECT r.service, r.method, r.path, r.provider, r.created_at, r.last_seen_at
                FROM provider_requirements r
                JOIN (VALUES %s) AS e (service, method, path)
                  ON r.service = e.service AND r.method = e.method AND r.path = e.path
                """,
                endpoints,
                fetch=True,
            )
            return [dict(r) for r in rows]

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete requirements last observed before ``cutoff``. Returns the count."""
        with self._connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM provider_requirements WHERE last_seen_at < %s",
                    (cutoff,),
                )
                return cur.rowcount
