"""
Schema migrations from ``keyservice/migrations/NNN_name.sql``.

Each file runs in its own transaction and is recorded in
``schema_migrations`` with the SHA-256 of its contents. A recorded checksum
that no longer matches the file on disk is reported as DRIFT. The bundled
files only use IF NOT EXISTS DDL, so re-applying them is harmless.

    keyservice migrate status
    keyservice migrate apply [VERSION] [--dry-run]
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from psycopg2.extras import RealDictCursor

from keyservice.db.connection import ConnectionFactory, get_connection

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

_FILENAME_RE = re.compile(r"^(\d+[a-z]?)_[\w-]+\.sql$")

_TRACKING_DDL = """
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version     TEXT PRIMARY KEY,
        filename    TEXT NOT NULL,
        checksum    TEXT,
        applied_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


@dataclass(frozen=True)
class Migration:
    version: str
    path: Path

    @property
    def checksum(self) -> str:
        return hashlib.sha256(self.path.read_bytes()).hexdigest()


def discover(migrations_dir: Path | None = None) -> list[Migration]:
    """Every numbered .sql file in the directory, in version order."""
    found = []
    for path in sorted((migrations_dir or MIGRATIONS_DIR).glob("*.sql")):
        m = _FILENAME_RE.match(path.name)
        if m:
            found.append(Migration(m.group(1), path))
    return found


def _recorded(conn) -> dict[str, dict]:
    cur = conn.cursor(cursor_factory=RealDictCursor)
    cur.execute(_TRACKING_DDL)
    cur.execute("SELECT version, filename, checksum, applied_at FROM schema_migrations")
    return {row["version"]: dict(row) for row in cur.fetchall()}


def status(
    migrations_dir: Path | None = None,
    connect: ConnectionFactory = get_connection,
) -> list[dict]:
    """One row per migration file: version, filename, status, applied_at.

    ``status`` is ``applied``, ``pending`` or ``DRIFT``.
    """
    with connect() as conn:
        recorded = _recorded(conn)

    rows = []
    for migration in discover(migrations_dir):
        entry = recorded.get(migration.version)
        if entry is None:
            state = "pending"
        elif entry["checksum"] and entry["checksum"] != migration.checksum:
            state = "DRIFT"
        else:
            state = "applied"
        rows.append({
            "version": migration.version,
            "filename": migration.path.name,
            "status": state,
            "applied_at": entry["applied_at"] if entry else None,
        })
    return rows


def apply(
    version: str | None = None,
    dry_run: bool = False,
    migrations_dir: Path | None = None,
    connect: ConnectionFactory = get_connection,
) -> list[str]:
    """Run pending migrations (or only ``version``). Returns the versions run."""
    with connect() as conn:
        recorded = _recorded(conn)
        conn.commit()

        pending = [
            m for m in discover(migrations_dir)
            if m.version not in recorded and version in (None, m.version)
        ]
        if not pending:
            logger.info("Schema is up to date")
            return []

        done: list[str] = []
        for migration in pending:
            if dry_run:
                logger.info("Would apply %s", migration.path.name)
                done.append(migration.version)
                continue

            cur = conn.cursor()
            try:
                cur.execute(migration.path.read_text())
                cur.execute(
                    "INSERT INTO schema_migrations (version, filename, checksum) "
                    "VALUES (%s, %s, %s) ON CONFLICT (version) DO NOTHING",
                    (migration.version, migration.path.name, migration.checksum),
                )
                conn.commit()
            except Exception:
                conn.rollback()
                logger.error("Migration %s failed; rolled back", migration.path.name)
                raise
            logger.info("Applied %s", migration.path.name)
            done.append(migration.version)
        return done
