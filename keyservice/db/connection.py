"""
Pooled PostgreSQL connections for every DAL in the key service.

The pool is created on first use from ``get_config().db`` and shared by all
threads: FastAPI runs the database-bound route handlers in its threadpool.
DAL classes take a ``ConnectionFactory`` so tests can hand them a mock in
place of ``get_connection``.

    with get_connection() as conn:
        cur = conn.cursor()
        cur.execute("SELECT 1")
    # committed here, or rolled back if the block raised
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import AbstractContextManager, contextmanager

import psycopg2
import psycopg2.pool
from psycopg2.extensions import connection as PgConnection

from keyservice.config import DatabaseConfig, get_config

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], AbstractContextManager]

_pool: psycopg2.pool.ThreadedConnectionPool | None = None
_pool_lock = threading.Lock()


def _open_pool(db: DatabaseConfig, minconn: int, maxconn: int) -> psycopg2.pool.ThreadedConnectionPool:
    logger.info(
        "Opening PostgreSQL pool %s@%s:%s/%s (%d..%d connections)",
        db.user,
        db.host or "<socket>",
        db.port,
        db.name,
        minconn,
        maxconn,
    )
    try:
        return psycopg2.pool.ThreadedConnectionPool(minconn, maxconn, **db.dict)
    except psycopg2.OperationalError as e:
        raise ConnectionError(
            f"PostgreSQL unreachable at {db.host or '<socket>'}:{db.port}/{db.name}: {e}\n"
            "Set KEYSERVICE_DB_* to point at a running server."
        ) from e


def get_pool(minconn: int = 1, maxconn: int = 20) -> psycopg2.pool.ThreadedConnectionPool:
    """Return the shared pool, opening it on first call."""
    global _pool
    pool = _pool
    if pool is not None and not pool.closed:
        return pool
    with _pool_lock:
        if _pool is None or _pool.closed:
            _pool = _open_pool(get_config().db, minconn, maxconn)
        return _pool


@contextmanager
def get_connection(autocommit: bool = False) -> Iterator[PgConnection]:
    """Borrow a pooled connection for one unit of work.

    Without ``autocommit`` the block is one transaction: committed on a clean
    exit, rolled back when it raises. The connection always goes back to the
    pool.
    """
    pool = get_pool()
    conn = pool.getconn()
    conn.autocommit = autocommit
    try:
        yield conn
    except Exception:
        if not autocommit:
            conn.rollback()
        raise
    else:
        if not autocommit:
            conn.commit()
    finally:
        conn.autocommit = False
        pool.putconn(conn)


def close_pool() -> None:
    """Close every pooled connection. The next get_pool() opens a fresh pool."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None
