"""
db/connection.py
----------------
PostgreSQL connection pool shared by the recurring-payment repository.

Connections use RealDictCursor, so rows reach `validate_schedule` as
column-keyed dicts. Each session runs in BILLING_TIMEZONE, which makes
CURRENT_DATE in repository queries (for example the "still billing"
filter on future-dated deactivations) the same calendar day the
scheduler uses.
"""

import psycopg2
from psycopg2 import pool, extras

from config import BILLING_TIMEZONE, DATABASE_URL
from utils.logger import get_logger

logger = get_logger(__name__)

_pool: pool.SimpleConnectionPool | None = None


def session_options(zone: str = BILLING_TIMEZONE) -> str:
    """libpq `options` string that pins the session time zone."""
    return f"-c timezone={zone}"


def init_pool(min_conn: int = 1, max_conn: int = 5, dsn: str = DATABASE_URL) -> None:
    """
    Open the pool once; later calls are no-ops.

    Raises:
        psycopg2.OperationalError: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    try:
        _pool = pool.SimpleConnectionPool(
            min_conn,
            max_conn,
            dsn,
            cursor_factory=extras.RealDictCursor,
            options=session_options(),
        )
        logger.info(f"Database pool ready ({min_conn}-{max_conn} connections, timezone {BILLING_TIMEZONE})")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise


def get_connection():
    """
    Borrow a connection; repositories must hand it back with release_connection().

    Raises:
        RuntimeError: If init_pool() has not run.
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    return _pool.getconn()


def release_connection(conn) -> None:
    if _pool is not None:
        _pool.putconn(conn)


def close_pool() -> None:
    """Close every pooled connection (end of the reminder sweep)."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database pool closed")
