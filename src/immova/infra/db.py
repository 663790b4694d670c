"""Database access layer using psycopg2.

Provides:
- get_conn(): Get a database connection from DATABASE_URL
- txn(): Context manager for short, safe transactions
- fetchall(): Query helper

Connection failures surface as StoreUnavailable (503). Values PostgreSQL
rejects, such as a malformed uuid, surface as ValidationError (400).
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor

from immova.domain.errors import StoreUnavailable, ValidationError


def get_conn() -> PgConnection:
    """Get a new database connection from DATABASE_URL.

    Returns:
        psycopg2 connection object.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        StoreUnavailable: If the database cannot be reached.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")
    try:
        return psycopg2.connect(dsn)
    except psycopg2.OperationalError as exc:
        raise StoreUnavailable("database unavailable") from exc


@contextmanager
def txn(conn: PgConnection | None = None) -> Iterator[PgCursor]:
    """Context manager for a short, safe transaction.

    If conn is None, creates a new connection that is closed on exit.
    Commits on successful exit, rolls back on exception.

    Example:
        with txn() as cur:
            cur.execute("DELETE FROM blocked_periods WHERE id = %s", (period_id,))
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except psycopg2.OperationalError as exc:
        conn.rollback()
        raise StoreUnavailable("database connection lost") from exc
    except psycopg2.DataError as exc:
        # Malformed id or out-of-range value rejected by PostgreSQL
        conn.rollback()
        raise ValidationError(f"invalid value: {exc.pgerror or exc}") from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def fetchall(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> list[tuple[Any, ...]]:
    """Execute query and fetch all rows."""
    cur.execute(query, params)
    return cur.fetchall()

