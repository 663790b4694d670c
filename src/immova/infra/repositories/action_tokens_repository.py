"""E-mail action tokens repository - one-click accept/refuse links.

Uses raw SQL with psycopg2 (no ORM).
"""

from datetime import datetime

from psycopg2.extensions import cursor as PgCursor


def insert_token(
    cur: PgCursor,
    *,
    token: str,
    booking_id: str,
    action: str,
    expires_at: datetime,
) -> None:
    cur.execute(
        """
        INSERT INTO email_action_tokens (token, booking_id, action, expires_at)
        VALUES (%s, %s, %s, %s)
        """,
        (token, booking_id, action, expires_at),
    )


def get_usable_token(cur: PgCursor, *, token: str, now: datetime) -> dict | None:
    """Lock and return an unused, unexpired token (None otherwise)."""
    cur.execute(
        """
        SELECT token, booking_id, action, expires_at
        FROM email_action_tokens
        WHERE token = %s
          AND used = false
          AND expires_at > %s
        FOR UPDATE
        """,
        (token, now),
    )
    row = cur.fetchone()
    if row is None:
        return None

    return {
        "token": row[0],
        "booking_id": str(row[1]),
        "action": row[2],
        "expires_at": row[3],
    }


def mark_token_used(cur: PgCursor, *, token: str, used_at: datetime) -> None:
    cur.execute(
        """
        UPDATE email_action_tokens
        SET used = true, used_at = %s
        WHERE token = %s
        """,
        (used_at, token),
    )


def delete_stale_tokens(
    cur: PgCursor,
    *,
    now: datetime,
    used_before: datetime,
) -> int:
    """Delete expired tokens and tokens used before used_before.

    Returns:
        Number of tokens deleted.
    """
    cur.execute(
        """
        DELETE FROM email_action_tokens
        WHERE expires_at < %s
           OR (used = true AND used_at < %s)
        """,
        (now, used_before),
    )
    return cur.rowcount
