"""One-click accept/refuse links sent to the host.

Each pending booking gets two single-use tokens (64 hex chars). Following a
link applies the action if the token is unused and unexpired and the booking
is still pending.
"""

from __future__ import annotations

import logging
import os
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from psycopg2.extensions import cursor as PgCursor

from immova.domain.booking_status import transition_booking
from immova.domain.errors import ConflictError, NotFoundError
from immova.domain.models import Booking
from immova.infra.db import txn
from immova.infra.repositories import action_tokens_repository as repo
from immova.infra.repositories.bookings_repository import get_booking
from immova.infra.time import utc_now

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_TTL_DAYS = 7
USED_TOKEN_RETENTION = timedelta(days=30)

ACTION_STATUS = {"accept": "accepted", "refuse": "refused"}

_TOKEN_FORMAT = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class ActionTokens:
    accept_token: str
    refuse_token: str
    expires_at: datetime


@dataclass(frozen=True)
class ActionResult:
    action: str
    booking: Booking


def token_ttl() -> timedelta:
    raw = os.environ.get("EMAIL_ACTION_TOKEN_TTL_DAYS", "")
    try:
        days = int(raw) if raw else DEFAULT_TOKEN_TTL_DAYS
    except ValueError:
        days = DEFAULT_TOKEN_TTL_DAYS
    return timedelta(days=days if days > 0 else DEFAULT_TOKEN_TTL_DAYS)


def issue_action_tokens(cur: PgCursor, booking_id: str) -> ActionTokens:
    """Create the accept and refuse tokens of a booking in the caller's transaction."""
    expires_at = utc_now() + token_ttl()
    accept = secrets.token_hex(32)
    refuse = secrets.token_hex(32)
    repo.insert_token(cur, token=accept, booking_id=booking_id, action="accept", expires_at=expires_at)
    repo.insert_token(cur, token=refuse, booking_id=booking_id, action="refuse", expires_at=expires_at)
    return ActionTokens(accept_token=accept, refuse_token=refuse, expires_at=expires_at)


def execute_token_action(token: str) -> ActionResult:
    """Apply the action behind a one-click token.

    The status change and marking the token used commit together.

    Raises:
        NotFoundError: Malformed, unknown, used or expired token, or the
            booking no longer exists.
        ConflictError: The booking was already processed.
    """
    if not token or not _TOKEN_FORMAT.match(token):
        raise NotFoundError("invalid, expired or already used token")

    now = utc_now()
    with txn() as cur:
        row = repo.get_usable_token(cur, token=token, now=now)
        if row is None:
            raise NotFoundError("invalid, expired or already used token")

        booking = get_booking(cur, row["booking_id"], lock=True)
        if booking is None:
            raise NotFoundError(f"booking not found: {row['booking_id']}")
        if booking.status != "pending":
            raise ConflictError(
                "booking has already been processed",
                details={"booking_id": booking.id, "status": booking.status},
            )

        updated = transition_booking(cur, booking.id, ACTION_STATUS[row["action"]])
        repo.mark_token_used(cur, token=token, used_at=now)

    logger.info(
        "email action executed",
        extra={"extra_fields": {"booking_id": updated.id, "action": row["action"]}},
    )
    return ActionResult(action=row["action"], booking=updated)


def cleanup_expired_tokens() -> int:
    """Delete expired tokens and tokens used more than 30 days ago."""
    now = utc_now()
    with txn() as cur:
        deleted = repo.delete_stale_tokens(cur, now=now, used_before=now - USED_TOKEN_RETENTION)

    if deleted:
        logger.info("action tokens cleaned up", extra={"extra_fields": {"deleted": deleted}})
    return deleted
