"""Error taxonomy for the availability and pricing engine.

Every domain operation either returns a result or raises one of these. The
HTTP layer maps them to status codes (see immova.api.factory); nothing here
knows about transport.
"""

from __future__ import annotations

from typing import Any


class BookingError(Exception):
    """Base class for errors surfaced to callers."""

    status_code = 500

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(BookingError):
    """Malformed or missing fields, inverted ranges, unknown property key."""

    status_code = 400


class InvalidRangeError(ValidationError):
    """Date range is inverted (or empty where a stay is required)."""

    def __init__(self, start: Any, end: Any, message: str | None = None) -> None:
        self.start = start
        self.end = end
        super().__init__(
            message or f"invalid date range: {start} to {end}",
            details={"start_date": str(start), "end_date": str(end)},
        )


class ConflictError(BookingError):
    """Overlap detected on creation, or a state transition is not allowed."""

    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        conflicts: list[dict[str, Any]] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.conflicts = conflicts or []
        super().__init__(message, details=details)


class NotFoundError(BookingError):
    """Referenced period, booking, rule or token does not exist."""

    status_code = 404


class CartExpiredError(BookingError):
    """The cart passed its expiry before checkout and has been discarded."""

    status_code = 410


class StoreUnavailable(BookingError):
    """Persistence is unreachable. Never retried inside the core."""

    status_code = 503


class SplitIncompleteError(BookingError):
    """A multi-step unblock failed part-way and was rolled back.

    Attributes:
        period_id: Blocked period being rewritten when the failure happened.
        failed_step: "delete", "residual_before" or "residual_after".
        completed_steps: Steps applied before the failure (all rolled back).
    """

    status_code = 500

    def __init__(
        self,
        *,
        period_id: str,
        failed_step: str,
        completed_steps: list[dict[str, Any]],
        cause: BaseException,
    ) -> None:
        self.period_id = period_id
        self.failed_step = failed_step
        self.completed_steps = completed_steps
        super().__init__(
            f"unblock failed at {failed_step} for period {period_id}; "
            f"{len(completed_steps)} completed step(s) rolled back",
            details={
                "period_id": period_id,
                "failed_step": failed_step,
                "completed_steps": completed_steps,
                "rolled_back": True,
                "cause": type(cause).__name__,
            },
        )


class DataIntegrityWarning(Exception):
    """A stored record has inconsistent dates.

    Raised and caught inside batch computations: the record is logged and
    skipped, the batch continues.
    """

    def __init__(self, record_kind: str, record_id: Any, reason: str) -> None:
        self.record_kind = record_kind
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"{record_kind} {record_id}: {reason}")
