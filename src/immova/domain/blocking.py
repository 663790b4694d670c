"""Blocked-period management and the block-split engine.

Unblocking a sub-range of a blocked period rewrites the period into at most
two residuals:

    period     [P.start ........................ P.end]
    unblock              [start ..... end]
    residuals  [P.start .. start-1]     [end+1 .. P.end]

Blocked periods are closed ranges (see disabled_dates), so the residuals
keep exactly the days outside [start, end] blocked. Residuals keep the
original reason. Every step of an unblock runs in one transaction; a failure
rolls the whole rewrite back and is reported as SplitIncompleteError, except
a lost database, which stays StoreUnavailable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

from psycopg2.extensions import cursor as PgCursor

from immova.domain.errors import (
    ConflictError,
    NotFoundError,
    SplitIncompleteError,
    StoreUnavailable,
)
from immova.domain.models import DEFAULT_BLOCK_REASON, BlockedPeriod
from immova.domain.periods import ONE_DAY, require_range, to_utc_date
from immova.domain.properties import parse_property
from immova.infra.db import txn
from immova.infra.repositories import blocked_periods_repository as repo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SplitPlan:
    """How one overlapping period is rewritten by an unblock."""

    period: BlockedPeriod
    before: tuple[date, date] | None
    after: tuple[date, date] | None

    @property
    def residual_count(self) -> int:
        return (self.before is not None) + (self.after is not None)


@dataclass(frozen=True)
class UnblockResult:
    deleted_count: int
    created_count: int
    created_periods: tuple[BlockedPeriod, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "deleted_count": self.deleted_count,
            "created_count": self.created_count,
            "created_periods": [p.to_dict() for p in self.created_periods],
        }


def plan_split(period: BlockedPeriod, start: date, end: date) -> SplitPlan:
    """Residuals left once [start, end] is removed from period."""
    before = None
    after = None
    if period.start_date < start:
        before = (period.start_date, start - ONE_DAY)
    if period.end_date > end:
        after = (end + ONE_DAY, period.end_date)
    return SplitPlan(period=period, before=before, after=after)


def block_range(
    apartment_id: str,
    start: date | str,
    end: date | str,
    reason: str | None = None,
    *,
    cur: PgCursor | None = None,
) -> BlockedPeriod:
    """Block [start, end] (both days included) for an apartment.

    Raises:
        ValidationError: Unknown apartment or unparseable dates.
        InvalidRangeError: If start > end.
        ConflictError: If the range meets an existing blocked period.
    """
    prop = parse_property(apartment_id)
    start_d = to_utc_date(start)
    end_d = to_utc_date(end)
    require_range(start_d, end_d, allow_single_day=True)
    reason = (reason or "").strip() or DEFAULT_BLOCK_REASON

    def _do(c: PgCursor) -> BlockedPeriod:
        existing = repo.find_overlapping(c, apartment_id=prop.value, start=start_d, end=end_d)
        if existing:
            raise ConflictError(
                "dates overlap an existing blocked period",
                conflicts=[p.to_dict() for p in existing],
            )
        return repo.insert_blocked_period(
            c, apartment_id=prop.value, start=start_d, end=end_d, reason=reason
        )

    if cur is not None:
        period = _do(cur)
    else:
        with txn() as c:
            period = _do(c)

    logger.info(
        "dates blocked",
        extra={
            "extra_fields": {
                "apartment_id": prop.value,
                "period_id": period.id,
                "start_date": start_d.isoformat(),
                "end_date": end_d.isoformat(),
            }
        },
    )
    return period


def unblock_range(
    apartment_id: str,
    start: date | str,
    end: date | str,
) -> UnblockResult:
    """Release [start, end] from every overlapping blocked period.

    Dates outside [start, end] keep their blocked status. When nothing
    overlaps, returns zero counts.

    Raises:
        ValidationError: Unknown apartment or unparseable dates.
        InvalidRangeError: If start > end.
        SplitIncompleteError: If a step failed; nothing was applied.
        StoreUnavailable: If the database went away; nothing was applied.
    """
    prop = parse_property(apartment_id)
    start_d = to_utc_date(start)
    end_d = to_utc_date(end)
    require_range(start_d, end_d, allow_single_day=True)

    completed: list[dict[str, Any]] = []
    current_period = ""
    current_step = "lookup"
    created: list[BlockedPeriod] = []
    deleted = 0

    try:
        with txn() as cur:
            overlapping = repo.find_overlapping(
                cur, apartment_id=prop.value, start=start_d, end=end_d
            )
            for plan in (plan_split(p, start_d, end_d) for p in overlapping):
                current_period = plan.period.id

                current_step = "delete"
                if not repo.delete_blocked_period(cur, plan.period.id):
                    raise NotFoundError(f"blocked period {plan.period.id} vanished during unblock")
                deleted += 1
                completed.append({"period_id": plan.period.id, "step": "delete"})

                for step, residual in (("residual_before", plan.before), ("residual_after", plan.after)):
                    if residual is None:
                        continue
                    current_step = step
                    created.append(
                        repo.insert_blocked_period(
                            cur,
                            apartment_id=prop.value,
                            start=residual[0],
                            end=residual[1],
                            reason=plan.period.reason,
                        )
                    )
                    completed.append({"period_id": plan.period.id, "step": step})
    except StoreUnavailable:
        raise
    except Exception as exc:
        if current_step == "lookup":
            raise
        raise _split_failed(prop.value, current_period, current_step, completed, exc) from exc

    if deleted:
        logger.info(
            "dates unblocked",
            extra={
                "extra_fields": {
                    "apartment_id": prop.value,
                    "start_date": start_d.isoformat(),
                    "end_date": end_d.isoformat(),
                    "deleted_count": deleted,
                    "created_count": len(created),
                }
            },
        )

    return UnblockResult(
        deleted_count=deleted,
        created_count=len(created),
        created_periods=tuple(created),
    )


def _split_failed(
    apartment_id: str,
    period_id: str,
    step: str,
    completed: list[dict[str, Any]],
    cause: BaseException,
) -> SplitIncompleteError:
    logger.error(
        "unblock rolled back",
        extra={
            "extra_fields": {
                "apartment_id": apartment_id,
                "period_id": period_id,
                "failed_step": step,
                "completed_steps": len(completed),
                "error_type": type(cause).__name__,
            }
        },
    )
    return SplitIncompleteError(
        period_id=period_id,
        failed_step=step,
        completed_steps=list(completed),
        cause=cause,
    )


def unblock_period(period_id: str) -> None:
    """Delete a blocked period by id.

    Raises:
        NotFoundError: If no such period exists.
    """
    with txn() as cur:
        if not repo.delete_blocked_period(cur, period_id):
            raise NotFoundError(f"blocked period not found: {period_id}")

    logger.info("blocked period removed", extra={"extra_fields": {"period_id": period_id}})


def list_blocked_periods(apartment_id: str, *, cur: PgCursor | None = None) -> list[BlockedPeriod]:
    """An apartment's blocked periods, sorted by start date."""
    prop = parse_property(apartment_id)
    if cur is not None:
        return repo.list_blocked_periods(cur, apartment_id=prop.value)
    with txn() as c:
        return repo.list_blocked_periods(c, apartment_id=prop.value)
