"""Tests for the availability resolver."""

from unittest.mock import patch

import pytest

from immova.domain.availability import check_availability
from immova.domain.disabled_dates import expand
from immova.domain.errors import InvalidRangeError, ValidationError
from immova.domain.periods import iter_dates, overlaps_closed

from helpers import d, make_booking, make_period

MOD = "immova.domain.availability"


class TestCheckAvailability:
    def test_free_range(self, mock_txn, mock_cur):
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.find_overlapping", return_value=[]) as blocked, \
             patch(f"{MOD}.find_overlapping_active", return_value=[]) as active:
            result = check_availability("valery-sources-baie", "2025-09-26", "2025-09-28")

        assert result.available is True
        blocked.assert_called_once_with(
            mock_cur, apartment_id="valery-sources-baie", start=d("2025-09-26"), end=d("2025-09-28")
        )
        active.assert_called_once_with(
            mock_cur, apartment_id="valery-sources-baie", start=d("2025-09-26"), end=d("2025-09-28")
        )

    def test_blocked_period_conflict(self, mock_txn):
        period = make_period("2025-09-27", "2025-09-27")
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.find_overlapping", return_value=[period]), \
             patch(f"{MOD}.find_overlapping_active", return_value=[]):
            result = check_availability("valery-sources-baie", "2025-09-26", "2025-09-28")

        assert result.available is False
        assert result.blocked_conflicts == [period]
        assert result.to_dict()["blocked_conflicts"][0]["start_date"] == "2025-09-27"

    def test_booking_conflict(self, mock_txn):
        booking = make_booking("2025-09-21", "2025-09-27", status="accepted")
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.find_overlapping", return_value=[]), \
             patch(f"{MOD}.find_overlapping_active", return_value=[booking]):
            result = check_availability("valery-sources-baie", "2025-09-26", "2025-09-28")

        assert result.available is False
        assert result.to_dict()["booking_conflicts"] == [
            {"id": "bk-1", "start_date": "2025-09-21", "end_date": "2025-09-27", "status": "accepted"}
        ]

    def test_uses_caller_cursor_without_new_transaction(self, mock_cur):
        with patch(f"{MOD}.txn") as txn, \
             patch(f"{MOD}.find_overlapping", return_value=[]) as blocked, \
             patch(f"{MOD}.find_overlapping_active", return_value=[]):
            check_availability("touquet-pinede", "2025-09-26", "2025-09-28", cur=mock_cur)

        txn.assert_not_called()
        assert blocked.call_args.args[0] is mock_cur

    @pytest.mark.parametrize("start,end", [("2025-09-26", "2025-09-26"), ("2025-09-28", "2025-09-26")])
    def test_empty_or_inverted_stay_rejected_before_query(self, start, end):
        with patch(f"{MOD}.txn") as txn:
            with pytest.raises(InvalidRangeError):
                check_availability("valery-sources-baie", start, end)
        txn.assert_not_called()

    def test_unknown_apartment(self):
        with pytest.raises(ValidationError, match="unknown apartment"):
            check_availability("maison-inconnue", "2025-09-26", "2025-09-28")

    def test_conflict_is_logged(self, mock_txn, caplog):
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.find_overlapping", return_value=[make_period("2025-09-27", "2025-09-27")]), \
             patch(f"{MOD}.find_overlapping_active", return_value=[]):
            with caplog.at_level("INFO", logger=MOD):
                check_availability("valery-sources-baie", "2025-09-26", "2025-09-28")

        assert any(r.message == "availability conflict" for r in caplog.records)


class TestAgreesWithCalendar:
    """check_availability and the disabled-date calendar use one end-date rule."""

    PERIODS = [
        make_period("2025-01-01", "2025-01-10", period_id="long"),
        make_period("2025-01-15", "2025-01-15", period_id="single"),
    ]

    @staticmethod
    def _find_overlapping(cur, *, apartment_id, start, end):
        return [
            p for p in TestAgreesWithCalendar.PERIODS
            if overlaps_closed(p.start_date, p.end_date, start, end)
        ]

    def _check(self, mock_txn, start, end):
        with patch(f"{MOD}.txn", mock_txn), \
             patch(f"{MOD}.find_overlapping", side_effect=self._find_overlapping), \
             patch(f"{MOD}.find_overlapping_active", return_value=[]):
            return check_availability("valery-sources-baie", start, end)

    def test_block_end_day_is_not_offered_for_arrival(self, mock_txn):
        calendar = expand(self.PERIODS, [])

        assert "2025-01-10" in calendar.disabled_dates
        assert "2025-01-10" not in calendar.available_departure_dates
        assert self._check(mock_txn, "2025-01-10", "2025-01-12").available is False
        assert self._check(mock_txn, "2025-01-11", "2025-01-14").available is True

    @pytest.mark.parametrize(
        "start,end",
        [
            ("2024-12-28", "2025-01-01"),
            ("2024-12-28", "2024-12-31"),
            ("2025-01-09", "2025-01-11"),
            ("2025-01-10", "2025-01-12"),
            ("2025-01-11", "2025-01-14"),
            ("2025-01-11", "2025-01-15"),
            ("2025-01-15", "2025-01-17"),
            ("2025-01-16", "2025-01-20"),
        ],
    )
    def test_available_iff_no_stay_day_disabled(self, mock_txn, start, end):
        disabled = set(expand(self.PERIODS, []).disabled_dates)
        stay_days = {day.isoformat() for day in iter_dates(d(start), d(end), inclusive=True)}

        result = self._check(mock_txn, start, end)

        assert result.available is not bool(stay_days & disabled)
