"""Tests for the disabled-date expander."""

from datetime import date
from unittest.mock import patch

import pytest

from immova.domain.disabled_dates import (
    blocked_period_dates,
    booking_dates,
    expand,
    expand_disabled_dates,
)
from immova.domain.errors import DataIntegrityWarning, ValidationError
from immova.domain.models import BlockedPeriod

from helpers import d, make_booking, make_period


class TestBlockedPeriodDates:
    def test_single_day_period_fully_disabled(self):
        assert blocked_period_dates(make_period("2025-07-14", "2025-07-14")) == [d("2025-07-14")]

    def test_multi_day_period_end_stays_blocked(self):
        days = blocked_period_dates(make_period("2025-07-10", "2025-07-13"))
        assert days == [d("2025-07-10"), d("2025-07-11"), d("2025-07-12"), d("2025-07-13")]

    def test_inverted_period_raises_integrity_warning(self):
        with pytest.raises(DataIntegrityWarning) as exc_info:
            blocked_period_dates(make_period("2025-07-13", "2025-07-10", period_id="bad"))
        assert exc_info.value.record_kind == "blocked_period"
        assert exc_info.value.record_id == "bad"


class TestBookingDates:
    def test_departure_day_is_not_occupied(self):
        days, departure = booking_dates(make_booking("2025-09-21", "2025-09-26"))
        assert days[0] == d("2025-09-21")
        assert days[-1] == d("2025-09-25")
        assert departure == d("2025-09-26")


class TestExpand:
    def test_booking_departure_day_is_bookable(self):
        result = expand([], [make_booking("2025-09-21", "2025-09-26")])

        assert result.disabled_dates == [
            "2025-09-21",
            "2025-09-22",
            "2025-09-23",
            "2025-09-24",
            "2025-09-25",
        ]
        assert "2025-09-26" not in result.disabled_dates
        assert result.available_departure_dates == ["2025-09-26"]

    def test_mixed_sources_are_merged_sorted_and_deduplicated(self):
        periods = [
            make_period("2025-09-24", "2025-09-24", period_id="p1"),
            make_period("2025-09-01", "2025-09-03", period_id="p2"),
        ]
        bookings = [
            make_booking("2025-09-21", "2025-09-26", booking_id="b1"),
            make_booking("2025-09-23", "2025-09-25", booking_id="b2"),
        ]
        result = expand(periods, bookings)

        assert result.disabled_dates == [
            "2025-09-01",
            "2025-09-02",
            "2025-09-03",
            "2025-09-21",
            "2025-09-22",
            "2025-09-23",
            "2025-09-24",
            "2025-09-25",
        ]
        assert result.available_departure_dates == ["2025-09-25", "2025-09-26"]

    def test_malformed_record_is_skipped_and_logged(self, caplog):
        broken = BlockedPeriod(
            id="broken",
            apartment_id="valery-sources-baie",
            start_date=None,
            end_date=date(2025, 9, 2),
        )
        with caplog.at_level("WARNING", logger="immova.domain.disabled_dates"):
            result = expand([broken, make_period("2025-09-10", "2025-09-10")], [])

        assert result.disabled_dates == ["2025-09-10"]
        assert result.skipped_records == 1
        assert [p.id for p in result.blocked_periods] == ["bp-1"]
        assert any("inconsistent record skipped" in r.message for r in caplog.records)

    def test_inverted_booking_skipped(self):
        result = expand([], [make_booking("2025-09-26", "2025-09-21")])
        assert result.disabled_dates == []
        assert result.available_departure_dates == []
        assert result.skipped_records == 1

    def test_empty_inputs(self):
        result = expand([], [])
        assert result.disabled_dates == []
        assert result.available_departure_dates == []

    def test_to_dict_shape(self):
        result = expand([make_period("2025-07-14", "2025-07-14")], [make_booking("2025-07-01", "2025-07-03")])
        body = result.to_dict()
        assert set(body) == {"disabled_dates", "available_departure_dates", "periods", "skipped_records"}
        assert body["periods"]["blocked_periods"][0]["start_date"] == "2025-07-14"
        assert body["periods"]["bookings"][0]["status"] == "pending"


class TestExpandDisabledDates:
    def test_reads_records_ending_from_today(self, mock_txn, mock_cur):
        today = d("2025-09-01")
        with patch("immova.domain.disabled_dates.txn", mock_txn), \
             patch("immova.domain.disabled_dates.list_blocked_periods", return_value=[]) as list_periods, \
             patch(
                 "immova.domain.disabled_dates.list_active_bookings",
                 return_value=[make_booking("2025-09-21", "2025-09-23")],
             ) as list_bookings:
            result = expand_disabled_dates("valery-sources-baie", today=today)

        list_periods.assert_called_once_with(
            mock_cur, apartment_id="valery-sources-baie", ending_on_or_after=today
        )
        list_bookings.assert_called_once_with(
            mock_cur, apartment_id="valery-sources-baie", ending_on_or_after=today
        )
        assert result.disabled_dates == ["2025-09-21", "2025-09-22"]

    def test_defaults_to_utc_today(self, mock_txn):
        with patch("immova.domain.disabled_dates.txn", mock_txn), \
             patch("immova.domain.disabled_dates.utc_today", return_value=d("2030-01-01")), \
             patch("immova.domain.disabled_dates.list_blocked_periods", return_value=[]) as list_periods, \
             patch("immova.domain.disabled_dates.list_active_bookings", return_value=[]):
            expand_disabled_dates("touquet-pinede")

        assert list_periods.call_args.kwargs["ending_on_or_after"] == d("2030-01-01")

    def test_unknown_apartment_rejected_before_query(self):
        with patch("immova.domain.disabled_dates.txn") as txn:
            with pytest.raises(ValidationError, match="unknown apartment"):
                expand_disabled_dates("chalet-inconnu")
        txn.assert_not_called()
