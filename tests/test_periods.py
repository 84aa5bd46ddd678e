"""
Tests for period classification.
"""

import pytest
from datetime import datetime, timezone

from household_ledger.queries.periods import (
    PeriodClass,
    PeriodFilter,
    bucket,
    classify,
    effective_date,
    in_period,
    is_current_month,
    is_future_month,
    month_index,
)


def utc(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


NOW = utc(2024, 5, 15)


class TestMonthArithmetic:
    """Tests for month indices and the simple predicates."""

    def test_month_index(self):
        """Test year*12 + month-1."""
        assert month_index(utc(2024, 1, 1)) == 2024 * 12
        assert month_index(utc(2024, 12, 31)) + 1 == month_index(utc(2025, 1, 1))

    def test_naive_dates_are_utc(self):
        """Test naive datetimes classify as UTC."""
        assert is_current_month(datetime(2024, 5, 31, 23, 59), NOW)

    def test_december_to_january(self):
        """Test year rollover."""
        december = utc(2024, 12, 15)
        assert is_future_month(utc(2025, 1, 1), december)
        assert classify(utc(2025, 1, 1), december) == PeriodClass.FUTURE
        assert classify(utc(2024, 12, 31), december) == PeriodClass.PAST_OR_CURRENT
        assert classify(utc(2023, 1, 1), december) == PeriodClass.PAST_OR_CURRENT

    def test_current_month_boundaries(self):
        """Test first and last instants of the month."""
        assert is_current_month(datetime(2024, 5, 1, 0, 0, tzinfo=timezone.utc), NOW)
        assert is_current_month(datetime(2024, 5, 31, 23, 59, 59, tzinfo=timezone.utc), NOW)
        assert not is_current_month(datetime(2024, 6, 1, 0, 0, tzinfo=timezone.utc), NOW)


class TestBucket:
    """Tests for the most specific period of a date."""

    @pytest.mark.parametrize("value, expected", [
        (utc(2024, 5, 1), PeriodFilter.THIS_MONTH),
        (utc(2024, 6, 30), PeriodFilter.NEXT_MONTH),
        (utc(2024, 4, 2), PeriodFilter.LAST_MONTH),
        (utc(2024, 3, 2), PeriodFilter.LAST_3_MONTHS),
        (utc(2024, 2, 2), PeriodFilter.LAST_3_MONTHS),
        (utc(2024, 1, 2), PeriodFilter.THIS_YEAR),
        (utc(2024, 9, 2), PeriodFilter.THIS_YEAR),
        (utc(2023, 12, 31), PeriodFilter.ALL),
        (None, PeriodFilter.ALL),
    ])
    def test_bucket(self, value, expected):
        """Test bucket precedence."""
        assert bucket(value, NOW) == expected

    def test_bucket_across_year(self):
        """Test last month of the previous year is last_month in January."""
        assert bucket(utc(2023, 12, 20), utc(2024, 1, 5)) == PeriodFilter.LAST_MONTH
        assert bucket(utc(2025, 1, 20), utc(2024, 12, 5)) == PeriodFilter.NEXT_MONTH


class TestInPeriod:
    """Tests for the overlapping history filters."""

    def test_last_three_months_window(self):
        """Test the window runs from month-3 to the end of this month."""
        assert in_period(utc(2024, 2, 1), "last_3_months", NOW)
        assert in_period(utc(2024, 5, 31), "last_3_months", NOW)
        assert not in_period(utc(2024, 1, 31), "last_3_months", NOW)
        assert not in_period(utc(2024, 6, 1), "last_3_months", NOW)

    def test_periods_overlap(self):
        """Test a current-month date passes several filters."""
        value = utc(2024, 5, 3)
        assert in_period(value, PeriodFilter.THIS_MONTH, NOW)
        assert in_period(value, PeriodFilter.LAST_3_MONTHS, NOW)
        assert in_period(value, PeriodFilter.THIS_YEAR, NOW)
        assert not in_period(value, PeriodFilter.LAST_MONTH, NOW)

    def test_next_month_across_year(self):
        """Test next_month in December is January."""
        assert in_period(utc(2025, 1, 2), "next_month", utc(2024, 12, 20))

    def test_all_accepts_anything(self):
        """Test the 'all' filter, even without a date."""
        assert in_period(None, "all", NOW)
        assert not in_period(None, "this_month", NOW)

    def test_unknown_period_raises(self):
        """Test bad filter names are rejected."""
        with pytest.raises(ValueError):
            in_period(NOW, "fortnight", NOW)


class TestEffectiveDate:
    """Tests for effective dates of raw rows."""

    def test_due_date_wins(self):
        """Test dueDate over createdAt."""
        row = {"createdAt": "2024-01-01T00:00:00Z", "dueDate": "2024-03-05"}
        assert effective_date(row).month == 3

    def test_snake_case_and_fallback(self):
        """Test created_at fallback."""
        assert effective_date({"created_at": "2024-02-02"}).month == 2

    def test_unparseable_is_none(self):
        """Test garbage dates yield None."""
        assert effective_date({"dueDate": "soon"}) is None
