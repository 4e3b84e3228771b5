# tests/utils/test_date_utils.py
"""
Tests for history date sampling.
"""

from datetime import date

import pytest

from fundfolio.services.exceptions import InvalidIntervalError
from fundfolio.utils.date_utils import generate_dates, month_end


class TestGenerateDates:
    """Tests for generate_dates function."""

    def test_daily_inclusive(self):
        dates = generate_dates(date(2024, 1, 30), date(2024, 2, 2), "daily")

        assert dates == [date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1), date(2024, 2, 2)]

    def test_single_day(self):
        assert generate_dates(date(2024, 1, 1), date(2024, 1, 1)) == [date(2024, 1, 1)]

    def test_inverted_range_is_empty(self):
        assert generate_dates(date(2024, 2, 1), date(2024, 1, 1), "weekly") == []

    def test_weekly_fridays_plus_end(self):
        """Jan 1 2024 is a Monday; Fridays are the 5th and 12th."""
        dates = generate_dates(date(2024, 1, 1), date(2024, 1, 14), "weekly")

        assert dates == [date(2024, 1, 5), date(2024, 1, 12), date(2024, 1, 14)]

    def test_weekly_end_on_friday_not_duplicated(self):
        dates = generate_dates(date(2024, 1, 1), date(2024, 1, 12), "weekly")

        assert dates == [date(2024, 1, 5), date(2024, 1, 12)]

    def test_weekly_no_friday_in_range(self):
        """A range without a Friday still yields the end date."""
        dates = generate_dates(date(2024, 1, 6), date(2024, 1, 8), "weekly")

        assert dates == [date(2024, 1, 8)]

    def test_monthly_month_ends_plus_end(self):
        dates = generate_dates(date(2024, 1, 15), date(2024, 4, 10), "monthly")

        assert dates == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31), date(2024, 4, 10)]

    def test_monthly_end_on_month_end_not_duplicated(self):
        dates = generate_dates(date(2024, 1, 1), date(2024, 2, 29), "monthly")

        assert dates == [date(2024, 1, 31), date(2024, 2, 29)]

    def test_invalid_interval(self):
        with pytest.raises(InvalidIntervalError) as exc_info:
            generate_dates(date(2024, 1, 1), date(2024, 1, 2), "hourly")

        assert exc_info.value.interval == "hourly"


class TestMonthEnd:
    """Tests for month_end function."""

    @pytest.mark.parametrize("day, expected", [
        (date(2024, 2, 10), date(2024, 2, 29)),
        (date(2023, 2, 10), date(2023, 2, 28)),
        (date(2024, 12, 31), date(2024, 12, 31)),
        (date(2024, 4, 1), date(2024, 4, 30)),
    ])
    def test_month_end(self, day, expected):
        assert month_end(day) == expected
