"""
Unit tests for budget period resolution.

Covers each period type, the explicit end date override, start clamping
and the week/month/year boundary cases.
"""

from datetime import datetime

import pytest

from exceptions import InvalidDateError
from models import ResolvedPeriod
from period_resolver import resolve_period

EOD = (23, 59, 59, 999999)


class TestDerivedPeriods:
    """Periods derived from the period type and a reference instant."""

    def test_daily_covers_reference_day(self, make_budget):
        budget = make_budget(period="daily")
        period = resolve_period(budget, datetime(2024, 3, 15, 14, 30))
        assert period.start == datetime(2024, 3, 15)
        assert period.end == datetime(2024, 3, 15, *EOD)

    def test_weekly_starts_monday(self, make_budget):
        """Wednesday 2024-03-13 belongs to the week of Monday 03-11."""
        budget = make_budget(period="weekly")
        period = resolve_period(budget, datetime(2024, 3, 13, 9))
        assert period.start == datetime(2024, 3, 11)
        assert period.end == datetime(2024, 3, 17, *EOD)

    def test_weekly_sunday_closes_its_week(self, make_budget):
        """A Sunday reference belongs to the week ending that day."""
        budget = make_budget(period="weekly")
        period = resolve_period(budget, datetime(2024, 3, 17, 20))
        assert period.start == datetime(2024, 3, 11)
        assert period.end == datetime(2024, 3, 17, *EOD)

    def test_weekly_monday_opens_its_week(self, make_budget):
        budget = make_budget(period="weekly")
        period = resolve_period(budget, datetime(2024, 3, 18))
        assert period.start == datetime(2024, 3, 18)
        assert period.end == datetime(2024, 3, 24, *EOD)

    def test_weekly_spanning_year_end(self, make_budget):
        budget = make_budget(period="weekly", start_date=datetime(2020, 1, 1))
        period = resolve_period(budget, datetime(2025, 1, 1))
        assert period.start == datetime(2024, 12, 30)
        assert period.end == datetime(2025, 1, 5, *EOD)

    def test_monthly_leap_february(self, make_budget):
        budget = make_budget(period="monthly")
        period = resolve_period(budget, "2024-02-15")
        assert period == ResolvedPeriod(datetime(2024, 2, 1), datetime(2024, 2, 29, *EOD))

    def test_monthly_non_leap_february(self, make_budget):
        budget = make_budget(period="monthly", start_date=datetime(2022, 1, 1))
        period = resolve_period(budget, "2023-02-10")
        assert period.end == datetime(2023, 2, 28, *EOD)

    def test_monthly_december(self, make_budget):
        budget = make_budget(period="monthly")
        period = resolve_period(budget, datetime(2024, 12, 31, 23, 59))
        assert period.start == datetime(2024, 12, 1)
        assert period.end == datetime(2024, 12, 31, *EOD)

    def test_yearly_covers_calendar_year(self, make_budget):
        budget = make_budget(period="yearly", start_date=datetime(2023, 6, 1))
        period = resolve_period(budget, datetime(2024, 7, 4))
        assert period.start == datetime(2024, 1, 1)
        assert period.end == datetime(2024, 12, 31, *EOD)

    def test_custom_without_end_falls_back_to_monthly(self, make_budget):
        budget = make_budget(period="custom")
        period = resolve_period(budget, datetime(2024, 4, 10))
        assert period.start == datetime(2024, 4, 1)
        assert period.end == datetime(2024, 4, 30, *EOD)

    @pytest.mark.parametrize("day", [1, 10, 15, 28, 29])
    def test_monthly_period_contains_reference(self, make_budget, day):
        budget = make_budget(period="monthly")
        reference = datetime(2024, 2, day, 12)
        period = resolve_period(budget, reference)
        assert period.start.day == 1
        assert period.end.day == 29
        assert period.contains(reference)


class TestExplicitAndClamped:
    """Explicit end dates and clamping against the budget start date."""

    def test_explicit_end_date_wins(self, make_budget):
        budget = make_budget(
            period="weekly",
            start_date=datetime(2024, 1, 10),
            end_date=datetime(2024, 2, 20),
        )
        period = resolve_period(budget, datetime(2030, 1, 1))
        assert period.start == datetime(2024, 1, 10)
        assert period.end == datetime(2024, 2, 20)

    def test_start_clamped_to_budget_start(self, make_budget):
        budget = make_budget(period="monthly", start_date=datetime(2024, 3, 12, 8))
        period = resolve_period(budget, datetime(2024, 3, 20))
        assert period.start == datetime(2024, 3, 12, 8)
        assert period.end == datetime(2024, 3, 31, *EOD)

    def test_start_never_precedes_budget_start(self, make_budget):
        references = [datetime(2024, m, 5) for m in range(1, 13)]
        for period_type in ("daily", "weekly", "monthly", "yearly", "custom"):
            budget = make_budget(period=period_type, start_date=datetime(2024, 6, 17, 10))
            for reference in references:
                assert resolve_period(budget, reference).start >= budget.start_date

    def test_end_is_not_clamped(self, make_budget):
        """A budget starting after the reference keeps the derived end."""
        budget = make_budget(period="monthly", start_date=datetime(2024, 5, 10))
        period = resolve_period(budget, datetime(2024, 4, 15))
        assert period.start == datetime(2024, 5, 10)
        assert period.end == datetime(2024, 4, 30, *EOD)


class TestReferenceHandling:
    """Reference instant parsing and defaults."""

    def test_iso_datetime_string_with_offset_keeps_wall_clock(self, make_budget):
        budget = make_budget(period="daily")
        period = resolve_period(budget, "2024-03-15T23:30:00+05:00")
        assert period.start == datetime(2024, 3, 15)

    def test_invalid_reference_raises(self, make_budget):
        with pytest.raises(InvalidDateError):
            resolve_period(make_budget(), "15/03/2024")

    def test_invalid_reference_raises_with_explicit_end(self, make_budget):
        budget = make_budget(end_date=datetime(2024, 3, 1))
        with pytest.raises(InvalidDateError):
            resolve_period(budget, "not-a-date")

    def test_defaults_to_now(self, make_budget):
        budget = make_budget(period="daily", start_date=datetime(2000, 1, 1))
        period = resolve_period(budget)
        assert period.contains(datetime.now())
