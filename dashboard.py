"""
Dashboard summaries built on recurrence projection.

Provides the reporting windows offered by the dashboard, predicted income
and expense totals for a window (recurring transactions projected, never
materialized), and recorded-amount statistics grouped by budget, source and
day.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from date_utils import (
    DateLike,
    end_of_day,
    end_of_month,
    end_of_year,
    parse_instant,
    parse_window_end,
    start_of_day,
    start_of_month,
    start_of_year,
)
from exceptions import ValidationError
from models import Expense, ExpenseFilter, Income, IncomeFilter, ResolvedPeriod
from recurrence import project_totals

logger = logging.getLogger(__name__)

TIME_RANGES = ("week", "month", "year")
DEFAULT_TIME_RANGE = "month"


def reporting_window(time_range: str = DEFAULT_TIME_RANGE, reference: Optional[DateLike] = None) -> ResolvedPeriod:
    """
    Return the dashboard window for ``time_range`` around ``reference``.

    ``week`` covers the seven days ending on the reference day, ``month`` the
    reference calendar month and ``year`` the reference calendar year. All
    windows run from 00:00 on the first day to the end of the last day.

    Raises:
        ValidationError: If ``time_range`` is not week, month or year.
    """
    instant = datetime.now() if reference is None else parse_instant(reference)
    key = (time_range or "").strip().lower()

    if key == "week":
        window = ResolvedPeriod(start_of_day(instant - timedelta(days=6)), end_of_day(instant))
    elif key == "month":
        window = ResolvedPeriod(start_of_month(instant), end_of_month(instant))
    elif key == "year":
        window = ResolvedPeriod(start_of_year(instant), end_of_year(instant))
    else:
        raise ValidationError(
            f"Unknown dashboard time range: {time_range!r}",
            details={"allowed": ", ".join(TIME_RANGES)}
        )
    return window


def day_bounded_window(range_start: Optional[DateLike], range_end: Optional[DateLike]) -> ResolvedPeriod:
    """Widen optional bounds to whole days; missing bounds stay open."""
    start = start_of_day(parse_instant(range_start)) if range_start is not None else datetime.min
    end = end_of_day(parse_instant(range_end)) if range_end is not None else datetime.max
    if start > end:
        raise ValidationError(
            "Statistics start date must not be after its end date",
            details={"start": start.isoformat(), "end": end.isoformat()}
        )
    return ResolvedPeriod(start, end)


@dataclass
class DashboardSummary:
    """Predicted totals for one reporting window."""
    range_start: datetime
    range_end: datetime
    predicted_income: Decimal
    predicted_expenses: Decimal

    @property
    def balance(self) -> Decimal:
        return self.predicted_income - self.predicted_expenses

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range_start": self.range_start.isoformat(),
            "range_end": self.range_end.isoformat(),
            "predicted_income": str(self.predicted_income),
            "predicted_expenses": str(self.predicted_expenses),
            "balance": str(self.balance),
        }


def _totals_by_day(records: Iterable) -> List[Dict[str, Any]]:
    by_day: Dict[str, Decimal] = defaultdict(Decimal)
    for record in records:
        by_day[record.date.date().isoformat()] += record.amount
    return [{"date": day, "total": total} for day, total in sorted(by_day.items())]


def expense_statistics(
    expenses: Iterable[Expense],
    budget_names: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """
    Group recorded expense amounts.

    Recurring expenses count once at their recorded date here; use
    :func:`recurrence.project_totals` for projected amounts.

    Args:
        expenses: Expenses to aggregate.
        budget_names: Optional budget id -> name lookup for display.

    Returns:
        Dictionary with ``total``, ``by_budget`` (descending by total) and
        ``by_date`` (ascending by day).
    """
    expenses = list(expenses)
    budget_names = budget_names or {}

    by_budget: Dict[str, Decimal] = defaultdict(Decimal)
    for expense in expenses:
        by_budget[expense.budget_ref] += expense.amount

    return {
        "total": sum((e.amount for e in expenses), Decimal("0")),
        "by_budget": [
            {"budget_id": budget_id, "budget_name": budget_names.get(budget_id), "total": total}
            for budget_id, total in sorted(by_budget.items(), key=lambda item: item[1], reverse=True)
        ],
        "by_date": _totals_by_day(expenses),
    }


def income_statistics(incomes: Iterable[Income]) -> Dict[str, Any]:
    """Group recorded income amounts by source and by day."""
    incomes = list(incomes)

    by_source: Dict[str, Decimal] = defaultdict(Decimal)
    for income in incomes:
        by_source[income.source] += income.amount

    return {
        "total": sum((i.amount for i in incomes), Decimal("0")),
        "by_source": [
            {"source": source, "total": total}
            for source, total in sorted(by_source.items(), key=lambda item: item[1], reverse=True)
        ],
        "by_date": _totals_by_day(incomes),
    }


class DashboardService:
    """Builds dashboard figures for a user from a transaction store."""

    def __init__(self, store):
        """
        Initialize the dashboard service.

        Args:
            store: TransactionStore implementation
        """
        self.store = store

    def summary(self, user_id: str, range_start: DateLike, range_end: DateLike) -> DashboardSummary:
        """
        Project all of a user's incomes and expenses into a window.

        Every transaction is fetched without a date filter because a
        recurring anchor recorded before the window can still land
        occurrences inside it. A date-only ``range_end`` covers that whole day.
        """
        start = parse_instant(range_start)
        end = parse_window_end(range_end)
        incomes = self.store.find_incomes(user_id, IncomeFilter())
        expenses = self.store.find_expenses(user_id, ExpenseFilter())

        summary = DashboardSummary(
            range_start=start,
            range_end=end,
            predicted_income=project_totals(incomes, start, end),
            predicted_expenses=project_totals(expenses, start, end),
        )
        logger.info(
            "Dashboard summary for %s (%s - %s): income %s, expenses %s",
            user_id, start.date(), end.date(), summary.predicted_income, summary.predicted_expenses
        )
        return summary

    def summary_for_range(
        self,
        user_id: str,
        time_range: str = DEFAULT_TIME_RANGE,
        reference: Optional[DateLike] = None
    ) -> DashboardSummary:
        window = reporting_window(time_range, reference)
        return self.summary(user_id, window.start, window.end)

    def expense_stats(
        self,
        user_id: str,
        range_start: Optional[DateLike] = None,
        range_end: Optional[DateLike] = None
    ) -> Dict[str, Any]:
        window = day_bounded_window(range_start, range_end)
        expenses = self.store.find_expenses(
            user_id, ExpenseFilter(date_from=window.start, date_to=window.end)
        )
        names = {budget.id: budget.name for budget in self.store.list_budgets(user_id)}
        return expense_statistics(expenses, names)

    def income_stats(
        self,
        user_id: str,
        range_start: Optional[DateLike] = None,
        range_end: Optional[DateLike] = None
    ) -> Dict[str, Any]:
        window = day_bounded_window(range_start, range_end)
        incomes = self.store.find_incomes(
            user_id, IncomeFilter(date_from=window.start, date_to=window.end)
        )
        return income_statistics(incomes)
