"""
Period resolution for budgets.

Computes the concrete ``[start, end]`` interval currently in effect for a
budget from its period type, start date and optional explicit end date.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple

from date_utils import (
    DateLike,
    end_of_day,
    end_of_month,
    end_of_week,
    end_of_year,
    parse_instant,
    start_of_day,
    start_of_month,
    start_of_week,
    start_of_year,
)
from models import Budget, BudgetPeriod, ResolvedPeriod

logger = logging.getLogger(__name__)

_Boundaries = Tuple[Callable[[datetime], datetime], Callable[[datetime], datetime]]

PERIOD_BOUNDARIES: Dict[BudgetPeriod, _Boundaries] = {
    BudgetPeriod.DAILY: (start_of_day, end_of_day),
    BudgetPeriod.WEEKLY: (start_of_week, end_of_week),
    BudgetPeriod.MONTHLY: (start_of_month, end_of_month),
    BudgetPeriod.YEARLY: (start_of_year, end_of_year),
    # custom budgets without an end date fall back to the monthly rule
    BudgetPeriod.CUSTOM: (start_of_month, end_of_month),
}


def resolve_period(budget: Budget, reference: Optional[DateLike] = None) -> ResolvedPeriod:
    """
    Resolve the interval in effect for ``budget`` at ``reference``.

    An explicit ``end_date`` always wins and the stored dates are returned
    unchanged. Otherwise the interval is derived from the period type around
    the reference instant, and its start is clamped to the budget's start
    date so progress never covers time before the budget existed. The end is
    never clamped.

    Args:
        budget: Budget to resolve.
        reference: Instant to resolve against; defaults to the current time.

    Returns:
        ResolvedPeriod with inclusive boundaries.

    Raises:
        InvalidDateError: If ``reference`` is a string that does not parse.
    """
    # parsed up front so a bad reference is rejected even when it goes unused
    instant = datetime.now() if reference is None else parse_instant(reference)

    if budget.end_date is not None:
        return ResolvedPeriod(start=budget.start_date, end=budget.end_date)

    start_fn, end_fn = PERIOD_BOUNDARIES[budget.period]
    start = start_fn(instant)
    end = end_fn(instant)

    if budget.start_date > start:
        start = budget.start_date

    logger.debug(
        "Resolved %s period for budget %s at %s: %s - %s",
        budget.period.value, budget.id, instant.isoformat(), start.isoformat(), end.isoformat()
    )
    return ResolvedPeriod(start=start, end=end)
