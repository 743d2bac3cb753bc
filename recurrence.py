"""
Recurrence projection for income and expense transactions.

Recurring transactions are stored as a single record whose ``date`` anchors
the series. Occurrences are never materialized; this module counts the
occurrences that land inside an arbitrary reporting window and turns them
into monetary totals.

Occurrence rules:
    - Occurrence ``k`` (``k >= 0``) of a weekly, monthly or yearly series sits
      at ``anchor + k`` cadence steps; the anchor itself is occurrence zero.
    - Daily series are counted at day granularity: one occurrence for the
      effective start (the later of anchor and window start) plus one per
      whole day elapsed from there to the window end, whatever the anchor's
      time of day.
    - Weekly steps are fixed 7 day increments from the anchor.
    - Monthly and yearly steps use calendar arithmetic measured from the
      anchor, clamping to the last valid day of the target month. An anchor
      of Jan 31 therefore lands on Feb 28/29 and returns to Mar 31.
    - Window boundaries are inclusive on both sides. A date-only window end
      covers that whole day.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Iterator, Optional, Tuple

from date_utils import DateLike, add_months, months_between, parse_instant, parse_window_end
from exceptions import ValidationError
from models import Cadence, Transaction

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

DAY = timedelta(days=1)

FIXED_STEPS = {
    Cadence.WEEKLY: timedelta(weeks=1),
}

CALENDAR_STEPS = {
    Cadence.MONTHLY: 1,
    Cadence.YEARLY: 12,
}


def _window(range_start: DateLike, range_end: DateLike) -> Tuple[datetime, datetime]:
    start = parse_instant(range_start)
    end = parse_window_end(range_end)
    if start > end:
        raise ValidationError(
            "Reporting window start must not be after its end",
            details={"range_start": start.isoformat(), "range_end": end.isoformat()}
        )
    return start, end


def _effective_start(transaction: Transaction, start: datetime, end: datetime) -> Optional[datetime]:
    """Return ``max(anchor, start)``, or None when the series begins after the window."""
    effective = max(transaction.date, start)
    if effective > end:
        return None
    return effective


def _fixed_step_bounds(
    anchor: datetime,
    effective_start: datetime,
    end: datetime,
    step: timedelta
) -> Tuple[int, int]:
    """Return the first and last step index whose occurrence lies in the window."""
    # ceil((effective_start - anchor) / step) without float division
    first = -((anchor - effective_start) // step)
    last = (end - anchor) // step
    return max(first, 0), last


def _daily_count(effective_start: datetime, end: datetime) -> int:
    # whole days elapsed, plus the effective start's own day
    return (end - effective_start).days + 1


def _calendar_occurrences(
    anchor: datetime,
    effective_start: datetime,
    end: datetime,
    months_per_step: int
) -> Iterator[datetime]:
    # Start one step short of the window so clamped days are never skipped.
    k = max(months_between(anchor, effective_start) // months_per_step - 1, 0)
    occurrence = add_months(anchor, k * months_per_step)
    while occurrence < effective_start:
        k += 1
        occurrence = add_months(anchor, k * months_per_step)
    while occurrence <= end:
        yield occurrence
        k += 1
        occurrence = add_months(anchor, k * months_per_step)


def iter_occurrences(
    transaction: Transaction,
    range_start: DateLike,
    range_end: DateLike
) -> Iterator[datetime]:
    """
    Yield every occurrence of ``transaction`` inside ``[range_start, range_end]``.

    Non-recurring transactions yield their own date at most once. Daily
    series yield one instant per counted day, starting at the effective start.

    Raises:
        InvalidDateError: If a window bound does not parse.
        ValidationError: If the window is inverted.
    """
    start, end = _window(range_start, range_end)

    if not transaction.is_recurring:
        if start <= transaction.date <= end:
            yield transaction.date
        return

    effective_start = _effective_start(transaction, start, end)
    if effective_start is None:
        return

    cadence = transaction.recurring_frequency
    anchor = transaction.date
    if cadence is Cadence.DAILY:
        for k in range(_daily_count(effective_start, end)):
            yield effective_start + k * DAY
    elif cadence in FIXED_STEPS:
        step = FIXED_STEPS[cadence]
        first, last = _fixed_step_bounds(anchor, effective_start, end, step)
        for k in range(first, last + 1):
            yield anchor + k * step
    else:
        yield from _calendar_occurrences(anchor, effective_start, end, CALENDAR_STEPS[cadence])


def count_occurrences(
    transaction: Transaction,
    range_start: DateLike,
    range_end: DateLike
) -> int:
    """
    Count the occurrences of ``transaction`` inside ``[range_start, range_end]``.

    Daily and weekly cadences are counted in closed form; monthly and yearly
    cadences walk the calendar from the anchor.
    """
    start, end = _window(range_start, range_end)

    if not transaction.is_recurring:
        return 1 if start <= transaction.date <= end else 0

    effective_start = _effective_start(transaction, start, end)
    if effective_start is None:
        return 0

    cadence = transaction.recurring_frequency
    if cadence is Cadence.DAILY:
        return _daily_count(effective_start, end)
    if cadence in FIXED_STEPS:
        first, last = _fixed_step_bounds(transaction.date, effective_start, end, FIXED_STEPS[cadence])
        return max(last - first + 1, 0)
    return sum(1 for _ in _calendar_occurrences(
        transaction.date, effective_start, end, CALENDAR_STEPS[cadence]
    ))


def project_recurring_total(
    transaction: Transaction,
    range_start: DateLike,
    range_end: DateLike
) -> Decimal:
    """
    Return the amount ``transaction`` contributes to ``[range_start, range_end]``.

    A non-recurring transaction contributes its full amount when its date is
    inside the window and nothing otherwise. A recurring transaction
    contributes its amount once per occurrence in the window.

    Args:
        transaction: Expense or income to project.
        range_start: Inclusive window start (instant or ISO-8601 string).
        range_end: Inclusive window end (instant or ISO-8601 string).

    Returns:
        Decimal total, ``0`` when no occurrence falls in the window.
    """
    occurrences = count_occurrences(transaction, range_start, range_end)
    if not occurrences:
        return ZERO
    total = transaction.amount * occurrences
    logger.debug(
        "Projected %s %s: %d occurrence(s) -> %s",
        transaction.kind, transaction.id, occurrences, total
    )
    return total


def project_totals(
    transactions: Iterable[Transaction],
    range_start: DateLike,
    range_end: DateLike
) -> Decimal:
    """Sum :func:`project_recurring_total` over ``transactions``."""
    start, end = _window(range_start, range_end)
    total = ZERO
    for transaction in transactions:
        total += project_recurring_total(transaction, start, end)
    return total
