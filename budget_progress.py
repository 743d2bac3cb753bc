"""
Budget progress calculation.

Combines a budget's resolved period with the expenses attributed to it to
produce a progress record (spent, remaining, percentage and over-budget
status). Progress is always computed fresh from the transaction store; no
aggregate is cached or stored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional

from date_utils import DateLike, parse_instant
from models import Budget, Expense, ExpenseFilter, ProgressRecord
from period_resolver import resolve_period

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

# (user_id, filter) -> expenses; TransactionStore.find_expenses satisfies it
TransactionQuery = Callable[[str, ExpenseFilter], Iterable[Expense]]


def calculate_percentage(spent: Decimal, amount: Decimal) -> float:
    """Return ``spent`` as a percentage of ``amount``; 0 when ``amount`` is zero."""
    if amount <= 0:
        return 0.0
    return float(spent / amount * 100)


def calculate_progress(
    budget: Budget,
    transaction_query: TransactionQuery,
    reference: Optional[DateLike] = None
) -> ProgressRecord:
    """
    Compute spend progress for ``budget`` over its currently resolved period.

    The caller is responsible for checking that the budget exists and belongs
    to the requesting user; no authorization happens here.

    Args:
        budget: Budget to evaluate.
        transaction_query: Callable returning the user's expenses for a filter.
        reference: Instant the period is resolved against (defaults to now).

    Returns:
        ProgressRecord for the resolved period.
    """
    period = resolve_period(budget, reference)
    expense_filter = ExpenseFilter(
        budget_id=budget.id,
        date_from=period.start,
        date_to=period.end,
    )

    total_spent = ZERO
    for expense in transaction_query(budget.user_id, expense_filter):
        # Re-checked so a loose query can never leak other spend into the total
        if expense.budget_ref != budget.id or not period.contains(expense.date):
            logger.debug("Skipping expense %s outside budget %s period", expense.id, budget.id)
            continue
        total_spent += expense.amount

    percentage_spent = calculate_percentage(total_spent, budget.amount)
    is_over_budget = total_spent > budget.amount
    threshold_reached = is_over_budget or (
        budget.amount > 0 and percentage_spent >= budget.notification_threshold
    )

    record = ProgressRecord(
        budget_id=budget.id,
        total_spent=total_spent,
        remaining=budget.amount - total_spent,
        percentage_spent=percentage_spent,
        is_over_budget=is_over_budget,
        period=period,
        threshold_reached=threshold_reached,
    )
    logger.debug("Progress for budget %s: %s", budget.id, record)
    return record


@dataclass
class BudgetProgress:
    """A budget paired with its computed progress record."""
    budget: Budget
    progress: ProgressRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"budget": self.budget.to_dict(), "progress": self.progress.to_dict()}


class BudgetProgressService:
    """
    Computes budget progress against a transaction store.

    Looks budgets up for the requesting user (raising NotFoundError when the
    budget is missing or owned by someone else) before handing them to
    :func:`calculate_progress`.
    """

    def __init__(self, store):
        """
        Initialize the progress service.

        Args:
            store: TransactionStore implementation
        """
        self.store = store
        logger.info("Budget progress service initialized with %s", type(store).__name__)

    def progress(
        self,
        user_id: str,
        budget_id: str,
        reference: Optional[DateLike] = None
    ) -> BudgetProgress:
        """
        Compute progress for a single budget.

        Raises:
            NotFoundError: If the budget does not exist for ``user_id``.
        """
        budget = self.store.get_budget(user_id, budget_id)
        record = calculate_progress(budget, self.store.find_expenses, reference)
        logger.info(
            "Budget %s: spent %s of %s (%.1f%%)",
            budget.id, record.total_spent, budget.amount, record.percentage_spent
        )
        return BudgetProgress(budget=budget, progress=record)

    def all_progress(
        self,
        user_id: str,
        reference: Optional[DateLike] = None
    ) -> List[BudgetProgress]:
        """Compute progress for every active budget owned by ``user_id``."""
        # Pin one instant so every budget resolves against the same clock
        instant: datetime = datetime.now() if reference is None else parse_instant(reference)
        results = [
            BudgetProgress(
                budget=budget,
                progress=calculate_progress(budget, self.store.find_expenses, instant),
            )
            for budget in self.store.list_budgets(user_id, active_only=True)
        ]
        logger.info("Computed progress for %d active budget(s) of user %s", len(results), user_id)
        return results

    def alerts(
        self,
        user_id: str,
        reference: Optional[DateLike] = None
    ) -> List[BudgetProgress]:
        """Return active budgets that reached their notification threshold."""
        return [entry for entry in self.all_progress(user_id, reference) if entry.progress.threshold_reached]

    @staticmethod
    def summarize(entries: Iterable[BudgetProgress]) -> Dict[str, Any]:
        """
        Aggregate totals across budget progress entries.

        Returns:
            Dictionary with total_budgeted, total_spent, total_remaining,
            percentage_spent and over_budget_count.
        """
        total_budgeted = ZERO
        total_spent = ZERO
        over_budget_count = 0
        for entry in entries:
            total_budgeted += entry.budget.amount
            total_spent += entry.progress.total_spent
            if entry.progress.is_over_budget:
                over_budget_count += 1

        summary = {
            "total_budgeted": total_budgeted,
            "total_spent": total_spent,
            "total_remaining": total_budgeted - total_spent,
            "percentage_spent": calculate_percentage(total_spent, total_budgeted),
            "over_budget_count": over_budget_count,
        }
        logger.debug("Budget summary calculated: %s", summary)
        return summary
