"""
Transaction store interface and in-memory implementation.

The calculators never talk to a database directly; they read budgets,
expenses and incomes through the read-only queries defined by
``TransactionStore``. Every query is scoped to a single user.
"""

import logging
import uuid
from typing import Dict, List, Optional, Protocol

from exceptions import NotFoundError
from models import Budget, Expense, ExpenseFilter, Income, IncomeFilter

logger = logging.getLogger(__name__)


class TransactionStore(Protocol):
    """Read-only queries the budget tracker consumes."""

    def find_expenses(self, user_id: str, expense_filter: Optional[ExpenseFilter] = None) -> List[Expense]:
        ...

    def find_incomes(self, user_id: str, income_filter: Optional[IncomeFilter] = None) -> List[Income]:
        ...

    def get_budget(self, user_id: str, budget_id: str) -> Budget:
        ...

    def list_budgets(self, user_id: str, active_only: bool = False) -> List[Budget]:
        ...


def new_id() -> str:
    return uuid.uuid4().hex


class InMemoryTransactionStore:
    """
    Dictionary-backed transaction store.

    Useful for tests and for callers that already hold their data in memory.
    Records without an id are assigned a random hex id when added.
    """

    def __init__(self) -> None:
        self._budgets: Dict[str, Budget] = {}
        self._expenses: Dict[str, Expense] = {}
        self._incomes: Dict[str, Income] = {}

    def add_budget(self, budget: Budget) -> Budget:
        if not budget.id:
            budget.id = new_id()
        self._budgets[budget.id] = budget
        logger.debug("Stored budget %s for user %s", budget.id, budget.user_id)
        return budget

    def add_expense(self, expense: Expense) -> Expense:
        if not expense.id:
            expense.id = new_id()
        self._expenses[expense.id] = expense
        return expense

    def add_income(self, income: Income) -> Income:
        if not income.id:
            income.id = new_id()
        self._incomes[income.id] = income
        return income

    def delete_budget(self, user_id: str, budget_id: str) -> None:
        """Delete a budget; expenses keep their stored budget reference."""
        self.get_budget(user_id, budget_id)
        del self._budgets[budget_id]

    def get_budget(self, user_id: str, budget_id: str) -> Budget:
        budget = self._budgets.get(budget_id)
        if budget is None or budget.user_id != user_id:
            raise NotFoundError(
                "Budget not found",
                details={"user_id": user_id, "budget_id": budget_id}
            )
        return budget

    def list_budgets(self, user_id: str, active_only: bool = False) -> List[Budget]:
        return [
            budget for budget in self._budgets.values()
            if budget.user_id == user_id and (budget.is_active or not active_only)
        ]

    def find_expenses(self, user_id: str, expense_filter: Optional[ExpenseFilter] = None) -> List[Expense]:
        expense_filter = expense_filter or ExpenseFilter()
        matches = [
            expense for expense in self._expenses.values()
            if expense.user_id == user_id and expense_filter.matches(expense)
        ]
        return sorted(matches, key=lambda e: e.date)

    def find_incomes(self, user_id: str, income_filter: Optional[IncomeFilter] = None) -> List[Income]:
        income_filter = income_filter or IncomeFilter()
        matches = [
            income for income in self._incomes.values()
            if income.user_id == user_id and income_filter.matches(income)
        ]
        return sorted(matches, key=lambda i: i.date)
