from datetime import datetime
from decimal import Decimal

import pytest

from models import Budget, Expense, Income
from transaction_store import InMemoryTransactionStore

USER = "user-1"


@pytest.fixture
def store():
    """Provide an empty in-memory transaction store."""
    return InMemoryTransactionStore()


@pytest.fixture
def make_budget():
    """Factory for budgets owned by the default test user."""

    def _make(**overrides):
        fields = {
            "id": "b1",
            "user_id": USER,
            "name": "Groceries",
            "amount": Decimal("500"),
            "start_date": datetime(2024, 1, 1),
            "period": "monthly",
        }
        fields.update(overrides)
        return Budget(**fields)

    return _make


@pytest.fixture
def make_expense():
    """Factory for expenses attributed to budget b1."""
    counter = {"n": 0}

    def _make(amount, when, **overrides):
        counter["n"] += 1
        fields = {
            "id": f"e{counter['n']}",
            "user_id": USER,
            "amount": amount,
            "date": when,
            "budget_ref": "b1",
        }
        fields.update(overrides)
        return Expense(**fields)

    return _make


@pytest.fixture
def make_income():
    """Factory for incomes of the default test user."""
    counter = {"n": 0}

    def _make(amount, when, **overrides):
        counter["n"] += 1
        fields = {
            "id": f"i{counter['n']}",
            "user_id": USER,
            "amount": amount,
            "date": when,
            "source": "Salary",
        }
        fields.update(overrides)
        return Income(**fields)

    return _make
