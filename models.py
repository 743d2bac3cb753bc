"""
Domain models for budgets, transactions and computed progress.

Budgets and transactions are plain dataclasses validated on construction.
References to categories and budgets are opaque string identifiers; any
populated display form belongs to the presentation layer.
"""

import enum
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, ClassVar, Dict, Mapping, Optional

from date_utils import parse_instant
from exceptions import InvalidCadenceError, InvalidPeriodError, ValidationError

logger = logging.getLogger(__name__)

MONEY_PLACES = 2


class BudgetPeriod(enum.Enum):
    """Cadence governing how a budget's active date range is recomputed."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: Any) -> "BudgetPeriod":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidPeriodError(
                f"Unknown budget period: {value!r}",
                details={"allowed": ", ".join(p.value for p in cls)}
            ) from None


class Cadence(enum.Enum):
    """Recurrence cadence of a recurring transaction."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: Any) -> "Cadence":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidCadenceError(
                f"Unknown recurring frequency: {value!r}",
                details={"allowed": ", ".join(c.value for c in cls)}
            ) from None


def to_amount(value: Any, field_name: str = "amount") -> Decimal:
    """
    Coerce a numeric value into a non-negative Decimal.

    Raises:
        ValidationError: If the value is not numeric, is negative or has more
            than two decimal places.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be numeric", details={field_name: value})
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(
            f"{field_name} must be numeric",
            details={field_name: value},
            original_error=exc
        ) from exc
    if not amount.is_finite():
        raise ValidationError(f"{field_name} must be finite", details={field_name: value})
    if amount < 0:
        raise ValidationError(f"{field_name} cannot be negative", details={field_name: value})
    # amounts are stored as NUMERIC(12, 2); finer values would be rounded on save
    if amount.normalize().as_tuple().exponent < -MONEY_PLACES:
        raise ValidationError(
            f"{field_name} cannot have more than {MONEY_PLACES} decimal places",
            details={field_name: value}
        )
    return amount


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key; accepts both snake_case and camelCase payloads."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


@dataclass
class Budget:
    """
    A spending limit over a recurring or custom period.

    Attributes:
        id: Opaque budget identifier
        user_id: Owner of the budget
        name: Display name
        amount: Spending limit for one resolved period
        start_date: First instant the budget applies
        period: Period type used to derive the active interval
        end_date: Optional explicit end; when set it always wins
        category_ref: Optional category scope (None means all categories)
        is_active: Inactive budgets are left out of progress aggregations
        notification_threshold: Percentage (0-100) at which to warn
        notes: Free text
    """
    id: str
    user_id: str
    name: str
    amount: Decimal
    start_date: datetime
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    end_date: Optional[datetime] = None
    category_ref: Optional[str] = None
    is_active: bool = True
    notification_threshold: int = 80
    notes: str = ""

    def __post_init__(self) -> None:
        self.amount = to_amount(self.amount)
        self.period = BudgetPeriod.parse(self.period)
        self.start_date = parse_instant(self.start_date)
        if self.end_date is not None:
            self.end_date = parse_instant(self.end_date)
            if self.end_date <= self.start_date:
                raise ValidationError(
                    "Budget end date must be after its start date",
                    details={
                        "budget_id": self.id,
                        "start_date": self.start_date.isoformat(),
                        "end_date": self.end_date.isoformat(),
                    }
                )
        if not 0 <= self.notification_threshold <= 100:
            raise ValidationError(
                "Notification threshold must be between 0 and 100",
                details={"notification_threshold": self.notification_threshold}
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Budget":
        """Build a budget from an API payload (snake_case or camelCase keys)."""
        return cls(
            id=str(_pick(data, "id", "_id", default="")),
            user_id=str(_pick(data, "user_id", "user", default="")),
            name=_pick(data, "name", default=""),
            amount=_pick(data, "amount"),
            start_date=_pick(data, "start_date", "startDate"),
            period=_pick(data, "period", default=BudgetPeriod.MONTHLY),
            end_date=_pick(data, "end_date", "endDate"),
            category_ref=_pick(data, "category_ref", "category"),
            is_active=bool(_pick(data, "is_active", "isActive", default=True)),
            notification_threshold=int(
                _pick(data, "notification_threshold", "notificationThreshold", default=80)
            ),
            notes=_pick(data, "notes", default=""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "amount": str(self.amount),
            "period": self.period.value,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "category_ref": self.category_ref,
            "is_active": self.is_active,
            "notification_threshold": self.notification_threshold,
            "notes": self.notes,
        }


@dataclass
class Transaction:
    """
    A monetary event. Recurring transactions are stored once; ``date`` is the
    anchor (first occurrence) and later occurrences are projected on demand.
    """
    kind: ClassVar[str] = "transaction"

    id: str
    user_id: str
    amount: Decimal
    date: datetime
    is_recurring: bool = False
    recurring_frequency: Optional[Cadence] = None
    description: str = ""

    def __post_init__(self) -> None:
        self.amount = to_amount(self.amount)
        self.date = parse_instant(self.date)
        if self.is_recurring:
            if self.recurring_frequency is None:
                raise InvalidCadenceError(
                    "Recurring transactions require a recurring frequency",
                    details={"transaction_id": self.id}
                )
            self.recurring_frequency = Cadence.parse(self.recurring_frequency)
        else:
            self.recurring_frequency = None

    @staticmethod
    def _common_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
        is_recurring = bool(_pick(data, "is_recurring", "isRecurring", default=False))
        return {
            "id": str(_pick(data, "id", "_id", default="")),
            "user_id": str(_pick(data, "user_id", "user", default="")),
            "amount": _pick(data, "amount"),
            "date": _pick(data, "date"),
            "is_recurring": is_recurring,
            "recurring_frequency": _pick(data, "recurring_frequency", "recurringFrequency"),
            "description": _pick(data, "description", default=""),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "user_id": self.user_id,
            "amount": str(self.amount),
            "date": self.date.isoformat(),
            "is_recurring": self.is_recurring,
            "recurring_frequency": (
                self.recurring_frequency.value if self.recurring_frequency else None
            ),
            "description": self.description,
        }


@dataclass
class Expense(Transaction):
    """An outgoing transaction attributed to exactly one budget."""
    kind: ClassVar[str] = "expense"

    budget_ref: Optional[str] = None
    category_ref: Optional[str] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.budget_ref:
            raise ValidationError(
                "Expenses must reference a budget",
                details={"transaction_id": self.id}
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Expense":
        budget_ref = _pick(data, "budget_ref", "budget")
        category_ref = _pick(data, "category_ref", "category")
        return cls(
            **cls._common_fields(data),
            budget_ref=str(budget_ref) if budget_ref is not None else None,
            category_ref=str(category_ref) if category_ref is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["budget_ref"] = self.budget_ref
        payload["category_ref"] = self.category_ref
        return payload


@dataclass
class Income(Transaction):
    """An incoming transaction identified by its source."""
    kind: ClassVar[str] = "income"

    source: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        self.source = "" if self.source is None else str(self.source).strip()
        if not self.source:
            raise ValidationError(
                "Income requires a source",
                details={"transaction_id": self.id}
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Income":
        return cls(**cls._common_fields(data), source=_pick(data, "source", default=""))

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["source"] = self.source
        return payload


@dataclass(frozen=True)
class ResolvedPeriod:
    """Concrete ``[start, end]`` interval in effect for a budget (inclusive)."""
    start: datetime
    end: datetime

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass
class ProgressRecord:
    """
    Spend snapshot of a budget over its resolved period.

    Attributes:
        budget_id: Budget the record belongs to
        total_spent: Sum of matched expense amounts
        remaining: Budget amount minus total spent (may be negative)
        percentage_spent: Spent as a percentage of the amount, 0 for zero budgets
        is_over_budget: True when total spent exceeds the amount
        period: Interval the expenses were matched against
        threshold_reached: True at or above the notification threshold
    """
    budget_id: str
    total_spent: Decimal
    remaining: Decimal
    percentage_spent: float
    is_over_budget: bool
    period: ResolvedPeriod
    threshold_reached: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "budget_id": self.budget_id,
            "total_spent": str(self.total_spent),
            "remaining": str(self.remaining),
            "percentage_spent": self.percentage_spent,
            "is_over_budget": self.is_over_budget,
            "threshold_reached": self.threshold_reached,
            "period": self.period.to_dict(),
        }


@dataclass
class ExpenseFilter:
    """Query filter for expenses; unset fields do not constrain the result."""
    budget_id: Optional[str] = None
    category_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def matches(self, expense: Expense) -> bool:
        if self.budget_id is not None and expense.budget_ref != self.budget_id:
            return False
        if self.category_id is not None and expense.category_ref != self.category_id:
            return False
        if self.date_from is not None and expense.date < self.date_from:
            return False
        if self.date_to is not None and expense.date > self.date_to:
            return False
        return True


@dataclass
class IncomeFilter:
    """Query filter for incomes; unset bounds do not constrain the result."""
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def matches(self, income: Income) -> bool:
        if self.date_from is not None and income.date < self.date_from:
            return False
        if self.date_to is not None and income.date > self.date_to:
            return False
        return True
