"""
Unified exception hierarchy for the budget tracker.

This module defines the exception hierarchy with BudgetTrackerError as the
base exception, allowing callers to handle every failure raised by the
period resolver, progress calculator, recurrence projector and transaction
stores in one place.
"""

from typing import Optional


class BudgetTrackerError(Exception):
    """
    Base exception class for all budget tracker errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        original_error: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict] = None,
        original_error: Optional[Exception] = None
    ) -> None:
        """
        Initialize BudgetTrackerError.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        """Return string representation of the error."""
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        return msg


class ConfigError(BudgetTrackerError):
    """Raised when configuration loading or validation fails."""
    pass


class DatabaseError(BudgetTrackerError):
    """Raised when transaction store database operations fail."""
    pass


class ValidationError(BudgetTrackerError):
    """Raised when a budget or transaction violates a data invariant."""
    pass


class InvalidDateError(ValidationError):
    """Raised when a supplied date string cannot be parsed."""
    pass


class InvalidCadenceError(ValidationError):
    """Raised when a recurring frequency is not daily, weekly, monthly or yearly."""
    pass


class InvalidPeriodError(ValidationError):
    """Raised when a budget period is not one of the supported period types."""
    pass


class NotFoundError(BudgetTrackerError):
    """Raised when a budget or transaction does not exist for the requesting user."""
    pass
