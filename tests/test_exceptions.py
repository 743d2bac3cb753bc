"""
Unit tests for the unified exception hierarchy.

Tests exception creation, attributes, string representations, and error context.
"""

import pytest

from exceptions import (
    BudgetTrackerError,
    ConfigError,
    DatabaseError,
    InvalidCadenceError,
    InvalidDateError,
    InvalidPeriodError,
    NotFoundError,
    ValidationError,
)


class TestBudgetTrackerError:
    """Test base BudgetTrackerError class."""

    def test_basic_exception_creation(self):
        """Test creating a basic BudgetTrackerError."""
        error = BudgetTrackerError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.original_error is None

    def test_exception_with_details(self):
        """Test creating exception with details dictionary."""
        error = BudgetTrackerError("Budget not found", details={"budget_id": "b1", "user_id": 7})
        assert "budget_id=b1" in str(error)
        assert "user_id=7" in str(error)
        assert str(error).startswith("Budget not found (")

    def test_exception_with_original_error(self):
        """Test creating exception with original error chaining."""
        original = ValueError("bad value")
        error = BudgetTrackerError("Wrapped error", original_error=original)
        assert error.original_error is original


class TestExceptionHierarchy:
    """Test specific exception subclasses."""

    @pytest.mark.parametrize("error_class", [
        ConfigError,
        DatabaseError,
        ValidationError,
        NotFoundError,
    ])
    def test_direct_subclasses(self, error_class):
        error = error_class("failure", details={"key": "value"})
        assert isinstance(error, BudgetTrackerError)
        assert error.details["key"] == "value"

    @pytest.mark.parametrize("error_class", [
        InvalidDateError,
        InvalidCadenceError,
        InvalidPeriodError,
    ])
    def test_input_errors_are_validation_errors(self, error_class):
        error = error_class("bad input")
        assert isinstance(error, ValidationError)
        assert isinstance(error, BudgetTrackerError)

    def test_not_found_is_not_a_validation_error(self):
        assert not isinstance(NotFoundError("missing"), ValidationError)


class TestExceptionHandling:
    """Test catching exceptions at the base class."""

    def test_catch_specific_as_base(self):
        with pytest.raises(BudgetTrackerError) as exc_info:
            raise InvalidCadenceError("Unknown recurring frequency", details={"allowed": "daily"})
        assert isinstance(exc_info.value, InvalidCadenceError)
        assert exc_info.value.details["allowed"] == "daily"

    def test_exception_chaining_preserved(self):
        original = KeyError("missing")
        try:
            try:
                raise original
            except KeyError as e:
                raise DatabaseError("Query failed", original_error=e) from e
        except DatabaseError as error:
            assert error.__cause__ is original
            assert error.original_error is original
