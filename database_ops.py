"""
Database operations module for budget and transaction storage.

This module handles database connections, schema creation, inserts and the
read-only queries of the transaction store using SQLAlchemy ORM. SQLite is
used by default; any SQLAlchemy URL works.
"""

import logging
from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    create_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from exceptions import DatabaseError, NotFoundError
from models import Budget, Cadence, Expense, ExpenseFilter, Income, IncomeFilter
from utils import redact_connection_string

# Configure logging
logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current UTC time; audit columns are stored in UTC."""
    return datetime.now(UTC)


Base = declarative_base()


class BudgetRecord(Base):
    """
    SQLAlchemy model representing a budget.

    Period boundaries are not stored; they are resolved on every progress
    request from ``period``, ``start_date`` and ``end_date``.
    """

    __tablename__ = "budgets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    period = Column(String(16), nullable=False, default="monthly")
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    category_ref = Column(String(64), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    notification_threshold = Column(Integer, nullable=False, default=80)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (Index("idx_budgets_user_active", "user_id", "is_active"),)

    def to_domain(self) -> Budget:
        return Budget(
            id=str(self.id),
            user_id=self.user_id,
            name=self.name,
            amount=self.amount,
            start_date=self.start_date,
            period=self.period,
            end_date=self.end_date,
            category_ref=self.category_ref,
            is_active=self.is_active,
            notification_threshold=self.notification_threshold,
            notes=self.notes or "",
        )

    def __repr__(self) -> str:
        return f"<BudgetRecord(id={self.id}, name='{self.name}', amount={self.amount}, period={self.period})>"


class ExpenseRecord(Base):
    """
    SQLAlchemy model representing an expense.

    ``budget_ref`` is a plain column rather than a foreign key: deleting a
    budget leaves its expenses untouched.
    """

    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_frequency = Column(String(16), nullable=True)
    description = Column(Text, nullable=False, default="")
    budget_ref = Column(String(64), nullable=False)
    category_ref = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("idx_expenses_user_date", "user_id", "date"),
        Index("idx_expenses_budget_user", "budget_ref", "user_id"),
    )

    def to_domain(self) -> Expense:
        return Expense(
            id=str(self.id),
            user_id=self.user_id,
            amount=self.amount,
            date=self.date,
            is_recurring=self.is_recurring,
            recurring_frequency=self.recurring_frequency,
            description=self.description or "",
            budget_ref=self.budget_ref,
            category_ref=self.category_ref,
        )


class IncomeRecord(Base):
    """SQLAlchemy model representing an income."""

    __tablename__ = "incomes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    date = Column(DateTime, nullable=False)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_frequency = Column(String(16), nullable=True)
    description = Column(Text, nullable=False, default="")
    source = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (Index("idx_incomes_user_date", "user_id", "date"),)

    def to_domain(self) -> Income:
        return Income(
            id=str(self.id),
            user_id=self.user_id,
            amount=self.amount,
            date=self.date,
            is_recurring=self.is_recurring,
            recurring_frequency=self.recurring_frequency,
            description=self.description or "",
            source=self.source,
        )


def _frequency_value(frequency: Optional[Cadence]) -> Optional[str]:
    return frequency.value if frequency is not None else None


class DatabaseManager:
    """
    Manages database connections and write operations.

    This class handles engine creation, table creation, session management
    and inserting budgets and transactions.
    """

    def __init__(self, connection_string: str):
        """
        Initialize the database manager.

        Args:
            connection_string: SQLAlchemy connection string (e.g., 'sqlite:///data/budget_tracker.db')

        Raises:
            DatabaseError: If the engine cannot be created
        """
        try:
            self.engine = create_engine(connection_string, echo=False)
            self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
            logger.info("Database manager initialized with connection: %s", redact_connection_string(connection_string))
        except SQLAlchemyError as e:
            logger.error("Failed to initialize database: %s", e)
            raise DatabaseError(
                "Failed to initialize database",
                details={"connection_string": redact_connection_string(connection_string)},
                original_error=e
            ) from e

    def create_tables(self) -> None:
        """
        Create all database tables if they don't exist.

        Raises:
            DatabaseError: If table creation fails
        """
        try:
            Base.metadata.create_all(self.engine)
            logger.info("Database tables created/verified successfully")
        except SQLAlchemyError as e:
            logger.error("Failed to create database tables: %s", e)
            raise DatabaseError("Failed to create database tables", original_error=e) from e

    def get_session(self) -> Session:
        """
        Get a new database session.

        Note:
            Caller is responsible for closing the session.
        """
        return self.SessionLocal()

    def _insert(self, record, operation: str):
        session = self.get_session()
        try:
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.to_domain()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to %s: %s", operation, e)
            raise DatabaseError(f"Failed to {operation}", details={"operation": operation}, original_error=e) from e
        finally:
            session.close()

    def add_budget(self, budget: Budget) -> Budget:
        """Insert a budget and return it with its database id."""
        stored = self._insert(
            BudgetRecord(
                user_id=budget.user_id,
                name=budget.name,
                amount=budget.amount,
                period=budget.period.value,
                start_date=budget.start_date,
                end_date=budget.end_date,
                category_ref=budget.category_ref,
                is_active=budget.is_active,
                notification_threshold=budget.notification_threshold,
                notes=budget.notes,
            ),
            "insert budget",
        )
        logger.info("Created budget %s '%s': %s %s", stored.id, stored.name, stored.amount, stored.period.value)
        return stored

    def add_expense(self, expense: Expense) -> Expense:
        """Insert an expense and return it with its database id."""
        return self._insert(
            ExpenseRecord(
                user_id=expense.user_id,
                amount=expense.amount,
                date=expense.date,
                is_recurring=expense.is_recurring,
                recurring_frequency=_frequency_value(expense.recurring_frequency),
                description=expense.description,
                budget_ref=expense.budget_ref,
                category_ref=expense.category_ref,
            ),
            "insert expense",
        )

    def add_income(self, income: Income) -> Income:
        """Insert an income and return it with its database id."""
        return self._insert(
            IncomeRecord(
                user_id=income.user_id,
                amount=income.amount,
                date=income.date,
                is_recurring=income.is_recurring,
                recurring_frequency=_frequency_value(income.recurring_frequency),
                description=income.description,
                source=income.source,
            ),
            "insert income",
        )

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()
        logger.info("Database connection closed")


class SQLTransactionStore:
    """Transaction store backed by the tables managed by DatabaseManager."""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def get_budget(self, user_id: str, budget_id: str) -> Budget:
        """
        Fetch a budget owned by ``user_id``.

        Raises:
            NotFoundError: If the id is unknown, malformed or owned by another user
            DatabaseError: If the query fails
        """
        try:
            pk = int(budget_id)
        except (TypeError, ValueError):
            raise NotFoundError(
                "Budget not found",
                details={"user_id": user_id, "budget_id": budget_id}
            ) from None

        session = self.db_manager.get_session()
        try:
            record = session.query(BudgetRecord).filter(
                BudgetRecord.id == pk,
                BudgetRecord.user_id == user_id
            ).first()
            if record is None:
                raise NotFoundError(
                    "Budget not found",
                    details={"user_id": user_id, "budget_id": budget_id}
                )
            return record.to_domain()
        except SQLAlchemyError as e:
            logger.error("Failed to get budget: %s", e)
            raise DatabaseError("Failed to get budget", original_error=e) from e
        finally:
            session.close()

    def list_budgets(self, user_id: str, active_only: bool = False) -> List[Budget]:
        session = self.db_manager.get_session()
        try:
            query = session.query(BudgetRecord).filter(BudgetRecord.user_id == user_id)
            if active_only:
                query = query.filter(BudgetRecord.is_active.is_(True))
            return [record.to_domain() for record in query.order_by(BudgetRecord.id).all()]
        except SQLAlchemyError as e:
            logger.error("Failed to list budgets: %s", e)
            raise DatabaseError("Failed to list budgets", original_error=e) from e
        finally:
            session.close()

    def find_expenses(self, user_id: str, expense_filter: Optional[ExpenseFilter] = None) -> List[Expense]:
        expense_filter = expense_filter or ExpenseFilter()
        session = self.db_manager.get_session()
        try:
            query = session.query(ExpenseRecord).filter(ExpenseRecord.user_id == user_id)
            if expense_filter.budget_id is not None:
                query = query.filter(ExpenseRecord.budget_ref == expense_filter.budget_id)
            if expense_filter.category_id is not None:
                query = query.filter(ExpenseRecord.category_ref == expense_filter.category_id)
            if expense_filter.date_from is not None:
                query = query.filter(ExpenseRecord.date >= expense_filter.date_from)
            if expense_filter.date_to is not None:
                query = query.filter(ExpenseRecord.date <= expense_filter.date_to)
            records = query.order_by(ExpenseRecord.date).all()
            logger.debug("Found %d expense(s) for user %s", len(records), user_id)
            return [record.to_domain() for record in records]
        except SQLAlchemyError as e:
            logger.error("Failed to query expenses: %s", e)
            raise DatabaseError("Failed to query expenses", original_error=e) from e
        finally:
            session.close()

    def find_incomes(self, user_id: str, income_filter: Optional[IncomeFilter] = None) -> List[Income]:
        income_filter = income_filter or IncomeFilter()
        session = self.db_manager.get_session()
        try:
            query = session.query(IncomeRecord).filter(IncomeRecord.user_id == user_id)
            if income_filter.date_from is not None:
                query = query.filter(IncomeRecord.date >= income_filter.date_from)
            if income_filter.date_to is not None:
                query = query.filter(IncomeRecord.date <= income_filter.date_to)
            records = query.order_by(IncomeRecord.date).all()
            logger.debug("Found %d income(s) for user %s", len(records), user_id)
            return [record.to_domain() for record in records]
        except SQLAlchemyError as e:
            logger.error("Failed to query incomes: %s", e)
            raise DatabaseError("Failed to query incomes", original_error=e) from e
        finally:
            session.close()
