"""
Command-line entry point for the budget tracker.

Commands:
    budget add|list|period|progress   Manage budgets and report progress
    expense add                       Record an expense against a budget
    income add                        Record an income
    project                           Project incomes/expenses into a window
    dashboard                         Predicted income/expenses for week/month/year
"""

import argparse
import logging
import sys
from typing import List, Optional

from tabulate import tabulate

from budget_progress import BudgetProgressService
from config_manager import (
    get_default_threshold,
    get_default_time_range,
    get_default_user,
    load_config,
)
from dashboard import TIME_RANGES, DashboardService
from database_ops import DatabaseManager, SQLTransactionStore
from date_utils import parse_instant, parse_window_end
from exceptions import BudgetTrackerError
from models import Budget, BudgetPeriod, Cadence, Expense, ExpenseFilter, Income, IncomeFilter
from period_resolver import resolve_period
from recurrence import project_totals
from utils import resolve_connection_string, resolve_log_path

# Configure module-level logger
logger = logging.getLogger(__name__)


def setup_logging(config: dict) -> None:
    """
    Configure logging based on config settings.

    Args:
        config: Configuration dictionary with logging settings
    """
    log_config = config.get("logging") or {}
    level_name = str(log_config.get("level") or "INFO").upper()
    log_level = getattr(logging, level_name, None)
    log_format = log_config.get("format") or "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file = log_config.get("file")

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        try:
            log_path = resolve_log_path(log_file)
        except OSError as exc:
            raise RuntimeError(f"Unable to prepare log file path '{log_file}': {exc}") from exc
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=log_level if isinstance(log_level, int) else logging.INFO,
        format=log_format,
        handlers=handlers,
        force=True
    )
    if not isinstance(log_level, int):
        logger.warning("Unknown log level '%s'; defaulting to INFO", level_name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Personal budget tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument("--user", type=str, help="User id (defaults to config user_id)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Budget command
    budget_parser = subparsers.add_parser("budget", aliases=["bud"], help="Manage budgets")
    budget_subparsers = budget_parser.add_subparsers(dest="budget_action", help="Budget actions")

    bud_add = budget_subparsers.add_parser("add", help="Create a budget")
    bud_add.add_argument("--name", type=str, required=True, help="Budget name")
    bud_add.add_argument("--amount", type=str, required=True, help="Spending limit per period")
    bud_add.add_argument(
        "--period",
        type=str,
        default="monthly",
        choices=[p.value for p in BudgetPeriod],
        help="Budget period"
    )
    bud_add.add_argument("--start", type=str, required=True, help="Start date (YYYY-MM-DD)")
    bud_add.add_argument("--end", type=str, help="Explicit end date (YYYY-MM-DD)")
    bud_add.add_argument("--category", type=str, help="Category id the budget is scoped to")
    bud_add.add_argument("--threshold", type=int, help="Notification threshold percentage")
    bud_add.add_argument("--inactive", action="store_true", help="Create the budget inactive")

    budget_subparsers.add_parser("list", help="List budgets")

    bud_period = budget_subparsers.add_parser("period", help="Show the period in effect for a budget")
    bud_period.add_argument("--id", type=str, required=True, help="Budget ID")
    bud_period.add_argument("--as-of", type=str, help="Reference date (defaults to now)")

    bud_progress = budget_subparsers.add_parser("progress", help="Show budget progress")
    bud_progress.add_argument("--id", type=str, help="Budget ID (all active budgets when omitted)")
    bud_progress.add_argument("--as-of", type=str, help="Reference date (defaults to now)")

    # Expense command
    expense_parser = subparsers.add_parser("expense", aliases=["exp"], help="Record expenses")
    expense_subparsers = expense_parser.add_subparsers(dest="expense_action", help="Expense actions")
    exp_add = expense_subparsers.add_parser("add", help="Record an expense")
    exp_add.add_argument("--amount", type=str, required=True, help="Amount")
    exp_add.add_argument("--date", type=str, required=True, help="Date (YYYY-MM-DD or ISO date-time)")
    exp_add.add_argument("--budget", type=str, required=True, help="Budget ID")
    exp_add.add_argument("--category", type=str, help="Category id")
    exp_add.add_argument("--recur", type=str, choices=[c.value for c in Cadence], help="Recurring frequency")
    exp_add.add_argument("--description", type=str, default="", help="Description")

    # Income command
    income_parser = subparsers.add_parser("income", aliases=["inc"], help="Record incomes")
    income_subparsers = income_parser.add_subparsers(dest="income_action", help="Income actions")
    inc_add = income_subparsers.add_parser("add", help="Record an income")
    inc_add.add_argument("--amount", type=str, required=True, help="Amount")
    inc_add.add_argument("--date", type=str, required=True, help="Date (YYYY-MM-DD or ISO date-time)")
    inc_add.add_argument("--source", type=str, required=True, help="Income source")
    inc_add.add_argument("--recur", type=str, choices=[c.value for c in Cadence], help="Recurring frequency")
    inc_add.add_argument("--description", type=str, default="", help="Description")

    # Project command
    project_parser = subparsers.add_parser("project", help="Project transactions into a window")
    project_parser.add_argument("--from", dest="range_start", type=str, required=True, help="Window start")
    project_parser.add_argument(
        "--to",
        dest="range_end",
        type=str,
        required=True,
        help="Window end (a plain date covers the whole day)"
    )
    project_parser.add_argument(
        "--kind",
        type=str,
        default="all",
        choices=["income", "expense", "all"],
        help="Which transactions to project"
    )

    # Dashboard command
    dashboard_parser = subparsers.add_parser("dashboard", help="Show the dashboard summary")
    dashboard_parser.add_argument("--range", dest="time_range", type=str, choices=TIME_RANGES, help="Time range")
    dashboard_parser.add_argument("--as-of", type=str, help="Reference date (defaults to now)")
    dashboard_parser.add_argument("--stats", action="store_true", help="Also show recorded statistics")

    return parser


def _money(value) -> str:
    return f"${value:,.2f}"


def handle_budget_command(args: argparse.Namespace, config: dict, db_manager: DatabaseManager) -> None:
    """
    Handle budget commands.

    Args:
        args: Parsed command-line arguments
        config: Configuration dictionary
        db_manager: DatabaseManager instance
    """
    store = SQLTransactionStore(db_manager)
    service = BudgetProgressService(store)

    if args.budget_action == "add":
        threshold = args.threshold if args.threshold is not None else get_default_threshold(config)
        budget = db_manager.add_budget(Budget(
            id="",
            user_id=args.user,
            name=args.name,
            amount=args.amount,
            start_date=args.start,
            period=args.period,
            end_date=args.end,
            category_ref=args.category,
            is_active=not args.inactive,
            notification_threshold=threshold,
        ))
        print(f"Created budget {budget.id} '{budget.name}': {_money(budget.amount)} {budget.period.value}")

    elif args.budget_action == "list":
        budgets = store.list_budgets(args.user)
        if not budgets:
            print("No budgets found.")
            return
        rows = [
            [
                b.id, b.name, _money(b.amount), b.period.value,
                b.start_date.date(), b.end_date.date() if b.end_date else "",
                b.category_ref or "all", "yes" if b.is_active else "no",
            ]
            for b in budgets
        ]
        print(tabulate(
            rows,
            headers=["ID", "Name", "Amount", "Period", "Start", "End", "Category", "Active"],
            tablefmt="grid"
        ))

    elif args.budget_action == "period":
        budget = store.get_budget(args.user, args.id)
        period = resolve_period(budget, args.as_of)
        print(f"Budget {budget.id} '{budget.name}' ({budget.period.value})")
        print(f"Period: {period.start.isoformat()} to {period.end.isoformat()}")

    elif args.budget_action == "progress":
        if args.id:
            entries = [service.progress(args.user, args.id, args.as_of)]
        else:
            entries = service.all_progress(args.user, args.as_of)
        if not entries:
            print("No active budgets found.")
            return
        rows = []
        for entry in entries:
            progress = entry.progress
            status = "OVER" if progress.is_over_budget else ("ALERT" if progress.threshold_reached else "ok")
            rows.append([
                entry.budget.id,
                entry.budget.name,
                f"{progress.period.start.date()} - {progress.period.end.date()}",
                _money(entry.budget.amount),
                _money(progress.total_spent),
                _money(progress.remaining),
                f"{progress.percentage_spent:.1f}%",
                status,
            ])
        print(tabulate(
            rows,
            headers=["ID", "Name", "Period", "Budget", "Spent", "Remaining", "Used %", "Status"],
            tablefmt="grid"
        ))
        summary = BudgetProgressService.summarize(entries)
        print(f"\nTotal Budgeted: {_money(summary['total_budgeted'])}")
        print(f"Total Spent: {_money(summary['total_spent'])}")
        print(f"Total Remaining: {_money(summary['total_remaining'])}")

    else:
        raise BudgetTrackerError("Invalid budget action", details={"action": args.budget_action})


def handle_expense_command(args: argparse.Namespace, db_manager: DatabaseManager) -> None:
    if args.expense_action != "add":
        raise BudgetTrackerError("Invalid expense action", details={"action": args.expense_action})
    # Budget must exist for this user before an expense can reference it
    SQLTransactionStore(db_manager).get_budget(args.user, args.budget)
    expense = db_manager.add_expense(Expense(
        id="",
        user_id=args.user,
        amount=args.amount,
        date=args.date,
        is_recurring=args.recur is not None,
        recurring_frequency=args.recur,
        description=args.description,
        budget_ref=args.budget,
        category_ref=args.category,
    ))
    suffix = f" (recurring {args.recur})" if args.recur else ""
    print(f"Recorded expense {expense.id}: {_money(expense.amount)} on {expense.date.date()}{suffix}")


def handle_income_command(args: argparse.Namespace, db_manager: DatabaseManager) -> None:
    if args.income_action != "add":
        raise BudgetTrackerError("Invalid income action", details={"action": args.income_action})
    income = db_manager.add_income(Income(
        id="",
        user_id=args.user,
        amount=args.amount,
        date=args.date,
        is_recurring=args.recur is not None,
        recurring_frequency=args.recur,
        description=args.description,
        source=args.source,
    ))
    suffix = f" (recurring {args.recur})" if args.recur else ""
    print(f"Recorded income {income.id}: {_money(income.amount)} from {income.source}{suffix}")


def handle_project_command(args: argparse.Namespace, db_manager: DatabaseManager) -> None:
    store = SQLTransactionStore(db_manager)
    start = parse_instant(args.range_start)
    end = parse_window_end(args.range_end)

    rows = []
    if args.kind in ("income", "all"):
        incomes = store.find_incomes(args.user, IncomeFilter())
        rows.append(["Income", len(incomes), _money(project_totals(incomes, start, end))])
    if args.kind in ("expense", "all"):
        expenses = store.find_expenses(args.user, ExpenseFilter())
        rows.append(["Expenses", len(expenses), _money(project_totals(expenses, start, end))])

    print(f"Projection {start.isoformat()} to {end.isoformat()}")
    print(tabulate(rows, headers=["Kind", "Records", "Projected"], tablefmt="grid"))


def handle_dashboard_command(args: argparse.Namespace, config: dict, db_manager: DatabaseManager) -> None:
    service = DashboardService(SQLTransactionStore(db_manager))
    time_range = args.time_range or get_default_time_range(config)
    summary = service.summary_for_range(args.user, time_range, args.as_of)

    print(f"Dashboard ({time_range}): {summary.range_start.date()} to {summary.range_end.date()}")
    print(tabulate(
        [
            ["Predicted income", _money(summary.predicted_income)],
            ["Predicted expenses", _money(summary.predicted_expenses)],
            ["Balance", _money(summary.balance)],
        ],
        tablefmt="simple"
    ))

    if args.stats:
        stats = service.expense_stats(args.user, summary.range_start, summary.range_end)
        print(f"\nRecorded expenses: {_money(stats['total'])}")
        if stats["by_budget"]:
            print(tabulate(
                [[e["budget_name"] or e["budget_id"], _money(e["total"])] for e in stats["by_budget"]],
                headers=["Budget", "Total"],
                tablefmt="simple"
            ))
        income = service.income_stats(args.user, summary.range_start, summary.range_end)
        print(f"\nRecorded income: {_money(income['total'])}")
        if income["by_source"]:
            print(tabulate(
                [[e["source"], _money(e["total"])] for e in income["by_source"]],
                headers=["Source", "Total"],
                tablefmt="simple"
            ))


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        config = load_config(args.config)
    except BudgetTrackerError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(config)
    args.user = args.user or get_default_user(config)

    db_manager = None
    try:
        db_manager = DatabaseManager(resolve_connection_string(config))
        db_manager.create_tables()

        if args.command in ("budget", "bud"):
            handle_budget_command(args, config, db_manager)
        elif args.command in ("expense", "exp"):
            handle_expense_command(args, db_manager)
        elif args.command in ("income", "inc"):
            handle_income_command(args, db_manager)
        elif args.command == "project":
            handle_project_command(args, db_manager)
        elif args.command == "dashboard":
            handle_dashboard_command(args, config, db_manager)
        return 0
    except BudgetTrackerError as e:
        logger.error("Command '%s' failed: %s", args.command, e)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if db_manager is not None:
            db_manager.close()


if __name__ == "__main__":
    sys.exit(main())
