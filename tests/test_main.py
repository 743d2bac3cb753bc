"""
Tests for logging setup and the command-line interface.

CLI tests run main() end to end against a temporary SQLite database.
"""

import logging

import pytest
import yaml

from main import build_parser, main, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Keep handlers installed by setup_logging from leaking between tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    """Write a config pointing at a temporary database."""
    monkeypatch.delenv("DB_CONNECTION_STRING", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "user_id": "alice",
        "logging": {"level": "WARNING"},
        "database": {"connection_string": f"sqlite:///{(tmp_path / 'cli.db').as_posix()}"},
    }))
    return str(path)


@pytest.fixture
def run(config_path, capsys):
    """Run a CLI command and return (exit code, stdout, stderr)."""

    def _run(*argv):
        code = main(["--config", config_path, *argv])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    return _run


class TestSetupLogging:
    def test_level_from_config(self):
        setup_logging({"logging": {"level": "DEBUG"}})
        assert logging.getLogger().level == logging.DEBUG
        assert any(isinstance(h, logging.StreamHandler) for h in logging.getLogger().handlers)

    def test_unknown_level_defaults_to_info(self):
        setup_logging({"logging": {"level": "VERBOSE"}})
        assert logging.getLogger().level == logging.INFO

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "tracker.log"
        setup_logging({"logging": {"level": "INFO", "file": str(log_file)}})

        logging.getLogger("budget_tracker.test").info("hello from the test")
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert log_file.exists()
        assert "hello from the test" in log_file.read_text()


class TestParser:
    def test_budget_add_defaults(self):
        args = build_parser().parse_args(["budget", "add", "--name", "Rent", "--amount", "900", "--start", "2024-01-01"])
        assert args.command == "budget"
        assert args.budget_action == "add"
        assert args.period == "monthly"
        assert args.threshold is None

    def test_rejects_unknown_period(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([
                "budget", "add", "--name", "Rent", "--amount", "900", "--start", "2024-01-01", "--period", "hourly"
            ])


class TestCLI:
    def test_no_command(self, capsys):
        assert main([]) == 1

    def test_invalid_config(self, tmp_path, capsys):
        path = tmp_path / "broken.yaml"
        path.write_text("- not\n- a mapping\n")
        assert main(["--config", str(path), "budget", "list"]) == 1
        assert "mapping" in capsys.readouterr().err

    def test_budget_lifecycle(self, run):
        code, out, _ = run("budget", "add", "--name", "Groceries", "--amount", "500", "--start", "2024-01-01")
        assert code == 0
        assert "Created budget 1 'Groceries': $500.00 monthly" in out

        code, out, _ = run("budget", "list")
        assert code == 0
        assert "Groceries" in out

        code, out, _ = run("budget", "period", "--id", "1", "--as-of", "2024-02-10")
        assert code == 0
        assert "Period: 2024-02-01T00:00:00 to 2024-02-29T23:59:59.999999" in out

    def test_empty_budget_list(self, run):
        code, out, _ = run("budget", "list")
        assert code == 0
        assert "No budgets found." in out

    def test_progress_over_budget(self, run):
        run("budget", "add", "--name", "Groceries", "--amount", "500", "--start", "2024-01-01")
        assert run("expense", "add", "--amount", "200", "--date", "2024-01-05", "--budget", "1")[0] == 0
        assert run("expense", "add", "--amount", "350", "--date", "2024-01-20", "--budget", "1")[0] == 0
        run("expense", "add", "--amount", "80", "--date", "2024-02-02", "--budget", "1")

        code, out, _ = run("budget", "progress", "--id", "1", "--as-of", "2024-01-15")
        assert code == 0
        assert "$550.00" in out
        assert "OVER" in out
        assert "Total Remaining: $-50.00" in out

    def test_expense_for_unknown_budget(self, run):
        code, _, err = run("expense", "add", "--amount", "10", "--date", "2024-01-05", "--budget", "42")
        assert code == 1
        assert "Budget not found" in err

    def test_invalid_date(self, run):
        code, _, err = run("budget", "add", "--name", "Bad", "--amount", "5", "--start", "next tuesday")
        assert code == 1
        assert "Invalid ISO-8601 date" in err

    def test_project_recurring_income(self, run):
        code, out, _ = run(
            "income", "add", "--amount", "1000", "--date", "2024-01-15", "--source", "Salary", "--recur", "monthly"
        )
        assert code == 0
        assert "(recurring monthly)" in out

        code, out, _ = run("project", "--from", "2024-01-01", "--to", "2024-03-31", "--kind", "income")
        assert code == 0
        assert "$3,000.00" in out
        assert "Expenses" not in out

    def test_project_inverted_window(self, run):
        code, _, err = run("project", "--from", "2024-03-01", "--to", "2024-01-01")
        assert code == 1
        assert "Error" in err

    def test_dashboard(self, run):
        run("budget", "add", "--name", "Groceries", "--amount", "500", "--start", "2024-01-01")
        run("income", "add", "--amount", "1000", "--date", "2024-01-15", "--source", "Salary", "--recur", "monthly")
        run("expense", "add", "--amount", "25", "--date", "2024-02-03", "--budget", "1", "--recur", "weekly")

        code, out, _ = run("dashboard", "--range", "month", "--as-of", "2024-02-10", "--stats")
        assert code == 0
        assert "Dashboard (month): 2024-02-01 to 2024-02-29" in out
        assert "$1,000.00" in out
        # Feb 3, 10, 17 and 24
        assert "$100.00" in out
        assert "$900.00" in out
        assert "Recorded expenses: $25.00" in out
