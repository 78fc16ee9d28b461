"""CLI tests against a throwaway SQLite file."""

from datetime import timedelta

import pytest
from typer.testing import CliRunner

from src.circulation.core.services import (
    BorrowerRegistry,
    CatalogService,
    DbSessionService,
    LendingStateMachine,
)
from src.cli import app

pytestmark = pytest.mark.integration

runner = CliRunner()


@pytest.fixture
def cli_env(monkeypatch, file_config):
    monkeypatch.setenv("DATABASE_URL", file_config.database.url)
    monkeypatch.setenv("APP_CONFIG_FILE", "does-not-exist.yaml")
    return file_config


@pytest.fixture
def overdue_loan(cli_env):
    """One copy borrowed with a due date already in the past."""
    result = runner.invoke(app, ["db", "init"])
    assert result.exit_code == 0, result.output

    database_service = DbSessionService(cli_env)
    try:
        with database_service.session_scope() as session:
            copy = CatalogService(session).add_copy("9780134685991", "Effective Java", "Joshua Bloch").value
            borrower = BorrowerRegistry(session).register("Alice Smith", "alice@example.com").value
            LendingStateMachine(session, loan_period=timedelta(days=-2)).borrow_by_copy(
                copy.id, borrower.id
            )
    finally:
        database_service.dispose()
    return copy, borrower


class TestDbCommands:
    def test_init_creates_tables(self, cli_env):
        result = runner.invoke(app, ["db", "init"])

        assert result.exit_code == 0, result.output
        for table in ("copies", "borrowers", "ledger_entries"):
            assert table in result.output

    def test_init_is_idempotent(self, cli_env):
        assert runner.invoke(app, ["db", "init"]).exit_code == 0
        assert runner.invoke(app, ["db", "init"]).exit_code == 0


class TestReportCommands:
    def test_overdue(self, overdue_loan):
        result = runner.invoke(app, ["report", "overdue"])

        assert result.exit_code == 0, result.output
        assert "9780134685991" in result.output
        assert "1 overdue loans" in result.output

    def test_overdue_for_other_borrower(self, overdue_loan):
        _, borrower = overdue_loan

        result = runner.invoke(app, ["report", "overdue", "--borrower", str(borrower.id + 1)])

        assert result.exit_code == 0
        assert "No overdue loans" in result.output

    def test_popular_by_isbn(self, overdue_loan):
        result = runner.invoke(app, ["report", "popular", "--by", "isbn"])

        assert result.exit_code == 0, result.output
        assert "9780134685991" in result.output

    def test_invalid_limit_exits_with_error(self, overdue_loan):
        result = runner.invoke(app, ["report", "active", "--limit", "0"])

        assert result.exit_code == 2
        assert "Limit must be positive" in result.output
