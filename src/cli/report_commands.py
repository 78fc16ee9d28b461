"""Lending report CLI commands."""

import typer
from rich.table import Table

from src.circulation.core.result import Err
from src.circulation.core.services import LedgerQueryEngine, MonotonicClock

from ._support import console, current_config, database_session

report_app = typer.Typer(help="Print lending reports derived from the ledger")


@report_app.command("overdue")
def overdue(
    borrower_id: int | None = typer.Option(
        None, "--borrower", "-b", help="Only loans of this borrower"
    ),
) -> None:
    """List current loans past their due date."""
    config = current_config()
    clock = MonotonicClock()
    with database_session(config) as session:
        engine = LedgerQueryEngine(session, clock=clock)
        entries = engine.overdue(borrower_id)
        now = clock.now()

    if not entries:
        console.print("[green]No overdue loans[/green]")
        return

    table = Table(title="Overdue loans")
    table.add_column("Copy", style="cyan", justify="right")
    table.add_column("ISBN", style="green", no_wrap=True)
    table.add_column("Borrower", style="magenta", justify="right")
    table.add_column("Borrowed", style="blue")
    table.add_column("Due", style="blue")
    table.add_column("Days overdue", style="red", justify="right")

    for entry in entries:
        table.add_row(
            str(entry.copy_id),
            entry.isbn,
            str(entry.borrower_id),
            entry.action_time.strftime("%Y-%m-%d %H:%M"),
            entry.due_date.strftime("%Y-%m-%d %H:%M") if entry.due_date else "-",
            str(-entry.days_until_due(now)),
        )

    console.print(table)
    console.print(f"\n[yellow]{len(entries)} overdue loans[/yellow]")


def _print_ranking(title: str, key_label: str, ranking: list[tuple[int | str, int]]) -> None:
    if not ranking:
        console.print("[yellow]No borrowings recorded yet[/yellow]")
        return

    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column(key_label, style="cyan")
    table.add_column("Borrowings", style="green", justify="right")
    for position, (key, count) in enumerate(ranking, start=1):
        table.add_row(str(position), str(key), str(count))
    console.print(table)


@report_app.command("popular")
def popular(
    limit: int | None = typer.Option(None, "--limit", "-l", help="Number of rows"),
    by: str = typer.Option("copy", "--by", help="Rank by 'copy' or 'isbn'"),
) -> None:
    """Most borrowed copies or ISBNs."""
    config = current_config()
    with database_session(config) as session:
        result = LedgerQueryEngine(session).popularity(
            limit if limit is not None else config.lending.ranking_default_limit, by=by
        )
    if isinstance(result, Err):
        console.print(f"[red]❌ {result.message}[/red]")
        raise typer.Exit(code=2)

    _print_ranking(f"Most borrowed by {by}", by.capitalize(), result.value)


@report_app.command("active")
def active(
    limit: int | None = typer.Option(None, "--limit", "-l", help="Number of rows"),
) -> None:
    """Borrowers with the most borrowings."""
    config = current_config()
    with database_session(config) as session:
        result = LedgerQueryEngine(session).activity(
            limit if limit is not None else config.lending.ranking_default_limit
        )
    if isinstance(result, Err):
        console.print(f"[red]❌ {result.message}[/red]")
        raise typer.Exit(code=2)

    _print_ranking("Most active borrowers", "Borrower", result.value)
