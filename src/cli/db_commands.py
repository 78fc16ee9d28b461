"""Database management CLI commands."""

import typer
from sqlalchemy.exc import SQLAlchemyError

from src.circulation.runtime.init_db import init_db

from ._support import console, current_config

db_app = typer.Typer(help="Manage the lending database")


@db_app.command("init")
def init() -> None:
    """Create every table that does not exist yet."""
    config = current_config()
    try:
        tables = init_db(config)
    except SQLAlchemyError as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[green]✅ Database ready at {config.database.url}[/green]")
    for table in tables:
        console.print(f"  • {table}")
