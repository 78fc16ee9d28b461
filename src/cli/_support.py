"""Shared helpers for CLI commands."""

from collections.abc import Iterator
from contextlib import contextmanager

import typer
from rich.console import Console
from sqlmodel import Session

from src.circulation.core.services import DbSessionService
from src.circulation.runtime.config import ConfigData
from src.circulation.runtime.context import load_config

console = Console()


def current_config() -> ConfigData:
    """Load configuration afresh so environment overrides given to this invocation apply."""
    try:
        return load_config()
    except ValueError as e:
        console.print(f"[red]❌ Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e


@contextmanager
def database_session(config: ConfigData) -> Iterator[Session]:
    database_service = DbSessionService(config)
    try:
        with database_service.session_scope() as session:
            yield session
    finally:
        database_service.dispose()
