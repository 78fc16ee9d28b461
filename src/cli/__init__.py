"""Main CLI application module."""

import typer

from .db_commands import db_app
from .report_commands import report_app

# Create the main CLI application
app = typer.Typer(
    help="📚 Circulation CLI - lending database and reports",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Register command groups
app.add_typer(db_app, name="db")
app.add_typer(report_app, name="report")


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (config app.host by default)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port (config app.port by default)"),
    reload: bool = typer.Option(False, "--reload", help="Restart on code changes"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from ._support import current_config

    config = current_config()
    uvicorn.run(
        "src.circulation.api.http.app:app",
        host=host or config.app.host,
        port=port or config.app.port,
        reload=reload,
        access_log=False,  # Requests are logged by the middleware
    )


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
