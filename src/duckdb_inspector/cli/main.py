"""Main CLI entry point for the DuckDB Inspector."""

from pathlib import Path
from typing import Optional

import typer

from duckdb_inspector import __version__
from .client import APIError
from .output import print_error, print_success


# Create main app
app = typer.Typer(
    name="duckdb-inspector",
    help="Inspect a DuckDB database over HTTP",
    no_args_is_help=True,
)


# Global state
class GlobalState:
    json_output: bool = False
    verbose: bool = False


state = GlobalState()


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        print(f"duckdb-inspector version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    json_output: bool = typer.Option(
        False, "--json", "-j",
        help="Output as JSON instead of tables"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug information"
    ),
    version: Optional[bool] = typer.Option(
        None, "--version", "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit"
    ),
) -> None:
    """DuckDB Inspector - serve a database file, or query a running server."""
    state.json_output = json_output
    state.verbose = verbose


@app.command("serve")
def serve(
    database: Path = typer.Argument(..., help="DuckDB database file (created if missing)"),
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Interface to bind"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Preferred port"),
    max_port_attempts: Optional[int] = typer.Option(
        None, "--max-port-attempts",
        help="How many successive ports to try when the preferred one is taken"
    ),
    debug: bool = typer.Option(False, "--debug", help="Human-readable debug logging"),
) -> None:
    """Serve a database file until interrupted (Ctrl+C)."""
    from duckdb_inspector.config import settings
    from duckdb_inspector.errors import PortBindError
    from duckdb_inspector.lifecycle import ServiceLifecycle
    from duckdb_inspector.main import create_app, setup_logging
    from duckdb_inspector.service import InspectorService

    settings.database_path = database
    settings.debug = debug
    setup_logging(debug)

    service = InspectorService.from_settings(settings)
    lifecycle = ServiceLifecycle(
        create_app(service),
        host=host or settings.host,
        port=port if port is not None else settings.port,
        max_port_attempts=max_port_attempts or settings.max_port_attempts,
        log_level="debug" if debug else "warning",
    )

    try:
        lifecycle.serve_forever(
            on_started=lambda url: print_success(f"Serving {database} at {url} (Ctrl+C to stop)")
        )
    except PortBindError as e:
        print_error(str(e))
        raise typer.Exit(1)


# Import and register command groups
from .commands import config_cmd, database_cmd, query, tables

app.add_typer(config_cmd.app, name="config")
app.add_typer(tables.app, name="tables")
app.add_typer(query.app, name="query")
app.add_typer(database_cmd.app, name="db")


def run() -> None:
    """Console script entry point: API errors become a message and exit code 1."""
    try:
        app()
    except APIError as e:
        print_error(e.message)
        raise SystemExit(1)


if __name__ == "__main__":
    run()
