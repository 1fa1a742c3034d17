"""Table commands."""

from pathlib import Path
from typing import Optional

import typer

from ..client import get_client
from ..output import print_dict, print_json, print_success, print_table, print_warning
from ..main import state

app = typer.Typer(help="Inspect and export tables")


@app.command("list")
def list_tables() -> None:
    """List tables with their row counts."""
    with get_client(verbose=state.verbose) as client:
        tables = client.get("/api/tables")

    if state.json_output:
        print_json(tables)
        return

    if not tables:
        typer.echo("No tables found")
        return

    print_table(
        [{"Name": t["name"], "Rows": f"{t.get('rowCount', 0):,}", "Type": t.get("type", "table")} for t in tables]
    )
    typer.echo(f"\nTotal: {len(tables)} table(s)")


@app.command("schema")
def table_schema(
    table: str = typer.Argument(..., help="Table name"),
) -> None:
    """Show the columns of a table."""
    with get_client(verbose=state.verbose) as client:
        columns = client.get(f"/api/tables/{table}/schema")

    if state.json_output:
        print_json(columns)
        return

    print_table(
        columns,
        columns=["name", "type", "nullable", "primaryKey", "defaultValue"],
        title=table,
    )


@app.command("info")
def table_info(
    table: str = typer.Argument(..., help="Table name"),
) -> None:
    """Show schema, indexes and sample rows of a table."""
    with get_client(verbose=state.verbose) as client:
        info = client.get(f"/api/tables/{table}/info")

    if state.json_output:
        print_json(info)
        return

    print_dict({"Name": info["name"], "Rows": f"{info.get('rowCount', 0):,}"}, title="Table")
    print_table(info.get("columns", []), columns=["name", "type", "nullable", "primaryKey"], title="Columns")
    if info.get("indexes"):
        print_table(info["indexes"], title="Indexes")
    print_table(info.get("sampleData", []), title="Sample rows")
    if info.get("error"):
        print_warning(info["error"])


@app.command("export")
def export_table(
    table: str = typer.Argument(..., help="Table name"),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o",
        help="Output file (default: <table>.<format>)"
    ),
    format: str = typer.Option("csv", "--format", "-f", help="csv or json"),
) -> None:
    """Export all rows of a table to a file."""
    target = output or Path(f"{table}.{format}")

    with get_client(verbose=state.verbose) as client:
        written = client.download(f"/api/export/{table}", target, params={"format": format})

    if state.json_output:
        print_json({"table": table, "file": str(target), "bytes": written})
    else:
        print_success(f"Exported {table} to {target} ({written:,} bytes)")
