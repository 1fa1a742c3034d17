"""Database commands."""

import typer

from ..client import get_client
from ..output import print_dict, print_json, print_success, print_table, print_warning
from ..main import state

app = typer.Typer(help="Database-level information and maintenance")


@app.command("info")
def database_info() -> None:
    """Show file size, engine version and per-table statistics."""
    with get_client(verbose=state.verbose) as client:
        info = client.get("/api/database/info")

    if state.json_output:
        print_json(info)
        return

    print_dict({
        "Name": info.get("name"),
        "Path": info.get("path"),
        "Size": info.get("humanSize"),
        "Tables": info.get("tableCount"),
        "Engine": info.get("engineVersion"),
    }, title="Database")
    print_table(info.get("tableStats", []), title="Tables")
    if info.get("error"):
        print_warning(info["error"])


@app.command("optimize")
def optimize() -> None:
    """Reclaim space and checkpoint the database file."""
    with get_client(verbose=state.verbose) as client:
        result = client.post("/api/database/optimize")

    if state.json_output:
        print_json(result)
    else:
        print_success("Database optimized")
