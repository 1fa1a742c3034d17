"""Query commands."""

import typer

from ..client import get_client
from ..output import print_json, print_success, print_table
from ..main import state

app = typer.Typer(help="Run SQL and browse query history")


@app.command("run")
def run_query(
    sql: str = typer.Argument(..., help="SQL statement"),
) -> None:
    """Execute a SQL statement and print its rows."""
    with get_client(verbose=state.verbose) as client:
        result = client.post("/api/query", {"sql": sql})

    if state.json_output:
        print_json(result)
        return

    print_table(result.get("data", []), columns=result.get("columns") or None)
    typer.echo(f"\n{result.get('rowCount', 0)} row(s) in {result.get('executionTime', 0)} ms")


@app.command("explain")
def explain_query(
    sql: str = typer.Argument(..., help="SQL statement"),
) -> None:
    """Show the query plan for a statement without running it."""
    with get_client(verbose=state.verbose) as client:
        result = client.get("/api/query/explain", params={"sql": sql})

    if state.json_output:
        print_json(result)
    else:
        print_table(result.get("plan", []), title="Query plan")


@app.command("history")
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Entries to show"),
) -> None:
    """Show recent queries, newest first."""
    with get_client(verbose=state.verbose) as client:
        entries = client.get("/api/history")

    entries = entries[:limit]
    if state.json_output:
        print_json(entries)
        return

    print_table(entries, columns=["timestamp", "sql", "rowCount", "executionTime"], title="Query history")


@app.command("clear-history")
def clear_history() -> None:
    """Forget every recorded query."""
    with get_client(verbose=state.verbose) as client:
        result = client.delete("/api/history")

    if state.json_output:
        print_json(result)
    else:
        print_success("Query history cleared")
