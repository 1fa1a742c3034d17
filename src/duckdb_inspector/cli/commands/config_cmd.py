"""Configuration management commands."""

import typer

from ..config import get_config, CONFIG_FILE
from ..output import print_dict, print_success, print_error, print_json
from ..main import state


app = typer.Typer(help="Configuration management")


@app.command("set")
def set_config(
    key: str = typer.Argument(..., help="Configuration key (url)"),
    value: str = typer.Argument(..., help="Configuration value"),
) -> None:
    """Set a configuration value.

    Supported keys:
    - url: inspector service URL

    Configuration is saved to ~/.duckdb-inspector/config.yaml
    """
    try:
        config = get_config()
        config.set_value(key, value)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if state.json_output:
        print_json({"success": True, "key": key, "file": str(CONFIG_FILE)})
    else:
        print_success(f"Configuration updated: {key} = {config.url}")
        print_success(f"Saved to: {CONFIG_FILE}")


@app.command("show")
def show_config() -> None:
    """Show current configuration.

    DUCKDB_INSPECTOR_URL overrides the config file, which overrides defaults.
    """
    config = get_config()

    if state.json_output:
        print_json(config.to_dict())
        return

    print_dict(config.to_dict(), title="Current Configuration")
    if CONFIG_FILE.exists():
        typer.echo(f"\nConfig file: {CONFIG_FILE}")
    else:
        typer.echo(f"\nConfig file not found: {CONFIG_FILE}")
