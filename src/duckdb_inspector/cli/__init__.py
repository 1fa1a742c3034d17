"""Command-line interface for the DuckDB Inspector."""
