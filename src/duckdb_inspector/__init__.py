"""DuckDB Inspector - HTTP/WebSocket inspection service for DuckDB files."""

__version__ = "0.1.0"
