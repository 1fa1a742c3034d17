"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Inspector settings loaded from environment variables.

    All settings can be configured via:
    1. Environment variables with the INSPECTOR_ prefix (e.g. INSPECTOR_PORT=9000)
    2. .env file in the working directory
    """

    model_config = SettingsConfigDict(
        env_prefix="INSPECTOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # API settings
    api_title: str = "DuckDB Inspector"
    api_version: str = "0.1.0"
    debug: bool = False

    # Database file the service fronts (":memory:" is accepted)
    database_path: Path = Path("./data/inspector.duckdb")

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8080
    max_port_attempts: int = 10
    enable_websocket: bool = True

    # Query handling
    history_capacity: int = 100
    sample_size: int = 5
    query_timeout: float = 30.0  # seconds, per engine call

    # Reject mutations whose ?where= filter does not parse
    strict_filters: bool = True


# Global settings instance
settings = Settings()
