"""Configuration management for the inspector CLI."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any
import os

import yaml


CONFIG_DIR = Path.home() / ".duckdb-inspector"
CONFIG_FILE = CONFIG_DIR / "config.yaml"

DEFAULT_URL = "http://localhost:8080"


@dataclass
class CLIConfig:
    """CLI configuration."""

    url: str = DEFAULT_URL

    @classmethod
    def load(cls) -> "CLIConfig":
        """Load configuration from file and environment.

        Priority (highest to lowest):
        1. Environment variable DUCKDB_INSPECTOR_URL
        2. Config file (~/.duckdb-inspector/config.yaml)
        3. Defaults
        """
        config = cls()

        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError):
                data = {}  # Unreadable file: keep defaults
            config.url = data.get("url") or DEFAULT_URL

        if env_url := os.environ.get("DUCKDB_INSPECTOR_URL"):
            config.url = env_url

        return config

    def save(self) -> None:
        """Save configuration to file."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)

        with open(CONFIG_FILE, "w") as f:
            yaml.dump({"url": self.url}, f, default_flow_style=False)

    def set_value(self, key: str, value: str) -> None:
        """Set a configuration value."""
        if key.lower() != "url":
            raise ValueError(f"Unknown config key: {key}")
        self.url = value.rstrip("/")
        self.save()

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url}


def get_config() -> CLIConfig:
    """Get the current configuration."""
    return CLIConfig.load()
