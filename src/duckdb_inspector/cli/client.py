"""HTTP client for a running inspector service."""

from pathlib import Path
from typing import Any

import httpx

from .config import CLIConfig, get_config


class APIError(Exception):
    """API error with status code and message."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"[{status_code}] {message}")


class InspectorClient:
    """HTTP client for the inspector API."""

    def __init__(self, config: CLIConfig | None = None, verbose: bool = False):
        self.config = config or get_config()
        self.verbose = verbose
        self._client: httpx.Client | None = None

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.Client(base_url=self.config.url, timeout=60.0)
        return self._client

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def __enter__(self) -> "InspectorClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _handle_response(self, response: httpx.Response) -> Any:
        """Decode a JSON response, raising APIError for the error envelope."""
        if self.verbose:
            print(f"  -> {response.status_code} ({response.elapsed.total_seconds():.2f}s)")

        if response.status_code >= 400:
            try:
                message = response.json().get("error") or response.text
            except (ValueError, AttributeError):
                message = response.text or f"HTTP {response.status_code}"
            raise APIError(response.status_code, message)

        return response.json()

    def get(self, path: str, params: dict | None = None) -> Any:
        if self.verbose:
            print(f"GET {path}")
        return self._handle_response(self.client.get(path, params=params))

    def post(self, path: str, json_data: Any = None) -> Any:
        if self.verbose:
            print(f"POST {path}")
        return self._handle_response(self.client.post(path, json=json_data))

    def delete(self, path: str) -> Any:
        if self.verbose:
            print(f"DELETE {path}")
        return self._handle_response(self.client.delete(path))

    def download(self, path: str, output_path: Path, params: dict | None = None) -> int:
        """Stream a response body to a file; returns the number of bytes written."""
        if self.verbose:
            print(f"GET {path} (download)")

        written = 0
        with self.client.stream("GET", path, params=params) as response:
            if response.status_code >= 400:
                response.read()
                self._handle_response(response)

            with open(output_path, "wb") as f:
                for chunk in response.iter_bytes(chunk_size=8192):
                    f.write(chunk)
                    written += len(chunk)
        return written


def get_client(verbose: bool = False) -> InspectorClient:
    """Get a configured API client."""
    return InspectorClient(get_config(), verbose=verbose)
