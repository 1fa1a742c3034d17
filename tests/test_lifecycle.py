"""Port binding and start/stop tests against a real uvicorn server."""

import socket

import httpx
import pytest

from duckdb_inspector.errors import PortBindError
from duckdb_inspector.lifecycle import ServiceLifecycle, ServiceState
from duckdb_inspector.main import create_app

HOST = "127.0.0.1"


@pytest.fixture
def occupied_port():
    """A port held by a listening socket for the duration of the test."""
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind((HOST, 0))
    blocker.listen(1)
    yield blocker.getsockname()[1]
    blocker.close()


@pytest.fixture
def lifecycle_factory(service):
    created = []

    def factory(port, max_port_attempts=10):
        lifecycle = ServiceLifecycle(
            create_app(service),
            host=HOST,
            port=port,
            max_port_attempts=max_port_attempts,
        )
        created.append(lifecycle)
        return lifecycle

    yield factory
    for lifecycle in created:
        lifecycle.stop()


class TestServiceLifecycle:

    def test_start_serves_requests(self, lifecycle_factory):
        lifecycle = lifecycle_factory(port=0)

        port = lifecycle.start()

        assert lifecycle.state is ServiceState.RUNNING
        assert port > 0
        response = httpx.get(f"http://{HOST}:{port}/api/tables", timeout=5)
        assert response.status_code == 200
        assert response.json()[0]["name"] == "users"

    def test_busy_port_moves_to_next(self, lifecycle_factory, occupied_port):
        lifecycle = lifecycle_factory(port=occupied_port)

        port = lifecycle.start()

        assert port > occupied_port
        assert port < occupied_port + 10
        assert lifecycle.url == f"http://{HOST}:{port}"
        assert httpx.get(f"{lifecycle.url}/health", timeout=5).status_code == 200

    def test_exhausted_attempts_raise(self, lifecycle_factory, occupied_port):
        lifecycle = lifecycle_factory(port=occupied_port, max_port_attempts=1)

        with pytest.raises(PortBindError) as exc_info:
            lifecycle.start()

        assert exc_info.value.attempted_ports == [occupied_port]
        assert lifecycle.state is ServiceState.STOPPED
        assert lifecycle.bound_port is None

    def test_stop_releases_port_and_is_idempotent(self, lifecycle_factory):
        lifecycle = lifecycle_factory(port=0)
        port = lifecycle.start()

        lifecycle.stop()
        lifecycle.stop()

        assert lifecycle.state is ServiceState.STOPPED
        assert lifecycle.url is None
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((HOST, port))

    def test_start_twice_returns_same_port(self, lifecycle_factory):
        lifecycle = lifecycle_factory(port=0)

        assert lifecycle.start() == lifecycle.start()

    def test_stop_before_start(self, lifecycle_factory):
        lifecycle = lifecycle_factory(port=0)

        lifecycle.stop()

        assert lifecycle.state is ServiceState.STOPPED

    def test_rejects_zero_attempts(self, service):
        with pytest.raises(ValueError):
            ServiceLifecycle(create_app(service), max_port_attempts=0)

    def test_second_instance_on_same_port_runs_one_port_up(self, lifecycle_factory):
        first = lifecycle_factory(port=0)
        port = first.start()

        second = lifecycle_factory(port=port)

        assert second.start() == port + 1
        assert first.state is ServiceState.RUNNING
        assert second.state is ServiceState.RUNNING
