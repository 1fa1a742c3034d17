"""Listening-port lifecycle for the inspector HTTP server.

States: STOPPED -> BINDING -> RUNNING -> STOPPED.

``start()`` binds the preferred port and, when it is already in use, walks
forward one port at a time up to ``max_port_attempts`` ports. The bound
socket is handed to uvicorn, which serves the app in a background thread.

Usage:
    lifecycle = ServiceLifecycle(app, host="0.0.0.0", port=8080)
    port = lifecycle.start()
    ...
    lifecycle.stop()
"""

import errno
import os
import signal
import socket
import threading
import time
from enum import Enum
from typing import Callable

import structlog
import uvicorn
from fastapi import FastAPI

from duckdb_inspector.errors import PortBindError
from duckdb_inspector.metrics import PORT_BIND_ATTEMPTS

logger = structlog.get_logger()

_ADDRESS_IN_USE = {errno.EADDRINUSE, getattr(errno, "WSAEADDRINUSE", errno.EADDRINUSE)}


class ServiceState(str, Enum):
    STOPPED = "stopped"
    BINDING = "binding"
    RUNNING = "running"


def _local_ip_address() -> str | None:
    """Best-effort non-loopback IPv4 address of this machine."""
    try:
        # Connecting a UDP socket sends nothing; it only selects a route.
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("10.255.255.255", 1))
            address = sock.getsockname()[0]
    except OSError:
        return None
    return None if address.startswith("127.") else address


class ServiceLifecycle:
    """Binds a port (with bounded retry), runs uvicorn, and tears down cleanly."""

    def __init__(
        self,
        app: FastAPI,
        host: str = "0.0.0.0",
        port: int = 8080,
        max_port_attempts: int = 10,
        startup_timeout: float = 10.0,
        shutdown_timeout: float = 10.0,
        log_level: str = "warning",
    ):
        if max_port_attempts < 1:
            raise ValueError("max_port_attempts must be at least 1")
        self.app = app
        self.host = host
        self.port = port
        self.max_port_attempts = max_port_attempts
        self.startup_timeout = startup_timeout
        self.shutdown_timeout = shutdown_timeout
        self.log_level = log_level

        self.state = ServiceState.STOPPED
        self.bound_port: int | None = None
        self._socket: socket.socket | None = None
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def url(self) -> str | None:
        if self.bound_port is None:
            return None
        host = "localhost" if self.host in ("0.0.0.0", "") else self.host
        return f"http://{host}:{self.bound_port}"

    def _bind_socket(self, port: int) -> socket.socket:
        """Bind and listen on one port; raises OSError when it is taken."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            if os.name != "nt":
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, port))
            sock.listen(socket.SOMAXCONN)
        except OSError:
            sock.close()
            raise
        return sock

    def _bind_with_retry(self) -> socket.socket:
        attempted: list[int] = []
        for offset in range(self.max_port_attempts):
            port = self.port + offset
            attempted.append(port)
            try:
                sock = self._bind_socket(port)
            except OSError as e:
                if e.errno in _ADDRESS_IN_USE:
                    PORT_BIND_ATTEMPTS.labels(result="in_use").inc()
                    logger.warning("port_in_use", port=port, next_port=port + 1)
                    continue
                PORT_BIND_ATTEMPTS.labels(result="failed").inc()
                raise PortBindError(
                    f"Cannot bind {self.host}:{port}: {e.strerror or e}", attempted
                ) from e

            PORT_BIND_ATTEMPTS.labels(result="bound").inc()
            return sock

        raise PortBindError(
            f"No free port in {self.port}-{self.port + self.max_port_attempts - 1}",
            attempted,
        )

    def start(self) -> int:
        """Bind a port and start serving. Returns the bound port."""
        with self._lock:
            if self.state is ServiceState.RUNNING:
                return self.bound_port

            self.state = ServiceState.BINDING
            try:
                sock = self._bind_with_retry()
            except PortBindError as e:
                self.state = ServiceState.STOPPED
                logger.error("port_bind_failed", error=str(e), attempted=e.attempted_ports)
                raise

            config = uvicorn.Config(self.app, log_level=self.log_level)
            server = uvicorn.Server(config)
            thread = threading.Thread(
                target=server.run,
                kwargs={"sockets": [sock]},
                name="inspector-server",
                daemon=True,
            )
            thread.start()

            deadline = time.monotonic() + self.startup_timeout
            while not server.started and thread.is_alive() and time.monotonic() < deadline:
                time.sleep(0.01)

            if not server.started:
                server.should_exit = True
                thread.join(timeout=self.shutdown_timeout)
                sock.close()
                self.state = ServiceState.STOPPED
                raise RuntimeError("Inspector server failed to start")

            self._socket = sock
            self._server = server
            self._thread = thread
            self.bound_port = sock.getsockname()[1]
            self.state = ServiceState.RUNNING

        logger.info(
            "server_started",
            local=self.url,
            network=f"http://{ip}:{self.bound_port}" if (ip := _local_ip_address()) else None,
            preferred_port=self.port,
        )
        return self.bound_port

    def stop(self) -> None:
        """Stop serving and release the port. Safe to call when already stopped."""
        with self._lock:
            if self.state is ServiceState.STOPPED:
                return

            if self._server is not None:
                self._server.should_exit = True
            if self._thread is not None:
                self._thread.join(timeout=self.shutdown_timeout)
            if self._socket is not None:
                self._socket.close()

            port = self.bound_port
            self._server = None
            self._thread = None
            self._socket = None
            self.bound_port = None
            self.state = ServiceState.STOPPED

        logger.info("server_stopped", port=port)

    def serve_forever(self, on_started: Callable[[str], None] | None = None) -> None:
        """Start, block until SIGINT/SIGTERM, then stop."""
        stop_requested = threading.Event()

        def signal_handler(signum, frame):
            logger.info("shutdown_signal_received", signal=signal.Signals(signum).name)
            stop_requested.set()

        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)

        self.start()
        if on_started is not None:
            on_started(self.url)
        try:
            while not stop_requested.is_set():
                if self._thread is not None and not self._thread.is_alive():
                    logger.error("server_thread_exited")
                    break
                stop_requested.wait(0.5)
        finally:
            self.stop()
