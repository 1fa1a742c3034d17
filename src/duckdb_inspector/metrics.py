"""Prometheus metrics definitions for the DuckDB Inspector.

This module defines all Prometheus metrics used for observability:
- HTTP request metrics (count, duration, in-flight)
- Query execution metrics (count by status, duration)
- Mutation and export counters
- Realtime channel and history ledger gauges
- Lifecycle (port binding) counters
"""

import time

from prometheus_client import Counter, Gauge, Histogram, Info

# =============================================================================
# Service Health Metrics
# =============================================================================

SERVICE_UP = Gauge(
    "inspector_up",
    "Whether the inspector service is up (1) or down (0)"
)

SERVICE_START_TIME = Gauge(
    "inspector_start_time_seconds",
    "Unix timestamp when the service started"
)

SERVICE_START_TIME.set(time.time())

# =============================================================================
# HTTP Request Metrics
# =============================================================================

REQUEST_COUNT = Counter(
    "inspector_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code"]
)

REQUEST_DURATION = Histogram(
    "inspector_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

REQUEST_IN_FLIGHT = Gauge(
    "inspector_requests_in_flight",
    "Number of HTTP requests currently being processed",
    ["method"]
)

ERROR_COUNT = Counter(
    "inspector_errors_total",
    "Total number of errors by type",
    ["type", "endpoint"]
)

# =============================================================================
# Query Metrics
# =============================================================================

QUERY_COUNT = Counter(
    "inspector_queries_total",
    "Total number of ad-hoc queries",
    ["source", "status"]  # source: http, websocket; status: success, error, timeout
)

QUERY_DURATION = Histogram(
    "inspector_query_duration_seconds",
    "Ad-hoc query duration in seconds",
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0, 60.0]
)

MUTATION_COUNT = Counter(
    "inspector_mutations_total",
    "Total number of row mutations",
    ["kind", "status"]
)

EXPORT_COUNT = Counter(
    "inspector_exports_total",
    "Total number of table exports",
    ["format"]
)

HISTORY_SIZE = Gauge(
    "inspector_history_entries",
    "Current number of entries in the query history ledger"
)

# =============================================================================
# Realtime Channel Metrics
# =============================================================================

SUBSCRIBERS_ACTIVE = Gauge(
    "inspector_realtime_subscribers",
    "Number of open realtime connections"
)

REALTIME_MESSAGES = Counter(
    "inspector_realtime_messages_total",
    "Realtime messages handled",
    ["direction", "type"]  # direction: inbound, outbound
)

# =============================================================================
# Lifecycle Metrics
# =============================================================================

PORT_BIND_ATTEMPTS = Counter(
    "inspector_port_bind_attempts_total",
    "Listening port bind attempts",
    ["result"]  # bound, in_use, failed
)

SERVICE_INFO = Info(
    "inspector",
    "Inspector service information"
)


def set_service_info(version: str, duckdb_version: str) -> None:
    """Set service info labels."""
    SERVICE_INFO.info({
        "version": version,
        "duckdb_version": duckdb_version
    })
