"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient

from duckdb_inspector.config import settings
from duckdb_inspector.database import DatabaseGateway
from duckdb_inspector.history import QueryHistory
from duckdb_inspector.main import create_app
from duckdb_inspector.service import InspectorService


USERS_DDL = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    name VARCHAR NOT NULL,
    age INTEGER,
    active BOOLEAN DEFAULT true
)
"""

USERS_ROWS = """
INSERT INTO users VALUES
    (1, 'alice', 30, true),
    (2, 'bob', 17, false),
    (3, 'carol', 45, true)
"""


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Temporary database file; settings point at it as well."""
    path = tmp_path / "test.duckdb"
    monkeypatch.setattr(settings, "database_path", path)
    monkeypatch.setattr(settings, "query_timeout", 30.0)
    return path


@pytest.fixture
def gateway(db_path):
    """Gateway over an empty temporary database."""
    gw = DatabaseGateway(db_path, query_timeout=30.0)
    yield gw
    gw.close()


@pytest.fixture
def seeded_gateway(gateway):
    """Gateway whose database holds a three-row ``users`` table."""
    gateway.raw_query(USERS_DDL)
    gateway.raw_query(USERS_ROWS)
    return gateway


@pytest.fixture
def service(seeded_gateway):
    return InspectorService(seeded_gateway, history=QueryHistory(100))


@pytest.fixture
def lenient_service(seeded_gateway):
    """Service that treats malformed filters as "no filter"."""
    return InspectorService(seeded_gateway, strict_filters=False)


@pytest.fixture
def client(service):
    """Test client around a fresh app; the lifespan runs for each test."""
    with TestClient(create_app(service)) as test_client:
        yield test_client


@pytest.fixture
def lenient_client(lenient_service):
    with TestClient(create_app(lenient_service)) as test_client:
        yield test_client
