"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory store with a controllable clock
- Wired domain services around that store
- A PostgreSQL pool that skips the test when no database is reachable
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from bmm.adapters.repository.memory import InMemoryRegistrationStore
from bmm.adapters.repository.postgres import run_migrations
from bmm.config.settings import get_settings
from tests.support import FakeClock, Services, build_services


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryRegistrationStore:
    """Fresh in-memory store for each test."""
    return InMemoryRegistrationStore(clock=clock)


@pytest.fixture
def dispatcher() -> Mock:
    return Mock()


@pytest.fixture
def services(store: InMemoryRegistrationStore, dispatcher: Mock) -> Services:
    return build_services(store, store, dispatcher)


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against Settings.database_url with migrations applied.

    Skips every dependent test when PostgreSQL is not reachable.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    try:
        pool.wait(timeout=3.0)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_pg(pg_pool: ConnectionPool) -> ConnectionPool:
    """Empty all tables before the test."""
    with pg_pool.connection() as conn:
        conn.execute("TRUNCATE tickets, members, venue_sessions RESTART IDENTITY CASCADE")
        conn.commit()
    return pg_pool
