"""
Shared fixtures for adversarial tests.

Provides the PostgreSQL repositories and seeding helpers used by the
race condition tests. The in-memory variants come from tests/conftest.py.
"""

from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool

from bmm.adapters.repository.postgres import PostgresRegistrationRepository, PostgresVenueRepository
from tests.support import Services, build_services

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def pg_members(clean_pg: ConnectionPool) -> PostgresRegistrationRepository:
    return PostgresRegistrationRepository(clean_pg)


@pytest.fixture
def pg_sessions(clean_pg: ConnectionPool) -> PostgresVenueRepository:
    return PostgresVenueRepository(clean_pg)


@pytest.fixture
def pg_services(
    pg_members: PostgresRegistrationRepository, pg_sessions: PostgresVenueRepository
) -> Services:
    return build_services(pg_members, pg_sessions, Mock())
