"""Repository adapters - Database and in-process implementations."""

from .memory import InMemoryRegistrationStore
from .postgres import PostgresRegistrationRepository, PostgresVenueRepository, run_migrations

__all__ = [
    "InMemoryRegistrationStore",
    "PostgresRegistrationRepository",
    "PostgresVenueRepository",
    "run_migrations",
]
