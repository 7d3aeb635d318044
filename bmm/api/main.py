"""
BMM registration service entry point.

Builds the FastAPI app, wires the configured store into `app.state`
and exposes `/health` alongside the versioned API.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from psycopg_pool import ConnectionPool

from bmm.adapters.repository.memory import InMemoryRegistrationStore
from bmm.adapters.repository.postgres import (
    PostgresRegistrationRepository,
    PostgresVenueRepository,
    run_migrations,
)
from bmm.api.v1 import router as v1_router
from bmm.config.settings import get_settings

logger = logging.getLogger(__name__)

tags_metadata = [
    {
        "name": "v1",
        "description": "Member verification, preferences, venue assignment, "
        "tickets and check-in",
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Open the member and session stores for the app's lifetime.

    The memory backend serves both ports from one store. The postgres
    backend opens a pool, applies migrations and closes the pool on exit.
    """
    settings = get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    logger.info("Starting BMM registration (store=%s)", settings.store_backend)

    pool = None
    if settings.store_backend == "memory":
        store = InMemoryRegistrationStore()
        app.state.members = store
        app.state.sessions = store
    else:
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        run_migrations(pool)
        app.state.members = PostgresRegistrationRepository(pool)
        app.state.sessions = PostgresVenueRepository(pool)

    # None for the memory backend
    app.state.pool = pool
    logger.info("Registration service ready")

    yield

    if pool is not None:
        pool.close()
        logger.info("Member store pool closed")


app = FastAPI(
    title="bmm-registration",
    description="Biennial membership meeting registration - stage progression "
    "and capacity-constrained venue assignment",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.include_router(v1_router, prefix="/v1")


@app.get("/health")
def health_check(request: Request) -> dict[str, str]:
    """Report which store is active; a dead database surfaces as a 500."""
    pool = request.app.state.pool
    if pool is None:
        return {"status": "healthy", "store": "memory"}

    with pool.connection() as conn:
        conn.execute("SELECT 1")

    return {"status": "healthy", "store": "postgres"}
