# backend/backoffice/db/session.py
from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from backoffice.core.config import Settings, settings

# Connections kept for API requests on top of the payroll workers.
API_POOL_HEADROOM = 5
# Seconds a SQLite writer waits on the file lock held by another employee's commit.
SQLITE_LOCK_TIMEOUT = 30


def engine_options(config: Settings = settings) -> dict[str, Any]:
    """
    Engine kwargs for the configured database.

    PostgreSQL: one pooled connection per concurrently paid employee
    (PAYROLL_CONCURRENCY) plus API headroom. SQLite: no pool sizing, but a
    longer busy timeout since employee commits queue on the file lock.
    """
    options: dict[str, Any] = {"echo": False, "future": True}
    if config.DATABASE_URL_ASYNC.startswith("sqlite"):
        options["connect_args"] = {"timeout": SQLITE_LOCK_TIMEOUT}
        return options

    options.update(
        pool_size=config.PAYROLL_CONCURRENCY + API_POOL_HEADROOM,
        max_overflow=config.PAYROLL_CONCURRENCY,
        pool_pre_ping=True,  # detects dead connections before using them
        pool_recycle=300,
    )
    return options


# Use CLEAN URL to avoid asyncpg errors with sslmode/channel_binding query params.
engine: AsyncEngine = create_async_engine(settings.DATABASE_URL_ASYNC_CLEAN, **engine_options())

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    # salary records are read back after commit for the run report
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One AsyncSession per API request, closed when the request ends."""
    async with AsyncSessionLocal() as session:
        yield session
