from __future__ import annotations

import os

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from backoffice.api.deps.payroll import get_session_factory
from backoffice.db.session import get_db

# Ensure Base + models are registered before create_all
from backoffice.db.base import Base  # noqa: F401
import backoffice.models  # noqa: F401
from backoffice.notifications.queue import InMemoryNotificationQueue
from backoffice.payroll.routine import PayrollRoutine

from payroll_data import make_routine


# ---------------------------------------------------------
# Database config
# ---------------------------------------------------------
@pytest.fixture()
def database_url_async(tmp_path) -> str:
    """
    TEST_DATABASE_URL_ASYNC points the suite at a real PostgreSQL.
    Otherwise every test gets its own SQLite file.
    """
    url = os.getenv("TEST_DATABASE_URL_ASYNC")
    if url:
        return url
    return f"sqlite+aiosqlite:///{tmp_path / 'payroll_test.db'}"


# ---------------------------------------------------------
# Engine + schema lifecycle
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def engine(database_url_async: str):
    engine = create_async_engine(database_url_async, future=True, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture()
def sessionmaker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


# ---------------------------------------------------------
# DB session for assertions / setup
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def db(sessionmaker):
    """
    Session for test setup & assertions ONLY.
    """
    async with sessionmaker() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------
# Payroll wiring
# ---------------------------------------------------------
@pytest.fixture()
def notification_queue() -> InMemoryNotificationQueue:
    return InMemoryNotificationQueue()


@pytest.fixture()
def routine(sessionmaker, notification_queue) -> PayrollRoutine:
    return make_routine(sessionmaker, notification_queue)


# ---------------------------------------------------------
# FastAPI app + dependency override
# ---------------------------------------------------------
@pytest.fixture()
def app(sessionmaker, notification_queue):
    from backoffice.main import app as fastapi_app

    async def _override_get_db():
        async with sessionmaker() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = _override_get_db
    fastapi_app.dependency_overrides[get_session_factory] = lambda: sessionmaker
    saved_queue = fastapi_app.state.notification_queue
    fastapi_app.state.notification_queue = notification_queue
    yield fastapi_app
    fastapi_app.state.notification_queue = saved_queue
    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------
# HTTP client
# ---------------------------------------------------------
@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
    ) as ac:
        yield ac
