"""Shared test fixtures.

Services run against a throwaway SQLite file through aiosqlite.
"""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.models import Base, Event, User, UserRole
from factories import make_event, make_user, sqlite_engine


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        app_env="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'eventhub.db'}",
        redis_url="redis://localhost:6379/0",
        celery_broker_url="redis://localhost:6379/1",
        celery_result_backend="redis://localhost:6379/2",
        notification_sink="database",
    )


@pytest_asyncio.fixture
async def engine(settings):
    engine = sqlite_engine(settings.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine) -> AsyncSession:
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def organizer(db) -> User:
    return await make_user(db, "Olivia Organizer")


@pytest_asyncio.fixture
async def vendor(db) -> User:
    return await make_user(db, "Vikram Vendor", UserRole.VENDOR)


@pytest_asyncio.fixture
async def other_vendor(db) -> User:
    return await make_user(db, "Vera Vendor", UserRole.VENDOR)


@pytest_asyncio.fixture
async def admin(db) -> User:
    return await make_user(db, "Ada Admin", UserRole.ADMIN)


@pytest_asyncio.fixture
async def wedding(db, organizer) -> Event:
    return await make_event(db, organizer)


@pytest.fixture
def missing_id() -> uuid.UUID:
    return uuid.UUID("00000000-0000-0000-0000-000000000000")
