"""Builders shared by the test modules."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import event as sa_event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from app.models import Event, EventType, User, UserRole
from app.principal import Principal
from app.services.requirement_lifecycle import build_requirement


def sqlite_engine(url: str, **kwargs):
    """Async SQLite engine on which SAVEPOINTs work.

    The driver must stop issuing its own BEGIN, and SQLAlchemy must issue it instead.
    """
    engine = create_async_engine(url, **kwargs)

    @sa_event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @sa_event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, role=user.role)


def email_for(name: str) -> str:
    return f"{name.lower().replace(' ', '.')}@example.com"


async def make_user(db: AsyncSession, name: str, role: UserRole = UserRole.USER) -> User:
    user = User(email=email_for(name), name=name, role=role)
    db.add(user)
    await db.flush()
    return user


async def make_event(
    db: AsyncSession,
    organizer: User,
    categories: tuple[str, ...] = ("Catering",),
    title: str = "Sharma Wedding",
) -> Event:
    event = Event(
        title=title,
        description="Two day celebration",
        event_type=EventType.WEDDING,
        date=datetime.now(timezone.utc) + timedelta(days=30),
        location="Jaipur",
        organizer_id=organizer.id,
        requirements=[
            build_requirement(category, f"{category} for 200 guests", 1000, position=i)
            for i, category in enumerate(categories)
        ],
    )
    db.add(event)
    await db.flush()
    return event
