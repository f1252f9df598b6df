"""FastAPI dependency injection."""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import Settings, get_settings
from app.models.user import UserRole
from app.principal import Principal

logger = logging.getLogger(__name__)

# Database engine and session factory (initialized in lifespan)
_engine = None
_session_factory = None

security = HTTPBearer()


def _create_engine(settings: Settings):
    kwargs = {"echo": settings.debug, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        kwargs.update(pool_size=20, max_overflow=10)
    return create_async_engine(settings.database_url, **kwargs)


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker:
    global _engine, _session_factory
    if _session_factory is None:
        _engine = _create_engine(settings or get_settings())
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _session_factory


AFTER_COMMIT_KEY = "after_commit"


@asynccontextmanager
async def transaction(factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """Open a session; commit on success, roll back on any error.

    Callbacks registered with ``run_after_commit`` run only once the commit has
    succeeded, and are dropped on rollback.
    """
    async with factory() as session:
        session.info[AFTER_COMMIT_KEY] = []
        try:
            yield session
            await session.commit()
        except Exception:
            session.info[AFTER_COMMIT_KEY].clear()
            await session.rollback()
            raise

        callbacks = session.info.pop(AFTER_COMMIT_KEY)
        for callback in callbacks:
            try:
                await callback()
            except Exception:
                logger.exception("After-commit callback failed")


async def run_after_commit(db: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """Defer ``callback`` until the surrounding ``transaction`` commits.

    Sessions not opened through ``transaction`` (workers, scripts) run it at once.
    """
    pending = db.info.get(AFTER_COMMIT_KEY)
    if pending is None:
        await callback()
    else:
        pending.append(callback)


async def get_db(settings: Settings = Depends(get_settings)) -> AsyncGenerator[AsyncSession, None]:
    async with transaction(get_session_factory(settings)) as session:
        yield session


def decode_principal(token: str, settings: Settings) -> Principal:
    """Turn an access token from the identity service into a Principal.

    Raises ValueError for a structurally valid token with unusable claims.
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret_key.get_secret_value(),
        algorithms=[settings.jwt_algorithm],
    )
    user_id = payload.get("sub")
    token_type = payload.get("type")
    if user_id is None or token_type != "access":
        raise ValueError("invalid token payload")
    return Principal(user_id=uuid.UUID(user_id), role=UserRole(payload.get("role", UserRole.USER.value)))


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """Extract and validate the caller's identity from the JWT bearer token."""
    try:
        return decode_principal(credentials.credentials, settings)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from e
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        ) from e


def init_db(settings: Settings) -> tuple:
    """Initialize database engine and session factory. Called from lifespan."""
    global _engine, _session_factory
    _engine = _create_engine(settings)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _engine, _session_factory


async def shutdown_db():
    """Dispose of the database engine. Called from lifespan."""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
    _engine = None
    _session_factory = None
