"""Celery tasks for vendor notifications."""

import logging
import uuid

from celery import shared_task
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.config import get_settings
from app.metrics import notifications_total
from app.tasks.celery_app import celery_app  # noqa: F401  binds shared tasks to the configured app
from app.models.notification import Notification

logger = logging.getLogger(__name__)

_sync_session_factory = None


def _get_sync_session() -> Session:
    """Create a synchronous DB session for Celery tasks."""
    global _sync_session_factory
    if _sync_session_factory is None:
        settings = get_settings()
        sync_url = settings.database_url.replace("+asyncpg", "+psycopg2").replace("+aiosqlite", "")
        _sync_session_factory = sessionmaker(bind=create_engine(sync_url, pool_pre_ping=True))
    return _sync_session_factory()


def _optional_uuid(value: str | None) -> uuid.UUID | None:
    return uuid.UUID(value) if value else None


@shared_task(
    bind=True,
    max_retries=5,
    default_retry_delay=10,
    autoretry_for=(Exception,),
    retry_backoff=True,
    name="app.tasks.notification_tasks.create_notification",
)
def create_notification(
    self,
    user_id: str,
    message: str,
    event_id: str | None = None,
    proposal_id: str | None = None,
):
    """Write a vendor notification row.

    Retried with backoff; a retry after a lost acknowledgement may produce a
    duplicate notice, never a missing one.
    """
    session = _get_sync_session()
    try:
        notification = Notification(
            user_id=uuid.UUID(user_id),
            message=message,
            event_id=_optional_uuid(event_id),
            proposal_id=_optional_uuid(proposal_id),
        )
        session.add(notification)
        session.commit()
        notifications_total.labels(status="created").inc()
        logger.info("Notification %s created for user=%s (attempt %d)", notification.id, user_id, self.request.retries + 1)
        return str(notification.id)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
