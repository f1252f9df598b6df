"""Outbound vendor notifications.

The assignment coordinator emits a ``NotificationMessage`` and does not wait for
delivery. Sinks are swappable (database row, Celery queue, log only); none of
them may raise into the approval path.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.dependencies import run_after_commit
from app.metrics import notifications_total
from app.models.notification import Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationMessage:
    user_id: uuid.UUID
    message: str
    event_id: uuid.UUID | None = None
    proposal_id: uuid.UUID | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-safe form for the task queue."""
        return {k: str(v) if isinstance(v, uuid.UUID) else v for k, v in asdict(self).items()}


def approval_message(event_title: str) -> str:
    return f"Your proposal for the event '{event_title}' has been approved!"


class NotificationSink(ABC):
    @abstractmethod
    async def emit(self, db: AsyncSession, message: NotificationMessage) -> None:
        """Hand a notification off for delivery."""


class QueueNotificationSink(NotificationSink):
    """Defer the write to a Celery worker, enqueued once the approval has committed."""

    def __init__(self, countdown: int = 0) -> None:
        self._countdown = countdown

    async def emit(self, db: AsyncSession, message: NotificationMessage) -> None:
        from app.tasks.notification_tasks import create_notification

        async def enqueue() -> None:
            try:
                create_notification.apply_async(kwargs=message.to_payload(), countdown=self._countdown)
                notifications_total.labels(status="queued").inc()
            except Exception:
                notifications_total.labels(status="lost").inc()
                logger.exception("Could not enqueue notification for user=%s", message.user_id)

        await run_after_commit(db, enqueue)


class DatabaseNotificationSink(NotificationSink):
    """Write the notification in the caller's transaction, inside its own savepoint.

    A failed write only rolls back the savepoint; the message is then handed to
    ``fallback`` (the queue) so the vendor still hears about it.
    """

    def __init__(self, fallback: NotificationSink | None = None) -> None:
        self._fallback = fallback

    async def emit(self, db: AsyncSession, message: NotificationMessage) -> None:
        try:
            async with db.begin_nested():
                db.add(
                    Notification(
                        user_id=message.user_id,
                        message=message.message,
                        event_id=message.event_id,
                        proposal_id=message.proposal_id,
                    )
                )
                await db.flush()
        except SQLAlchemyError:
            notifications_total.labels(status="failed").inc()
            logger.exception("Notification write failed for user=%s; scheduling retry", message.user_id)
            if self._fallback is not None:
                await self._fallback.emit(db, message)
            return

        notifications_total.labels(status="created").inc()
        logger.info("Notification created for user=%s", message.user_id)


class LoggingNotificationSink(NotificationSink):
    async def emit(self, db: AsyncSession, message: NotificationMessage) -> None:
        notifications_total.labels(status="logged").inc()
        logger.info("Notification for user=%s: %s", message.user_id, message.message)


def get_notification_sink(settings: Settings) -> NotificationSink:
    """Factory that wires up the configured sink."""
    queue = QueueNotificationSink(countdown=settings.notification_retry_delay)
    if settings.notification_sink == "queue":
        return QueueNotificationSink()
    if settings.notification_sink == "log":
        return LoggingNotificationSink()
    return DatabaseNotificationSink(fallback=queue)
