"""Notification routes: the vendor's approval inbox."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.dependencies import get_current_principal, get_db
from app.errors import ValidationError
from app.models.notification import Notification
from app.principal import Principal
from app.schemas.notification import NotificationMarkReadRequest, NotificationResponse

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    unread_only: bool = Query(False),
    limit: int | None = Query(None, ge=1, le=200),
):
    """Latest notifications for the caller, newest first."""
    query = (
        select(Notification)
        .where(Notification.user_id == principal.user_id)
        .order_by(Notification.created_at.desc())
        .limit(limit or settings.notifications_page_size)
    )
    if unread_only:
        query = query.where(Notification.read == False)  # noqa: E712

    result = await db.execute(query)
    return [
        NotificationResponse(
            id=str(n.id),
            message=n.message,
            event_id=str(n.event_id) if n.event_id else None,
            proposal_id=str(n.proposal_id) if n.proposal_id else None,
            read=n.read,
            created_at=n.created_at.isoformat(),
        )
        for n in result.scalars().all()
    ]


@router.post("/mark-read")
async def mark_notifications_read(
    body: NotificationMarkReadRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Mark notifications as read. Only the recipient's own rows are touched."""
    try:
        notification_ids = [uuid.UUID(nid) for nid in body.notification_ids]
    except ValueError as e:
        raise ValidationError("Invalid notification id") from e
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == principal.user_id, Notification.id.in_(notification_ids))
        .values(read=True)
    )
    return {"status": "ok", "marked": result.rowcount}
