"""Account administration: role changes and cascade deletion."""

import logging
import uuid

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFound
from app.models.event import Event
from app.models.message import Message
from app.models.notification import Notification
from app.models.proposal import Proposal
from app.models.user import User, UserRole
from app.principal import Principal
from app.services.audit_service import write_audit_log
from app.services.event_service import delete_event_cascade

logger = logging.getLogger(__name__)


async def _load_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


async def list_users(db: AsyncSession, principal: Principal) -> list[User]:
    principal.require_role(UserRole.ADMIN)
    result = await db.execute(select(User).order_by(User.created_at.asc()))
    return list(result.scalars().all())


async def set_role(db: AsyncSession, principal: Principal, user_id: uuid.UUID, role: UserRole) -> User:
    principal.require_role(UserRole.ADMIN)
    user = await _load_user(db, user_id)
    previous = user.role
    user.role = role
    await db.flush()

    await write_audit_log(
        db=db,
        actor_id=principal.user_id,
        action="user.role_changed",
        entity_type="user",
        entity_id=user.id,
        metadata={"from": previous.value, "to": role.value},
    )
    return user


async def delete_user(db: AsyncSession, principal: Principal, user_id: uuid.UUID) -> dict[str, int]:
    """Delete an account.

    Events the user organizes go with them (and every proposal against those
    events). Proposals the user submitted as a vendor stay readable with their
    vendor reference nulled; requirement assignments keep the old vendor id.
    """
    principal.require_role(UserRole.ADMIN)
    user = await _load_user(db, user_id)

    events = (await db.execute(select(Event).where(Event.organizer_id == user.id))).scalars().all()
    proposals_removed = 0
    for event in events:
        proposals_removed += await delete_event_cascade(db, event)

    orphaned = await db.execute(
        update(Proposal).where(Proposal.vendor_id == user.id).values(vendor_id=None)
    )
    await db.execute(delete(Notification).where(Notification.user_id == user.id))
    await db.execute(
        delete(Message).where((Message.sender_id == user.id) | (Message.receiver_id == user.id))
    )
    await db.delete(user)
    await db.flush()

    summary = {
        "events_removed": len(events),
        "proposals_removed": proposals_removed,
        "proposals_orphaned": orphaned.rowcount,
    }
    await write_audit_log(
        db=db,
        actor_id=principal.user_id,
        action="user.deleted",
        entity_type="user",
        entity_id=user_id,
        metadata=summary,
    )
    logger.info("User %s deleted: %s", user_id, summary)
    return summary
