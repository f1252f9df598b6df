"""Organizer/vendor chat side channel.

Messages never touch requirement or proposal state.
"""

import logging
import uuid

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotAuthorized, NotFound, ValidationError
from app.models.message import Message
from app.models.user import User
from app.principal import Principal
from app.services.requirement_lifecycle import load_event

logger = logging.getLogger(__name__)


async def _thread_receiver(
    db: AsyncSession,
    principal: Principal,
    event_id: uuid.UUID,
    vendor_id: uuid.UUID,
) -> uuid.UUID:
    """Return the other participant of an (event, vendor) thread."""
    event = await load_event(db, event_id)
    if principal.user_id == event.organizer_id:
        if await db.get(User, vendor_id) is None:
            raise NotFound(f"User {vendor_id} not found")
        return vendor_id
    if principal.user_id == vendor_id:
        return event.organizer_id
    raise NotAuthorized("Only the organizer and the vendor may post in this thread")


async def send_message(
    db: AsyncSession,
    principal: Principal,
    content: str,
    event_id: uuid.UUID | None = None,
    vendor_id: uuid.UUID | None = None,
    receiver_id: uuid.UUID | None = None,
) -> Message:
    if not content.strip():
        raise ValidationError("Message content must not be empty")

    if event_id is not None and vendor_id is not None:
        receiver_id = await _thread_receiver(db, principal, event_id, vendor_id)
    elif receiver_id is None:
        raise ValidationError("Provide receiver_id, or both event_id and vendor_id")
    elif await db.get(User, receiver_id) is None:
        raise NotFound(f"User {receiver_id} not found")

    message = Message(
        sender_id=principal.user_id,
        receiver_id=receiver_id,
        event_id=event_id,
        vendor_id=vendor_id,
        content=content,
    )
    db.add(message)
    await db.flush()
    logger.debug("Message %s sent by %s to %s", message.id, principal.user_id, receiver_id)
    return message


async def list_thread(
    db: AsyncSession,
    principal: Principal,
    event_id: uuid.UUID,
    vendor_id: uuid.UUID,
) -> list[Message]:
    """Messages of an (event, vendor) thread, oldest first."""
    event = await load_event(db, event_id)
    if not principal.is_admin and principal.user_id not in (event.organizer_id, vendor_id):
        raise NotAuthorized("Not a participant of this thread")
    result = await db.execute(
        select(Message)
        .where(Message.event_id == event_id, Message.vendor_id == vendor_id)
        .order_by(Message.created_at.asc())
    )
    return list(result.scalars().all())


async def conversation_partners(db: AsyncSession, principal: Principal) -> list[User]:
    """Every user the caller has exchanged a message with."""
    result = await db.execute(
        select(Message.sender_id, Message.receiver_id).where(
            or_(Message.sender_id == principal.user_id, Message.receiver_id == principal.user_id)
        )
    )
    partner_ids = set()
    for sender_id, receiver_id in result.all():
        for user_id in (sender_id, receiver_id):
            if user_id is not None and user_id != principal.user_id:
                partner_ids.add(user_id)
    if not partner_ids:
        return []
    users = await db.execute(select(User).where(User.id.in_(partner_ids)).order_by(User.name.asc()))
    return list(users.scalars().all())


async def conversation_with(db: AsyncSession, principal: Principal, other_id: uuid.UUID) -> list[Message]:
    """Direct messages between the caller and another user, oldest first."""
    result = await db.execute(
        select(Message)
        .where(
            or_(
                and_(Message.sender_id == principal.user_id, Message.receiver_id == other_id),
                and_(Message.sender_id == other_id, Message.receiver_id == principal.user_id),
            )
        )
        .order_by(Message.created_at.asc())
    )
    return list(result.scalars().all())


async def mark_read(db: AsyncSession, principal: Principal, message_id: uuid.UUID) -> Message:
    message = await db.get(Message, message_id)
    if message is None:
        raise NotFound(f"Message {message_id} not found")
    if message.receiver_id != principal.user_id:
        raise NotAuthorized("Only the receiver may mark a message as read")
    message.read = True
    await db.flush()
    return message
