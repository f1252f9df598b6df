"""Chat routes between organizers and vendors."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_current_principal, get_db, run_after_commit
from app.errors import ValidationError
from app.models.message import Message
from app.principal import Principal
from app.schemas.message import ConversationUser, MessageCreate, MessageResponse
from app.services import chat_service
from app.services.ws_manager import ws_manager

router = APIRouter(prefix="/messages", tags=["messages"])


def _optional_id(value: str | None, name: str) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: {value!r}") from e


def message_response(m: Message) -> MessageResponse:
    return MessageResponse(
        id=str(m.id),
        sender_id=str(m.sender_id),
        receiver_id=str(m.receiver_id) if m.receiver_id else None,
        event_id=str(m.event_id) if m.event_id else None,
        vendor_id=str(m.vendor_id) if m.vendor_id else None,
        content=m.content,
        read=m.read,
        created_at=m.created_at.isoformat(),
    )


@router.get("/conversations", response_model=list[ConversationUser])
async def list_conversations(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    users = await chat_service.conversation_partners(db, principal)
    return [ConversationUser(id=str(u.id), name=u.name, email=u.email, role=u.role.value) for u in users]


@router.get("/conversation/{user_id}", response_model=list[MessageResponse])
async def get_conversation(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    messages = await chat_service.conversation_with(db, principal, user_id)
    return [message_response(m) for m in messages]


@router.get("/{event_id}/{vendor_id}", response_model=list[MessageResponse])
async def get_thread(
    event_id: uuid.UUID,
    vendor_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Messages between an event's organizer and one vendor, oldest first."""
    messages = await chat_service.list_thread(db, principal, event_id, vendor_id)
    return [message_response(m) for m in messages]


@router.post("", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    body: MessageCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Persist a message; once committed it is mirrored to connected WebSocket clients."""
    message = await chat_service.send_message(
        db,
        principal,
        content=body.content,
        event_id=_optional_id(body.event_id, "event_id"),
        vendor_id=_optional_id(body.vendor_id, "vendor_id"),
        receiver_id=_optional_id(body.receiver_id, "receiver_id"),
    )
    response = message_response(message)
    await run_after_commit(
        db,
        lambda: ws_manager.publish(
            [message.sender_id, message.receiver_id],
            {"type": "message", "message": response.model_dump()},
        ),
    )
    return response


@router.post("/{message_id}/read", response_model=MessageResponse)
async def mark_message_read(
    message_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    message = await chat_service.mark_read(db, principal, message_id)
    return message_response(message)
