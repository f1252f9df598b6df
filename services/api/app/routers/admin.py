"""Admin routes: account management and moderation."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_current_principal, get_db
from app.models.user import User, UserRole
from app.principal import Principal
from app.schemas.user import UserDeletionResponse, UserResponse, UserRoleUpdate
from app.services import user_service
from app.services.event_service import EventService

router = APIRouter(prefix="/admin", tags=["admin"])


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        name=user.name,
        role=user.role,
        created_at=user.created_at.isoformat(),
    )


@router.get("/users", response_model=list[UserResponse])
async def list_users(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    users = await user_service.list_users(db, principal)
    return [_user_response(u) for u in users]


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user_role(
    user_id: uuid.UUID,
    body: UserRoleUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.set_role(db, principal, user_id, body.role)
    return _user_response(user)


@router.delete("/users/{user_id}", response_model=UserDeletionResponse)
async def delete_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete an account along with the events it organizes.

    Proposals the user submitted as a vendor are kept with no vendor.
    """
    summary = await user_service.delete_user(db, principal, user_id)
    return UserDeletionResponse(status="deleted", **summary)


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    principal.require_role(UserRole.ADMIN)
    await EventService().delete_event(db, principal, event_id)
