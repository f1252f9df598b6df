"""User administration schemas."""

from pydantic import BaseModel

from app.models.user import UserRole


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: UserRole
    created_at: str


class UserRoleUpdate(BaseModel):
    role: UserRole


class UserDeletionResponse(BaseModel):
    status: str
    events_removed: int
    proposals_removed: int
    proposals_orphaned: int
