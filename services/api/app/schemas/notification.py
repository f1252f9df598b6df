"""Notification schemas."""

from pydantic import BaseModel, Field


class NotificationResponse(BaseModel):
    id: str
    message: str
    event_id: str | None = None
    proposal_id: str | None = None
    read: bool
    created_at: str

    model_config = {"from_attributes": True}


class NotificationMarkReadRequest(BaseModel):
    notification_ids: list[str] = Field(..., min_length=1, max_length=100)
