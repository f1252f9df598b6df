"""Chat message schemas."""

from pydantic import BaseModel, Field, model_validator


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    # Either an event thread (event_id + vendor_id) or a direct message (receiver_id)
    event_id: str | None = None
    vendor_id: str | None = None
    receiver_id: str | None = None

    @model_validator(mode="after")
    def check_target(self) -> "MessageCreate":
        if self.receiver_id is None and (self.event_id is None or self.vendor_id is None):
            raise ValueError("Provide receiver_id, or both event_id and vendor_id")
        return self


class MessageResponse(BaseModel):
    id: str
    sender_id: str
    receiver_id: str | None
    event_id: str | None
    vendor_id: str | None
    content: str
    read: bool
    created_at: str

    model_config = {"from_attributes": True}


class ConversationUser(BaseModel):
    id: str
    name: str
    email: str
    role: str
