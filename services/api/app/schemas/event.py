"""Event and requirement schemas."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from app.models.event import EventStatus, EventType, RequirementCategory, RequirementStatus


class RequirementCreate(BaseModel):
    category: RequirementCategory
    description: str = Field("", max_length=2000)
    budget: float | None = Field(None, ge=0)

    @field_validator("category", mode="before")
    @classmethod
    def parse_category(cls, v):
        if isinstance(v, str):
            return RequirementCategory.parse(v)
        return v


class RequirementResponse(BaseModel):
    id: str
    category: RequirementCategory
    description: str
    budget: float | None
    status: RequirementStatus
    assigned_vendor_id: str | None

    model_config = {"from_attributes": True}


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    event_type: EventType
    date: datetime
    location: str = Field(..., min_length=1, max_length=500)
    budget: float | None = Field(None, ge=0)
    guest_count: int | None = Field(None, ge=0)
    images: list[str] = Field(default_factory=list, max_length=5)
    requirements: list[RequirementCreate] = Field(default_factory=list, max_length=50)


class EventUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, min_length=1)
    event_type: EventType | None = None
    date: datetime | None = None
    location: str | None = Field(None, min_length=1, max_length=500)
    status: EventStatus | None = None
    budget: float | None = Field(None, ge=0)
    guest_count: int | None = Field(None, ge=0)
    images: list[str] | None = Field(None, max_length=5)


class EventResponse(BaseModel):
    id: str
    title: str
    description: str
    event_type: EventType
    date: str
    location: str
    organizer_id: str
    status: EventStatus
    budget: float | None
    guest_count: int | None
    images: list[str]
    requirements: list[RequirementResponse]
    created_at: str

    model_config = {"from_attributes": True}


class OpenRequirementResponse(BaseModel):
    requirement_id: str
    category: RequirementCategory
    description: str
    budget: float | None
    status: RequirementStatus
    event_id: str
    event_title: str
    event_date: str
    event_location: str
    organizer_id: str
    organizer_name: str | None = None
    organizer_email: str | None = None


class RequirementStatsResponse(BaseModel):
    category: RequirementCategory
    open: int
    assigned: int
    completed: int
