"""Proposal schemas."""

from typing import Literal

from pydantic import BaseModel, Field

from app.models.event import RequirementCategory
from app.models.proposal import ProposalStatus


class PreviousWork(BaseModel):
    description: str = Field("", max_length=2000)
    images: list[str] = Field(default_factory=list, max_length=10)


class ProposalCreate(BaseModel):
    event_id: str
    requirement_id: str
    # Case-insensitive; copied from the requirement when omitted
    category: str | None = None
    proposal: str = Field(..., min_length=1, max_length=5000)
    price: float = Field(..., ge=0)
    portfolio: list[str] = Field(default_factory=list, max_length=20)
    previous_work: list[PreviousWork] = Field(default_factory=list, max_length=20)


class ProposalUpdate(BaseModel):
    proposal: str | None = Field(None, min_length=1, max_length=5000)
    price: float | None = Field(None, ge=0)


class ProposalDecision(BaseModel):
    decision: Literal["approved", "rejected"]


class ProposalResponse(BaseModel):
    id: str
    vendor_id: str | None
    event_id: str
    requirement_id: str
    category: RequirementCategory
    proposal: str
    price: float
    status: ProposalStatus
    portfolio: list[str]
    previous_work: list[PreviousWork]
    created_at: str
    # Denormalized for list views
    vendor_name: str | None = None
    vendor_email: str | None = None
    event_title: str | None = None
    event_date: str | None = None
    event_location: str | None = None

    model_config = {"from_attributes": True}
