"""Event routes: organizer CRUD and the requirements each event carries."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.dependencies import get_current_principal, get_db
from app.models.event import Event, EventType, Requirement
from app.principal import Principal
from app.routers.proposals import proposal_response
from app.schemas.event import (
    EventCreate,
    EventResponse,
    EventUpdate,
    RequirementCreate,
    RequirementResponse,
    RequirementStatsResponse,
)
from app.schemas.proposal import ProposalResponse
from app.services.event_service import EventService
from app.services.proposal_lifecycle import get_proposal_lifecycle
from app.services.requirement_lifecycle import RequirementLifecycle

router = APIRouter(prefix="/events", tags=["events"])


def requirement_response(req: Requirement) -> RequirementResponse:
    return RequirementResponse(
        id=str(req.id),
        category=req.category,
        description=req.description,
        budget=req.budget,
        status=req.status,
        assigned_vendor_id=str(req.assigned_vendor_id) if req.assigned_vendor_id else None,
    )


def event_response(event: Event) -> EventResponse:
    return EventResponse(
        id=str(event.id),
        title=event.title,
        description=event.description,
        event_type=event.event_type,
        date=event.date.isoformat(),
        location=event.location,
        organizer_id=str(event.organizer_id),
        status=event.status,
        budget=event.budget,
        guest_count=event.guest_count,
        images=event.images or [],
        requirements=[requirement_response(r) for r in event.requirements],
        created_at=event.created_at.isoformat(),
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    body: EventCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Create an event with its initial requirements (all start open)."""
    event = await EventService().create_event(
        db,
        principal,
        title=body.title,
        description=body.description,
        event_type=body.event_type,
        date=body.date,
        location=body.location,
        budget=body.budget,
        guest_count=body.guest_count,
        images=body.images,
        requirements=[r.model_dump() for r in body.requirements],
    )
    return event_response(event)


@router.get("", response_model=list[EventResponse])
async def list_events(
    db: AsyncSession = Depends(get_db),
    event_type: EventType | None = Query(None, alias="type"),
):
    """Public event listing, soonest first."""
    events = await EventService().list_events(db, event_type=event_type)
    return [event_response(e) for e in events]


@router.get("/mine", response_model=list[EventResponse])
async def list_my_events(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    events = await EventService().list_for_organizer(db, principal)
    return [event_response(e) for e in events]


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(event_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    event = await EventService().get_event(db, event_id)
    return event_response(event)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: uuid.UUID,
    body: EventUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Update event details. The organizer and requirement states cannot be changed here."""
    event = await EventService().update_event(db, principal, event_id, body.model_dump(exclude_unset=True))
    return event_response(event)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event together with every proposal submitted against it."""
    await EventService().delete_event(db, principal, event_id)


@router.post(
    "/{event_id}/requirements",
    response_model=RequirementResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_requirement(
    event_id: uuid.UUID,
    body: RequirementCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    requirement = await RequirementLifecycle().add_requirement(
        db,
        principal,
        event_id,
        category=body.category,
        description=body.description,
        budget=body.budget,
    )
    return requirement_response(requirement)


@router.post("/{event_id}/requirements/{requirement_id}/complete", response_model=RequirementResponse)
async def complete_requirement(
    event_id: uuid.UUID,
    requirement_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    requirement = await RequirementLifecycle().complete(db, principal, event_id, requirement_id)
    return requirement_response(requirement)


@router.post("/{event_id}/requirements/{requirement_id}/reopen", response_model=RequirementResponse)
async def reopen_requirement(
    event_id: uuid.UUID,
    requirement_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Admin override: return an assigned requirement to the marketplace."""
    requirement = await RequirementLifecycle().reopen(db, principal, event_id, requirement_id)
    return requirement_response(requirement)


@router.get("/{event_id}/proposals", response_model=list[ProposalResponse])
async def list_event_proposals(
    event_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """All proposals against the event, newest first (organizer only)."""
    lifecycle = get_proposal_lifecycle(settings)
    rows = await lifecycle.proposals_for_event(db, principal, event_id)
    return [proposal_response(p, vendor=vendor) for p, vendor in rows]


@router.get("/{event_id}/stats", response_model=list[RequirementStatsResponse])
async def requirement_stats(
    event_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await EventService().requirement_stats(db, principal, event_id)
