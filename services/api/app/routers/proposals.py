"""Vendor proposal routes and the open-requirement marketplace."""

import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.dependencies import get_current_principal, get_db
from app.errors import ValidationError
from app.models.event import Event
from app.models.proposal import Proposal
from app.models.user import User, UserRole
from app.principal import Principal
from app.schemas.event import OpenRequirementResponse
from app.schemas.proposal import ProposalCreate, ProposalDecision, ProposalResponse, ProposalUpdate
from app.services.proposal_lifecycle import get_proposal_lifecycle
from app.services.requirement_lifecycle import RequirementLifecycle

router = APIRouter(prefix="/proposals", tags=["proposals"])


def _parse_id(value: str, name: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {name}: {value!r}") from e


def proposal_response(
    p: Proposal,
    vendor: User | None = None,
    event: Event | None = None,
) -> ProposalResponse:
    return ProposalResponse(
        id=str(p.id),
        vendor_id=str(p.vendor_id) if p.vendor_id else None,
        event_id=str(p.event_id),
        requirement_id=str(p.requirement_id),
        category=p.category,
        proposal=p.proposal,
        price=p.price,
        status=p.status,
        portfolio=p.portfolio or [],
        previous_work=p.previous_work or [],
        created_at=p.created_at.isoformat(),
        vendor_name=vendor.name if vendor else None,
        vendor_email=vendor.email if vendor else None,
        event_title=event.title if event else None,
        event_date=event.date.isoformat() if event else None,
        event_location=event.location if event else None,
    )


@router.get("/open-requirements", response_model=list[OpenRequirementResponse])
async def list_open_requirements(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Marketplace: every open requirement across non-cancelled events."""
    principal.require_role(UserRole.VENDOR, UserRole.ADMIN)
    rows = await RequirementLifecycle().list_open_requirements(db)
    return [
        OpenRequirementResponse(
            requirement_id=str(r.requirement_id),
            category=r.category,
            description=r.description,
            budget=r.budget,
            status=r.status,
            event_id=str(r.event_id),
            event_title=r.event_title,
            event_date=r.event_date.isoformat(),
            event_location=r.event_location,
            organizer_id=str(r.organizer_id),
            organizer_name=r.organizer_name,
            organizer_email=r.organizer_email,
        )
        for r in rows
    ]


@router.get("/mine", response_model=list[ProposalResponse])
async def list_my_proposals(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    rows = await get_proposal_lifecycle(settings).proposals_for_vendor(db, principal)
    return [proposal_response(p, event=event) for p, event in rows]


@router.post("", response_model=ProposalResponse, status_code=status.HTTP_201_CREATED)
async def submit_proposal(
    body: ProposalCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Submit a priced proposal against an open requirement."""
    proposal = await get_proposal_lifecycle(settings).submit(
        db,
        principal,
        event_id=_parse_id(body.event_id, "event_id"),
        requirement_id=_parse_id(body.requirement_id, "requirement_id"),
        proposal_text=body.proposal,
        price=body.price,
        category=body.category,
        portfolio=body.portfolio,
        previous_work=[w.model_dump() for w in body.previous_work],
    )
    return proposal_response(proposal)


@router.patch("/{proposal_id}", response_model=ProposalResponse)
async def edit_proposal(
    proposal_id: uuid.UUID,
    body: ProposalUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Edit text and/or price of your own pending proposal."""
    proposal = await get_proposal_lifecycle(settings).edit(
        db,
        principal,
        proposal_id,
        proposal_text=body.proposal,
        price=body.price,
    )
    return proposal_response(proposal)


@router.delete("/{proposal_id}")
async def withdraw_proposal(
    proposal_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    await get_proposal_lifecycle(settings).withdraw(db, principal, proposal_id)
    return {"status": "ok", "message": "Proposal withdrawn"}


@router.post("/{proposal_id}/decision", response_model=ProposalResponse)
async def decide_proposal(
    proposal_id: uuid.UUID,
    body: ProposalDecision,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Approve or reject a pending proposal (event organizer only).

    Approval assigns the requirement to the vendor and notifies them.
    """
    proposal = await get_proposal_lifecycle(settings).decide(db, principal, proposal_id, body.decision)
    return proposal_response(proposal)
