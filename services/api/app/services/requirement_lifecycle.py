"""Requirement lifecycle: open -> assigned -> completed.

A requirement belongs to exactly one event and is looked up through it
(event id -> requirement id). Status changes are single conditional UPDATEs
so that two writers can never both move the same requirement out of ``open``.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import InvalidState, NotAuthorized, NotFound, ValidationError
from app.models.event import Event, EventStatus, Requirement, RequirementCategory, RequirementStatus
from app.models.user import User
from app.principal import Principal
from app.services.audit_service import write_audit_log

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenRequirement:
    """Marketplace row: an open requirement plus its parent event's details."""

    requirement_id: uuid.UUID
    category: RequirementCategory
    description: str
    budget: float | None
    status: RequirementStatus
    event_id: uuid.UUID
    event_title: str
    event_date: datetime
    event_location: str
    organizer_id: uuid.UUID
    organizer_name: str | None
    organizer_email: str | None


async def load_event(db: AsyncSession, event_id: uuid.UUID) -> Event:
    event = await db.get(Event, event_id)
    if event is None:
        raise NotFound(f"Event {event_id} not found")
    return event


def ensure_organizer(event: Event, principal: Principal) -> None:
    if event.organizer_id != principal.user_id:
        raise NotAuthorized("Only the event organizer may perform this operation")


def find_requirement(event: Event, requirement_id: uuid.UUID) -> Requirement:
    requirement = event.requirement(requirement_id)
    if requirement is None:
        raise NotFound(f"Requirement {requirement_id} not found in event {event.id}")
    return requirement


def parse_category(value: str | RequirementCategory) -> RequirementCategory:
    if isinstance(value, RequirementCategory):
        return value
    try:
        return RequirementCategory.parse(value)
    except (ValueError, AttributeError) as e:
        raise ValidationError(str(e)) from e


def build_requirement(
    category: str | RequirementCategory,
    description: str = "",
    budget: float | None = None,
    position: int = 0,
) -> Requirement:
    """Validate input and build a fresh ``open`` requirement."""
    if budget is not None and budget < 0:
        raise ValidationError("Requirement budget must not be negative")
    return Requirement(
        category=parse_category(category),
        description=description or "",
        budget=budget,
        status=RequirementStatus.OPEN,
        assigned_vendor_id=None,
        position=position,
    )


class RequirementLifecycle:
    """State machine for a single vendor requirement."""

    async def add_requirement(
        self,
        db: AsyncSession,
        principal: Principal,
        event_id: uuid.UUID,
        category: str | RequirementCategory,
        description: str = "",
        budget: float | None = None,
    ) -> Requirement:
        event = await load_event(db, event_id)
        ensure_organizer(event, principal)
        if event.is_frozen or event.status == EventStatus.COMPLETED:
            raise InvalidState(f"Cannot add requirements to a {event.status.value} event")

        requirement = build_requirement(category, description, budget, position=len(event.requirements))
        event.requirements.append(requirement)
        await db.flush()

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="requirement.added",
            entity_type="requirement",
            entity_id=requirement.id,
            metadata={"event_id": str(event.id), "category": requirement.category.value},
        )
        logger.info("Requirement %s (%s) added to event %s", requirement.id, requirement.category.value, event.id)
        return requirement

    async def list_open_requirements(self, db: AsyncSession) -> list[OpenRequirement]:
        """Vendor marketplace: every open requirement of every non-cancelled event."""
        result = await db.execute(
            select(Requirement, Event, User)
            .join(Event, Requirement.event_id == Event.id)
            .outerjoin(User, User.id == Event.organizer_id)
            .where(
                Requirement.status == RequirementStatus.OPEN,
                Event.status != EventStatus.CANCELLED,
            )
            .order_by(Event.date.asc(), Requirement.position.asc())
        )
        return [
            OpenRequirement(
                requirement_id=req.id,
                category=req.category,
                description=req.description,
                budget=req.budget,
                status=req.status,
                event_id=event.id,
                event_title=event.title,
                event_date=event.date,
                event_location=event.location,
                organizer_id=event.organizer_id,
                organizer_name=organizer.name if organizer else None,
                organizer_email=organizer.email if organizer else None,
            )
            for req, event, organizer in result.all()
        ]

    async def assign(self, db: AsyncSession, requirement_id: uuid.UUID, vendor_id: uuid.UUID) -> None:
        """open -> assigned as one check-and-set write.

        Only the assignment coordinator calls this.
        """
        result = await db.execute(
            update(Requirement)
            .where(
                Requirement.id == requirement_id,
                Requirement.status == RequirementStatus.OPEN,
            )
            .values(status=RequirementStatus.ASSIGNED, assigned_vendor_id=vendor_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState(f"Requirement {requirement_id} is no longer open")

    async def complete(
        self,
        db: AsyncSession,
        principal: Principal,
        event_id: uuid.UUID,
        requirement_id: uuid.UUID,
    ) -> Requirement:
        """assigned -> completed; the assigned vendor is kept."""
        event = await load_event(db, event_id)
        ensure_organizer(event, principal)
        requirement = find_requirement(event, requirement_id)

        result = await db.execute(
            update(Requirement)
            .where(
                Requirement.id == requirement.id,
                Requirement.status == RequirementStatus.ASSIGNED,
            )
            .values(status=RequirementStatus.COMPLETED)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState("Only an assigned requirement can be completed")
        await db.refresh(requirement)

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="requirement.completed",
            entity_type="requirement",
            entity_id=requirement.id,
            metadata={"event_id": str(event.id)},
        )
        logger.info("Requirement %s completed", requirement.id)
        return requirement

    async def reopen(
        self,
        db: AsyncSession,
        principal: Principal,
        event_id: uuid.UUID,
        requirement_id: uuid.UUID,
    ) -> Requirement:
        """Admin override: put an assigned or completed requirement back on the market."""
        if not principal.is_admin:
            raise NotAuthorized("Only an admin may reopen a requirement")
        event = await load_event(db, event_id)
        requirement = find_requirement(event, requirement_id)

        previous_vendor = requirement.assigned_vendor_id
        result = await db.execute(
            update(Requirement)
            .where(
                Requirement.id == requirement.id,
                Requirement.status != RequirementStatus.OPEN,
            )
            .values(status=RequirementStatus.OPEN, assigned_vendor_id=None)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState("Requirement is already open")
        await db.refresh(requirement)

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="requirement.reopened",
            entity_type="requirement",
            entity_id=requirement.id,
            metadata={
                "event_id": str(event.id),
                "previous_vendor_id": str(previous_vendor) if previous_vendor else None,
            },
        )
        logger.warning("Requirement %s reopened by admin %s", requirement.id, principal.user_id)
        return requirement
