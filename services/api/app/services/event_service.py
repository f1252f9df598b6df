"""Event CRUD for organizers, including cascade deletion of proposals."""

import logging
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotAuthorized, ValidationError
from app.models.event import Event, EventStatus, EventType, RequirementStatus
from app.models.message import Message
from app.models.proposal import Proposal
from app.principal import Principal
from app.services.audit_service import write_audit_log
from app.services.requirement_lifecycle import build_requirement, ensure_organizer, load_event

logger = logging.getLogger(__name__)

# Fields an organizer may change after creation
UPDATABLE_FIELDS = {"title", "description", "event_type", "date", "location", "status", "budget", "guest_count", "images"}
REQUIRED_FIELDS = {"title", "description", "event_type", "date", "location", "status", "images"}


async def delete_event_cascade(db: AsyncSession, event: Event) -> int:
    """Delete an event, its requirements, and every proposal and message that references it.

    Returns the number of proposals removed.
    """
    proposals = await db.execute(delete(Proposal).where(Proposal.event_id == event.id))
    await db.execute(delete(Message).where(Message.event_id == event.id))
    await db.delete(event)
    await db.flush()
    return proposals.rowcount


class EventService:
    """Organizer-facing event management."""

    async def create_event(
        self,
        db: AsyncSession,
        principal: Principal,
        title: str,
        description: str,
        event_type: str | EventType,
        date: datetime,
        location: str,
        budget: float | None = None,
        guest_count: int | None = None,
        images: list[str] | None = None,
        requirements: list[dict[str, Any]] | None = None,
    ) -> Event:
        if principal.is_vendor:
            raise NotAuthorized("Vendors cannot organize events")
        try:
            event_type = EventType(event_type)
        except ValueError as e:
            raise ValidationError(f"Unknown event type: {event_type!r}") from e
        if budget is not None and budget < 0:
            raise ValidationError("Event budget must not be negative")
        if guest_count is not None and guest_count < 0:
            raise ValidationError("Guest count must not be negative")

        event = Event(
            title=title,
            description=description,
            event_type=event_type,
            date=date,
            location=location,
            organizer_id=principal.user_id,
            status=EventStatus.UPCOMING,
            budget=budget,
            guest_count=guest_count,
            images=list(images or []),
            # Whatever the client sends, new requirements start open and unassigned
            requirements=[
                build_requirement(
                    category=item["category"],
                    description=item.get("description") or "",
                    budget=item.get("budget"),
                    position=i,
                )
                for i, item in enumerate(requirements or [])
            ],
        )
        db.add(event)
        await db.flush()

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="event.created",
            entity_type="event",
            entity_id=event.id,
            metadata={"title": title, "requirements": len(event.requirements)},
        )
        logger.info("Event %s created by organizer %s", event.id, principal.user_id)
        return event

    async def list_events(self, db: AsyncSession, event_type: EventType | None = None) -> list[Event]:
        query = select(Event).order_by(Event.date.asc())
        if event_type is not None:
            query = query.where(Event.event_type == event_type)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_for_organizer(self, db: AsyncSession, principal: Principal) -> list[Event]:
        result = await db.execute(
            select(Event).where(Event.organizer_id == principal.user_id).order_by(Event.date.desc())
        )
        return list(result.scalars().all())

    async def get_event(self, db: AsyncSession, event_id: uuid.UUID) -> Event:
        return await load_event(db, event_id)

    async def update_event(
        self,
        db: AsyncSession,
        principal: Principal,
        event_id: uuid.UUID,
        changes: dict[str, Any],
    ) -> Event:
        event = await load_event(db, event_id)
        ensure_organizer(event, principal)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        cleared = sorted(f for f in REQUIRED_FIELDS if f in changes and changes[f] is None)
        if cleared:
            raise ValidationError(f"Fields cannot be empty: {', '.join(cleared)}")
        try:
            if "event_type" in changes:
                changes["event_type"] = EventType(changes["event_type"])
            if "status" in changes:
                changes["status"] = EventStatus(changes["status"])
        except ValueError as e:
            raise ValidationError(str(e)) from e

        for field, value in changes.items():
            setattr(event, field, value)
        await db.flush()

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="event.updated",
            entity_type="event",
            entity_id=event.id,
            metadata={"fields": sorted(changes)},
        )
        if changes.get("status") == EventStatus.CANCELLED:
            logger.info("Event %s cancelled; its requirements are frozen", event.id)
        return event

    async def delete_event(self, db: AsyncSession, principal: Principal, event_id: uuid.UUID) -> None:
        event = await load_event(db, event_id)
        if not principal.is_admin:
            ensure_organizer(event, principal)

        removed = await delete_event_cascade(db, event)
        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="event.deleted",
            entity_type="event",
            entity_id=event_id,
            metadata={"proposals_removed": removed},
        )
        logger.info("Event %s deleted with %d proposals", event_id, removed)

    async def requirement_stats(
        self,
        db: AsyncSession,
        principal: Principal,
        event_id: uuid.UUID,
    ) -> list[dict[str, Any]]:
        """Per-category requirement counts by status for one event."""
        event = await load_event(db, event_id)
        if not principal.is_admin:
            ensure_organizer(event, principal)

        counts: dict[str, dict[str, int]] = defaultdict(lambda: {s.value: 0 for s in RequirementStatus})
        for req in event.requirements:
            counts[req.category.value][req.status.value] += 1
        return [{"category": category, **stats} for category, stats in counts.items()]
