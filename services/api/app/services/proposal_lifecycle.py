"""Proposal lifecycle: pending -> approved | rejected (both terminal)."""

import logging
import uuid
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.errors import InvalidState, NotAuthorized, NotFound, ValidationError
from app.metrics import proposal_decisions_total, proposals_submitted_total
from app.models.event import Event, RequirementCategory, RequirementStatus
from app.models.proposal import Proposal, ProposalStatus
from app.models.user import User, UserRole
from app.principal import Principal
from app.services.assignment_coordinator import AssignmentCoordinator, get_assignment_coordinator
from app.services.audit_service import write_audit_log
from app.services.requirement_lifecycle import ensure_organizer, find_requirement, load_event, parse_category

logger = logging.getLogger(__name__)


def _validate_terms(proposal_text: str | None, price: float | None) -> None:
    if proposal_text is not None and not proposal_text.strip():
        raise ValidationError("Proposal text must not be empty")
    if price is not None and price < 0:
        raise ValidationError("Price must not be negative")


def _parse_decision(decision: str | ProposalStatus) -> ProposalStatus:
    try:
        status = ProposalStatus(decision)
    except ValueError as e:
        raise ValidationError(f"Unknown decision: {decision!r}") from e
    if status == ProposalStatus.PENDING:
        raise ValidationError("Decision must be 'approved' or 'rejected'")
    return status


class ProposalLifecycle:
    """Submission, edit, withdrawal and organizer decision for vendor proposals."""

    def __init__(self, coordinator: AssignmentCoordinator) -> None:
        self._coordinator = coordinator

    async def _load(self, db: AsyncSession, proposal_id: uuid.UUID) -> Proposal:
        proposal = await db.get(Proposal, proposal_id)
        if proposal is None:
            raise NotFound(f"Proposal {proposal_id} not found")
        return proposal

    def _ensure_editable(self, proposal: Proposal, principal: Principal) -> None:
        # Terminal state wins over ownership: nobody touches a decided proposal
        if proposal.status != ProposalStatus.PENDING:
            raise InvalidState(f"Proposal is {proposal.status.value}; only pending proposals can change")
        if proposal.vendor_id != principal.user_id:
            raise NotAuthorized("Only the vendor who submitted the proposal may change it")

    async def submit(
        self,
        db: AsyncSession,
        principal: Principal,
        event_id: uuid.UUID,
        requirement_id: uuid.UUID,
        proposal_text: str,
        price: float,
        category: str | RequirementCategory | None = None,
        portfolio: list[str] | None = None,
        previous_work: list[dict[str, Any]] | None = None,
    ) -> Proposal:
        principal.require_role(UserRole.VENDOR)
        if proposal_text is None or price is None:
            raise ValidationError("Proposal text and price are required")
        _validate_terms(proposal_text, price)

        event = await load_event(db, event_id)
        requirement = find_requirement(event, requirement_id)
        if event.is_frozen:
            raise InvalidState("Event is cancelled and no longer accepts proposals")
        if requirement.status != RequirementStatus.OPEN:
            raise InvalidState(f"Requirement is {requirement.status.value}, not open")

        if category is not None and parse_category(category) != requirement.category:
            raise ValidationError(
                f"Category {category!r} does not match the requirement's category "
                f"'{requirement.category.value}'"
            )

        proposal = Proposal(
            vendor_id=principal.user_id,
            event_id=event.id,
            requirement_id=requirement.id,
            category=requirement.category,
            proposal=proposal_text,
            price=price,
            status=ProposalStatus.PENDING,
            portfolio=list(portfolio or []),
            previous_work=list(previous_work or []),
        )
        db.add(proposal)
        await db.flush()

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="proposal.submitted",
            entity_type="proposal",
            entity_id=proposal.id,
            metadata={"event_id": str(event.id), "requirement_id": str(requirement.id), "price": price},
        )
        proposals_submitted_total.inc()
        logger.info("Proposal %s submitted by vendor %s for requirement %s", proposal.id, principal.user_id, requirement.id)
        return proposal

    async def edit(
        self,
        db: AsyncSession,
        principal: Principal,
        proposal_id: uuid.UUID,
        proposal_text: str | None = None,
        price: float | None = None,
    ) -> Proposal:
        proposal = await self._load(db, proposal_id)
        self._ensure_editable(proposal, principal)
        _validate_terms(proposal_text, price)

        values: dict[str, Any] = {}
        if proposal_text is not None:
            values["proposal"] = proposal_text
        if price is not None:
            values["price"] = price
        if not values:
            raise ValidationError("Nothing to update: provide proposal text and/or price")

        result = await db.execute(
            update(Proposal)
            .where(Proposal.id == proposal.id, Proposal.status == ProposalStatus.PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidState("Proposal was decided before the edit could be applied")
        await db.refresh(proposal)

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="proposal.edited",
            entity_type="proposal",
            entity_id=proposal.id,
            metadata={"fields": sorted(values)},
        )
        return proposal

    async def withdraw(self, db: AsyncSession, principal: Principal, proposal_id: uuid.UUID) -> None:
        proposal = await self._load(db, proposal_id)
        self._ensure_editable(proposal, principal)

        result = await db.execute(
            delete(Proposal).where(Proposal.id == proposal.id, Proposal.status == ProposalStatus.PENDING)
        )
        if result.rowcount != 1:
            raise InvalidState("Proposal was decided before it could be withdrawn")

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="proposal.withdrawn",
            entity_type="proposal",
            entity_id=proposal_id,
        )
        logger.info("Proposal %s withdrawn by vendor %s", proposal_id, principal.user_id)

    async def decide(
        self,
        db: AsyncSession,
        principal: Principal,
        proposal_id: uuid.UUID,
        decision: str | ProposalStatus,
    ) -> Proposal:
        status = _parse_decision(decision)
        proposal = await self._load(db, proposal_id)
        event = await db.get(Event, proposal.event_id)
        if event is None:
            raise NotFound(f"Event {proposal.event_id} not found")
        ensure_organizer(event, principal)
        if proposal.status != ProposalStatus.PENDING:
            raise InvalidState(f"Proposal is already {proposal.status.value}")

        if status == ProposalStatus.APPROVED:
            proposal = await self._coordinator.approve(db, principal, proposal, event)
        else:
            result = await db.execute(
                update(Proposal)
                .where(Proposal.id == proposal.id, Proposal.status == ProposalStatus.PENDING)
                .values(status=ProposalStatus.REJECTED)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidState("Proposal was decided concurrently")
            await db.refresh(proposal)
            await write_audit_log(
                db=db,
                actor_id=principal.user_id,
                action="proposal.rejected",
                entity_type="proposal",
                entity_id=proposal.id,
                metadata={"event_id": str(event.id)},
            )
            logger.info("Proposal %s rejected", proposal.id)

        proposal_decisions_total.labels(decision=status.value).inc()
        return proposal

    async def proposals_for_event(
        self,
        db: AsyncSession,
        principal: Principal,
        event_id: uuid.UUID,
    ) -> list[tuple[Proposal, User | None]]:
        """All proposals against an event, newest first, with the submitting vendor."""
        event = await load_event(db, event_id)
        if not principal.is_admin:
            ensure_organizer(event, principal)

        result = await db.execute(
            select(Proposal, User)
            .outerjoin(User, User.id == Proposal.vendor_id)
            .where(Proposal.event_id == event.id)
            .order_by(Proposal.created_at.desc())
        )
        return [(p, vendor) for p, vendor in result.all()]

    async def proposals_for_vendor(
        self,
        db: AsyncSession,
        principal: Principal,
    ) -> list[tuple[Proposal, Event]]:
        principal.require_role(UserRole.VENDOR)
        result = await db.execute(
            select(Proposal, Event)
            .join(Event, Event.id == Proposal.event_id)
            .where(Proposal.vendor_id == principal.user_id)
            .order_by(Proposal.created_at.desc())
        )
        return [(p, event) for p, event in result.all()]


def get_proposal_lifecycle(settings: Settings) -> ProposalLifecycle:
    """Factory that wires up a ProposalLifecycle with its coordinator."""
    return ProposalLifecycle(coordinator=get_assignment_coordinator(settings))
