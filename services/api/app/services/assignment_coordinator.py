"""Cross-aggregate approval: bind one proposal's vendor to its requirement."""

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings
from app.errors import InvalidState
from app.metrics import assignment_conflicts_total
from app.models.event import Event, RequirementStatus
from app.models.proposal import Proposal, ProposalStatus
from app.principal import Principal
from app.services.audit_service import write_audit_log
from app.services.notification_sink import (
    NotificationMessage,
    NotificationSink,
    approval_message,
    get_notification_sink,
)
from app.services.requirement_lifecycle import RequirementLifecycle, find_requirement

logger = logging.getLogger(__name__)


class AssignmentCoordinator:
    """Approves a proposal and assigns its requirement as one unit.

    Both status writes happen inside a single savepoint: if either
    conditional update loses, the other is rolled back, so a requirement is
    never ``assigned`` while the proposal that won it is still ``pending``.
    Competing proposals are left pending.
    """

    def __init__(self, requirements: RequirementLifecycle, sink: NotificationSink) -> None:
        self._requirements = requirements
        self._sink = sink

    async def approve(
        self,
        db: AsyncSession,
        principal: Principal,
        proposal: Proposal,
        event: Event,
    ) -> Proposal:
        if event.is_frozen:
            raise InvalidState("Cannot approve proposals for a cancelled event")
        requirement = find_requirement(event, proposal.requirement_id)
        if requirement.status != RequirementStatus.OPEN:
            assignment_conflicts_total.inc()
            raise InvalidState(f"Requirement {requirement.id} is already {requirement.status.value}")
        if proposal.vendor_id is None:
            raise InvalidState("The vendor who submitted this proposal no longer exists")

        vendor_id = proposal.vendor_id
        try:
            async with db.begin_nested():
                await self._requirements.assign(db, requirement.id, vendor_id)
                result = await db.execute(
                    update(Proposal)
                    .where(Proposal.id == proposal.id, Proposal.status == ProposalStatus.PENDING)
                    .values(status=ProposalStatus.APPROVED)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise InvalidState(f"Proposal {proposal.id} is no longer pending")
        except InvalidState:
            assignment_conflicts_total.inc()
            logger.warning(
                "Assignment conflict: requirement=%s proposal=%s",
                requirement.id,
                proposal.id,
            )
            raise

        await db.refresh(proposal)
        await db.refresh(requirement)

        await write_audit_log(
            db=db,
            actor_id=principal.user_id,
            action="proposal.approved",
            entity_type="proposal",
            entity_id=proposal.id,
            metadata={
                "event_id": str(event.id),
                "requirement_id": str(requirement.id),
                "vendor_id": str(vendor_id),
            },
        )
        logger.info(
            "Requirement %s assigned to vendor %s via proposal %s",
            requirement.id,
            vendor_id,
            proposal.id,
        )

        message = NotificationMessage(
            user_id=vendor_id,
            message=approval_message(event.title),
            event_id=event.id,
            proposal_id=proposal.id,
        )
        try:
            await self._sink.emit(db, message)
        except Exception:
            # The approval stands; the vendor can still see it in their proposal list
            logger.exception("Notification sink failed for proposal=%s", proposal.id)

        return proposal


def get_assignment_coordinator(settings: Settings) -> AssignmentCoordinator:
    return AssignmentCoordinator(
        requirements=RequirementLifecycle(),
        sink=get_notification_sink(settings),
    )
