"""Tests for atomic approval: requirement assignment plus vendor notification."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select, update

from app.errors import InvalidState
from app.models import (
    AuditLog,
    EventStatus,
    Notification,
    Proposal,
    ProposalStatus,
    Requirement,
    RequirementStatus,
)
from app.services.assignment_coordinator import AssignmentCoordinator
from app.services.notification_sink import LoggingNotificationSink
from app.services.proposal_lifecycle import ProposalLifecycle, get_proposal_lifecycle
from app.services.requirement_lifecycle import RequirementLifecycle
from factories import principal_for


@pytest.fixture
def lifecycle(settings) -> ProposalLifecycle:
    return get_proposal_lifecycle(settings)


async def _bid(lifecycle, db, vendor, event, price) -> Proposal:
    return await lifecycle.submit(
        db,
        principal_for(vendor),
        event_id=event.id,
        requirement_id=event.requirements[0].id,
        proposal_text=f"Catering at {price}",
        price=price,
    )


async def _notifications_for(db, user) -> list[Notification]:
    result = await db.execute(select(Notification).where(Notification.user_id == user.id))
    return list(result.scalars().all())


class TestApprovalScenario:
    @pytest.mark.asyncio
    async def test_two_bids_one_winner(self, db, lifecycle, organizer, vendor, other_vendor, wedding):
        """Organizer approves the 500 bid; the 450 bid can no longer be approved but may be rejected."""
        requirement = wedding.requirements[0]
        p1 = await _bid(lifecycle, db, vendor, wedding, 500)
        p2 = await _bid(lifecycle, db, other_vendor, wedding, 450)

        approved = await lifecycle.decide(db, principal_for(organizer), p1.id, "approved")

        assert approved.status == ProposalStatus.APPROVED
        assert requirement.status == RequirementStatus.ASSIGNED
        assert requirement.assigned_vendor_id == vendor.id
        await db.refresh(p2)
        assert p2.status == ProposalStatus.PENDING

        notices = await _notifications_for(db, vendor)
        assert len(notices) == 1
        assert notices[0].message == "Your proposal for the event 'Sharma Wedding' has been approved!"
        assert notices[0].event_id == wedding.id
        assert notices[0].proposal_id == p1.id
        assert notices[0].read is False
        assert await _notifications_for(db, other_vendor) == []

        with pytest.raises(InvalidState):
            await lifecycle.decide(db, principal_for(organizer), p2.id, "approved")
        await db.refresh(p2)
        await db.refresh(requirement)
        assert p2.status == ProposalStatus.PENDING
        assert requirement.assigned_vendor_id == vendor.id

        rejected = await lifecycle.decide(db, principal_for(organizer), p2.id, "rejected")
        assert rejected.status == ProposalStatus.REJECTED
        assert len(await _notifications_for(db, vendor)) == 1

    @pytest.mark.asyncio
    async def test_audit_entry_written(self, db, lifecycle, organizer, vendor, wedding):
        proposal = await _bid(lifecycle, db, vendor, wedding, 500)
        await lifecycle.decide(db, principal_for(organizer), proposal.id, "approved")

        result = await db.execute(select(AuditLog).where(AuditLog.action == "proposal.approved"))
        entry = result.scalar_one()
        assert entry.entity_id == str(proposal.id)
        assert entry.extra_data["vendor_id"] == str(vendor.id)


class TestAtomicity:
    @pytest.fixture
    def coordinator(self) -> AssignmentCoordinator:
        return AssignmentCoordinator(RequirementLifecycle(), LoggingNotificationSink())

    @pytest.mark.asyncio
    async def test_losing_a_concurrent_race(
        self, db, lifecycle, coordinator, organizer, vendor, other_vendor, wedding
    ):
        """Another request assigned the requirement after this one read it as open."""
        requirement = wedding.requirements[0]
        p2 = await _bid(lifecycle, db, other_vendor, wedding, 450)
        vendor_id = vendor.id
        await db.execute(
            update(Requirement)
            .where(Requirement.id == requirement.id)
            .values(status=RequirementStatus.ASSIGNED, assigned_vendor_id=vendor_id)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(InvalidState):
            await coordinator.approve(db, principal_for(organizer), p2, wedding)

        await db.refresh(p2)
        await db.refresh(requirement)
        assert p2.status == ProposalStatus.PENDING
        assert requirement.assigned_vendor_id == vendor_id

    @pytest.mark.asyncio
    async def test_proposal_write_failure_rolls_back_assignment(
        self, db, lifecycle, coordinator, organizer, vendor, wedding
    ):
        """If the proposal is no longer pending, the requirement must stay open."""
        requirement = wedding.requirements[0]
        proposal = await _bid(lifecycle, db, vendor, wedding, 500)
        vendor_id = vendor.id
        await db.execute(
            update(Proposal)
            .where(Proposal.id == proposal.id)
            .values(status=ProposalStatus.REJECTED)
            .execution_options(synchronize_session=False)
        )

        with pytest.raises(InvalidState):
            await coordinator.approve(db, principal_for(organizer), proposal, wedding)

        await db.refresh(requirement)
        assert requirement.status == RequirementStatus.OPEN
        assert requirement.assigned_vendor_id is None
        count = await db.scalar(
            select(func.count()).select_from(Notification).where(Notification.user_id == vendor_id)
        )
        assert count == 0

    @pytest.mark.asyncio
    async def test_sink_failure_keeps_approval(self, db, lifecycle, organizer, vendor, wedding):
        sink = AsyncMock()
        sink.emit.side_effect = RuntimeError("broker down")
        coordinator = AssignmentCoordinator(RequirementLifecycle(), sink)
        proposal = await _bid(lifecycle, db, vendor, wedding, 500)

        approved = await coordinator.approve(db, principal_for(organizer), proposal, wedding)

        assert approved.status == ProposalStatus.APPROVED
        assert wedding.requirements[0].status == RequirementStatus.ASSIGNED
        sink.emit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancelled_event_cannot_approve(self, db, lifecycle, coordinator, organizer, vendor, wedding):
        proposal = await _bid(lifecycle, db, vendor, wedding, 500)
        wedding.status = EventStatus.CANCELLED
        await db.flush()

        with pytest.raises(InvalidState):
            await coordinator.approve(db, principal_for(organizer), proposal, wedding)
        assert wedding.requirements[0].status == RequirementStatus.OPEN

    @pytest.mark.asyncio
    async def test_vendorless_proposal_cannot_be_approved(
        self, db, lifecycle, coordinator, organizer, vendor, wedding
    ):
        proposal = await _bid(lifecycle, db, vendor, wedding, 500)
        proposal.vendor_id = None
        await db.flush()

        with pytest.raises(InvalidState):
            await coordinator.approve(db, principal_for(organizer), proposal, wedding)

        count = await db.scalar(
            select(func.count()).select_from(Requirement).where(Requirement.status == RequirementStatus.OPEN)
        )
        assert count == 1
