"""Tests for account administration and deletion cascades."""

import pytest
from sqlalchemy import func, select

from app.errors import NotAuthorized, NotFound
from app.models import Event, Notification, Proposal, ProposalStatus, RequirementStatus, User, UserRole
from app.services import user_service
from app.services.proposal_lifecycle import get_proposal_lifecycle
from factories import principal_for


class TestRoles:
    @pytest.mark.asyncio
    async def test_admin_lists_users(self, db, admin, organizer, vendor):
        users = await user_service.list_users(db, principal_for(admin))
        assert {u.email for u in users} == {admin.email, organizer.email, vendor.email}

    @pytest.mark.asyncio
    async def test_non_admin_cannot_list(self, db, organizer):
        with pytest.raises(NotAuthorized):
            await user_service.list_users(db, principal_for(organizer))

    @pytest.mark.asyncio
    async def test_promote_to_vendor(self, db, admin, organizer):
        user = await user_service.set_role(db, principal_for(admin), organizer.id, UserRole.VENDOR)
        assert user.role == UserRole.VENDOR

    @pytest.mark.asyncio
    async def test_vendor_cannot_change_roles(self, db, vendor, organizer):
        with pytest.raises(NotAuthorized):
            await user_service.set_role(db, principal_for(vendor), organizer.id, UserRole.ADMIN)

    @pytest.mark.asyncio
    async def test_unknown_user(self, db, admin, missing_id):
        with pytest.raises(NotFound):
            await user_service.set_role(db, principal_for(admin), missing_id, UserRole.VENDOR)


class TestDeleteUser:
    @pytest.mark.asyncio
    async def test_deleting_organizer_removes_their_events(self, db, settings, admin, organizer, vendor, wedding):
        event_id, organizer_id = wedding.id, organizer.id
        await get_proposal_lifecycle(settings).submit(
            db,
            principal_for(vendor),
            event_id=event_id,
            requirement_id=wedding.requirements[0].id,
            proposal_text="Menu",
            price=100,
        )

        summary = await user_service.delete_user(db, principal_for(admin), organizer_id)

        assert summary == {"events_removed": 1, "proposals_removed": 1, "proposals_orphaned": 0}
        assert await db.get(User, organizer_id) is None
        assert await db.get(Event, event_id) is None

    @pytest.mark.asyncio
    async def test_deleting_vendor_keeps_proposals_and_assignment(
        self, db, settings, admin, organizer, vendor, wedding
    ):
        vendor_id = vendor.id
        requirement = wedding.requirements[0]
        lifecycle = get_proposal_lifecycle(settings)
        proposal = await lifecycle.submit(
            db,
            principal_for(vendor),
            event_id=wedding.id,
            requirement_id=requirement.id,
            proposal_text="Menu",
            price=100,
        )
        await lifecycle.decide(db, principal_for(organizer), proposal.id, "approved")
        proposal_id = proposal.id

        summary = await user_service.delete_user(db, principal_for(admin), vendor_id)

        assert summary["proposals_orphaned"] == 1
        kept = (await db.execute(select(Proposal).where(Proposal.id == proposal_id))).scalar_one()
        await db.refresh(kept)
        assert kept.vendor_id is None
        assert kept.status == ProposalStatus.APPROVED

        await db.refresh(requirement)
        assert requirement.status == RequirementStatus.ASSIGNED
        assert requirement.assigned_vendor_id == vendor_id

        notices = await db.scalar(select(func.count()).select_from(Notification).where(Notification.user_id == vendor_id))
        assert notices == 0

    @pytest.mark.asyncio
    async def test_only_admin_deletes(self, db, organizer, vendor):
        with pytest.raises(NotAuthorized):
            await user_service.delete_user(db, principal_for(organizer), vendor.id)
