"""
Tests for billing expiry, team permissions and notifications.
"""

from datetime import timedelta

import pytest

from postpilot.models.billing import Invoice, PaymentStatus, Transaction
from postpilot.models.team import MemberStatus, Team, TeamMember, TeamRole
from postpilot.services.billing import BillingService
from postpilot.services.teams import TeamService
from postpilot.utils.time import utcnow


class TestBillingService:

    @pytest.fixture
    def service(self, db, notifications) -> BillingService:
        return BillingService(db, notifications)

    @pytest.mark.asyncio
    async def test_expires_stale_transactions(self, service, db, notifications, creator_user):
        stale = await db.create_transaction(Transaction(
            user_id=creator_user.id, amount=499, created_at=utcnow() - timedelta(hours=25)
        ))
        fresh = await db.create_transaction(Transaction(
            user_id=creator_user.id, amount=999, created_at=utcnow() - timedelta(hours=2)
        ))

        count = await service.expire_pending_transactions()

        assert count == 1
        assert (await db.get_transaction(stale.id)).status == PaymentStatus.FAILED
        assert (await db.get_transaction(fresh.id)).status == PaymentStatus.PENDING

        inbox = await notifications.list_notifications(creator_user.id)
        assert inbox[0].title == "❌ Transaction Failed"

    @pytest.mark.asyncio
    async def test_expires_stale_invoices(self, service, db, notifications, creator_user):
        invoice = await db.create_invoice(Invoice(
            id="abcdef1234567890",
            user_id=creator_user.id,
            total_amount=1499,
            created_at=utcnow() - timedelta(days=2),
        ))

        count = await service.expire_pending_invoices()

        assert count == 1
        assert (await db.get_invoice(invoice.id)).payment_status == PaymentStatus.FAILED
        inbox = await notifications.list_notifications(creator_user.id)
        assert inbox[0].title == "❌ Invoice Payment Failed"
        assert "#abcdef12 " in inbox[0].message

    @pytest.mark.asyncio
    async def test_settled_payments_untouched(self, service, db, creator_user):
        await db.create_transaction(Transaction(
            user_id=creator_user.id,
            amount=10,
            status=PaymentStatus.SUCCESS,
            created_at=utcnow() - timedelta(days=3),
        ))

        assert await service.expire_pending_transactions() == 0


class TestTeamService:

    @pytest.fixture
    def service(self, db) -> TeamService:
        return TeamService(db)

    @pytest.mark.asyncio
    async def test_roles(self, service, db):
        team = await db.create_team(Team(id="team-1", name="Growth", owner_id="owner"))
        await db.add_team_member(TeamMember(
            team_id=team.id, user_id="admin", role=TeamRole.ADMIN, status=MemberStatus.ACCEPTED
        ))
        await db.add_team_member(TeamMember(
            team_id=team.id, user_id="member", role=TeamRole.MEMBER, status=MemberStatus.ACCEPTED
        ))
        await db.add_team_member(TeamMember(
            team_id=team.id, user_id="invited", role=TeamRole.ADMIN, status=MemberStatus.PENDING
        ))

        assert await service.is_team_owner("owner", team.id) is True
        assert await service.get_member_role("owner", team.id) == "OWNER"
        assert await service.can_manage_members("owner", team.id) is True

        assert await service.can_manage_members("admin", team.id) is True
        assert await service.get_member_role("admin", team.id) == "ADMIN"

        assert await service.is_team_member("member", team.id) is True
        assert await service.can_manage_members("member", team.id) is False

        assert await service.is_team_member("invited", team.id) is False
        assert await service.can_manage_members("invited", team.id) is False

        assert await service.get_member_role("stranger", team.id) is None
        assert await service.is_team_owner("owner", "missing-team") is False


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_mark_selected_and_all_read(self, notifications, creator_user):
        first = await notifications.notify(creator_user.id, "One", "first")
        await notifications.notify(creator_user.id, "Two", "second")
        await notifications.notify(creator_user.id, "Three", "third")

        assert await notifications.mark_read(creator_user.id, [first.id]) == 1
        unread = await notifications.list_notifications(creator_user.id, unread_only=True)
        assert {n.title for n in unread} == {"Two", "Three"}

        assert await notifications.mark_read(creator_user.id) == 2
        assert await notifications.list_notifications(creator_user.id, unread_only=True) == []
