"""
Team Permission Service

Answers who may do what inside a team.
"""

from typing import Optional

import structlog

from postpilot.integrations.firestore import FirestoreClient, firestore_client
from postpilot.models.team import OWNER_ROLE, MemberStatus, TeamRole


class TeamService:
    """Service for team roles and permissions."""

    def __init__(self, db: Optional[FirestoreClient] = None):
        self.logger = structlog.get_logger(__name__)
        self.db = db or firestore_client

    async def is_team_owner(self, user_id: str, team_id: str) -> bool:
        team = await self.db.get_team(team_id)
        return bool(team and team.owner_id == user_id)

    async def is_team_member(self, user_id: str, team_id: str) -> bool:
        """Owner or a member who accepted the invitation."""
        if await self.is_team_owner(user_id, team_id):
            return True
        member = await self.db.get_team_member(team_id, user_id)
        return bool(member and member.status == MemberStatus.ACCEPTED)

    async def can_manage_members(self, user_id: str, team_id: str) -> bool:
        """Owner or an accepted ADMIN."""
        if await self.is_team_owner(user_id, team_id):
            return True
        member = await self.db.get_team_member(team_id, user_id)
        return bool(
            member
            and member.status == MemberStatus.ACCEPTED
            and member.role == TeamRole.ADMIN
        )

    async def get_member_role(self, user_id: str, team_id: str) -> Optional[str]:
        """OWNER for the owner, the member's role otherwise, None for strangers."""
        if await self.is_team_owner(user_id, team_id):
            return OWNER_ROLE
        member = await self.db.get_team_member(team_id, user_id)
        return member.role.value if member else None
