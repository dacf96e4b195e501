"""
Team API Endpoints
"""

from fastapi import APIRouter, Depends

from postpilot.models.schemas.posts import TeamRoleResponse
from postpilot.models.user import User
from postpilot.services.teams import TeamService
from postpilot.utils.auth import get_current_user

router = APIRouter()


def get_team_service() -> TeamService:
    """Get team service instance."""
    return TeamService()


@router.get("/{team_id}/role", response_model=TeamRoleResponse)
async def get_team_role(
    team_id: str,
    current_user: User = Depends(get_current_user),
    teams: TeamService = Depends(get_team_service),
) -> TeamRoleResponse:
    """Role of the current user in a team and what it allows."""
    return TeamRoleResponse(
        team_id=team_id,
        role=await teams.get_member_role(current_user.id, team_id),
        is_member=await teams.is_team_member(current_user.id, team_id),
        can_manage_members=await teams.can_manage_members(current_user.id, team_id),
    )
