"""
Team collaboration models.
"""

from datetime import datetime
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from postpilot.utils.time import utcnow


class TeamRole(str, Enum):
    """Role of an invited member; the owner is implicit."""
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class MemberStatus(str, Enum):
    """Invitation state."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


OWNER_ROLE = "OWNER"


class Team(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    owner_id: str
    created_at: datetime = Field(default_factory=utcnow)


class TeamMember(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    team_id: str
    user_id: str
    role: TeamRole = TeamRole.MEMBER
    status: MemberStatus = MemberStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)
