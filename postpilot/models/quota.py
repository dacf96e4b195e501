"""
Quota Data Models

Views over per-account publish counters and monthly plan usage.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from postpilot.models.platform import Platform
from postpilot.models.user import SubscriptionPlan


class UsageType(str, Enum):
    """What a monthly usage figure counts."""
    POSTS = "posts"
    PLATFORMS = "platforms"


class WarningLevel(str, Enum):
    SAFE = "safe"
    WARNING = "warning"
    DANGER = "danger"


class QuotaCheck(BaseModel):
    """Answer to 'may this account publish right now'."""

    allowed: bool
    message: Optional[str] = None
    wait_time: Optional[int] = Field(None, description="Seconds until the next publish is allowed")


class ProviderQuotaStatus(BaseModel):
    """Publish counter of one connected account against its plan quota."""

    success: bool = True
    used: int = 0
    limit: int = 50
    remaining: int = 0
    percentage: int = 0
    quota_exhausted: bool = False
    quota_exhausted_at: Optional[datetime] = None


class QuotaWarning(BaseModel):
    warning: bool = False
    level: Optional[str] = Field(None, description="warning or error")
    message: Optional[str] = None
    remaining: Optional[int] = None
    total: Optional[int] = None


class ProviderQuotaEntry(BaseModel):
    id: str
    provider: Platform
    name: str
    used: int
    limit: int
    remaining: int
    percentage: int
    exhausted: bool
    exhausted_at: Optional[datetime] = None


class QuotaSummary(BaseModel):
    total_connected: int
    total_used: int
    total_limit: int
    all_exhausted: bool
    plan: SubscriptionPlan


class QuotaOverview(BaseModel):
    """All connected accounts of a user with their counters."""

    success: bool
    providers: List[ProviderQuotaEntry] = Field(default_factory=list)
    summary: Optional[QuotaSummary] = None


class UsageProgress(BaseModel):
    used: int = 0
    total: int = 0
    percentage: int = 0


class PlatformConnectionInfo(BaseModel):
    can_connect_more: bool
    connected_count: int
    max_allowed: int
    remaining: int
    has_reached_limit: bool


class ProviderQuotaReport(BaseModel):
    """Counter of one account together with the warning to show for it."""

    provider_id: str
    quota: ProviderQuotaStatus
    warning: QuotaWarning


class UsageReport(BaseModel):
    """Monthly plan usage of a user."""

    posts: UsageProgress
    platforms: UsageProgress
    posts_display: str
    platforms_display: str
    remaining_posts: int
    posts_warning_level: WarningLevel
    platforms_warning_level: WarningLevel
    connections: PlatformConnectionInfo
