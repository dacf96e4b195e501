"""
User Data Models

This module contains the user record, subscription plans and the limits
each plan grants.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from postpilot.utils.time import utcnow


class UserRole(str, Enum):
    """User role enumeration."""
    USER = "user"
    ADMIN = "admin"


class SubscriptionPlan(str, Enum):
    """Subscription plan enumeration."""
    FREE = "free"
    CREATOR = "creator"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class PlanLimits(BaseModel):
    """What a subscription plan allows."""

    model_config = ConfigDict(frozen=True)

    posts: int = Field(..., description="Posts that may be published per calendar month")
    platforms: int = Field(..., description="Social accounts that may be connected")
    scheduling: bool = Field(..., description="Whether posts may be scheduled")
    analytics: bool = Field(..., description="Whether engagement metrics are collected")
    team_members: int = Field(default=0, description="Team seats besides the owner")
    account_post_quota: int = Field(
        ...,
        description="Publishes allowed per connected account per quota cycle"
    )


PLAN_LIMITS = {
    SubscriptionPlan.FREE: PlanLimits(
        posts=5, platforms=2, scheduling=False, analytics=False,
        account_post_quota=50,
    ),
    SubscriptionPlan.CREATOR: PlanLimits(
        posts=20, platforms=4, scheduling=True, analytics=True,
        account_post_quota=100,
    ),
    SubscriptionPlan.PREMIUM: PlanLimits(
        posts=40, platforms=6, scheduling=True, analytics=True,
        team_members=3, account_post_quota=200,
    ),
    SubscriptionPlan.ENTERPRISE: PlanLimits(
        posts=99999, platforms=99, scheduling=True, analytics=True,
        team_members=99, account_post_quota=99999,
    ),
}


def get_plan_limits(plan: Optional[SubscriptionPlan]) -> PlanLimits:
    """Limits for a plan; unknown or missing plans get the free tier."""
    if plan is None:
        return PLAN_LIMITS[SubscriptionPlan.FREE]
    return PLAN_LIMITS.get(plan, PLAN_LIMITS[SubscriptionPlan.FREE])


class User(BaseModel):
    """Account holder who connects providers and publishes posts."""

    id: str = Field(..., description="Unique user identifier")
    email: str = Field(..., description="User email address")
    full_name: str = Field(default="", description="Display name")
    role: UserRole = Field(default=UserRole.USER, description="User role")
    subscription_plan: SubscriptionPlan = Field(
        default=SubscriptionPlan.FREE,
        description="Current subscription plan"
    )
    timezone: Optional[str] = Field(None, description="IANA timezone chosen in settings")
    is_active: bool = Field(default=True, description="Whether the account may act")
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def plan_limits(self) -> PlanLimits:
        return get_plan_limits(self.subscription_plan)
