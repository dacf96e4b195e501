"""
Connected social account model.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from postpilot.models.platform import Platform, get_display_username
from postpilot.utils.time import epoch_seconds, utcnow


class SocialProvider(BaseModel):
    """OAuth credentials and usage counters for one connected account."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Provider identifier")
    user_id: str = Field(..., description="Owning user")
    provider: Platform = Field(..., description="Platform of this account")
    provider_user_id: Optional[str] = Field(None, description="Account id on the platform")

    access_token: Optional[str] = Field(None, description="OAuth access token or API key")
    refresh_token: Optional[str] = Field(None, description="OAuth refresh token")
    expires_at: Optional[int] = Field(None, description="Access token expiry, epoch seconds")

    is_connected: bool = Field(default=True, description="Whether the account is usable")
    disconnected_at: Optional[datetime] = Field(None)
    profile_data: Dict[str, Any] = Field(default_factory=dict, description="Cached profile fields")

    total_posts_published: int = Field(default=0, description="Publishes in the current cycle")
    quota_exhausted: bool = Field(default=False)
    quota_exhausted_at: Optional[datetime] = Field(None)
    quota_reset_at: Optional[datetime] = Field(None, description="Start of the current quota cycle")
    last_used_at: Optional[datetime] = Field(None, description="Last successful publish")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_token_expired(self, now: Optional[datetime] = None) -> bool:
        """True when an expiry is recorded and lies in the past."""
        return bool(self.expires_at) and self.expires_at < epoch_seconds(now)

    @property
    def display_name(self) -> str:
        return get_display_username(self.provider, self.profile_data)
