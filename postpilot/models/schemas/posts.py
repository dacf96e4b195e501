"""
Post Schemas

Request and response schemas for the post, quota, provider, metrics,
notification and team endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from postpilot.models.content import PostType
from postpilot.models.platform import Platform


class PublishRequest(BaseModel):
    """Request schema for publishing or scheduling content."""

    platforms: List[Platform] = Field(..., min_length=1, description="Target platforms")
    content: str = Field(..., description="Post content")
    media_urls: List[str] = Field(default_factory=list, description="Image URLs to attach")
    media_alts: Optional[List[str]] = Field(None, description="Alt texts matching media_urls")
    post_type: PostType = Field(default=PostType.IMMEDIATE, description="Publish now or later")
    scheduled_for: Optional[datetime] = Field(None, description="Dispatch time for scheduled posts")


class EditPostRequest(BaseModel):
    """Request schema for editing an unpublished post."""

    content: str = Field(..., description="New post content")
    media_urls: Optional[List[str]] = Field(None, description="Replacement media URLs")
    scheduled_for: Optional[datetime] = Field(None, description="New dispatch time")


class RescheduleRequest(BaseModel):
    scheduled_for: datetime = Field(..., description="New dispatch time")


class DuplicateRequest(BaseModel):
    scheduled_for: Optional[datetime] = Field(None, description="Dispatch time of the copy")


class BulkDeleteRequest(BaseModel):
    post_ids: List[str] = Field(..., description="Posts to delete")


class BulkRescheduleRequest(BaseModel):
    post_ids: List[str] = Field(..., description="Posts to reschedule")
    scheduled_for: datetime = Field(..., description="New dispatch time")


class BulkDeleteResponse(BaseModel):
    message: str = "Posts deleted successfully"
    deleted_count: int


class BulkRescheduleResponse(BaseModel):
    message: str = "Posts rescheduled successfully"
    updated_count: int


class MarkReadRequest(BaseModel):
    """Notifications to mark read; all unread ones when omitted."""

    notification_ids: Optional[List[str]] = None


class ProviderResponse(BaseModel):
    """Connected account as shown to its owner, without tokens."""

    id: str
    provider: Platform
    display_name: str
    is_connected: bool
    total_posts_published: int
    quota_exhausted: bool
    last_used_at: Optional[datetime] = None


class TeamRoleResponse(BaseModel):
    team_id: str
    role: Optional[str] = None
    is_member: bool
    can_manage_members: bool
