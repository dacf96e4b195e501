"""
Post Data Models

This module contains the post record, its lifecycle status and the result
objects returned by the publishing pipeline.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from postpilot.models.platform import Platform
from postpilot.utils.time import utcnow


class PostStatus(str, Enum):
    """Post lifecycle status."""
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    POSTED = "posted"
    FAILED = "failed"


class PostType(str, Enum):
    """Whether a publish request goes out now or later."""
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"


class Post(BaseModel):
    """A piece of content bound to one connected social account."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Post identifier")
    user_id: str = Field(..., description="Owner of the connected account")
    social_provider_id: str = Field(..., description="Connected account the post belongs to")
    platform: Platform = Field(..., description="Target platform")
    content: str = Field(..., description="Post body as it will be published")
    media_urls: List[str] = Field(default_factory=list, description="Attached image URLs")
    status: PostStatus = Field(default=PostStatus.DRAFT, description="Lifecycle status")

    scheduled_for: Optional[datetime] = Field(None, description="Dispatch time in UTC")
    posted_at: Optional[datetime] = Field(None, description="When the platform accepted the post")

    platform_post_id: Optional[str] = Field(None, description="Identifier assigned by the platform")
    post_url: Optional[str] = Field(None, description="Public URL of the published post")
    error_message: Optional[str] = Field(None, description="Reason for the last failure")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class PublishingResult(BaseModel):
    """Outcome of a single platform API call."""

    platform: Platform = Field(..., description="Platform the call went to")
    success: bool = Field(..., description="Whether the platform accepted the post")
    post_id: Optional[str] = Field(None, description="Platform-assigned identifier")
    post_url: Optional[str] = Field(None, description="Public URL of the published post")
    error_message: Optional[str] = Field(None, description="Error message if publishing failed")
    published_at: Optional[datetime] = Field(None, description="Publication time")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Platform-specific details")


class PlatformPublishResult(BaseModel):
    """Per-platform entry of a composer publish request."""

    platform: Platform
    success: bool
    message: str
    error: Optional[str] = None
    post_id: Optional[str] = Field(None, description="Stored post identifier")
    scheduled: bool = False


class MultiPublishResult(BaseModel):
    """Summary of publishing one piece of content to several platforms."""

    results: List[PlatformPublishResult] = Field(default_factory=list)
    success_count: int = 0
    total_count: int = 0
    message: str = ""


class DispatchDetail(BaseModel):
    """What happened to one due post during a dispatch run."""

    post_id: str
    platform: Platform
    status: str = Field(..., description="success, failed or error")
    error: Optional[str] = None


class DispatchReport(BaseModel):
    """Result of one scheduled-post dispatch run."""

    processed: int = 0
    success: int = 0
    failed: int = 0
    details: List[DispatchDetail] = Field(default_factory=list)


class PublishResponse(BaseModel):
    """What a caller gets back after publishing or scheduling one post."""

    success: bool = True
    platform: Platform
    post_id: str = Field(..., description="Stored post identifier")
    scheduled: bool = False
    scheduled_for: Optional[datetime] = None
    platform_post_id: Optional[str] = None
    post_url: Optional[str] = None
    message: str = ""
