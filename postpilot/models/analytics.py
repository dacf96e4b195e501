"""
Engagement Metrics Models

Snapshots returned by platform adapters, the stored per-post metric
record, and the per-platform aggregate shown on the dashboard.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from postpilot.models.platform import Platform
from postpilot.utils.time import utcnow


class MetricSnapshot(BaseModel):
    """Engagement counters read from a platform at one point in time."""

    impressions: int = 0
    clicks: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    ctr: Optional[float] = None
    video_views: Optional[int] = None
    follows_gained: Optional[int] = None


class SocialMetric(MetricSnapshot):
    """Latest stored snapshot for a published post, one per post."""

    post_id: str = Field(..., description="Post the metrics belong to")
    user_id: str = Field(..., description="Owner of the post")
    platform: Platform = Field(..., description="Platform the post lives on")
    collected_at: datetime = Field(default_factory=utcnow)


class PlatformMetricsSummary(BaseModel):
    """Sum of all stored metrics for one platform."""

    provider: Platform
    impressions: int = 0
    clicks: int = 0
    likes: int = 0
    comments: int = 0
    shares: int = 0
    video_views: int = 0
    follows_gained: int = 0
    posts_tracked: int = 0
    last_collected_at: Optional[datetime] = None


class MetricsCollectionResult(BaseModel):
    """Counters from one metrics collection pass."""

    posts_processed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list, description="Post ids whose upsert failed")
