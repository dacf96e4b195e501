"""
Analytics Service

Service layer for collecting engagement metrics of published posts from
the platforms and aggregating them for the dashboard.
"""

from collections import defaultdict
from datetime import timedelta
from typing import Dict, List, Optional

import httpx
import structlog

from postpilot.config.settings import get_settings
from postpilot.integrations.base import PlatformClient
from postpilot.integrations.firestore import FirestoreClient, firestore_client
from postpilot.models.analytics import (
    MetricSnapshot,
    MetricsCollectionResult,
    PlatformMetricsSummary,
    SocialMetric,
)
from postpilot.models.content import Post
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.services.publishing import default_platform_clients
from postpilot.utils.error_handling import with_retry
from postpilot.utils.logger import log_business_event
from postpilot.utils.time import utcnow

SUMMED_FIELDS = ("impressions", "clicks", "likes", "comments", "shares", "video_views", "follows_gained")


class AnalyticsService:
    """Service for engagement metrics."""

    def __init__(
        self,
        db: Optional[FirestoreClient] = None,
        clients: Optional[Dict[Platform, PlatformClient]] = None
    ):
        """Initialize analytics service."""
        self.settings = get_settings()
        self.logger = structlog.get_logger(__name__)
        self.db = db or firestore_client
        self.clients = clients or default_platform_clients()

    async def fetch_and_store_metrics_for_user(
        self, user_id: str, window_days: Optional[int] = None
    ) -> MetricsCollectionResult:
        """
        Refresh metrics of a user's posts published within the window.

        Posts on disconnected accounts are left out; posts whose account has
        no token or whose platform returns nothing are counted as skipped.
        """
        window_days = window_days or self.settings.metrics_window_days
        since = utcnow() - timedelta(days=window_days)

        providers = {
            provider.id: provider
            for provider in await self.db.list_user_providers(user_id, connected_only=True)
        }
        posts = [
            post for post in await self.db.get_posted_with_platform_id(user_id=user_id, since=since)
            if post.social_provider_id in providers
        ]

        self.logger.info(
            "Collecting metrics for user",
            user_id=user_id,
            posts=len(posts),
            window_days=window_days
        )

        result = await self._collect(posts, providers)
        log_business_event(
            "user_metrics_collected",
            user_id=user_id,
            updated=result.updated,
            skipped=result.skipped
        )
        return result

    async def update_recent_post_metrics(self, limit: int = 100) -> MetricsCollectionResult:
        """Refresh metrics of the most recent published posts across all users."""
        posts = await self.db.get_posted_with_platform_id(limit=limit)

        providers: Dict[str, SocialProvider] = {}
        for post in posts:
            if post.social_provider_id not in providers:
                provider = await self.db.get_provider(post.social_provider_id)
                if provider:
                    providers[provider.id] = provider

        result = await self._collect(posts, providers)
        self.logger.info(
            "Recent post metrics updated",
            processed=result.posts_processed,
            updated=result.updated,
            skipped=result.skipped,
            errors=len(result.errors)
        )
        return result

    async def get_aggregated_metrics_for_user(self, user_id: str) -> List[PlatformMetricsSummary]:
        """Per-platform sums of the stored metrics of a user's posts."""
        summaries: Dict[Platform, PlatformMetricsSummary] = {}

        for metric in await self.db.list_user_metrics(user_id):
            summary = summaries.setdefault(
                metric.platform, PlatformMetricsSummary(provider=metric.platform)
            )
            for field in SUMMED_FIELDS:
                setattr(summary, field, getattr(summary, field) + (getattr(metric, field) or 0))
            summary.posts_tracked += 1
            if not summary.last_collected_at or metric.collected_at > summary.last_collected_at:
                summary.last_collected_at = metric.collected_at

        return list(summaries.values())

    async def _collect(
        self, posts: List[Post], providers: Dict[str, SocialProvider]
    ) -> MetricsCollectionResult:
        result = MetricsCollectionResult(posts_processed=len(posts))
        counts = defaultdict(int)

        for post in posts:
            provider = providers.get(post.social_provider_id)
            if not provider or not provider.access_token:
                result.skipped += 1
                continue

            try:
                snapshot = await self._fetch_snapshot(provider, post.platform_post_id)
            except Exception as e:
                self.logger.warning(
                    "Metrics fetch failed",
                    post_id=post.id,
                    platform=post.platform.value,
                    error=str(e)
                )
                result.skipped += 1
                continue

            if not snapshot:
                result.skipped += 1
                continue

            try:
                await self.db.upsert_metric(SocialMetric(
                    post_id=post.id,
                    user_id=post.user_id,
                    platform=post.platform,
                    collected_at=utcnow(),
                    **snapshot.model_dump()
                ))
                result.updated += 1
                counts[post.platform.value] += 1
            except Exception as e:
                self.logger.error("Failed to store metrics", post_id=post.id, error=str(e))
                result.errors.append(post.id)

        if counts:
            self.logger.debug("Metrics updated per platform", counts=dict(counts))
        return result

    @with_retry(max_attempts=3, base_delay=0.5, retryable_errors=[httpx.TransportError])
    async def _fetch_snapshot(
        self, provider: SocialProvider, platform_post_id: str
    ) -> Optional[MetricSnapshot]:
        return await self.clients[provider.provider].fetch_metrics(provider, platform_post_id)
