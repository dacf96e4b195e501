"""
Metrics API Endpoints

Refresh and read engagement metrics of the user's published posts.
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query

from postpilot.models.analytics import MetricsCollectionResult, PlatformMetricsSummary
from postpilot.models.user import User
from postpilot.services.analytics import AnalyticsService
from postpilot.utils.auth import get_current_user

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_analytics_service() -> AnalyticsService:
    """Get analytics service instance."""
    return AnalyticsService()


@router.post("/refresh", response_model=MetricsCollectionResult)
async def refresh_metrics(
    window_days: Optional[int] = Query(None, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> MetricsCollectionResult:
    """Pull fresh metrics for posts published within the window."""
    return await analytics.fetch_and_store_metrics_for_user(current_user.id, window_days)


@router.get("", response_model=List[PlatformMetricsSummary])
async def get_metrics(
    current_user: User = Depends(get_current_user),
    analytics: AnalyticsService = Depends(get_analytics_service),
) -> List[PlatformMetricsSummary]:
    """Per-platform totals of the stored metrics."""
    return await analytics.get_aggregated_metrics_for_user(current_user.id)
