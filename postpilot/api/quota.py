"""
Quota API Endpoints

Per-account publishing counters and monthly plan usage.
"""

import structlog
from fastapi import APIRouter, Depends

from postpilot.integrations.firestore import FirestoreClient, get_firestore_client
from postpilot.models.quota import ProviderQuotaReport, QuotaOverview, UsageReport, UsageType
from postpilot.models.user import User
from postpilot.services.quota import QuotaService
from postpilot.utils.auth import get_current_user
from postpilot.utils.error_handling import NotFoundError

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_quota_service() -> QuotaService:
    """Get quota service instance."""
    return QuotaService()


@router.get("", response_model=QuotaOverview)
async def get_quota_overview(
    current_user: User = Depends(get_current_user),
    quota: QuotaService = Depends(get_quota_service),
) -> QuotaOverview:
    """Counters of every connected account with a summary."""
    return await quota.get_user_quota_overview(current_user.id)


@router.get("/usage", response_model=UsageReport)
async def get_usage(
    current_user: User = Depends(get_current_user),
    quota: QuotaService = Depends(get_quota_service),
) -> UsageReport:
    """Monthly post and platform usage against the plan."""
    user_id = current_user.id
    return UsageReport(
        posts=await quota.get_usage_progress(user_id, UsageType.POSTS),
        platforms=await quota.get_usage_progress(user_id, UsageType.PLATFORMS),
        posts_display=await quota.format_usage_display(user_id, UsageType.POSTS),
        platforms_display=await quota.format_usage_display(user_id, UsageType.PLATFORMS),
        remaining_posts=await quota.get_remaining_posts(user_id),
        posts_warning_level=await quota.get_usage_warning_level(user_id, UsageType.POSTS),
        platforms_warning_level=await quota.get_usage_warning_level(user_id, UsageType.PLATFORMS),
        connections=await quota.get_platform_connection_info(user_id),
    )


@router.get("/providers/{provider_id}", response_model=ProviderQuotaReport)
async def get_provider_quota(
    provider_id: str,
    current_user: User = Depends(get_current_user),
    quota: QuotaService = Depends(get_quota_service),
    db: FirestoreClient = Depends(get_firestore_client),
) -> ProviderQuotaReport:
    """Counter and warning of one of the user's connected accounts."""
    provider = await db.get_provider(provider_id)
    if not provider or provider.user_id != current_user.id:
        raise NotFoundError("Provider not found")

    return ProviderQuotaReport(
        provider_id=provider_id,
        quota=await quota.get_provider_quota_status(provider_id),
        warning=await quota.get_quota_warning(provider_id),
    )
