"""
Quota Service

This service tracks two kinds of allowance:
- Per connected account publish counters checked against the plan's
  account quota, plus a minimum gap between two posts on one account
- Monthly plan usage (posts published this month, connected platforms)
  used for upgrade prompts and 80 % / 100 % notifications
"""

import math
from datetime import datetime
from typing import Optional

import structlog

from postpilot.config.settings import get_settings
from postpilot.integrations.firestore import FirestoreClient, firestore_client
from postpilot.models.content import Post, PostStatus
from postpilot.models.quota import (
    PlatformConnectionInfo,
    ProviderQuotaEntry,
    ProviderQuotaStatus,
    QuotaCheck,
    QuotaOverview,
    QuotaSummary,
    QuotaWarning,
    UsageProgress,
    UsageType,
    WarningLevel,
)
from postpilot.models.user import SubscriptionPlan, get_plan_limits
from postpilot.services.notifications import NotificationService
from postpilot.utils.logger import log_business_event
from postpilot.utils.time import ensure_utc, start_of_month, utcnow

DEFAULT_ACCOUNT_QUOTA = get_plan_limits(SubscriptionPlan.FREE).account_post_quota


def usage_percentage(used: int, total: int) -> int:
    """Whole percentage rounded half up; zero when there is no allowance."""
    if total <= 0:
        return 0
    return math.floor(used * 100 / total + 0.5)


class QuotaService:
    """Service for per-account quotas and monthly plan usage."""

    def __init__(
        self,
        db: Optional[FirestoreClient] = None,
        notifications: Optional[NotificationService] = None
    ):
        self.settings = get_settings()
        self.logger = structlog.get_logger(__name__)
        self.db = db or firestore_client
        self.notifications = notifications or NotificationService(self.db)

    async def _account_quota(self, user_id: str) -> int:
        user = await self.db.get_user(user_id)
        plan = user.subscription_plan if user else SubscriptionPlan.FREE
        return get_plan_limits(plan).account_post_quota

    # Per-account counters
    async def increment_post_count(
        self, provider_id: str, user_id: str, now: Optional[datetime] = None
    ) -> None:
        """Count a successful publish and flag the account once its quota is used up."""
        provider = await self.db.get_provider(provider_id)
        if not provider:
            return

        now = ensure_utc(now) or utcnow()
        limit = await self._account_quota(user_id)
        new_count = provider.total_posts_published + 1
        exhausted = new_count >= limit

        await self.db.update_provider(provider_id, {
            "total_posts_published": new_count,
            "quota_exhausted": exhausted,
            "quota_exhausted_at": now if exhausted else None,
            "last_used_at": now,
            "updated_at": now,
        })

        if exhausted:
            log_business_event(
                "account_quota_exhausted",
                user_id=user_id,
                provider_id=provider_id,
                limit=limit
            )

    async def get_provider_quota_status(self, provider_id: str) -> ProviderQuotaStatus:
        """Counter of one account against its plan quota."""
        provider = await self.db.get_provider(provider_id)
        if not provider:
            return ProviderQuotaStatus(success=False, limit=DEFAULT_ACCOUNT_QUOTA)

        limit = await self._account_quota(provider.user_id)
        used = provider.total_posts_published

        return ProviderQuotaStatus(
            success=True,
            used=used,
            limit=limit,
            remaining=max(limit - used, 0),
            percentage=usage_percentage(used, limit),
            quota_exhausted=provider.quota_exhausted,
            quota_exhausted_at=provider.quota_exhausted_at,
        )

    async def check_quota_before_publish(self, provider_id: str) -> QuotaCheck:
        provider = await self.db.get_provider(provider_id)
        if not provider:
            return QuotaCheck(allowed=False, message="Provider not found")

        if provider.quota_exhausted:
            return QuotaCheck(
                allowed=False,
                message=(
                    "Your posting quota has been exhausted for this account. "
                    "Upgrade your plan for more posts."
                )
            )
        return QuotaCheck(allowed=True)

    async def check_rate_limit(
        self, provider_id: str, now: Optional[datetime] = None
    ) -> QuotaCheck:
        """Enforce the minimum gap between two posts on the same account."""
        provider = await self.db.get_provider(provider_id)
        if not provider:
            return QuotaCheck(allowed=False, message="Provider not found")

        if not provider.last_used_at:
            return QuotaCheck(allowed=True)

        now = ensure_utc(now) or utcnow()
        min_gap = self.settings.min_seconds_between_posts
        elapsed = (now - ensure_utc(provider.last_used_at)).total_seconds()

        if elapsed < min_gap:
            wait_time = math.ceil(min_gap - elapsed)
            plural = "" if wait_time == 1 else "s"
            return QuotaCheck(
                allowed=False,
                message=f"Please wait {wait_time} second{plural} before posting again",
                wait_time=wait_time
            )
        return QuotaCheck(allowed=True)

    async def reset_monthly_quota(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Zero the counters of every account a user owns."""
        now = ensure_utc(now) or utcnow()
        providers = await self.db.list_user_providers(user_id)
        for provider in providers:
            await self._reset_provider(provider.id, now)
        self.logger.info("Monthly quota reset", user_id=user_id, providers=len(providers))
        return len(providers)

    async def reset_monthly_quotas(self, now: Optional[datetime] = None) -> int:
        """Reset every account whose quota cycle began before the current month."""
        now = ensure_utc(now) or utcnow()
        month_start = start_of_month(now)

        reset = 0
        for provider in await self.db.list_all_providers():
            cycle_start = ensure_utc(provider.quota_reset_at or provider.created_at)
            if cycle_start < month_start:
                await self._reset_provider(provider.id, now)
                reset += 1

        if reset:
            log_business_event("monthly_quotas_reset", providers=reset)
        return reset

    async def _reset_provider(self, provider_id: str, now: datetime) -> None:
        await self.db.update_provider(provider_id, {
            "total_posts_published": 0,
            "quota_exhausted": False,
            "quota_exhausted_at": None,
            "quota_reset_at": now,
            "updated_at": now,
        })

    async def get_quota_warning(self, provider_id: str) -> QuotaWarning:
        quota = await self.get_provider_quota_status(provider_id)
        if not quota.success:
            return QuotaWarning(warning=False)

        if 80 <= quota.percentage < 100:
            return QuotaWarning(
                warning=True,
                level="warning",
                message=f"You have {quota.remaining} posts remaining this month.",
                remaining=quota.remaining,
                total=quota.limit,
            )

        if quota.percentage >= 100:
            return QuotaWarning(
                warning=True,
                level="error",
                message="Your posting quota is exhausted. Upgrade your plan for more posts.",
                remaining=0,
                total=quota.limit,
            )

        return QuotaWarning(warning=False)

    async def log_failed_post(self, provider_id: str, reason: str) -> Optional[Post]:
        """Record a publish attempt the quota check refused."""
        provider = await self.db.get_provider(provider_id)
        if not provider:
            return None

        post = Post(
            user_id=provider.user_id,
            social_provider_id=provider.id,
            platform=provider.provider,
            content="Failed post",
            status=PostStatus.FAILED,
            error_message=reason,
        )
        return await self.db.create_post(post)

    async def get_user_quota_overview(self, user_id: str) -> QuotaOverview:
        """Counters of every connected account of a user with a summary."""
        providers = await self.db.list_user_providers(user_id, connected_only=True)
        if not providers:
            return QuotaOverview(success=False)

        user = await self.db.get_user(user_id)
        plan = user.subscription_plan if user else SubscriptionPlan.FREE
        limit = get_plan_limits(plan).account_post_quota

        entries = []
        for provider in providers:
            used = provider.total_posts_published
            entries.append(ProviderQuotaEntry(
                id=provider.id,
                provider=provider.provider,
                name=(
                    provider.profile_data.get("name")
                    or provider.profile_data.get("username")
                    or "Unknown"
                ),
                used=used,
                limit=limit,
                remaining=max(limit - used, 0),
                percentage=usage_percentage(used, limit),
                exhausted=provider.quota_exhausted,
                exhausted_at=provider.quota_exhausted_at,
            ))

        return QuotaOverview(
            success=True,
            providers=entries,
            summary=QuotaSummary(
                total_connected=len(entries),
                total_used=sum(entry.used for entry in entries),
                total_limit=limit * len(entries),
                all_exhausted=all(entry.exhausted for entry in entries),
                plan=plan,
            ),
        )

    # Monthly plan usage
    async def get_current_month_posts(self, user_id: str, now: Optional[datetime] = None) -> int:
        """Posts the user published since the start of the calendar month."""
        return await self.db.count_posted_since(user_id, start_of_month(now))

    async def get_usage_progress(
        self, user_id: str, usage_type: UsageType, now: Optional[datetime] = None
    ) -> UsageProgress:
        user = await self.db.get_user(user_id)
        if not user:
            return UsageProgress()

        limits = get_plan_limits(user.subscription_plan)
        if usage_type == UsageType.POSTS:
            used = await self.get_current_month_posts(user_id, now)
            total = limits.posts
        else:
            used = len(await self.db.list_user_providers(user_id, connected_only=True))
            total = limits.platforms

        return UsageProgress(used=used, total=total, percentage=usage_percentage(used, total))

    async def get_remaining_posts(self, user_id: str, now: Optional[datetime] = None) -> int:
        user = await self.db.get_user(user_id)
        if not user:
            return 0
        used = await self.get_current_month_posts(user_id, now)
        return max(0, get_plan_limits(user.subscription_plan).posts - used)

    async def can_publish_post(self, user_id: str, now: Optional[datetime] = None) -> bool:
        return await self.get_remaining_posts(user_id, now) > 0

    async def get_usage_warning_level(
        self, user_id: str, usage_type: UsageType
    ) -> WarningLevel:
        progress = await self.get_usage_progress(user_id, usage_type)
        if progress.percentage >= 90:
            return WarningLevel.DANGER
        if progress.percentage >= 70:
            return WarningLevel.WARNING
        return WarningLevel.SAFE

    async def has_reached_limit(self, user_id: str, usage_type: UsageType) -> bool:
        progress = await self.get_usage_progress(user_id, usage_type)
        return progress.used >= progress.total

    async def format_usage_display(self, user_id: str, usage_type: UsageType) -> str:
        progress = await self.get_usage_progress(user_id, usage_type)
        return f"{progress.used}/{progress.total} {usage_type.value}"

    async def get_platform_connection_info(self, user_id: str) -> PlatformConnectionInfo:
        user = await self.db.get_user(user_id)
        if not user:
            return PlatformConnectionInfo(
                can_connect_more=False,
                connected_count=0,
                max_allowed=0,
                remaining=0,
                has_reached_limit=True,
            )

        max_allowed = get_plan_limits(user.subscription_plan).platforms
        connected = len(await self.db.list_user_providers(user_id, connected_only=True))
        return PlatformConnectionInfo(
            can_connect_more=connected < max_allowed,
            connected_count=connected,
            max_allowed=max_allowed,
            remaining=max(0, max_allowed - connected),
            has_reached_limit=connected >= max_allowed,
        )

    async def check_and_notify_quota(self, user_id: str, now: Optional[datetime] = None) -> None:
        """Notify the user exactly when monthly post usage hits 80 % or 100 %."""
        progress = await self.get_usage_progress(user_id, UsageType.POSTS, now)
        if progress.percentage not in (80, 100):
            return

        link = f"{self.settings.public_base_url}/pricing"
        if progress.percentage == 80:
            await self.notifications.notify(
                user_id,
                "⚠️ 80% Posts Quota Used",
                f"You've used {progress.used}/{progress.total} posts this month. "
                "Consider upgrading for more capacity.",
                link=link
            )
        else:
            await self.notifications.notify(
                user_id,
                "🚫 Posts Quota Exhausted",
                f"You've reached your limit of {progress.total} posts for this month. "
                "Upgrade to continue or wait until next month.",
                link=link
            )
