"""
Publishing Service

This service handles publishing content to social media platforms and
managing the publishing workflow:
- Interactive publishing and scheduling from the composer
- Multi-platform publishing with a per-platform summary
- Dispatch of scheduled posts once they fall due
- Token refresh, quota bookkeeping and failure notifications
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

import structlog

from postpilot.config.settings import get_settings
from postpilot.integrations.base import PlatformClient
from postpilot.integrations.devto import devto_client
from postpilot.integrations.firestore import FirestoreClient, firestore_client
from postpilot.integrations.linkedin import linkedin_client
from postpilot.integrations.pinterest import pinterest_client
from postpilot.integrations.twitter import twitter_client
from postpilot.models.content import (
    DispatchDetail,
    DispatchReport,
    MultiPublishResult,
    PlatformPublishResult,
    Post,
    PostStatus,
    PostType,
    PublishingResult,
    PublishResponse,
)
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.services.notifications import NotificationService
from postpilot.services.quota import QuotaService
from postpilot.services.rate_limiter import SlidingWindowLimiter, rate_limiters
from postpilot.utils.error_handling import (
    APIRateLimitError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    PostPilotError,
    ProviderNotConnectedError,
    QuotaExceededError,
    ValidationError,
)
from postpilot.utils.formatting import format_content_for_platform, validate_post_content
from postpilot.utils.logger import log_business_event, log_user_action
from postpilot.utils.time import ensure_utc, utcnow
from postpilot.utils.timezone import validate_schedule_time

PREVIEW_LENGTH = 50


def default_platform_clients() -> Dict[Platform, PlatformClient]:
    return {
        Platform.LINKEDIN: linkedin_client,
        Platform.TWITTER: twitter_client,
        Platform.PINTEREST: pinterest_client,
        Platform.DEVTO: devto_client,
    }


def _preview(content: str) -> str:
    suffix = "..." if len(content) > PREVIEW_LENGTH else ""
    return f"{content[:PREVIEW_LENGTH]}{suffix}"


class PublishingService:
    """Service for publishing content to social media platforms."""

    def __init__(
        self,
        db: Optional[FirestoreClient] = None,
        clients: Optional[Dict[Platform, PlatformClient]] = None,
        quota: Optional[QuotaService] = None,
        notifications: Optional[NotificationService] = None,
        limiter: Optional[SlidingWindowLimiter] = None
    ):
        """Initialize publishing service."""
        self.settings = get_settings()
        self.logger = structlog.get_logger(__name__)
        self.db = db or firestore_client
        self.clients = clients or default_platform_clients()
        self.notifications = notifications or NotificationService(self.db)
        self.quota = quota or QuotaService(self.db, self.notifications)
        self.limiter = limiter or rate_limiters["social_post"]

    async def publish_post(
        self,
        user_id: str,
        platform: Platform,
        content: str,
        media_urls: Optional[List[str]] = None,
        media_alts: Optional[List[str]] = None,
        post_type: PostType = PostType.IMMEDIATE,
        scheduled_for: Optional[datetime] = None
    ) -> PublishResponse:
        """
        Publish or schedule content on one platform for a user.

        Args:
            user_id: Acting user
            platform: Target platform
            content: Raw composer content
            media_urls: Image URLs to attach
            media_alts: Alt texts matching ``media_urls``
            post_type: Publish now or store for later dispatch
            scheduled_for: Dispatch time for scheduled posts

        Returns:
            PublishResponse describing the stored post

        Raises:
            PostPilotError: when validation, quota, limits or the platform refuse
        """
        media_urls = media_urls or []
        self.logger.info(
            "Publishing post",
            user_id=user_id,
            platform=platform.value,
            post_type=post_type.value
        )

        formatted = format_content_for_platform(platform, content)
        error = validate_post_content(platform, formatted, media_urls)
        if error:
            raise ValidationError(error, field="content")

        if not await self.quota.can_publish_post(user_id):
            raise QuotaExceededError("Monthly post quota reached")

        since = utcnow() - timedelta(hours=self.settings.duplicate_window_hours)
        if await self.db.find_duplicate_post(user_id, platform, formatted, since):
            raise ValidationError(
                "You have already scheduled or posted this content in the last 24 hours",
                field="content"
            )

        await self.limiter.enforce(user_id)

        provider = await self.db.get_connected_provider(user_id, platform)
        if not provider or not provider.access_token:
            raise ProviderNotConnectedError(f"{platform.label} not connected", platform=platform.value)

        if post_type == PostType.SCHEDULED:
            return await self._schedule_post(user_id, provider, formatted, media_urls, scheduled_for)

        check = await self.quota.check_quota_before_publish(provider.id)
        if not check.allowed:
            await self.quota.log_failed_post(provider.id, check.message)
            raise QuotaExceededError(check.message)

        gap = await self.quota.check_rate_limit(provider.id)
        if not gap.allowed:
            raise APIRateLimitError(gap.message, retry_after=gap.wait_time)

        provider = await self._ensure_fresh_token(provider)
        result = await self.clients[platform].publish_post(
            provider, formatted, media_urls, media_alts
        )

        if not result.success:
            await self.db.create_post(Post(
                user_id=user_id,
                social_provider_id=provider.id,
                platform=platform,
                content=formatted,
                media_urls=media_urls,
                status=PostStatus.FAILED,
                error_message=result.error_message,
            ))
            raise ExternalServiceError(
                result.error_message or f"Failed to post to {platform.label}",
                service_name=platform.value
            )

        post = await self.db.create_post(Post(
            user_id=user_id,
            social_provider_id=provider.id,
            platform=platform,
            content=formatted,
            media_urls=media_urls,
            status=PostStatus.POSTED,
            posted_at=result.published_at or utcnow(),
            platform_post_id=result.post_id,
            post_url=result.post_url,
        ))
        await self._record_success(provider, user_id, post)

        return PublishResponse(
            platform=platform,
            post_id=post.id,
            platform_post_id=result.post_id,
            post_url=result.post_url,
            message=f"Posted to {platform.label} successfully!",
        )

    async def _schedule_post(
        self,
        user_id: str,
        provider: SocialProvider,
        content: str,
        media_urls: List[str],
        scheduled_for: Optional[datetime]
    ) -> PublishResponse:
        user = await self.db.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")

        if not user.plan_limits.scheduling:
            raise PermissionDeniedError(
                "Scheduling is not available on your plan. Upgrade to schedule posts."
            )

        error = validate_schedule_time(scheduled_for, user.timezone)
        if error:
            raise ValidationError(error, field="scheduled_for")

        post = await self.db.create_post(Post(
            user_id=user_id,
            social_provider_id=provider.id,
            platform=provider.provider,
            content=content,
            media_urls=media_urls,
            status=PostStatus.SCHEDULED,
            scheduled_for=ensure_utc(scheduled_for),
        ))
        log_user_action(
            user_id, "schedule_post",
            resource_type="post",
            resource_id=post.id,
            platform=provider.provider.value
        )

        return PublishResponse(
            platform=provider.provider,
            post_id=post.id,
            scheduled=True,
            scheduled_for=post.scheduled_for,
            message=f"Post scheduled for {provider.provider.label} successfully!",
        )

    async def publish_to_multiple_platforms(
        self,
        user_id: str,
        platforms: List[Platform],
        content: str,
        media_urls: Optional[List[str]] = None,
        media_alts: Optional[List[str]] = None,
        post_type: PostType = PostType.IMMEDIATE,
        scheduled_for: Optional[datetime] = None
    ) -> MultiPublishResult:
        """Publish the same content to several platforms, one after another."""
        action = "Scheduled" if post_type == PostType.SCHEDULED else "Posted"
        results: List[PlatformPublishResult] = []

        for platform in platforms:
            try:
                response = await self.publish_post(
                    user_id,
                    platform,
                    content,
                    media_urls=media_urls,
                    media_alts=media_alts,
                    post_type=post_type,
                    scheduled_for=scheduled_for
                )
                results.append(PlatformPublishResult(
                    platform=platform,
                    success=True,
                    message=f"✅ {action}",
                    post_id=response.post_id,
                    scheduled=response.scheduled,
                ))
            except PostPilotError as e:
                self.logger.warning(
                    "Platform publishing failed",
                    user_id=user_id,
                    platform=platform.value,
                    error=e.message
                )
                results.append(PlatformPublishResult(
                    platform=platform,
                    success=False,
                    message=f"❌ {e.message}",
                    error=e.message,
                ))
            except Exception as e:
                error = str(e) or "Failed to connect"
                self.logger.error(
                    "Unexpected error publishing to platform",
                    user_id=user_id,
                    platform=platform.value,
                    error=error,
                    error_type=type(e).__name__
                )
                results.append(PlatformPublishResult(
                    platform=platform,
                    success=False,
                    message=f"❌ {error}",
                    error=error,
                ))

        success_count = sum(1 for result in results if result.success)
        total_count = len(platforms)

        if success_count == total_count:
            plural = "s" if total_count > 1 else ""
            message = f"✅ Successfully {action.lower()} to all {total_count} platform{plural}!"
        else:
            details = " | ".join(f"{result.platform.value}: {result.message}" for result in results)
            message = f"{action} to {success_count} of {total_count} platforms. {details}"

        return MultiPublishResult(
            results=results,
            success_count=success_count,
            total_count=total_count,
            message=message,
        )

    async def publish_scheduled_post(self, post_id: str, user_id: str) -> PublishResponse:
        """Publish one of the user's scheduled posts right away."""
        post = await self.db.get_post(post_id)
        if not post or post.user_id != user_id:
            raise NotFoundError("Post not found")

        if post.status != PostStatus.SCHEDULED:
            raise ValidationError("Only scheduled posts can be published now")

        if not await self.quota.can_publish_post(user_id):
            raise QuotaExceededError("Monthly post quota reached")

        gap = await self.quota.check_rate_limit(post.social_provider_id)
        if not gap.allowed:
            raise APIRateLimitError(gap.message, retry_after=gap.wait_time)

        result = await self._publish_existing_post(post)
        if not result.success:
            await self._mark_failed(post.id, result.error_message or "Unknown error occurred")
            raise ExternalServiceError(
                result.error_message or f"Failed to post to {post.platform.label}",
                service_name=post.platform.value
            )

        return PublishResponse(
            platform=post.platform,
            post_id=post.id,
            platform_post_id=result.post_id,
            post_url=result.post_url,
            message=f"Posted to {post.platform.label} successfully!",
        )

    async def process_due_posts(self, now: Optional[datetime] = None) -> DispatchReport:
        """
        Dispatch every scheduled post due at or before ``now``.

        Posts are handled one at a time. A refused post is marked FAILED with
        the platform's error and the owner is notified either way.
        """
        now = ensure_utc(now) or utcnow()
        due_posts = await self.db.get_due_posts(now)
        report = DispatchReport(processed=len(due_posts))

        self.logger.info("Dispatching due posts", count=len(due_posts), now=now.isoformat())

        for post in due_posts:
            try:
                result = await self._publish_existing_post(post)

                if result.success:
                    await self.notifications.notify(
                        post.user_id,
                        "✅ Post Published Successfully",
                        f'Your scheduled post was published to {post.platform.value}. '
                        f'"{_preview(post.content)}"',
                        link=result.post_url
                    )
                    report.success += 1
                    report.details.append(DispatchDetail(
                        post_id=post.id, platform=post.platform, status="success"
                    ))
                else:
                    error = result.error_message or "Unknown error occurred"
                    await self._mark_failed(post.id, error)
                    await self.notifications.notify(
                        post.user_id,
                        "❌ Post Publishing Failed",
                        f"Failed to publish your scheduled post to {post.platform.value}. "
                        f"Error: {error}"
                    )
                    report.failed += 1
                    report.details.append(DispatchDetail(
                        post_id=post.id, platform=post.platform, status="failed", error=error
                    ))

            except Exception as e:
                error = str(e) or "Unknown error"
                self.logger.error("Error processing scheduled post", post_id=post.id, error=error)
                await self._mark_failed(post.id, error)
                await self.notifications.notify(
                    post.user_id,
                    "❌ Post Publishing Error",
                    f"An error occurred while publishing your post: {error}"
                )
                report.failed += 1
                report.details.append(DispatchDetail(
                    post_id=post.id, platform=post.platform, status="error", error=error
                ))

        log_business_event(
            "scheduled_posts_dispatched",
            processed=report.processed,
            success=report.success,
            failed=report.failed
        )
        return report

    async def _publish_existing_post(self, post: Post) -> PublishingResult:
        """Send a stored post through its own account and mark it POSTED on success."""
        provider = await self.db.get_provider(post.social_provider_id)
        if not provider or not provider.is_connected or not provider.access_token:
            raise ProviderNotConnectedError(
                f"{post.platform.label} not connected", platform=post.platform.value
            )

        check = await self.quota.check_quota_before_publish(provider.id)
        if not check.allowed:
            return PublishingResult(
                platform=post.platform, success=False, error_message=check.message
            )

        provider = await self._ensure_fresh_token(provider)
        result = await self.clients[post.platform].publish_post(
            provider, post.content.strip(), post.media_urls
        )
        if not result.success:
            return result

        now = utcnow()
        await self.db.update_post(post.id, {
            "status": PostStatus.POSTED,
            "posted_at": result.published_at or now,
            "platform_post_id": result.post_id,
            "post_url": result.post_url,
            "error_message": None,
            "updated_at": now,
        })
        await self._record_success(provider, post.user_id, post)
        return result

    async def _ensure_fresh_token(self, provider: SocialProvider) -> SocialProvider:
        """Refresh an expired token, or disconnect the account when that is impossible."""
        if not provider.is_token_expired():
            return provider

        label = provider.provider.label
        client = self.clients[provider.provider]
        tokens = None
        if client.supports_refresh and provider.refresh_token:
            tokens = await client.refresh_access_token(provider)

        if tokens:
            tokens["updated_at"] = utcnow()
            await self.db.update_provider(provider.id, tokens)
            self.logger.info("Access token refreshed", provider_id=provider.id, platform=label)
            return provider.model_copy(update=tokens)

        await self.db.update_provider(provider.id, {
            "is_connected": False,
            "disconnected_at": utcnow(),
        })
        self.logger.warning("Access token expired, account disconnected", provider_id=provider.id)
        raise ProviderNotConnectedError(
            f"{label} token expired. Please reconnect.", platform=provider.provider.value
        )

    async def _record_success(self, provider: SocialProvider, user_id: str, post: Post) -> None:
        """Counters and quota notifications after the platform accepted a post."""
        try:
            await self.quota.increment_post_count(provider.id, user_id)
            await self.quota.check_and_notify_quota(user_id)
        except Exception as e:
            # The post is live; bookkeeping failures must not report it as failed
            self.logger.error(
                "Post-publish bookkeeping failed",
                post_id=post.id,
                provider_id=provider.id,
                error=str(e)
            )

        log_business_event(
            "post_published",
            user_id=user_id,
            post_id=post.id,
            platform=provider.provider.value
        )

    async def _mark_failed(self, post_id: str, error: str) -> None:
        await self.db.update_post(post_id, {
            "status": PostStatus.FAILED,
            "error_message": error,
            "updated_at": utcnow(),
        })
