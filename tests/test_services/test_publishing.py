"""
Tests for Publishing Service

This module contains tests for interactive publishing, scheduling,
multi-platform publishing and the dispatch of due scheduled posts.
"""

from datetime import timedelta

import httpx
import pytest

from postpilot.integrations.twitter import TwitterClient
from postpilot.models.content import Post, PostStatus, PostType, PublishingResult
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.utils.error_handling import (
    APIRateLimitError,
    ExternalServiceError,
    PermissionDeniedError,
    ProviderNotConnectedError,
    QuotaExceededError,
    ValidationError,
)
from postpilot.utils.time import epoch_seconds, utcnow


class TestPublishPost:
    """Test publishing a single post right away."""

    @pytest.mark.asyncio
    async def test_publish_success_stores_posted_post(
        self, publishing_service, db, twitter_provider, mock_platform_clients
    ):
        response = await publishing_service.publish_post(
            twitter_provider.user_id, Platform.TWITTER, "  **Hello** world  "
        )

        assert response.success is True
        assert response.message == "Posted to Twitter successfully!"
        assert response.platform_post_id == "twitter-post-1"

        call = mock_platform_clients[Platform.TWITTER].publish_post.call_args
        assert call.args[1] == "Hello world"

        post = await db.get_post(response.post_id)
        assert post.status == PostStatus.POSTED
        assert post.platform_post_id == "twitter-post-1"
        assert post.posted_at is not None

        provider = await db.get_provider(twitter_provider.id)
        assert provider.total_posts_published == 1
        assert provider.last_used_at is not None

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self, publishing_service, twitter_provider):
        with pytest.raises(ValidationError, match="Content is required"):
            await publishing_service.publish_post(twitter_provider.user_id, Platform.TWITTER, "   ")

    @pytest.mark.asyncio
    async def test_pinterest_requires_image(self, publishing_service, creator_user):
        with pytest.raises(ValidationError, match="at least one image"):
            await publishing_service.publish_post(creator_user.id, Platform.PINTEREST, "A pin")

    @pytest.mark.asyncio
    async def test_not_connected_platform(self, publishing_service, twitter_provider):
        with pytest.raises(ProviderNotConnectedError, match="LinkedIn not connected"):
            await publishing_service.publish_post(
                twitter_provider.user_id, Platform.LINKEDIN, "Hello LinkedIn"
            )

    @pytest.mark.asyncio
    async def test_limiter_is_applied(self, publishing_service, twitter_provider, mock_limiter):
        await publishing_service.publish_post(twitter_provider.user_id, Platform.TWITTER, "Limited")
        mock_limiter.enforce.assert_awaited_once_with(twitter_provider.user_id)

    @pytest.mark.asyncio
    async def test_monthly_allowance_reached(self, publishing_service, db, free_user):
        provider = await db.create_provider(SocialProvider(
            user_id=free_user.id, provider=Platform.TWITTER, access_token="token"
        ))
        for index in range(5):
            await db.create_post(Post(
                user_id=free_user.id,
                social_provider_id=provider.id,
                platform=Platform.TWITTER,
                content=f"Earlier post {index}",
                status=PostStatus.POSTED,
                posted_at=utcnow(),
            ))

        with pytest.raises(QuotaExceededError, match="Monthly post quota reached"):
            await publishing_service.publish_post(free_user.id, Platform.TWITTER, "One too many")

    @pytest.mark.asyncio
    async def test_duplicate_content_rejected(self, publishing_service, db, twitter_provider):
        await db.create_post(Post(
            user_id=twitter_provider.user_id,
            social_provider_id=twitter_provider.id,
            platform=Platform.TWITTER,
            content="Same words",
            status=PostStatus.SCHEDULED,
            scheduled_for=utcnow() + timedelta(hours=2),
        ))

        with pytest.raises(ValidationError, match="last 24 hours"):
            await publishing_service.publish_post(
                twitter_provider.user_id, Platform.TWITTER, "Same words"
            )

    @pytest.mark.asyncio
    async def test_failed_duplicate_does_not_block(self, publishing_service, db, twitter_provider):
        await db.create_post(Post(
            user_id=twitter_provider.user_id,
            social_provider_id=twitter_provider.id,
            platform=Platform.TWITTER,
            content="Retry me",
            status=PostStatus.FAILED,
        ))

        response = await publishing_service.publish_post(
            twitter_provider.user_id, Platform.TWITTER, "Retry me"
        )
        assert response.success is True

    @pytest.mark.asyncio
    async def test_minimum_gap_between_posts(self, publishing_service, db, twitter_provider):
        await db.update_provider(twitter_provider.id, {"last_used_at": utcnow() - timedelta(seconds=10)})

        with pytest.raises(APIRateLimitError) as exc_info:
            await publishing_service.publish_post(twitter_provider.user_id, Platform.TWITTER, "Too soon")

        assert exc_info.value.retry_after in (20, 21)
        assert "before posting again" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_exhausted_account_quota_logs_failed_post(
        self, publishing_service, db, twitter_provider
    ):
        await db.update_provider(twitter_provider.id, {"quota_exhausted": True})

        with pytest.raises(QuotaExceededError, match="quota has been exhausted"):
            await publishing_service.publish_post(twitter_provider.user_id, Platform.TWITTER, "Blocked")

        posts, total = await db.list_user_posts(twitter_provider.user_id, status=PostStatus.FAILED)
        assert total == 1
        assert posts[0].content == "Failed post"

    @pytest.mark.asyncio
    async def test_platform_failure_stores_failed_post(
        self, publishing_service, db, twitter_provider, mock_platform_clients
    ):
        mock_platform_clients[Platform.TWITTER].publish_post.return_value = PublishingResult(
            platform=Platform.TWITTER, success=False, error_message="Twitter API error: Forbidden"
        )

        with pytest.raises(ExternalServiceError, match="Forbidden"):
            await publishing_service.publish_post(twitter_provider.user_id, Platform.TWITTER, "Nope")

        posts, _ = await db.list_user_posts(twitter_provider.user_id)
        assert posts[0].status == PostStatus.FAILED
        assert posts[0].error_message == "Twitter API error: Forbidden"

        provider = await db.get_provider(twitter_provider.id)
        assert provider.total_posts_published == 0

    @pytest.mark.asyncio
    async def test_quota_notification_at_eighty_percent(
        self, publishing_service, db, notifications, twitter_provider
    ):
        # Creator plan allows 20 posts a month; the 16th is 80 %
        for index in range(15):
            await db.create_post(Post(
                user_id=twitter_provider.user_id,
                social_provider_id=twitter_provider.id,
                platform=Platform.TWITTER,
                content=f"Post {index}",
                status=PostStatus.POSTED,
                posted_at=utcnow(),
            ))

        await publishing_service.publish_post(twitter_provider.user_id, Platform.TWITTER, "Sixteenth")

        inbox = await notifications.list_notifications(twitter_provider.user_id)
        assert [n.title for n in inbox] == ["⚠️ 80% Posts Quota Used"]
        assert inbox[0].link.endswith("/pricing")


class TestTokenRefresh:
    """Test handling of expired access tokens."""

    @pytest.mark.asyncio
    async def test_expired_token_is_refreshed(
        self, publishing_service, db, twitter_provider, mock_platform_clients
    ):
        await db.update_provider(twitter_provider.id, {"expires_at": epoch_seconds() - 60})
        client = mock_platform_clients[Platform.TWITTER]
        client.refresh_access_token.return_value = {
            "access_token": "fresh-token",
            "refresh_token": "fresh-refresh",
            "expires_at": epoch_seconds() + 7200,
        }

        await publishing_service.publish_post(twitter_provider.user_id, Platform.TWITTER, "Fresh")

        used_provider = client.publish_post.call_args.args[0]
        assert used_provider.access_token == "fresh-token"

        stored = await db.get_provider(twitter_provider.id)
        assert stored.access_token == "fresh-token"
        assert stored.refresh_token == "fresh-refresh"

    @pytest.mark.asyncio
    async def test_unrefreshable_token_disconnects(
        self, publishing_service, db, twitter_provider, mock_platform_clients
    ):
        await db.update_provider(twitter_provider.id, {"expires_at": epoch_seconds() - 60})

        with pytest.raises(ProviderNotConnectedError, match="token expired"):
            await publishing_service.publish_post(twitter_provider.user_id, Platform.TWITTER, "Stale")

        stored = await db.get_provider(twitter_provider.id)
        assert stored.is_connected is False
        assert stored.disconnected_at is not None
        mock_platform_clients[Platform.TWITTER].publish_post.assert_not_called()


class TestSchedulePost:
    """Test scheduling posts for later."""

    @pytest.mark.asyncio
    async def test_schedule_stores_scheduled_post(
        self, publishing_service, db, twitter_provider, mock_platform_clients
    ):
        when = utcnow() + timedelta(hours=3)

        response = await publishing_service.publish_post(
            twitter_provider.user_id,
            Platform.TWITTER,
            "Later",
            post_type=PostType.SCHEDULED,
            scheduled_for=when,
        )

        assert response.scheduled is True
        assert response.message == "Post scheduled for Twitter successfully!"
        post = await db.get_post(response.post_id)
        assert post.status == PostStatus.SCHEDULED
        assert post.scheduled_for == when
        mock_platform_clients[Platform.TWITTER].publish_post.assert_not_called()

    @pytest.mark.asyncio
    async def test_schedule_in_past_rejected(self, publishing_service, twitter_provider):
        with pytest.raises(ValidationError, match="in the past"):
            await publishing_service.publish_post(
                twitter_provider.user_id,
                Platform.TWITTER,
                "Too late",
                post_type=PostType.SCHEDULED,
                scheduled_for=utcnow() - timedelta(minutes=1),
            )

    @pytest.mark.asyncio
    async def test_schedule_requires_timezone(self, publishing_service, db, twitter_provider):
        await db.update_user(twitter_provider.user_id, {"timezone": None})

        with pytest.raises(ValidationError, match="timezone"):
            await publishing_service.publish_post(
                twitter_provider.user_id,
                Platform.TWITTER,
                "No zone",
                post_type=PostType.SCHEDULED,
                scheduled_for=utcnow() + timedelta(hours=1),
            )

    @pytest.mark.asyncio
    async def test_free_plan_cannot_schedule(self, publishing_service, db, free_user):
        await db.create_provider(SocialProvider(
            user_id=free_user.id, provider=Platform.LINKEDIN, access_token="token"
        ))

        with pytest.raises(PermissionDeniedError, match="Scheduling"):
            await publishing_service.publish_post(
                free_user.id,
                Platform.LINKEDIN,
                "Free plan",
                post_type=PostType.SCHEDULED,
                scheduled_for=utcnow() + timedelta(hours=1),
            )


class TestMultiPlatform:
    """Test publishing one piece of content to several platforms."""

    @pytest.mark.asyncio
    async def test_all_platforms_succeed(self, publishing_service, twitter_provider, linkedin_provider):
        result = await publishing_service.publish_to_multiple_platforms(
            twitter_provider.user_id, [Platform.TWITTER, Platform.LINKEDIN], "Everywhere"
        )

        assert result.success_count == 2
        assert result.message == "✅ Successfully posted to all 2 platforms!"
        assert all(entry.message == "✅ Posted" for entry in result.results)

    @pytest.mark.asyncio
    async def test_partial_failure_summary(self, publishing_service, twitter_provider):
        result = await publishing_service.publish_to_multiple_platforms(
            twitter_provider.user_id, [Platform.TWITTER, Platform.LINKEDIN], "Somewhere"
        )

        assert result.success_count == 1
        assert result.total_count == 2
        assert result.message.startswith("Posted to 1 of 2 platforms.")
        failed = result.results[1]
        assert failed.success is False
        assert failed.message == "❌ LinkedIn not connected"

    @pytest.mark.asyncio
    async def test_unexpected_error_still_returns_summary(
        self, publishing_service, db, twitter_provider, linkedin_provider, mock_platform_clients
    ):
        mock_platform_clients[Platform.TWITTER].publish_post.side_effect = RuntimeError()

        result = await publishing_service.publish_to_multiple_platforms(
            twitter_provider.user_id, [Platform.LINKEDIN, Platform.TWITTER], "Hello both"
        )

        assert result.success_count == 1
        assert result.total_count == 2
        linkedin_entry, twitter_entry = result.results
        assert linkedin_entry.success is True
        assert twitter_entry.success is False
        assert twitter_entry.message == "❌ Failed to connect"

        posted = await db.get_post(linkedin_entry.post_id)
        assert posted.status == PostStatus.POSTED

    @pytest.mark.asyncio
    async def test_token_response_without_token_is_reported(
        self, publishing_service, db, twitter_provider, linkedin_provider
    ):
        await db.update_provider(twitter_provider.id, {
            "expires_at": epoch_seconds() - 60,
            "refresh_token": "refresh-1",
        })
        publishing_service.clients[Platform.TWITTER] = TwitterClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"token_type": "bearer"})
            )
        )

        result = await publishing_service.publish_to_multiple_platforms(
            twitter_provider.user_id, [Platform.LINKEDIN, Platform.TWITTER], "Hello both"
        )

        assert result.success_count == 1
        assert result.results[1].message == "❌ Twitter token expired. Please reconnect."


class TestDueDispatch:
    """Test the scheduled-post dispatch loop."""

    @pytest.mark.asyncio
    async def test_due_post_is_published(self, publishing_service, db, notifications, due_post):
        report = await publishing_service.process_due_posts()

        assert report.processed == 1
        assert report.success == 1
        assert report.details[0].status == "success"

        post = await db.get_post(due_post.id)
        assert post.status == PostStatus.POSTED
        assert post.platform_post_id == "twitter-post-1"

        inbox = await notifications.list_notifications(due_post.user_id)
        assert inbox[0].title == "✅ Post Published Successfully"
        assert '"Scheduled tweet that is now due"' in inbox[0].message

    @pytest.mark.asyncio
    async def test_future_post_is_left_alone(self, publishing_service, db, twitter_provider):
        await db.create_post(Post(
            user_id=twitter_provider.user_id,
            social_provider_id=twitter_provider.id,
            platform=Platform.TWITTER,
            content="Tomorrow",
            status=PostStatus.SCHEDULED,
            scheduled_for=utcnow() + timedelta(days=1),
        ))

        report = await publishing_service.process_due_posts()
        assert report.processed == 0

    @pytest.mark.asyncio
    async def test_cron_skips_minimum_gap(self, publishing_service, db, due_post):
        await db.update_provider(due_post.social_provider_id, {"last_used_at": utcnow()})

        report = await publishing_service.process_due_posts()
        assert report.success == 1

    @pytest.mark.asyncio
    async def test_failed_result_marks_post_failed(
        self, publishing_service, db, notifications, due_post, mock_platform_clients
    ):
        mock_platform_clients[Platform.TWITTER].publish_post.return_value = PublishingResult(
            platform=Platform.TWITTER, success=False, error_message="Twitter API error: Unauthorized"
        )

        report = await publishing_service.process_due_posts()

        assert report.failed == 1
        assert report.details[0].status == "failed"
        post = await db.get_post(due_post.id)
        assert post.status == PostStatus.FAILED
        assert post.error_message == "Twitter API error: Unauthorized"

        inbox = await notifications.list_notifications(due_post.user_id)
        assert inbox[0].title == "❌ Post Publishing Failed"

    @pytest.mark.asyncio
    async def test_exception_marks_post_failed(
        self, publishing_service, db, notifications, due_post, mock_platform_clients
    ):
        mock_platform_clients[Platform.TWITTER].publish_post.side_effect = RuntimeError("boom")

        report = await publishing_service.process_due_posts()

        assert report.details[0].status == "error"
        assert report.details[0].error == "boom"
        post = await db.get_post(due_post.id)
        assert post.status == PostStatus.FAILED

        inbox = await notifications.list_notifications(due_post.user_id)
        assert inbox[0].title == "❌ Post Publishing Error"

    @pytest.mark.asyncio
    async def test_exhausted_quota_fails_due_post(self, publishing_service, db, due_post):
        await db.update_provider(due_post.social_provider_id, {"quota_exhausted": True})

        report = await publishing_service.process_due_posts()

        assert report.failed == 1
        post = await db.get_post(due_post.id)
        assert post.status == PostStatus.FAILED
        assert "exhausted" in post.error_message


class TestPublishScheduledNow:
    """Test owner-triggered publishing of a scheduled post."""

    @pytest.mark.asyncio
    async def test_publish_scheduled_post_now(self, publishing_service, db, due_post):
        response = await publishing_service.publish_scheduled_post(due_post.id, due_post.user_id)

        assert response.message == "Posted to Twitter successfully!"
        post = await db.get_post(due_post.id)
        assert post.status == PostStatus.POSTED

    @pytest.mark.asyncio
    async def test_other_users_post_not_found(self, publishing_service, due_post):
        from postpilot.utils.error_handling import NotFoundError

        with pytest.raises(NotFoundError):
            await publishing_service.publish_scheduled_post(due_post.id, "someone-else")
