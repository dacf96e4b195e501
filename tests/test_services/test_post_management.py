"""
Tests for Post Management Service
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from postpilot.models.content import Post, PostStatus
from postpilot.models.platform import Platform
from postpilot.services.post_management import PostManagementService
from postpilot.utils.error_handling import NotFoundError, PermissionDeniedError, ValidationError
from postpilot.utils.time import utcnow


@pytest.fixture
def service(db) -> PostManagementService:
    return PostManagementService(db)


async def make_post(db, provider, status, content="Some content", **kwargs) -> Post:
    return await db.create_post(Post(
        user_id=provider.user_id,
        social_provider_id=provider.id,
        platform=provider.provider,
        content=content,
        status=status,
        **kwargs
    ))


@pytest_asyncio.fixture
async def scheduled_post(db, twitter_provider) -> Post:
    return await make_post(
        db, twitter_provider, PostStatus.SCHEDULED,
        scheduled_for=utcnow() + timedelta(hours=2),
        media_urls=["https://example.com/a.png"],
    )


class TestEditPost:

    @pytest.mark.asyncio
    async def test_edit_keeps_media_and_time(self, service, db, scheduled_post):
        updated = await service.edit_post(scheduled_post.id, scheduled_post.user_id, "New text")

        assert updated.content == "New text"
        stored = await db.get_post(scheduled_post.id)
        assert stored.content == "New text"
        assert stored.media_urls == ["https://example.com/a.png"]
        assert stored.scheduled_for == scheduled_post.scheduled_for

    @pytest.mark.asyncio
    async def test_edit_requires_content(self, service, scheduled_post):
        with pytest.raises(ValidationError, match="Content is required"):
            await service.edit_post(scheduled_post.id, scheduled_post.user_id, "  ")

    @pytest.mark.asyncio
    async def test_cannot_edit_published(self, service, db, twitter_provider):
        post = await make_post(db, twitter_provider, PostStatus.POSTED)
        with pytest.raises(ValidationError, match="Cannot edit already published posts"):
            await service.edit_post(post.id, post.user_id, "Changed")

    @pytest.mark.asyncio
    async def test_cannot_edit_failed(self, service, db, twitter_provider):
        post = await make_post(db, twitter_provider, PostStatus.FAILED)
        with pytest.raises(ValidationError, match="Cannot edit failed posts"):
            await service.edit_post(post.id, post.user_id, "Changed")

    @pytest.mark.asyncio
    async def test_edit_someone_elses_post(self, service, scheduled_post):
        with pytest.raises(PermissionDeniedError):
            await service.edit_post(scheduled_post.id, "intruder", "Changed")

    @pytest.mark.asyncio
    async def test_edit_missing_post(self, service):
        with pytest.raises(NotFoundError):
            await service.edit_post("missing", "user-1", "Changed")


class TestReschedule:

    @pytest.mark.asyncio
    async def test_reschedule_scheduled_post(self, service, db, scheduled_post):
        when = utcnow() + timedelta(days=2)
        await service.reschedule_post(scheduled_post.id, scheduled_post.user_id, when)

        stored = await db.get_post(scheduled_post.id)
        assert stored.scheduled_for == when

    @pytest.mark.asyncio
    async def test_reschedule_into_past(self, service, scheduled_post):
        with pytest.raises(ValidationError, match="must be in the future"):
            await service.reschedule_post(
                scheduled_post.id, scheduled_post.user_id, utcnow() - timedelta(minutes=1)
            )

    @pytest.mark.asyncio
    async def test_reschedule_draft_rejected(self, service, db, twitter_provider):
        post = await make_post(db, twitter_provider, PostStatus.DRAFT)
        with pytest.raises(ValidationError, match="Only scheduled posts"):
            await service.reschedule_post(post.id, post.user_id, utcnow() + timedelta(hours=1))


class TestDuplicate:

    @pytest.mark.asyncio
    async def test_duplicate_defaults_to_tomorrow(self, service, db, twitter_provider):
        original = await make_post(db, twitter_provider, PostStatus.POSTED, content="Evergreen")

        copy = await service.duplicate_post(original.id, original.user_id)

        assert copy.id != original.id
        assert copy.status == PostStatus.SCHEDULED
        assert copy.content == "Evergreen"
        delay = copy.scheduled_for - utcnow()
        assert timedelta(hours=23, minutes=59) < delay <= timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_duplicate_with_explicit_time(self, service, scheduled_post):
        when = utcnow() + timedelta(days=3)
        copy = await service.duplicate_post(scheduled_post.id, scheduled_post.user_id, when)
        assert copy.scheduled_for == when


class TestBulkOperations:

    @pytest.mark.asyncio
    async def test_bulk_delete(self, service, db, twitter_provider):
        first = await make_post(db, twitter_provider, PostStatus.SCHEDULED, content="one")
        second = await make_post(db, twitter_provider, PostStatus.DRAFT, content="two")

        deleted = await service.bulk_delete_posts([first.id, second.id], twitter_provider.user_id)

        assert deleted == 2
        assert await db.get_post(first.id) is None

    @pytest.mark.asyncio
    async def test_bulk_delete_refuses_published(self, service, db, twitter_provider):
        draft = await make_post(db, twitter_provider, PostStatus.DRAFT, content="draft")
        posted = await make_post(db, twitter_provider, PostStatus.POSTED, content="live")

        with pytest.raises(ValidationError) as exc_info:
            await service.bulk_delete_posts([draft.id, posted.id], twitter_provider.user_id)

        assert exc_info.value.message == "Cannot delete already published posts"
        assert exc_info.value.details == {"publishedPostIds": [posted.id]}
        assert await db.get_post(draft.id) is not None

    @pytest.mark.asyncio
    async def test_bulk_delete_refuses_foreign_posts(self, service, db, twitter_provider):
        post = await make_post(db, twitter_provider, PostStatus.DRAFT)

        with pytest.raises(PermissionDeniedError, match="Unauthorized to delete some posts"):
            await service.bulk_delete_posts([post.id], "intruder")

    @pytest.mark.asyncio
    async def test_bulk_reschedule_only_touches_scheduled(self, service, db, twitter_provider):
        scheduled = await make_post(
            db, twitter_provider, PostStatus.SCHEDULED, content="s",
            scheduled_for=utcnow() + timedelta(hours=1),
        )
        draft = await make_post(db, twitter_provider, PostStatus.DRAFT, content="d")
        when = utcnow() + timedelta(days=1)

        updated = await service.bulk_reschedule_posts(
            [scheduled.id, draft.id], twitter_provider.user_id, when
        )

        assert updated == 1
        assert (await db.get_post(scheduled.id)).scheduled_for == when
        assert (await db.get_post(draft.id)).scheduled_for is None

    @pytest.mark.asyncio
    async def test_bulk_reschedule_requires_future_time(self, service, twitter_provider):
        with pytest.raises(ValidationError, match="must be in the future"):
            await service.bulk_reschedule_posts(
                ["any"], twitter_provider.user_id, utcnow() - timedelta(hours=1)
            )


class TestListing:

    @pytest.mark.asyncio
    async def test_list_with_filters_and_pagination(self, service, db, twitter_provider, linkedin_provider):
        for index in range(3):
            await make_post(db, twitter_provider, PostStatus.POSTED, content=f"tweet {index}")
        await make_post(db, linkedin_provider, PostStatus.POSTED, content="update")

        posts, total = await service.list_posts(
            twitter_provider.user_id, platform=Platform.TWITTER, limit=2, offset=0
        )
        assert total == 3
        assert len(posts) == 2

        posts, total = await service.list_posts(twitter_provider.user_id, status=PostStatus.DRAFT)
        assert total == 0
