"""
Post Management Service

Owner-side operations on stored posts: editing, rescheduling,
duplicating, deleting (singly or in bulk) and listing.
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

import structlog

from postpilot.integrations.firestore import FirestoreClient, firestore_client
from postpilot.models.content import Post, PostStatus
from postpilot.models.platform import Platform
from postpilot.utils.error_handling import NotFoundError, PermissionDeniedError, ValidationError
from postpilot.utils.logger import log_user_action
from postpilot.utils.time import ensure_utc, utcnow

DEFAULT_DUPLICATE_DELAY = timedelta(hours=24)


class PostManagementService:
    """Service for managing a user's stored posts."""

    def __init__(self, db: Optional[FirestoreClient] = None):
        self.logger = structlog.get_logger(__name__)
        self.db = db or firestore_client

    async def get_post(self, post_id: str, user_id: str) -> Post:
        """Get a post owned by ``user_id``."""
        post = await self.db.get_post(post_id)
        if not post:
            raise NotFoundError("Post not found")
        if post.user_id != user_id:
            raise PermissionDeniedError("Unauthorized to access this post")
        return post

    async def list_posts(
        self,
        user_id: str,
        status: Optional[PostStatus] = None,
        platform: Optional[Platform] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Post], int]:
        return await self.db.list_user_posts(
            user_id, status=status, platform=platform, limit=limit, offset=offset
        )

    async def edit_post(
        self,
        post_id: str,
        user_id: str,
        content: str,
        media_urls: Optional[List[str]] = None,
        scheduled_for: Optional[datetime] = None
    ) -> Post:
        """
        Change the content of a draft or scheduled post.

        Media and schedule time are kept unless new values are given.
        """
        if not content or not content.strip():
            raise ValidationError("Content is required", field="content")

        post = await self.get_post(post_id, user_id)

        if post.status == PostStatus.POSTED:
            raise ValidationError("Cannot edit already published posts")
        if post.status == PostStatus.FAILED:
            raise ValidationError("Cannot edit failed posts")

        updates = {
            "content": content,
            "media_urls": media_urls if media_urls is not None else post.media_urls,
            "scheduled_for": ensure_utc(scheduled_for) or post.scheduled_for,
            "updated_at": utcnow(),
        }
        await self.db.update_post(post_id, updates)
        log_user_action(user_id, "edit_post", resource_type="post", resource_id=post_id)
        return post.model_copy(update=updates)

    async def reschedule_post(self, post_id: str, user_id: str, scheduled_for: datetime) -> Post:
        post = await self.get_post(post_id, user_id)

        if post.status != PostStatus.SCHEDULED:
            raise ValidationError("Only scheduled posts can be rescheduled")

        scheduled_for = self._future_time(scheduled_for)
        updates = {"scheduled_for": scheduled_for, "updated_at": utcnow()}
        await self.db.update_post(post_id, updates)

        log_user_action(user_id, "reschedule_post", resource_type="post", resource_id=post_id)
        return post.model_copy(update=updates)

    async def duplicate_post(
        self,
        post_id: str,
        user_id: str,
        scheduled_for: Optional[datetime] = None
    ) -> Post:
        """Copy a post into a new SCHEDULED post, a day from now unless told otherwise."""
        post = await self.get_post(post_id, user_id)

        copy = await self.db.create_post(Post(
            user_id=user_id,
            social_provider_id=post.social_provider_id,
            platform=post.platform,
            content=post.content,
            media_urls=list(post.media_urls),
            status=PostStatus.SCHEDULED,
            scheduled_for=ensure_utc(scheduled_for) or utcnow() + DEFAULT_DUPLICATE_DELAY,
        ))

        log_user_action(
            user_id, "duplicate_post",
            resource_type="post",
            resource_id=copy.id,
            source_post_id=post_id
        )
        return copy

    async def delete_post(self, post_id: str, user_id: str) -> bool:
        await self.get_post(post_id, user_id)
        deleted = await self.db.delete_post(post_id)
        log_user_action(user_id, "delete_post", resource_type="post", resource_id=post_id)
        return deleted

    async def bulk_delete_posts(self, post_ids: Sequence[str], user_id: str) -> int:
        """
        Delete several unpublished posts at once.

        Nothing is deleted when any post belongs to someone else or was
        already published.

        Returns:
            Number of posts deleted
        """
        posts = await self._load_bulk(post_ids, user_id, "delete")

        published = [post.id for post in posts if post.status == PostStatus.POSTED]
        if published:
            raise ValidationError(
                "Cannot delete already published posts",
                details={"publishedPostIds": published}
            )

        deleted = 0
        for post in posts:
            if await self.db.delete_post(post.id):
                deleted += 1

        self.logger.info("Posts deleted", user_id=user_id, deleted_count=deleted)
        return deleted

    async def bulk_reschedule_posts(
        self,
        post_ids: Sequence[str],
        user_id: str,
        scheduled_for: datetime
    ) -> int:
        """
        Move several posts to a new time. Only SCHEDULED posts are updated.

        Returns:
            Number of posts rescheduled
        """
        scheduled_for = self._future_time(scheduled_for)
        posts = await self._load_bulk(post_ids, user_id, "reschedule")

        published = [post.id for post in posts if post.status == PostStatus.POSTED]
        if published:
            raise ValidationError(
                "Cannot reschedule already published posts",
                details={"publishedPostIds": published}
            )

        now = utcnow()
        updated = 0
        for post in posts:
            if post.status != PostStatus.SCHEDULED:
                continue
            if await self.db.update_post(post.id, {"scheduled_for": scheduled_for, "updated_at": now}):
                updated += 1

        self.logger.info("Posts rescheduled", user_id=user_id, updated_count=updated)
        return updated

    async def _load_bulk(self, post_ids: Sequence[str], user_id: str, action: str) -> List[Post]:
        if not post_ids:
            raise ValidationError("Post IDs array is required", field="post_ids")

        posts = await self.db.get_posts_by_ids(post_ids)
        if any(post.user_id != user_id for post in posts):
            raise PermissionDeniedError(f"Unauthorized to {action} some posts")
        return posts

    @staticmethod
    def _future_time(scheduled_for: Optional[datetime]) -> datetime:
        if scheduled_for is None:
            raise ValidationError("Scheduled time is required", field="scheduled_for")
        scheduled_for = ensure_utc(scheduled_for)
        if scheduled_for <= utcnow():
            raise ValidationError("Scheduled time must be in the future", field="scheduled_for")
        return scheduled_for
