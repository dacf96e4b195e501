"""
Tests for the Firestore client: in-memory semantics and server-side query shaping.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from postpilot.integrations.firestore import FirestoreClient
from postpilot.models.content import Post, PostStatus
from postpilot.models.platform import Platform
from postpilot.utils.time import utcnow


def make_post(provider_id="provider-1", **overrides) -> Post:
    fields = {
        "user_id": "user-1",
        "social_provider_id": provider_id,
        "platform": Platform.TWITTER,
        "content": "hello",
    }
    fields.update(overrides)
    return Post(**fields)


class TestPostQueries:

    @pytest.mark.asyncio
    async def test_round_trip_keeps_enums(self, db):
        post = await db.create_post(make_post(status=PostStatus.SCHEDULED))

        stored = await db.get_post(post.id)

        assert stored.status == PostStatus.SCHEDULED
        assert stored.platform == Platform.TWITTER
        assert await db.get_post("missing") is None

    @pytest.mark.asyncio
    async def test_due_posts_ordered_and_bounded(self, db):
        now = utcnow()
        later = await db.create_post(make_post(
            status=PostStatus.SCHEDULED, scheduled_for=now - timedelta(minutes=1)
        ))
        earlier = await db.create_post(make_post(
            status=PostStatus.SCHEDULED, scheduled_for=now - timedelta(minutes=10)
        ))
        await db.create_post(make_post(
            status=PostStatus.SCHEDULED, scheduled_for=now + timedelta(minutes=5)
        ))
        await db.create_post(make_post(status=PostStatus.POSTED, scheduled_for=now - timedelta(hours=1)))

        due = await db.get_due_posts(now)

        assert [post.id for post in due] == [earlier.id, later.id]

    @pytest.mark.asyncio
    async def test_list_user_posts_paginates_newest_first(self, db):
        base = utcnow()
        for index in range(5):
            await db.create_post(make_post(
                id=f"post-{index}", created_at=base + timedelta(seconds=index)
            ))
        await db.create_post(make_post(id="other", user_id="user-2"))

        page, total = await db.list_user_posts("user-1", limit=2, offset=1)

        assert total == 5
        assert [post.id for post in page] == ["post-3", "post-2"]

    @pytest.mark.asyncio
    async def test_duplicate_lookup(self, db):
        since = utcnow() - timedelta(hours=24)
        await db.create_post(make_post(status=PostStatus.FAILED))
        assert await db.find_duplicate_post("user-1", Platform.TWITTER, "hello", since) is None

        await db.create_post(make_post(status=PostStatus.POSTED))
        assert await db.find_duplicate_post("user-1", Platform.TWITTER, "hello", since) is not None
        assert await db.find_duplicate_post("user-1", Platform.LINKEDIN, "hello", since) is None

    @pytest.mark.asyncio
    async def test_update_and_delete(self, db):
        post = await db.create_post(make_post())

        assert await db.update_post(post.id, {"status": PostStatus.POSTED}) is True
        assert (await db.get_post(post.id)).status == PostStatus.POSTED
        assert await db.update_post("missing", {"content": "x"}) is False

        assert await db.delete_post(post.id) is True
        assert await db.delete_post(post.id) is False

    @pytest.mark.asyncio
    async def test_posts_by_ids_skips_unknown(self, db):
        first = await db.create_post(make_post())

        posts = await db.get_posts_by_ids([first.id, "missing", first.id])

        assert [post.id for post in posts] == [first.id]

    @pytest.mark.asyncio
    async def test_posted_with_platform_id_limits_after_filtering(self, db):
        base = utcnow()
        await db.create_post(make_post(
            id="newest-unpublished", status=PostStatus.POSTED, posted_at=base + timedelta(minutes=3)
        ))
        for index in range(3):
            await db.create_post(make_post(
                id=f"tweet-{index}",
                status=PostStatus.POSTED,
                posted_at=base + timedelta(minutes=index),
                platform_post_id=f"remote-{index}",
            ))

        posts = await db.get_posted_with_platform_id(limit=2)

        assert [post.id for post in posts] == ["tweet-2", "tweet-1"]

    @pytest.mark.asyncio
    async def test_count_posted_since(self, db):
        now = utcnow()
        await db.create_post(make_post(status=PostStatus.POSTED, posted_at=now))
        await db.create_post(make_post(status=PostStatus.POSTED, posted_at=now - timedelta(days=40)))
        await db.create_post(make_post(status=PostStatus.DRAFT))

        assert await db.count_posted_since("user-1", now - timedelta(days=30)) == 1


class TestFirestoreQueries:
    """Paging and limits are pushed down to Firestore instead of applied locally."""

    @pytest.fixture
    def query(self):
        query = MagicMock()
        for method in ("where", "order_by", "offset", "limit"):
            getattr(query, method).return_value = query
        query.stream.return_value = []
        query.count.return_value.get.return_value = [[MagicMock(value=7)]]
        return query

    @pytest.fixture
    def firestore_db(self, query):
        client = MagicMock()
        client.collection.return_value = query
        return FirestoreClient(db=client)

    @pytest.mark.asyncio
    async def test_list_user_posts_pages_on_the_server(self, firestore_db, query):
        posts, total = await firestore_db.list_user_posts("user-1", limit=10, offset=20)

        assert posts == []
        assert total == 7
        query.offset.assert_called_once_with(20)
        query.limit.assert_called_once_with(10)
        query.count.assert_called_once_with(alias="total")

    @pytest.mark.asyncio
    async def test_posted_with_platform_id_filters_on_the_server(self, firestore_db, query):
        await firestore_db.get_posted_with_platform_id(limit=100)

        fields = [call.kwargs["filter"].field_path for call in query.where.call_args_list]
        assert "platform_post_id" in fields
        query.limit.assert_called_once_with(100)


class TestHealth:

    @pytest.mark.asyncio
    async def test_memory_backend_is_healthy(self, db):
        assert await db.health_check() is True
