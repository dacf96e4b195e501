"""
Firestore Database Integration

This module provides database operations for PostPilot using Firestore,
including CRUD operations for users, connected providers, posts,
notifications, metrics, billing records and teams.

When no Firestore client is available every operation runs against an
in-memory store with the same query semantics, which is what development
and the test suite use.
"""

import operator
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import structlog
from google.cloud import firestore
from google.cloud.firestore_v1 import FieldFilter, Query

from postpilot.config.database import get_database
from postpilot.models.analytics import SocialMetric
from postpilot.models.billing import Invoice, PaymentStatus, Transaction
from postpilot.models.content import Post, PostStatus
from postpilot.models.notification import Notification
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.models.team import Team, TeamMember
from postpilot.models.user import User
from postpilot.utils.time import ensure_utc

Filter = Tuple[str, str, Any]

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
    "not-in": lambda value, options: value not in options,
}


def _to_document(value: Any) -> Any:
    """Convert model values into Firestore-friendly primitives."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, dict):
        return {key: _to_document(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_document(item) for item in value]
    return value


def _matches(document: Dict[str, Any], filters: Sequence[Filter]) -> bool:
    for field, op, expected in filters:
        actual = document.get(field)
        if actual is None and op not in ("==", "!="):
            # Firestore never matches missing fields on range or membership filters
            return False
        if not _OPERATORS[op](actual, expected):
            return False
    return True


def _sort_key(field: str):
    def key(document: Dict[str, Any]):
        value = document.get(field)
        return (value is not None, value if value is not None else 0)
    return key


class FirestoreClient:
    """Firestore database client for PostPilot operations."""

    def __init__(self, db: Optional[firestore.Client] = None, use_memory: bool = False):
        """Initialize Firestore client."""
        self.db = None if use_memory else (db if db is not None else get_database())
        self.logger = structlog.get_logger(__name__)

        # Collection names
        self.users_collection = "users"
        self.providers_collection = "social_providers"
        self.posts_collection = "posts"
        self.notifications_collection = "notifications"
        self.metrics_collection = "social_metrics"
        self.transactions_collection = "transactions"
        self.invoices_collection = "invoices"
        self.teams_collection = "teams"
        self.team_members_collection = "team_members"

        # In-memory storage for development mode
        self._mock_storage: Dict[str, Dict[str, Dict[str, Any]]] = {
            name: {} for name in (
                self.users_collection,
                self.providers_collection,
                self.posts_collection,
                self.notifications_collection,
                self.metrics_collection,
                self.transactions_collection,
                self.invoices_collection,
                self.teams_collection,
                self.team_members_collection,
            )
        }

    # Generic document helpers
    async def _set(self, collection: str, document_id: str, data: Dict[str, Any]) -> None:
        document = _to_document(data)
        if self.db is None:
            self._mock_storage[collection][document_id] = document
            return
        self.db.collection(collection).document(document_id).set(document)

    async def _get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        if self.db is None:
            document = self._mock_storage[collection].get(document_id)
            return dict(document) if document is not None else None

        doc = self.db.collection(collection).document(document_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict()
        data.setdefault("id", doc.id)
        return data

    async def _update(self, collection: str, document_id: str, updates: Dict[str, Any]) -> bool:
        updates = _to_document(updates)
        if self.db is None:
            document = self._mock_storage[collection].get(document_id)
            if document is None:
                return False
            document.update(updates)
            return True

        doc_ref = self.db.collection(collection).document(document_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.update(updates)
        return True

    async def _delete(self, collection: str, document_id: str) -> bool:
        if self.db is None:
            return self._mock_storage[collection].pop(document_id, None) is not None

        doc_ref = self.db.collection(collection).document(document_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True

    async def _query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        filters = [(field, op, _to_document(value)) for field, op, value in filters]

        if self.db is None:
            documents = [
                dict(document)
                for document in self._mock_storage[collection].values()
                if _matches(document, filters)
            ]
            if order_by:
                documents.sort(key=_sort_key(order_by), reverse=descending)
            documents = documents[offset:]
            if limit is not None:
                documents = documents[:limit]
            return documents

        query = self.db.collection(collection)
        for field, op, value in filters:
            query = query.where(filter=FieldFilter(field, op, value))
        if order_by:
            direction = Query.DESCENDING if descending else Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        documents = []
        for doc in query.stream():
            data = doc.to_dict()
            data.setdefault("id", doc.id)
            documents.append(data)
        return documents

    async def _count(self, collection: str, filters: Sequence[Filter] = ()) -> int:
        """Number of documents matching ``filters`` without loading them."""
        filters = [(field, op, _to_document(value)) for field, op, value in filters]

        if self.db is None:
            return sum(
                1 for document in self._mock_storage[collection].values()
                if _matches(document, filters)
            )

        query = self.db.collection(collection)
        for field, op, value in filters:
            query = query.where(filter=FieldFilter(field, op, value))
        results = query.count(alias="total").get()
        return int(results[0][0].value) if results else 0

    # User Operations
    async def create_user(self, user: User) -> User:
        """Create a new user."""
        await self._set(self.users_collection, user.id, user.model_dump())
        self.logger.info("User created", user_id=user.id)
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID."""
        data = await self._get(self.users_collection, user_id)
        return User(**data) if data else None

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> bool:
        """Update user fields."""
        return await self._update(self.users_collection, user_id, updates)

    # Social Provider Operations
    async def create_provider(self, provider: SocialProvider) -> SocialProvider:
        """Store a connected social account."""
        await self._set(self.providers_collection, provider.id, provider.model_dump())
        self.logger.info(
            "Social provider stored",
            provider_id=provider.id,
            user_id=provider.user_id,
            platform=provider.provider.value
        )
        return provider

    async def get_provider(self, provider_id: str) -> Optional[SocialProvider]:
        """Get a connected account by ID."""
        data = await self._get(self.providers_collection, provider_id)
        return SocialProvider(**data) if data else None

    async def update_provider(self, provider_id: str, updates: Dict[str, Any]) -> bool:
        """Update fields of a connected account."""
        return await self._update(self.providers_collection, provider_id, updates)

    async def get_connected_provider(
        self, user_id: str, platform: Platform
    ) -> Optional[SocialProvider]:
        """Get the user's connected account for a platform."""
        documents = await self._query(
            self.providers_collection,
            [
                ("user_id", "==", user_id),
                ("provider", "==", platform),
                ("is_connected", "==", True),
            ],
            limit=1
        )
        return SocialProvider(**documents[0]) if documents else None

    async def list_user_providers(
        self, user_id: str, connected_only: bool = False
    ) -> List[SocialProvider]:
        """List a user's social accounts."""
        filters: List[Filter] = [("user_id", "==", user_id)]
        if connected_only:
            filters.append(("is_connected", "==", True))
        documents = await self._query(self.providers_collection, filters, order_by="created_at")
        return [SocialProvider(**document) for document in documents]

    async def list_all_providers(self) -> List[SocialProvider]:
        """List every stored social account."""
        documents = await self._query(self.providers_collection)
        return [SocialProvider(**document) for document in documents]

    # Post Operations
    async def create_post(self, post: Post) -> Post:
        """Store a post."""
        await self._set(self.posts_collection, post.id, post.model_dump())
        self.logger.info(
            "Post stored",
            post_id=post.id,
            user_id=post.user_id,
            status=post.status.value
        )
        return post

    async def get_post(self, post_id: str) -> Optional[Post]:
        """Get a post by ID."""
        data = await self._get(self.posts_collection, post_id)
        return Post(**data) if data else None

    async def update_post(self, post_id: str, updates: Dict[str, Any]) -> bool:
        """Update post fields."""
        return await self._update(self.posts_collection, post_id, updates)

    async def delete_post(self, post_id: str) -> bool:
        """Delete a post."""
        deleted = await self._delete(self.posts_collection, post_id)
        if deleted:
            self.logger.info("Post deleted", post_id=post_id)
        return deleted

    async def get_posts_by_ids(self, post_ids: Sequence[str]) -> List[Post]:
        """Get the posts that exist among ``post_ids``."""
        posts = []
        for post_id in dict.fromkeys(post_ids):
            post = await self.get_post(post_id)
            if post:
                posts.append(post)
        return posts

    async def list_user_posts(
        self,
        user_id: str,
        status: Optional[PostStatus] = None,
        platform: Optional[Platform] = None,
        limit: int = 20,
        offset: int = 0
    ) -> Tuple[List[Post], int]:
        """List a user's posts, newest first, with the unpaginated total."""
        filters: List[Filter] = [("user_id", "==", user_id)]
        if status:
            filters.append(("status", "==", status))
        if platform:
            filters.append(("platform", "==", platform))

        documents = await self._query(
            self.posts_collection,
            filters,
            order_by="created_at",
            descending=True,
            limit=limit,
            offset=offset
        )
        total = await self._count(self.posts_collection, filters)
        return [Post(**document) for document in documents], total

    async def get_due_posts(self, now: datetime) -> List[Post]:
        """Scheduled posts whose dispatch time is at or before ``now``."""
        documents = await self._query(
            self.posts_collection,
            [
                ("status", "==", PostStatus.SCHEDULED),
                ("scheduled_for", "<=", now),
            ],
            order_by="scheduled_for"
        )
        return [Post(**document) for document in documents]

    async def find_duplicate_post(
        self,
        user_id: str,
        platform: Platform,
        content: str,
        since: datetime
    ) -> Optional[Post]:
        """Scheduled or posted post with identical content created since ``since``."""
        documents = await self._query(
            self.posts_collection,
            [
                ("user_id", "==", user_id),
                ("platform", "==", platform),
                ("content", "==", content),
                ("status", "in", [PostStatus.SCHEDULED, PostStatus.POSTED]),
                ("created_at", ">=", since),
            ],
            limit=1
        )
        return Post(**documents[0]) if documents else None

    async def count_posted_since(self, user_id: str, since: datetime) -> int:
        """Number of the user's posts published since ``since``."""
        return await self._count(
            self.posts_collection,
            [
                ("user_id", "==", user_id),
                ("status", "==", PostStatus.POSTED),
                ("posted_at", ">=", since),
            ]
        )

    async def get_posted_with_platform_id(
        self,
        user_id: Optional[str] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[Post]:
        """Published posts that carry a platform identifier, newest first."""
        filters: List[Filter] = [
            ("status", "==", PostStatus.POSTED),
            ("platform_post_id", "!=", None),
        ]
        if user_id:
            filters.append(("user_id", "==", user_id))
        if since:
            filters.append(("posted_at", ">=", since))

        documents = await self._query(
            self.posts_collection, filters, order_by="posted_at", descending=True, limit=limit
        )
        return [Post(**document) for document in documents]

    # Notification Operations
    async def create_notification(self, notification: Notification) -> Notification:
        """Store an in-app notification."""
        await self._set(
            self.notifications_collection, notification.id, notification.model_dump()
        )
        return notification

    async def list_notifications(
        self, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        """A user's notifications, newest first."""
        filters: List[Filter] = [("user_id", "==", user_id)]
        if unread_only:
            filters.append(("is_read", "==", False))
        documents = await self._query(
            self.notifications_collection,
            filters,
            order_by="created_at",
            descending=True,
            limit=limit
        )
        return [Notification(**document) for document in documents]

    async def mark_notifications_read(
        self, user_id: str, notification_ids: Optional[Sequence[str]] = None
    ) -> int:
        """Mark the given (or all unread) notifications of a user as read."""
        documents = await self._query(
            self.notifications_collection,
            [("user_id", "==", user_id), ("is_read", "==", False)]
        )
        wanted = set(notification_ids) if notification_ids is not None else None

        updated = 0
        for document in documents:
            if wanted is not None and document["id"] not in wanted:
                continue
            await self._update(self.notifications_collection, document["id"], {"is_read": True})
            updated += 1
        return updated

    # Metrics Operations
    async def upsert_metric(self, metric: SocialMetric) -> SocialMetric:
        """Store the latest metrics snapshot of a post, keyed by post id."""
        await self._set(self.metrics_collection, metric.post_id, metric.model_dump())
        return metric

    async def get_metric(self, post_id: str) -> Optional[SocialMetric]:
        data = await self._get(self.metrics_collection, post_id)
        return SocialMetric(**data) if data else None

    async def list_user_metrics(self, user_id: str) -> List[SocialMetric]:
        """All stored metrics for a user's posts."""
        documents = await self._query(self.metrics_collection, [("user_id", "==", user_id)])
        return [SocialMetric(**document) for document in documents]

    # Billing Operations
    async def create_transaction(self, transaction: Transaction) -> Transaction:
        await self._set(self.transactions_collection, transaction.id, transaction.model_dump())
        return transaction

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        data = await self._get(self.transactions_collection, transaction_id)
        return Transaction(**data) if data else None

    async def get_stale_pending_transactions(self, cutoff: datetime) -> List[Transaction]:
        """Pending transactions created before ``cutoff``."""
        documents = await self._query(
            self.transactions_collection,
            [("status", "==", PaymentStatus.PENDING), ("created_at", "<", cutoff)]
        )
        return [Transaction(**document) for document in documents]

    async def update_transaction(self, transaction_id: str, updates: Dict[str, Any]) -> bool:
        return await self._update(self.transactions_collection, transaction_id, updates)

    async def create_invoice(self, invoice: Invoice) -> Invoice:
        await self._set(self.invoices_collection, invoice.id, invoice.model_dump())
        return invoice

    async def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        data = await self._get(self.invoices_collection, invoice_id)
        return Invoice(**data) if data else None

    async def get_stale_pending_invoices(self, cutoff: datetime) -> List[Invoice]:
        """Pending invoices created before ``cutoff``."""
        documents = await self._query(
            self.invoices_collection,
            [("payment_status", "==", PaymentStatus.PENDING), ("created_at", "<", cutoff)]
        )
        return [Invoice(**document) for document in documents]

    async def update_invoice(self, invoice_id: str, updates: Dict[str, Any]) -> bool:
        return await self._update(self.invoices_collection, invoice_id, updates)

    # Team Operations
    async def create_team(self, team: Team) -> Team:
        await self._set(self.teams_collection, team.id, team.model_dump())
        return team

    async def get_team(self, team_id: str) -> Optional[Team]:
        data = await self._get(self.teams_collection, team_id)
        return Team(**data) if data else None

    async def add_team_member(self, member: TeamMember) -> TeamMember:
        """Store a membership; one per team and user."""
        await self._set(
            self.team_members_collection,
            f"{member.team_id}_{member.user_id}",
            member.model_dump()
        )
        return member

    async def get_team_member(self, team_id: str, user_id: str) -> Optional[TeamMember]:
        data = await self._get(self.team_members_collection, f"{team_id}_{user_id}")
        return TeamMember(**data) if data else None

    async def health_check(self) -> bool:
        """Check Firestore connection health."""
        if self.db is None:
            return True
        try:
            list(self.db.collection("health_check").limit(1).stream())
            return True
        except Exception as e:
            self.logger.error("Firestore health check failed", error=str(e))
            return False


# Global Firestore client instance
firestore_client = FirestoreClient()


def get_firestore_client() -> FirestoreClient:
    """Dependency hook returning the shared client."""
    return firestore_client
