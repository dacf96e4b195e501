"""
Test Configuration and Fixtures

This module contains pytest fixtures and configuration for the test suite.
"""

import os
from datetime import timedelta
from typing import Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["LINKEDIN_CLIENT_ID"] = "test-linkedin-id"
os.environ["LINKEDIN_CLIENT_SECRET"] = "test-linkedin-secret"
os.environ["X_CLIENT_ID"] = "test-x-id"
os.environ["X_CLIENT_SECRET"] = "test-x-secret"
os.environ["PINTEREST_APP_ID"] = "test-pinterest-id"
os.environ["PINTEREST_APP_SECRET"] = "test-pinterest-secret"
os.environ["REDIS_URL"] = "redis://localhost:6379/1"

from postpilot.integrations.firestore import FirestoreClient
from postpilot.models.content import Post, PostStatus, PublishingResult
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.models.user import SubscriptionPlan, User
from postpilot.services.notifications import NotificationService
from postpilot.services.publishing import PublishingService
from postpilot.services.quota import QuotaService
from postpilot.utils.time import utcnow


@pytest.fixture
def db() -> FirestoreClient:
    """Fresh in-memory document store."""
    return FirestoreClient(use_memory=True)


@pytest.fixture
def notifications(db: FirestoreClient) -> NotificationService:
    return NotificationService(db)


@pytest.fixture
def quota_service(db: FirestoreClient, notifications: NotificationService) -> QuotaService:
    return QuotaService(db, notifications)


@pytest.fixture
def mock_limiter() -> MagicMock:
    """Sliding-window limiter that always lets requests through."""
    limiter = MagicMock()
    limiter.enforce = AsyncMock()
    return limiter


def make_platform_client(platform: Platform, supports_refresh: bool = True) -> MagicMock:
    client = MagicMock()
    client.platform = platform
    client.supports_refresh = supports_refresh
    client.publish_post = AsyncMock(return_value=PublishingResult(
        platform=platform,
        success=True,
        post_id=f"{platform.value}-post-1",
        post_url=f"https://example.com/{platform.value}/1",
        published_at=utcnow(),
    ))
    client.refresh_access_token = AsyncMock(return_value=None)
    client.fetch_metrics = AsyncMock(return_value=None)
    return client


@pytest.fixture
def mock_platform_clients() -> Dict[Platform, MagicMock]:
    """One mocked adapter per platform; every publish succeeds by default."""
    return {
        Platform.LINKEDIN: make_platform_client(Platform.LINKEDIN),
        Platform.TWITTER: make_platform_client(Platform.TWITTER),
        Platform.PINTEREST: make_platform_client(Platform.PINTEREST),
        Platform.DEVTO: make_platform_client(Platform.DEVTO, supports_refresh=False),
    }


@pytest.fixture
def publishing_service(
    db: FirestoreClient,
    mock_platform_clients: Dict[Platform, MagicMock],
    quota_service: QuotaService,
    notifications: NotificationService,
    mock_limiter: MagicMock
) -> PublishingService:
    return PublishingService(
        db=db,
        clients=mock_platform_clients,
        quota=quota_service,
        notifications=notifications,
        limiter=mock_limiter,
    )


@pytest_asyncio.fixture
async def creator_user(db: FirestoreClient) -> User:
    """User on the creator plan with a timezone set."""
    return await db.create_user(User(
        id="user-1",
        email="creator@example.com",
        full_name="Creator User",
        subscription_plan=SubscriptionPlan.CREATOR,
        timezone="Europe/Berlin",
    ))


@pytest_asyncio.fixture
async def free_user(db: FirestoreClient) -> User:
    return await db.create_user(User(
        id="user-free",
        email="free@example.com",
        subscription_plan=SubscriptionPlan.FREE,
        timezone="UTC",
    ))


@pytest_asyncio.fixture
async def twitter_provider(db: FirestoreClient, creator_user: User) -> SocialProvider:
    return await db.create_provider(SocialProvider(
        id="provider-twitter",
        user_id=creator_user.id,
        provider=Platform.TWITTER,
        access_token="twitter-token",
        refresh_token="twitter-refresh",
        profile_data={"username": "creator"},
    ))


@pytest_asyncio.fixture
async def linkedin_provider(db: FirestoreClient, creator_user: User) -> SocialProvider:
    return await db.create_provider(SocialProvider(
        id="provider-linkedin",
        user_id=creator_user.id,
        provider=Platform.LINKEDIN,
        access_token="linkedin-token",
        profile_data={"name": "Creator User"},
    ))


@pytest_asyncio.fixture
async def due_post(db: FirestoreClient, twitter_provider: SocialProvider) -> Post:
    """Scheduled post whose dispatch time has passed."""
    return await db.create_post(Post(
        id="post-due",
        user_id=twitter_provider.user_id,
        social_provider_id=twitter_provider.id,
        platform=Platform.TWITTER,
        content="Scheduled tweet that is now due",
        status=PostStatus.SCHEDULED,
        scheduled_for=utcnow() - timedelta(minutes=5),
    ))
