"""
Notification Service

Creates and reads the in-app notifications raised by publishing, quota
and billing jobs.
"""

from typing import List, Optional, Sequence

import structlog

from postpilot.integrations.firestore import FirestoreClient, firestore_client
from postpilot.models.notification import Notification, SenderType


class NotificationService:
    """Service for in-app notifications."""

    def __init__(self, db: Optional[FirestoreClient] = None):
        self.logger = structlog.get_logger(__name__)
        self.db = db or firestore_client

    async def notify(
        self,
        user_id: str,
        title: str,
        message: str,
        link: Optional[str] = None
    ) -> Notification:
        """Create a system notification for a user."""
        notification = Notification(
            user_id=user_id,
            sender_type=SenderType.SYSTEM,
            title=title,
            message=message,
            link=link,
        )
        await self.db.create_notification(notification)
        self.logger.info("Notification created", user_id=user_id, title=title)
        return notification

    async def list_notifications(
        self, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> List[Notification]:
        return await self.db.list_notifications(user_id, unread_only=unread_only, limit=limit)

    async def mark_read(
        self, user_id: str, notification_ids: Optional[Sequence[str]] = None
    ) -> int:
        """Mark notifications read; all unread ones when no ids are given."""
        count = await self.db.mark_notifications_read(user_id, notification_ids)
        self.logger.info("Notifications marked read", user_id=user_id, count=count)
        return count
