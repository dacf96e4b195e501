"""
Notification API Endpoints
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from postpilot.models.notification import Notification
from postpilot.models.schemas.common import SuccessResponse
from postpilot.models.schemas.posts import MarkReadRequest
from postpilot.models.user import User
from postpilot.services.notifications import NotificationService
from postpilot.utils.auth import get_current_user

router = APIRouter()


def get_notification_service() -> NotificationService:
    """Get notification service instance."""
    return NotificationService()


@router.get("", response_model=List[Notification])
async def list_notifications(
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
) -> List[Notification]:
    return await notifications.list_notifications(current_user.id, unread_only=unread_only, limit=limit)


@router.post("/mark-read", response_model=SuccessResponse)
async def mark_read(
    request: Optional[MarkReadRequest] = None,
    current_user: User = Depends(get_current_user),
    notifications: NotificationService = Depends(get_notification_service),
) -> SuccessResponse:
    """Mark the given notifications read, or all unread ones."""
    ids = request.notification_ids if request else None
    count = await notifications.mark_read(current_user.id, ids)
    return SuccessResponse(message="Notifications marked as read", data={"count": count})
