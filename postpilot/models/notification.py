"""
In-app notification model.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from postpilot.utils.time import utcnow


class SenderType(str, Enum):
    """Who a notification comes from."""
    SYSTEM = "system"
    ADMIN = "admin"


class Notification(BaseModel):
    """Message shown in the user's notification feed."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    sender_type: SenderType = SenderType.SYSTEM
    title: str
    message: str
    link: Optional[str] = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=utcnow)
