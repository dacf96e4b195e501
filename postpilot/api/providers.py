"""
Provider API Endpoints

Connected social accounts of the current user.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends

from postpilot.integrations.firestore import FirestoreClient, get_firestore_client
from postpilot.models.platform import Platform
from postpilot.models.schemas.common import SuccessResponse
from postpilot.models.schemas.posts import ProviderResponse
from postpilot.models.user import User
from postpilot.utils.auth import get_current_user
from postpilot.utils.error_handling import ProviderNotConnectedError, ValidationError
from postpilot.utils.logger import log_user_action
from postpilot.utils.time import utcnow

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("", response_model=List[ProviderResponse])
async def list_providers(
    current_user: User = Depends(get_current_user),
    db: FirestoreClient = Depends(get_firestore_client),
) -> List[ProviderResponse]:
    """Connected accounts, tokens left out."""
    providers = await db.list_user_providers(current_user.id, connected_only=True)
    return [
        ProviderResponse(
            id=provider.id,
            provider=provider.provider,
            display_name=provider.display_name,
            is_connected=provider.is_connected,
            total_posts_published=provider.total_posts_published,
            quota_exhausted=provider.quota_exhausted,
            last_used_at=provider.last_used_at,
        )
        for provider in providers
    ]


@router.post("/{platform}/disconnect", response_model=SuccessResponse)
async def disconnect_provider(
    platform: str,
    current_user: User = Depends(get_current_user),
    db: FirestoreClient = Depends(get_firestore_client),
) -> SuccessResponse:
    """Disconnect the account and forget its tokens."""
    try:
        target = Platform.from_slug(platform)
    except ValueError:
        raise ValidationError(f"Unsupported platform: {platform}")

    provider = await db.get_connected_provider(current_user.id, target)
    if not provider:
        raise ProviderNotConnectedError(f"{target.label} not connected", platform=target.value)

    now = utcnow()
    await db.update_provider(provider.id, {
        "is_connected": False,
        "access_token": None,
        "refresh_token": None,
        "expires_at": None,
        "disconnected_at": now,
        "updated_at": now,
    })
    log_user_action(current_user.id, "disconnect_provider", resource_type="provider", resource_id=provider.id)

    return SuccessResponse(message=f"{target.label} disconnected successfully")
