"""
Post API Endpoints

This module contains post-related endpoints including:
- Publishing and scheduling to one or more platforms
- Listing and reading posts
- Editing, rescheduling, duplicating and deleting posts
- Bulk delete and bulk reschedule
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from postpilot.models.content import MultiPublishResult, Post, PostStatus, PublishResponse
from postpilot.models.platform import Platform
from postpilot.models.schemas.common import (
    ErrorResponse,
    PaginatedResponse,
    PaginationParams,
    SuccessResponse,
)
from postpilot.models.schemas.posts import (
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkRescheduleRequest,
    BulkRescheduleResponse,
    DuplicateRequest,
    EditPostRequest,
    PublishRequest,
    RescheduleRequest,
)
from postpilot.models.user import User
from postpilot.services.post_management import PostManagementService
from postpilot.services.publishing import PublishingService
from postpilot.utils.auth import get_current_user

# Initialize router and dependencies
router = APIRouter()
logger = structlog.get_logger(__name__)


def get_publishing_service() -> PublishingService:
    """Get publishing service instance."""
    return PublishingService()


def get_post_management_service() -> PostManagementService:
    """Get post management service instance."""
    return PostManagementService()


@router.post(
    "",
    response_model=MultiPublishResult,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid content or schedule"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
    }
)
async def publish(
    request: PublishRequest,
    current_user: User = Depends(get_current_user),
    publishing: PublishingService = Depends(get_publishing_service),
) -> MultiPublishResult:
    """
    Publish or schedule content.

    Each platform is handled on its own; the response lists what happened
    on every one of them.
    """
    logger.info(
        "Publish requested",
        user_id=current_user.id,
        platforms=[platform.value for platform in request.platforms],
        post_type=request.post_type.value
    )

    return await publishing.publish_to_multiple_platforms(
        current_user.id,
        request.platforms,
        request.content,
        media_urls=request.media_urls,
        media_alts=request.media_alts,
        post_type=request.post_type,
        scheduled_for=request.scheduled_for,
    )


@router.get("", response_model=PaginatedResponse[Post])
async def list_posts(
    pagination: PaginationParams = Depends(),
    status_filter: Optional[PostStatus] = Query(None, alias="status"),
    platform_filter: Optional[Platform] = Query(None, alias="platform"),
    current_user: User = Depends(get_current_user),
    posts: PostManagementService = Depends(get_post_management_service),
) -> PaginatedResponse[Post]:
    """Get a paginated list of the user's posts, newest first."""
    items, total = await posts.list_posts(
        current_user.id,
        status=status_filter,
        platform=platform_filter,
        limit=pagination.page_size,
        offset=pagination.offset,
    )
    return PaginatedResponse[Post].build(items, total, pagination)


@router.delete("/bulk", response_model=BulkDeleteResponse)
async def bulk_delete(
    request: BulkDeleteRequest,
    current_user: User = Depends(get_current_user),
    posts: PostManagementService = Depends(get_post_management_service),
) -> BulkDeleteResponse:
    deleted = await posts.bulk_delete_posts(request.post_ids, current_user.id)
    return BulkDeleteResponse(deleted_count=deleted)


@router.put("/bulk", response_model=BulkRescheduleResponse)
async def bulk_reschedule(
    request: BulkRescheduleRequest,
    current_user: User = Depends(get_current_user),
    posts: PostManagementService = Depends(get_post_management_service),
) -> BulkRescheduleResponse:
    updated = await posts.bulk_reschedule_posts(
        request.post_ids, current_user.id, request.scheduled_for
    )
    return BulkRescheduleResponse(updated_count=updated)


@router.get(
    "/{post_id}",
    response_model=Post,
    responses={404: {"model": ErrorResponse, "description": "Post not found"}}
)
async def get_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostManagementService = Depends(get_post_management_service),
) -> Post:
    return await posts.get_post(post_id, current_user.id)


@router.put("/{post_id}", response_model=Post)
async def edit_post(
    post_id: str,
    request: EditPostRequest,
    current_user: User = Depends(get_current_user),
    posts: PostManagementService = Depends(get_post_management_service),
) -> Post:
    """Edit content, media or dispatch time of an unpublished post."""
    return await posts.edit_post(
        post_id,
        current_user.id,
        request.content,
        media_urls=request.media_urls,
        scheduled_for=request.scheduled_for,
    )


@router.post("/{post_id}/publish", response_model=PublishResponse)
async def publish_now(
    post_id: str,
    current_user: User = Depends(get_current_user),
    publishing: PublishingService = Depends(get_publishing_service),
) -> PublishResponse:
    """Publish a scheduled post right away."""
    return await publishing.publish_scheduled_post(post_id, current_user.id)


@router.post("/{post_id}/reschedule", response_model=Post)
async def reschedule(
    post_id: str,
    request: RescheduleRequest,
    current_user: User = Depends(get_current_user),
    posts: PostManagementService = Depends(get_post_management_service),
) -> Post:
    return await posts.reschedule_post(post_id, current_user.id, request.scheduled_for)


@router.post("/{post_id}/duplicate", response_model=Post, status_code=status.HTTP_201_CREATED)
async def duplicate(
    post_id: str,
    request: Optional[DuplicateRequest] = None,
    current_user: User = Depends(get_current_user),
    posts: PostManagementService = Depends(get_post_management_service),
) -> Post:
    scheduled_for = request.scheduled_for if request else None
    return await posts.duplicate_post(post_id, current_user.id, scheduled_for)


@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    posts: PostManagementService = Depends(get_post_management_service),
) -> SuccessResponse:
    await posts.delete_post(post_id, current_user.id)
    return SuccessResponse(message="Post deleted successfully")
