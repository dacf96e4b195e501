"""
Common Schemas

Shared schemas used across multiple API endpoints for consistent
request/response formatting and validation.
"""

import math
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

# Type variable for generic responses
T = TypeVar('T')


class PaginationParams(BaseModel):
    """Standard pagination parameters."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(
        default=20,
        ge=1,
        le=100,
        description="Number of items per page"
    )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper."""

    items: List[T] = Field(..., description="List of items")
    total: int = Field(..., description="Total number of items")
    page: int = Field(..., description="Current page number")
    page_size: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Total number of pages")
    has_next: bool = Field(..., description="Whether there is a next page")
    has_previous: bool = Field(..., description="Whether there is a previous page")

    @classmethod
    def build(cls, items: List[T], total: int, pagination: PaginationParams) -> "PaginatedResponse[T]":
        total_pages = math.ceil(total / pagination.page_size) if total else 0
        return cls(
            items=items,
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
            total_pages=total_pages,
            has_next=pagination.page < total_pages,
            has_previous=pagination.page > 1,
        )


class ErrorResponse(BaseModel):
    """
    Error body returned for service errors.

    Error-specific fields, such as ``publishedPostIds`` when a bulk delete
    is refused, are returned next to ``message``.
    """

    model_config = ConfigDict(extra="allow")

    error: str = Field(..., description="Error category, e.g. validation or quota")
    message: str = Field(..., description="Human-readable error message")


class SuccessResponse(BaseModel):
    """Standard success response format."""

    success: bool = Field(default=True, description="Operation success status")
    message: str = Field(..., description="Success message")
    data: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional response data"
    )


class HealthCheckResponse(BaseModel):
    """Health check response format."""

    status: str = Field(..., description="Service health status")
    version: str = Field(..., description="Application version")
    timestamp: str = Field(..., description="Current timestamp")
    checks: Dict[str, str] = Field(
        default_factory=dict,
        description="Individual service check results"
    )
