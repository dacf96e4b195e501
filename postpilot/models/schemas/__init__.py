"""
API Schemas for Request/Response Validation

This module contains shared schemas used across different API endpoints
for request validation and response formatting.
"""

from .common import *
from .posts import *

__all__ = [
    # Common schemas
    "PaginationParams",
    "PaginatedResponse",
    "ErrorResponse",
    "SuccessResponse",
    "HealthCheckResponse",

    # Post schemas
    "PublishRequest",
    "EditPostRequest",
    "RescheduleRequest",
    "DuplicateRequest",
    "BulkDeleteRequest",
    "BulkRescheduleRequest",
    "BulkDeleteResponse",
    "BulkRescheduleResponse",
    "MarkReadRequest",
    "ProviderResponse",
    "TeamRoleResponse",
]
