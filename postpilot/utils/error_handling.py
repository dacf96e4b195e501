"""
Centralized Error Handling

This module provides the PostPilot exception taxonomy and recovery helpers:
- Custom exception classes with category, severity and recoverability
- HTTP status mapping used by the API exception handler
- Retry decorator with exponential backoff for idempotent calls
"""

import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from functools import wraps
from typing import Any, Dict, List, Optional, Type

import structlog

from postpilot.utils.time import utcnow


class ErrorCategory(Enum):
    """Categories of errors for classification."""
    TRANSIENT = "transient"  # Temporary errors that may resolve
    PERMANENT = "permanent"  # Errors that won't resolve without intervention
    RATE_LIMIT = "rate_limit"  # Request throttling, ours or a platform's
    AUTHENTICATION = "authentication"  # Missing or expired credentials
    PERMISSION = "permission"  # Authenticated but not allowed
    NOT_FOUND = "not_found"  # Referenced record does not exist
    QUOTA = "quota"  # Plan or account allowance used up
    VALIDATION = "validation"  # Input validation errors
    EXTERNAL_SERVICE = "external_service"  # Platform API errors
    SYSTEM = "system"  # Internal system errors


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class ErrorContext:
    """Context information for errors."""
    service: str
    operation: str
    user_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class PostPilotError(Exception):
    """Base exception class for PostPilot errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None,
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context
        self.original_error = original_error
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = utcnow()


class ValidationError(PostPilotError):
    """Input validation errors."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            recoverable=False,
            **kwargs
        )
        self.field = field


class AuthenticationError(PostPilotError):
    """Authentication errors, including expired platform tokens."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            recoverable=False,
            **kwargs
        )


class PermissionDeniedError(PostPilotError):
    """Caller does not own or may not manage the resource."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.PERMISSION,
            severity=ErrorSeverity.MEDIUM,
            recoverable=False,
            **kwargs
        )


class NotFoundError(PostPilotError):
    """Referenced record does not exist."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.LOW,
            recoverable=False,
            **kwargs
        )


class ProviderNotConnectedError(PostPilotError):
    """No usable connected account for the platform, or its token expired."""

    def __init__(self, message: str, platform: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.MEDIUM,
            recoverable=False,
            **kwargs
        )
        self.platform = platform


class QuotaExceededError(PostPilotError):
    """Plan allowance or per-account publish quota exhausted."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.QUOTA,
            severity=ErrorSeverity.MEDIUM,
            recoverable=False,
            **kwargs
        )


class APIRateLimitError(PostPilotError):
    """Rate limiting errors."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ):
        super().__init__(
            message,
            category=ErrorCategory.RATE_LIMIT,
            severity=ErrorSeverity.MEDIUM,
            recoverable=True,
            **kwargs
        )
        self.retry_after = retry_after
        self.headers = headers or {}


class ExternalServiceError(PostPilotError):
    """External service errors."""

    def __init__(
        self,
        message: str,
        service_name: str,
        status_code: Optional[int] = None,
        **kwargs
    ):
        super().__init__(
            message,
            category=ErrorCategory.EXTERNAL_SERVICE,
            severity=ErrorSeverity.MEDIUM,
            **kwargs
        )
        self.service_name = service_name
        self.status_code = status_code


HTTP_STATUS_BY_CATEGORY: Dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.PERMISSION: 403,
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.QUOTA: 403,
    ErrorCategory.RATE_LIMIT: 429,
    ErrorCategory.EXTERNAL_SERVICE: 502,
}


def http_status_for(error: PostPilotError) -> int:
    """Map an error to the HTTP status code returned by the API."""
    return HTTP_STATUS_BY_CATEGORY.get(error.category, 500)


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_errors: Optional[List[Type[Exception]]] = None
):
    """Decorator for adding retry logic to coroutine functions."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)

                except Exception as e:
                    last_exception = e

                    if retryable_errors and not any(isinstance(e, err_type) for err_type in retryable_errors):
                        raise

                    if attempt == max_attempts - 1:
                        raise

                    delay = min(base_delay * (exponential_base ** attempt), max_delay)
                    if jitter:
                        delay *= (0.5 + random.random() * 0.5)

                    structlog.get_logger(__name__).warning(
                        "Retrying after error",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=max_attempts,
                        delay=delay,
                        error=str(e)
                    )

                    await asyncio.sleep(delay)

            raise last_exception

        return wrapper
    return decorator
