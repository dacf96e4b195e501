"""
Shared plumbing for platform API clients.
"""

import time
from typing import Any, Dict, List, Optional

import httpx
import structlog

from postpilot.config.settings import get_settings
from postpilot.models.analytics import MetricSnapshot
from postpilot.models.content import PublishingResult
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.utils.logger import log_external_api_call
from postpilot.utils.time import epoch_seconds


class PlatformClient:
    """
    Base class for platform adapters.

    Subclasses implement ``publish_post``, ``fetch_metrics`` and, where the
    platform issues refresh tokens, ``refresh_access_token``. Publishing never
    raises for platform-side failures; it returns an unsuccessful
    ``PublishingResult`` carrying the error message instead.
    """

    platform: Platform
    supports_refresh: bool = False

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = get_settings()
        self.logger = structlog.get_logger(self.__class__.__module__)
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.http_timeout_seconds,
            transport=self._transport
        )

    def _record_call(self, operation: str, started: float, success: bool, **kwargs) -> None:
        log_external_api_call(
            service=self.platform.value,
            operation=operation,
            success=success,
            duration_ms=(time.perf_counter() - started) * 1000,
            **kwargs
        )

    def _failure(self, message: str) -> PublishingResult:
        return PublishingResult(platform=self.platform, success=False, error_message=message)

    def _token_payload(
        self, response: httpx.Response, previous_refresh_token: Optional[str]
    ) -> Optional[Dict[str, Any]]:
        """Normalise an OAuth token response into provider fields; None without a token."""
        try:
            data = response.json()
        except ValueError:
            self.logger.warning("Token response is not JSON", status_code=response.status_code)
            return None

        if not isinstance(data, dict) or not data.get("access_token"):
            self.logger.warning("Token response carries no access token", status_code=response.status_code)
            return None

        expires_in = data.get("expires_in") or 0
        return {
            "access_token": data["access_token"],
            "refresh_token": data.get("refresh_token") or previous_refresh_token,
            "expires_at": epoch_seconds() + int(expires_in) if expires_in else None,
        }

    async def publish_post(
        self,
        provider: SocialProvider,
        content: str,
        media_urls: Optional[List[str]] = None,
        media_alts: Optional[List[str]] = None
    ) -> PublishingResult:
        raise NotImplementedError

    async def refresh_access_token(self, provider: SocialProvider) -> Optional[Dict[str, Any]]:
        """Exchange the refresh token; None when the platform has no refresh flow."""
        return None

    async def fetch_metrics(
        self, provider: SocialProvider, platform_post_id: str
    ) -> Optional[MetricSnapshot]:
        raise NotImplementedError
