"""
Pinterest API Integration

Publishes pins through the Pinterest v5 API. A pin always goes to the
account's first board and uses the first attached image.
"""

import time
from typing import Any, Dict, List, Optional

import httpx

from postpilot.integrations.base import PlatformClient
from postpilot.models.analytics import MetricSnapshot
from postpilot.models.content import PublishingResult
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.utils.time import utcnow

PIN_TITLE_LENGTH = 100


class PinterestClient(PlatformClient):
    """Pinterest API client for pin publishing and pin metrics."""

    platform = Platform.PINTEREST
    supports_refresh = True

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport)

        self.base_url = "https://api.pinterest.com/v5"
        self.boards_endpoint = f"{self.base_url}/boards"
        self.pins_endpoint = f"{self.base_url}/pins"
        self.token_endpoint = f"{self.base_url}/oauth/token"

    def _headers(self, access_token: Optional[str]) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    async def publish_post(
        self,
        provider: SocialProvider,
        content: str,
        media_urls: Optional[List[str]] = None,
        media_alts: Optional[List[str]] = None
    ) -> PublishingResult:
        """Create a pin on the account's first board."""
        media_urls = media_urls or []
        if not media_urls:
            return self._failure("Pinterest posts require at least one image")

        self.logger.info("Publishing pin to Pinterest", provider_id=provider.id)
        started = time.perf_counter()

        try:
            async with self._client() as client:
                boards = await client.get(
                    self.boards_endpoint,
                    params={"fields": "id,name"},
                    headers=self._headers(provider.access_token)
                )
                if not boards.is_success:
                    self._record_call("list_boards", started, False, status_code=boards.status_code)
                    return self._failure("Failed to fetch Pinterest boards")

                items = boards.json().get("items") or []
                if not items:
                    return self._failure("No Pinterest boards found. Please create a board first.")

                pin_data = {
                    "board_id": items[0]["id"],
                    "title": content[:PIN_TITLE_LENGTH],
                    "description": content.strip(),
                    "media_source": {
                        "source_type": "image_url",
                        "url": media_urls[0],
                    },
                }
                if media_alts and media_alts[0]:
                    pin_data["alt_text"] = media_alts[0]

                response = await client.post(
                    self.pins_endpoint,
                    json=pin_data,
                    headers=self._headers(provider.access_token)
                )

            if not response.is_success:
                message = self._error_message(response) or "Failed to create Pinterest pin"
                self._record_call(
                    "create_pin", started, False,
                    status_code=response.status_code,
                    error=message
                )
                return self._failure(message)

            pin_id = response.json()["id"]
            self._record_call("create_pin", started, True, pin_id=pin_id)

            return PublishingResult(
                platform=self.platform,
                success=True,
                post_id=pin_id,
                post_url=f"https://www.pinterest.com/pin/{pin_id}/",
                published_at=utcnow(),
                extra={"board_id": pin_data["board_id"]},
            )

        except Exception as e:
            self.logger.error("Pinterest publishing error", provider_id=provider.id, error=str(e))
            return self._failure(str(e))

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        try:
            return response.json().get("message")
        except ValueError:
            return None

    async def refresh_access_token(self, provider: SocialProvider) -> Optional[Dict[str, Any]]:
        """Refresh a Pinterest token with app credentials."""
        if not provider.refresh_token:
            return None

        started = time.perf_counter()
        try:
            async with self._client() as client:
                response = await client.post(
                    self.token_endpoint,
                    data={
                        "grant_type": "refresh_token",
                        "refresh_token": provider.refresh_token,
                    },
                    auth=(self.settings.pinterest_app_id, self.settings.pinterest_app_secret)
                )
        except httpx.HTTPError as e:
            self.logger.error("Pinterest token refresh error", provider_id=provider.id, error=str(e))
            return None

        if not response.is_success:
            self._record_call("refresh_token", started, False, status_code=response.status_code)
            return None

        self._record_call("refresh_token", started, True)
        return self._token_payload(response, provider.refresh_token)

    async def fetch_metrics(
        self, provider: SocialProvider, platform_post_id: str
    ) -> Optional[MetricSnapshot]:
        """Read lifetime pin metrics."""
        async with self._client() as client:
            response = await client.get(
                f"{self.pins_endpoint}/{platform_post_id}",
                params={"pin_metrics": "true"},
                headers=self._headers(provider.access_token)
            )

        if not response.is_success:
            self.logger.warning(
                "Pinterest metrics fetch failed",
                pin_id=platform_post_id,
                status_code=response.status_code
            )
            return None

        lifetime = (response.json().get("pin_metrics") or {}).get("lifetime_metrics") or {}
        return MetricSnapshot(
            impressions=lifetime.get("impression", 0),
            clicks=lifetime.get("outbound_click", 0) + lifetime.get("pin_click", 0),
            likes=lifetime.get("reaction", 0),
            comments=lifetime.get("comment", 0),
            shares=lifetime.get("save", 0),
        )


# Global Pinterest client instance
pinterest_client = PinterestClient()
