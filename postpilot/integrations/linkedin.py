"""
LinkedIn API Integration

This module handles LinkedIn API interactions for posting content
and retrieving engagement data.
"""

import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from postpilot.integrations.base import PlatformClient
from postpilot.models.analytics import MetricSnapshot
from postpilot.models.content import PublishingResult
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.utils.time import utcnow


class LinkedInClient(PlatformClient):
    """LinkedIn API client for content publishing and analytics."""

    platform = Platform.LINKEDIN
    supports_refresh = True

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize LinkedIn client."""
        super().__init__(transport)

        # LinkedIn API endpoints
        self.base_url = "https://api.linkedin.com/v2"
        self.posts_endpoint = f"{self.base_url}/ugcPosts"
        self.social_actions_endpoint = "https://api.linkedin.com/rest/socialActions"
        self.token_endpoint = "https://www.linkedin.com/oauth/v2/accessToken"

    async def publish_post(
        self,
        provider: SocialProvider,
        content: str,
        media_urls: Optional[List[str]] = None,
        media_alts: Optional[List[str]] = None
    ) -> PublishingResult:
        """
        Publish a post to LinkedIn.

        Args:
            provider: Connected LinkedIn account
            content: Post text
            media_urls: Links shared as ARTICLE media

        Returns:
            PublishingResult with publishing status and details
        """
        self.logger.info("Publishing post to LinkedIn", provider_id=provider.id)
        started = time.perf_counter()

        try:
            headers = {
                "Authorization": f"Bearer {provider.access_token}",
                "Content-Type": "application/json",
                "X-Restli-Protocol-Version": "2.0.0",
            }

            async with self._client() as client:
                response = await client.post(
                    self.posts_endpoint,
                    json=self._prepare_post_data(provider, content, media_urls or []),
                    headers=headers
                )

            if not response.is_success:
                self._record_call(
                    "create_post", started, False,
                    status_code=response.status_code,
                    response=response.text
                )
                return self._failure(f"LinkedIn API error: {response.reason_phrase}")

            post_urn = self._extract_post_id(response)
            self._record_call("create_post", started, True, post_id=post_urn)

            return PublishingResult(
                platform=self.platform,
                success=True,
                post_id=post_urn,
                post_url=f"https://www.linkedin.com/feed/update/{post_urn}" if post_urn else None,
                published_at=utcnow(),
            )

        except Exception as e:
            self.logger.error(
                "LinkedIn post publishing error",
                provider_id=provider.id,
                error=str(e)
            )
            return self._failure(str(e))

    def _prepare_post_data(
        self, provider: SocialProvider, content: str, media_urls: List[str]
    ) -> Dict[str, Any]:
        """Prepare UGC post payload for the LinkedIn API."""
        share_content: Dict[str, Any] = {
            "shareCommentary": {"text": content},
            "shareMediaCategory": "NONE",
        }

        if media_urls:
            share_content["shareMediaCategory"] = "ARTICLE"
            share_content["media"] = [
                {
                    "status": "READY",
                    "description": {"text": ""},
                    "media": url,
                    "title": {"text": ""},
                }
                for url in media_urls
            ]

        return {
            "author": f"urn:li:person:{provider.provider_user_id}",
            "lifecycleState": "PUBLISHED",
            "specificContent": {"com.linkedin.ugc.ShareContent": share_content},
            "visibility": {"com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"},
        }

    @staticmethod
    def _extract_post_id(response: httpx.Response) -> Optional[str]:
        """The post URN from the body, or the ``x-restli-id`` header."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        return body.get("id") or response.headers.get("x-restli-id")

    async def refresh_access_token(self, provider: SocialProvider) -> Optional[Dict[str, Any]]:
        """Refresh a LinkedIn token; only partner apps receive refresh tokens."""
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
                        "client_id": self.settings.linkedin_client_id,
                        "client_secret": self.settings.linkedin_client_secret,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"}
                )
        except httpx.HTTPError as e:
            self.logger.error("LinkedIn token refresh error", provider_id=provider.id, error=str(e))
            return None

        if not response.is_success:
            self._record_call("refresh_token", started, False, status_code=response.status_code)
            return None

        self._record_call("refresh_token", started, True)
        return self._token_payload(response, provider.refresh_token)

    async def fetch_metrics(
        self, provider: SocialProvider, platform_post_id: str
    ) -> Optional[MetricSnapshot]:
        """Read the social actions summary of a post."""
        async with self._client() as client:
            response = await client.get(
                f"{self.social_actions_endpoint}/{quote(platform_post_id, safe='')}",
                headers={
                    "Authorization": f"Bearer {provider.access_token}",
                    "X-Restli-Protocol-Version": "2.0.0",
                    "LinkedIn-Version": "202401",
                }
            )

        if not response.is_success:
            self.logger.warning(
                "LinkedIn metrics fetch failed",
                post_id=platform_post_id,
                status_code=response.status_code
            )
            return None

        data = response.json()
        return MetricSnapshot(
            impressions=((data.get("viewStatistics") or {}).get("views") or {}).get("value", 0),
            clicks=data.get("clicks", 0),
            likes=(data.get("likesSummary") or {}).get("totalLikes", 0),
            comments=(data.get("commentsSummary") or {}).get("totalFirstLevelComments", 0),
            shares=(data.get("shareStatistics") or {}).get("shareCount", 0),
        )


# Global LinkedIn client instance
linkedin_client = LinkedInClient()
