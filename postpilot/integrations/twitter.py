"""
Twitter/X API Integration

This module handles Twitter API v2 interactions: publishing tweets with
optional images, refreshing OAuth 2.0 tokens and reading tweet metrics.
"""

import base64
import time
from typing import Any, Dict, List, Optional

import httpx

from postpilot.integrations.base import PlatformClient
from postpilot.models.analytics import MetricSnapshot
from postpilot.models.content import PublishingResult
from postpilot.models.platform import Platform
from postpilot.models.provider import SocialProvider
from postpilot.utils.time import utcnow

MAX_MEDIA_PER_TWEET = 4


class TwitterClient(PlatformClient):
    """Twitter API client for content publishing and metrics."""

    platform = Platform.TWITTER
    supports_refresh = True

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize Twitter client."""
        super().__init__(transport)

        # Twitter API endpoints
        self.base_url = "https://api.twitter.com/2"
        self.tweets_endpoint = f"{self.base_url}/tweets"
        self.token_endpoint = f"{self.base_url}/oauth2/token"
        self.upload_endpoint = "https://upload.twitter.com/1.1/media/upload.json"

    async def publish_post(
        self,
        provider: SocialProvider,
        content: str,
        media_urls: Optional[List[str]] = None,
        media_alts: Optional[List[str]] = None
    ) -> PublishingResult:
        """
        Publish a tweet.

        Args:
            provider: Connected Twitter account
            content: Tweet text, already formatted for Twitter
            media_urls: Up to four image URLs to attach

        Returns:
            PublishingResult with publishing status and details
        """
        media_urls = media_urls or []
        self.logger.info(
            "Publishing tweet",
            provider_id=provider.id,
            media_count=len(media_urls)
        )
        started = time.perf_counter()

        try:
            async with self._client() as client:
                media_ids = []
                for media_url in media_urls[:MAX_MEDIA_PER_TWEET]:
                    media_id = await self._upload_media(client, media_url, provider.access_token)
                    if media_id:
                        media_ids.append(media_id)

                payload: Dict[str, Any] = {"text": content.strip()}
                if media_ids:
                    payload["media"] = {"media_ids": media_ids}

                response = await client.post(
                    self.tweets_endpoint,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {provider.access_token}",
                        "Content-Type": "application/json",
                    }
                )

            if not response.is_success:
                self._record_call(
                    "create_tweet", started, False,
                    status_code=response.status_code,
                    response=response.text
                )
                return self._failure(f"Twitter API error: {response.reason_phrase}")

            tweet_id = response.json()["data"]["id"]
            self._record_call("create_tweet", started, True, tweet_id=tweet_id)

            return PublishingResult(
                platform=self.platform,
                success=True,
                post_id=tweet_id,
                post_url=f"https://twitter.com/i/web/status/{tweet_id}",
                published_at=utcnow(),
                extra={"media_count": len(media_ids)},
            )

        except Exception as e:
            self.logger.error("Tweet publishing error", provider_id=provider.id, error=str(e))
            return self._failure(str(e))

    async def _upload_media(
        self, client: httpx.AsyncClient, media_url: str, access_token: str
    ) -> Optional[str]:
        """Upload one image through the chunked media endpoint; None on failure."""
        headers = {"Authorization": f"Bearer {access_token}"}

        try:
            image = await client.get(media_url)
            image.raise_for_status()
            image_bytes = image.content

            init = await client.post(
                self.upload_endpoint,
                data={
                    "command": "INIT",
                    "total_bytes": str(len(image_bytes)),
                    "media_type": image.headers.get("content-type", "image/jpeg"),
                },
                headers=headers
            )
            init.raise_for_status()
            media_id = init.json()["media_id_string"]

            append = await client.post(
                self.upload_endpoint,
                data={
                    "command": "APPEND",
                    "media_id": media_id,
                    "segment_index": "0",
                    "media_data": base64.b64encode(image_bytes).decode("ascii"),
                },
                headers=headers
            )
            append.raise_for_status()

            finalize = await client.post(
                self.upload_endpoint,
                data={"command": "FINALIZE", "media_id": media_id},
                headers=headers
            )
            finalize.raise_for_status()

            return media_id

        except (httpx.HTTPError, KeyError, ValueError) as e:
            self.logger.warning("Twitter media upload failed", media_url=media_url, error=str(e))
            return None

    async def refresh_access_token(self, provider: SocialProvider) -> Optional[Dict[str, Any]]:
        """Refresh an OAuth 2.0 user token with client credentials."""
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
                        "client_id": self.settings.x_client_id,
                    },
                    auth=(self.settings.x_client_id, self.settings.x_client_secret)
                )
        except httpx.HTTPError as e:
            self.logger.error("Twitter token refresh error", provider_id=provider.id, error=str(e))
            return None

        if not response.is_success:
            self._record_call("refresh_token", started, False, status_code=response.status_code)
            return None

        self._record_call("refresh_token", started, True)
        return self._token_payload(response, provider.refresh_token)

    async def fetch_metrics(
        self, provider: SocialProvider, platform_post_id: str
    ) -> Optional[MetricSnapshot]:
        """Read public, organic and non-public metrics of a tweet."""
        async with self._client() as client:
            response = await client.get(
                self.tweets_endpoint,
                params={
                    "ids": platform_post_id,
                    "tweet.fields": "public_metrics,organic_metrics,non_public_metrics",
                },
                headers={"Authorization": f"Bearer {provider.access_token}"}
            )

        if not response.is_success:
            self.logger.warning(
                "Twitter metrics fetch failed",
                tweet_id=platform_post_id,
                status_code=response.status_code
            )
            return None

        tweets = response.json().get("data") or []
        if not tweets:
            return None

        tweet = tweets[0]
        public = tweet.get("public_metrics") or {}
        organic = tweet.get("organic_metrics") or {}
        non_public = tweet.get("non_public_metrics") or {}

        def first(*values):
            for value in values:
                if value is not None:
                    return value
            return None

        return MetricSnapshot(
            impressions=first(non_public.get("impression_count"), organic.get("impression_count")) or 0,
            clicks=first(organic.get("user_profile_clicks"), non_public.get("user_profile_clicks")) or 0,
            likes=public.get("like_count", 0),
            comments=public.get("reply_count", 0),
            shares=public.get("retweet_count", 0) + public.get("quote_count", 0),
            video_views=first(
                non_public.get("video_playback_0_count"),
                organic.get("video_playback_0_count")
            ),
        )


# Global Twitter client instance
twitter_client = TwitterClient()
