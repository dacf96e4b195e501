"""
Dev.to API Integration

Publishes markdown articles through the Forem (Dev.to) API. Dev.to accounts
connect with a personal API key, so there is no token refresh.
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

TITLE_LENGTH = 100
DESCRIPTION_LENGTH = 150


def build_article_title(content: str) -> str:
    """First line of the article, capped, or a placeholder."""
    return content.split("\n")[0][:TITLE_LENGTH] or "Untitled Article"


def append_images(content: str, media_urls: List[str]) -> str:
    """Embed attached images at the end of the markdown body."""
    if not media_urls:
        return content
    images = "".join(f"![Image]({url})\n\n" for url in media_urls)
    return f"{content}\n\n{images}"


class DevToClient(PlatformClient):
    """Dev.to API client for article publishing and article stats."""

    platform = Platform.DEVTO

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(transport)
        self.articles_endpoint = "https://dev.to/api/articles"

    async def publish_post(
        self,
        provider: SocialProvider,
        content: str,
        media_urls: Optional[List[str]] = None,
        media_alts: Optional[List[str]] = None,
        tags: Optional[List[str]] = None,
        published: bool = True
    ) -> PublishingResult:
        """Publish an article; the first image becomes the cover image."""
        media_urls = media_urls or []
        title = build_article_title(content)
        self.logger.info("Publishing article to Dev.to", provider_id=provider.id, title=title)
        started = time.perf_counter()

        payload: Dict[str, Any] = {
            "article": {
                "title": title,
                "body_markdown": append_images(content, media_urls),
                "published": published,
                "tags": tags or [],
                "series": None,
                "canonical_url": "",
                "description": title[:DESCRIPTION_LENGTH],
                "main_image": media_urls[0] if media_urls else None,
                "organization_id": None,
            }
        }

        try:
            async with self._client() as client:
                response = await client.post(
                    self.articles_endpoint,
                    json=payload,
                    headers={
                        "api-key": provider.access_token or "",
                        "Content-Type": "application/json",
                    }
                )

            if not response.is_success:
                self._record_call(
                    "create_article", started, False,
                    status_code=response.status_code,
                    response=response.text
                )
                return self._failure(f"Dev.to API error: {response.reason_phrase}")

            article = response.json()
            article_id = str(article["id"])
            self._record_call("create_article", started, True, article_id=article_id)

            return PublishingResult(
                platform=self.platform,
                success=True,
                post_id=article_id,
                post_url=article.get("url"),
                published_at=utcnow(),
                extra={"title": title, "media_count": len(media_urls)},
            )

        except Exception as e:
            self.logger.error("Dev.to publishing error", provider_id=provider.id, error=str(e))
            return self._failure(str(e))

    async def fetch_metrics(
        self, provider: SocialProvider, platform_post_id: str
    ) -> Optional[MetricSnapshot]:
        """Read view, reaction and comment counts of an article."""
        async with self._client() as client:
            response = await client.get(
                f"{self.articles_endpoint}/{platform_post_id}",
                headers={"api-key": provider.access_token or ""}
            )

        if not response.is_success:
            self.logger.warning(
                "Dev.to metrics fetch failed",
                article_id=platform_post_id,
                status_code=response.status_code
            )
            return None

        article = response.json()
        page_views = article.get("page_views_count") or 0
        return MetricSnapshot(
            impressions=page_views,
            clicks=page_views,
            likes=article.get("public_reactions_count") or 0,
            comments=article.get("comments_count") or 0,
            shares=0,
        )


# Global Dev.to client instance
devto_client = DevToClient()
