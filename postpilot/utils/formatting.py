"""
Content formatting and validation per platform.

Markdown emphasis is stripped for every platform except Dev.to, which
renders markdown natively. Twitter and Pinterest content is truncated to
the platform's length limit before validation.
"""

import re
from typing import List, Optional

from postpilot.models.platform import Platform

_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")

MAX_LENGTH = {
    Platform.TWITTER: 280,
    Platform.PINTEREST: 500,
    Platform.DEVTO: 65535,
}

TWITTER_MAX_MEDIA = 4


def strip_markdown_basic(text: str) -> str:
    """Remove ``**bold**`` and ``*italic*`` markers, keeping the text."""
    text = _BOLD.sub(r"\1", text)
    return _ITALIC.sub(r"\1", text)


def format_content_for_platform(platform: Platform, content: str) -> str:
    """Normalise raw composer content for a platform."""
    cleaned = content if platform == Platform.DEVTO else strip_markdown_basic(content)
    cleaned = cleaned.strip()

    if platform in (Platform.TWITTER, Platform.PINTEREST):
        return cleaned[:MAX_LENGTH[platform]]
    return cleaned


def validate_post_content(
    platform: Platform,
    content: str,
    media_urls: Optional[List[str]] = None
) -> Optional[str]:
    """
    Check content against the platform's rules.

    Returns:
        None when valid, otherwise a user-facing error message
    """
    media_urls = media_urls or []

    if not content or not content.strip():
        return "Content is required"

    if platform == Platform.TWITTER:
        if len(content) > MAX_LENGTH[Platform.TWITTER]:
            return "Twitter posts are limited to 280 characters"
        if len(media_urls) > TWITTER_MAX_MEDIA:
            return "Twitter supports maximum 4 images per tweet"

    elif platform == Platform.PINTEREST:
        if len(content) > MAX_LENGTH[Platform.PINTEREST]:
            return "Pinterest descriptions are limited to 500 characters"
        if not media_urls:
            return "Pinterest posts require at least one image"

    elif platform == Platform.DEVTO:
        if len(content) > MAX_LENGTH[Platform.DEVTO]:
            return "Dev.to articles are limited to 65535 characters"

    return None
