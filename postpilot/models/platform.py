"""
Social platform enumeration and display helpers.
"""

from enum import Enum
from typing import Any, Dict, Optional


class Platform(str, Enum):
    """Supported publishing platforms."""
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    PINTEREST = "pinterest"
    DEVTO = "devto"

    @property
    def label(self) -> str:
        """Human readable platform name."""
        return PLATFORM_LABELS[self]

    @property
    def slug(self) -> str:
        """Route segment used in URLs, ``dev_to`` for Dev.to."""
        return "dev_to" if self == Platform.DEVTO else self.value

    @classmethod
    def from_slug(cls, value: str) -> "Platform":
        """Parse a platform from a route slug or stored value."""
        normalized = value.strip().lower()
        if normalized in ("dev_to", "dev.to"):
            return cls.DEVTO
        return cls(normalized)


PLATFORM_LABELS = {
    Platform.LINKEDIN: "LinkedIn",
    Platform.TWITTER: "Twitter",
    Platform.PINTEREST: "Pinterest",
    Platform.DEVTO: "Dev.to",
}


def get_display_username(platform: Platform, profile_data: Optional[Dict[str, Any]]) -> str:
    """Account name shown next to a connected provider."""
    if not profile_data:
        return ""
    if platform == Platform.LINKEDIN:
        return profile_data.get("name") or "LinkedIn Account"
    return f"@{profile_data.get('username') or 'user'}"
