"""
Timezone Utilities

Helpers for validating user timezones and the times they schedule posts for.
Scheduled times are always stored in UTC; the user's timezone is only used
for display and to make sure one has been configured before scheduling.
"""

from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from postpilot.config.settings import get_settings
from postpilot.utils.time import ensure_utc, utcnow

COMMON_TIMEZONES = [
    "America/New_York",
    "America/Chicago",
    "America/Denver",
    "America/Los_Angeles",
    "Europe/London",
    "Europe/Paris",
    "Europe/Berlin",
    "Asia/Kolkata",
    "Asia/Bangkok",
    "Asia/Singapore",
    "Asia/Hong_Kong",
    "Asia/Tokyo",
    "Australia/Sydney",
    "Pacific/Auckland",
]


def is_valid_timezone(name: Optional[str]) -> bool:
    """Return True if ``name`` is a known IANA timezone."""
    if not name:
        return False
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def get_timezone_label(name: Optional[str]) -> str:
    """Label such as ``Asia/Kolkata (IST)``; ``UTC`` when unset."""
    if not name:
        return "UTC"
    if not is_valid_timezone(name):
        return name
    abbreviation = utcnow().astimezone(ZoneInfo(name)).tzname() or name
    return f"{name} ({abbreviation})"


def convert_to_user_timezone(value: datetime, name: Optional[str]) -> str:
    """
    Format a UTC datetime in the user's timezone.

    Falls back to the ISO-8601 UTC representation when the timezone is
    missing or unknown.
    """
    value = ensure_utc(value)
    if not is_valid_timezone(name):
        return value.isoformat()
    local = value.astimezone(ZoneInfo(name))
    return local.strftime("%b %d, %Y, %I:%M:%S %p")


def validate_schedule_time(
    scheduled_for: Optional[datetime],
    user_timezone: Optional[str],
    now: Optional[datetime] = None
) -> Optional[str]:
    """
    Validate a requested schedule time.

    Returns:
        None when the time is acceptable, otherwise the error message
    """
    if scheduled_for is None:
        return "Schedule time is required"

    if not is_valid_timezone(user_timezone):
        return "Please set your timezone in settings first"

    now = ensure_utc(now) or utcnow()
    scheduled_for = ensure_utc(scheduled_for)

    if scheduled_for <= now:
        return "Cannot schedule posts in the past"

    max_days = get_settings().max_schedule_days_ahead
    if scheduled_for > now + timedelta(days=max_days):
        return f"Cannot schedule more than {max_days} days in advance"

    return None
