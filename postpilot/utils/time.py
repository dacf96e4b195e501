"""Time helpers shared across services."""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_month(now: Optional[datetime] = None) -> datetime:
    """First instant of the UTC calendar month containing ``now``."""
    now = ensure_utc(now) or utcnow()
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def epoch_seconds(now: Optional[datetime] = None) -> int:
    """Whole seconds since the epoch, the unit token expiries are stored in."""
    now = ensure_utc(now) or utcnow()
    return int(now.timestamp())
