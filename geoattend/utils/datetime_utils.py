"""
Timezone-aware datetime helpers.
- Store and compute instants in UTC in the DB.
- Hours-of-day and work dates are read in the configured business zone (settings.BUSINESS_TZ).
"""
from datetime import datetime, timezone
from typing import Optional

from geoattend.core.config import settings

UTC = timezone.utc


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware). Use for check_in_time, check_out_time, created_at, etc."""
    return datetime.now(UTC)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """If dt is naive, treat as UTC and return timezone-aware UTC. If already aware, convert to UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    else:
        dt = dt.astimezone(UTC)
    return dt


def to_business_tz(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the business zone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(settings.business_tz)


def iso_business(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with the business zone offset. Used for API response datetime fields."""
    if dt is None:
        return None
    return to_business_tz(dt).isoformat()
