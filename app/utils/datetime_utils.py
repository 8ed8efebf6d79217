"""
Timezone-aware datetime helpers.
- Store and compute in UTC in DB.
- Calendar dates (attendance date, report date, Dec-31 check) are taken in the organisation timezone (settings.APP_TIMEZONE).
"""
from datetime import date, datetime, time, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from app.core.config import settings

UTC = timezone.utc


def org_tz() -> ZoneInfo:
    return ZoneInfo(settings.APP_TIMEZONE)


def now_utc() -> datetime:
    """Current time in UTC (timezone-aware)."""
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


def to_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Convert to the organisation timezone. Naive datetimes are treated as UTC before converting."""
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(org_tz())


def local_date(dt: datetime) -> date:
    """Calendar date of dt in the organisation timezone."""
    return to_local(dt).date()


def end_of_local_day(d: date) -> datetime:
    """23:59:59 of d in the organisation timezone, returned in UTC."""
    return datetime.combine(d, time(23, 59, 59), tzinfo=org_tz()).astimezone(UTC)


def iso_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize as ISO-8601 with the organisation offset. Use for API response datetime fields."""
    if dt is None:
        return None
    return to_local(dt).isoformat()
