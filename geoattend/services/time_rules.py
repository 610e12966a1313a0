"""
Time-window classification in the configured business time zone (settings.BUSINESS_TZ).
"""
from datetime import date, datetime, time
from typing import Iterable, Optional, Union

from geoattend.core.config import settings
from geoattend.utils.datetime_utils import now_utc, to_business_tz, ensure_utc

# 00:01 and 23:59 as minutes of the day
ATTENDANCE_WINDOW_START_MINUTE = 1
ATTENDANCE_WINDOW_END_MINUTE = 23 * 60 + 59


def to_business_time(instant: datetime) -> datetime:
    return to_business_tz(instant)


def business_date(instant: Optional[datetime] = None) -> date:
    """Work date (calendar date in settings.BUSINESS_TZ) for the given instant (default now)."""
    return to_business_tz(instant or now_utc()).date()


def business_datetime(day: date, hour: int, minute: int = 0) -> datetime:
    """The UTC instant of `day` at hour:minute business time."""
    local = datetime.combine(day, time(hour, minute), tzinfo=settings.business_tz)
    return ensure_utc(local)


def is_sunday(day: Union[date, datetime]) -> bool:
    if isinstance(day, datetime):
        day = business_date(day)
    return day.weekday() == 6


def is_within_office_hours(instant: datetime) -> bool:
    """True for OFFICE_HOURS_START:00:00 up to, not including, OFFICE_HOURS_END:00:00."""
    hour = to_business_time(instant).hour
    return settings.OFFICE_HOURS_START <= hour < settings.OFFICE_HOURS_END


def is_within_allowed_attendance_window(instant: datetime) -> bool:
    """True from 00:01 to 23:59 inclusive; only the 00:00 minute is outside."""
    local = to_business_time(instant)
    minutes = local.hour * 60 + local.minute
    return ATTENDANCE_WINDOW_START_MINUTE <= minutes <= ATTENDANCE_WINDOW_END_MINUTE


def _holiday_date(holiday) -> date:
    value = getattr(holiday, "date", holiday)
    if isinstance(value, datetime):
        return value.date()
    return value


def is_holiday(day: date, holidays: Iterable) -> bool:
    """Exact calendar-date match against dates or objects with a `date` attribute."""
    return any(_holiday_date(h) == day for h in holidays)
