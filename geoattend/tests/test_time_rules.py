"""
Tests for office-hours and attendance-window classification (settings.BUSINESS_TZ = Asia/Kolkata)
"""
from datetime import date, datetime, timezone

from geoattend.models.holiday import Holiday
from geoattend.services.time_rules import (
    business_date,
    business_datetime,
    is_holiday,
    is_sunday,
    is_within_allowed_attendance_window,
    is_within_office_hours,
)


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


def test_office_hours_start_is_inclusive():
    # 08:59 and 09:00 IST
    assert is_within_office_hours(utc(2026, 3, 10, 3, 29)) is False
    assert is_within_office_hours(utc(2026, 3, 10, 3, 30)) is True


def test_office_hours_end_is_exclusive():
    # 19:59:59 and 20:00 IST
    assert is_within_office_hours(utc(2026, 3, 10, 14, 29, 59)) is True
    assert is_within_office_hours(utc(2026, 3, 10, 14, 30)) is False


def test_naive_datetimes_are_read_as_utc():
    assert is_within_office_hours(datetime(2026, 3, 10, 4, 30)) is True


def test_only_midnight_minute_is_outside_attendance_window():
    # 00:00, 00:01 and 23:59 IST
    assert is_within_allowed_attendance_window(utc(2026, 3, 9, 18, 30)) is False
    assert is_within_allowed_attendance_window(utc(2026, 3, 9, 18, 30, 59)) is False
    assert is_within_allowed_attendance_window(utc(2026, 3, 9, 18, 31)) is True
    assert is_within_allowed_attendance_window(utc(2026, 3, 10, 18, 29)) is True


def test_is_sunday():
    assert is_sunday(date(2026, 3, 8)) is True
    assert is_sunday(date(2026, 3, 10)) is False


def test_is_sunday_uses_business_date_for_instants():
    # Saturday 19:00 UTC is already Sunday 00:30 IST
    assert is_sunday(utc(2026, 3, 7, 19, 0)) is True


def test_business_date_crosses_midnight_before_utc():
    assert business_date(utc(2026, 3, 9, 19, 0)) == date(2026, 3, 10)
    assert business_date(utc(2026, 3, 9, 18, 0)) == date(2026, 3, 9)


def test_business_datetime_returns_utc_instant():
    assert business_datetime(date(2026, 3, 10), 21, 0) == utc(2026, 3, 10, 15, 30)


def test_is_holiday_exact_date_match():
    holidays = [Holiday(date=date(2026, 1, 26), name="Republic Day"), date(2026, 8, 15)]
    assert is_holiday(date(2026, 1, 26), holidays) is True
    assert is_holiday(date(2026, 8, 15), holidays) is True
    assert is_holiday(date(2026, 1, 27), holidays) is False
    assert is_holiday(date(2026, 1, 26), []) is False
