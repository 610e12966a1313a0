"""
Attendance state determiner.

Pure decision functions: given a check-in/check-out attempt, the geofence
evaluation and the existing record for the day, compute the resulting status,
flag and distance fields. Nothing here touches the database; callers apply the
returned patch through AttendanceStore.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from geoattend.core.config import settings
from geoattend.core.exceptions import (
    AlreadyCheckedOutError,
    DuplicateCheckInError,
    NoOpenCheckInError,
)
from geoattend.models.attendance import AttendanceStatus, FlagType, HalfDayType
from geoattend.services.geo import GeofenceResult
from geoattend.services.time_rules import (
    is_within_allowed_attendance_window,
    is_within_office_hours,
)
from geoattend.utils.datetime_utils import ensure_utc

FLAG_MESSAGE_SEPARATOR = " | "


@dataclass(frozen=True)
class FlagReason:
    type: FlagType
    message: str
    distance: Optional[float] = None

    def as_fields(self) -> Dict[str, Any]:
        return {
            "flag_type": self.type.value,
            "flag_message": self.message,
            "flag_distance": self.distance,
        }


@dataclass
class AttendanceDecision:
    """Resulting field values for one event; `patch` is applied to the record as-is."""

    status: AttendanceStatus
    patch: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[FlagReason] = None

    @property
    def flagged(self) -> bool:
        return self.reason is not None


def working_minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, floored, never negative."""
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return max(0, int(seconds // 60))


def classify_working_minutes(minutes: int) -> AttendanceStatus:
    """5-hour rule: strictly more than the threshold is a full day; the threshold itself is a half-day."""
    if minutes > settings.HALF_DAY_THRESHOLD_MINUTES:
        return AttendanceStatus.PRESENT
    return AttendanceStatus.HALF_DAY


def merge_flag_message(previous: Optional[str], message: str) -> str:
    """Append a new flag message to an earlier one, once."""
    if not previous:
        return message
    if message in previous.split(FLAG_MESSAGE_SEPARATOR):
        return previous
    return f"{previous}{FLAG_MESSAGE_SEPARATOR}{message}"


def _breach_reason(geofence: GeofenceResult, event: str) -> FlagReason:
    if geofence.branch is None:
        return FlagReason(
            type=FlagType.LOCATION_BREACH,
            message=f"{event} with no active office branch configured - Awaiting manager approval",
        )
    return FlagReason(
        type=FlagType.LOCATION_BREACH,
        message=(
            f"{event} outside geofence - {geofence.distance:.2f} meters away from "
            f"{geofence.branch.name} (allowed {geofence.branch.radius:g} m) - Awaiting manager approval"
        ),
        distance=geofence.distance,
    )


def _clear_flag_fields() -> Dict[str, Any]:
    return {"flagged": False, "flag_type": None, "flag_message": None, "flag_distance": None}


def decide_check_in(
    existing,
    geofence: GeofenceResult,
    lat: float,
    lng: float,
    instant: datetime,
) -> AttendanceDecision:
    """
    Decide the outcome of a check-in attempt.

    Raises DuplicateCheckInError if the day's record already has a check-in.
    A geofence breach is a valid outcome (outside-duty, flagged), not an error.
    """
    if existing is not None and existing.check_in_time is not None:
        raise DuplicateCheckInError()

    instant = ensure_utc(instant)
    reason = None
    if not geofence.within:
        status = AttendanceStatus.OUTSIDE_DUTY
        reason = _breach_reason(geofence, "Check-in")
    elif not is_within_allowed_attendance_window(instant):
        status = AttendanceStatus.OUTSIDE_DUTY
        reason = FlagReason(
            type=FlagType.OUTSIDE_WINDOW,
            message="Check-in outside allowed hours (12:01 AM - 11:59 PM)",
        )
    elif not is_within_office_hours(instant):
        # Provisional; the final status is resolved at check-out
        status = AttendanceStatus.PRESENT
        reason = FlagReason(
            type=FlagType.OFF_HOURS,
            message=(
                f"Check-in outside office hours ({settings.OFFICE_HOURS_START:02d}:00 - "
                f"{settings.OFFICE_HOURS_END:02d}:00) - Awaiting manager approval"
            ),
        )
    else:
        status = AttendanceStatus.PRESENT

    patch = {
        "check_in_time": instant,
        "check_in_lat": lat,
        "check_in_lng": lng,
        "check_in_branch_id": geofence.branch_id,
        "check_in_distance": geofence.distance,
        "status": status.value,
        "working_minutes": 0,
        "is_half_day": False,
        "half_day_type": None,
    }
    if reason is not None:
        patch["flagged"] = True
        patch.update(reason.as_fields())
    else:
        patch.update(_clear_flag_fields())

    return AttendanceDecision(status=status, patch=patch, reason=reason)


def decide_check_out(
    record,
    geofence: GeofenceResult,
    lat: float,
    lng: float,
    instant: datetime,
    half_day_type: Optional[HalfDayType] = None,
) -> AttendanceDecision:
    """
    Decide the outcome of a check-out attempt against the day's record.

    Raises NoOpenCheckInError without a check-in and AlreadyCheckedOutError on a
    second check-out. Existing flags are kept; a checkout breach adds one.
    """
    if record is None or record.check_in_time is None:
        raise NoOpenCheckInError()
    if record.check_out_time is not None:
        raise AlreadyCheckedOutError()

    instant = ensure_utc(instant)
    minutes = working_minutes_between(record.check_in_time, instant)
    status = classify_working_minutes(minutes)

    # A check-in that was already outside duty stays outside duty
    if record.status == AttendanceStatus.OUTSIDE_DUTY.value:
        status = AttendanceStatus.OUTSIDE_DUTY

    patch = {
        "check_out_time": instant,
        "check_out_lat": lat,
        "check_out_lng": lng,
        "check_out_branch_id": geofence.branch_id,
        "check_out_distance": geofence.distance,
        "working_minutes": minutes,
    }

    reason = None
    if not geofence.within:
        status = AttendanceStatus.OUTSIDE_DUTY
        reason = _breach_reason(geofence, "Check-out")
        patch["flagged"] = True
        patch.update(reason.as_fields())
        if record.flagged:
            patch["flag_message"] = merge_flag_message(record.flag_message, reason.message)

    patch["status"] = status.value
    if status == AttendanceStatus.HALF_DAY:
        patch["is_half_day"] = True
        patch["half_day_type"] = HalfDayType(half_day_type).value if half_day_type is not None else None
    else:
        patch["is_half_day"] = False
        patch["half_day_type"] = None

    return AttendanceDecision(status=status, patch=patch, reason=reason)
