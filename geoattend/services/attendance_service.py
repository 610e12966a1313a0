"""
Attendance service: check-in/check-out handler logic and the employee's own reads.
Work date = calendar date in settings.BUSINESS_TZ; instants are stored in UTC.
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from geoattend.core.exceptions import AlreadyCheckedOutError, AttendanceError, DuplicateCheckInError
from geoattend.models.attendance import AttendanceRecord, HalfDayType
from geoattend.models.employee import Employee
from geoattend.services.attendance_rules import AttendanceDecision, decide_check_in, decide_check_out
from geoattend.services.attendance_store import AttendanceStore
from geoattend.services.audit_service import log_attendance_event
from geoattend.services.directories import find_active_branches, get_active_branch
from geoattend.services.geo import GeofenceResult, evaluate_geofence, find_nearest_branch
from geoattend.services.notifications import FlaggedEvent, FlagNotifier, deliver_flag_event
from geoattend.services.time_rules import business_date
from geoattend.utils.datetime_utils import ensure_utc, now_utc

_log = logging.getLogger(__name__)


def resolve_geofence(db: Session, lat: float, lng: float, branch_id: Optional[int] = None) -> GeofenceResult:
    """Evaluate against the branch the employee picked, else the nearest active branch."""
    if branch_id is not None:
        branch = get_active_branch(db, branch_id)
    else:
        branch = find_nearest_branch(lat, lng, find_active_branches(db))
    return evaluate_geofence(lat, lng, branch)


def _reject_if_checked_in(record: AttendanceRecord) -> None:
    if record.check_in_time is not None:
        raise DuplicateCheckInError()


def _notify_if_flagged(
    employee: Employee,
    record: AttendanceRecord,
    decision: AttendanceDecision,
    notifier: Optional[FlagNotifier],
) -> None:
    if not decision.flagged:
        return
    deliver_flag_event(
        FlaggedEvent(
            employee_id=employee.id,
            manager_id=employee.manager_id,
            record_id=record.id,
            work_date=record.work_date,
            flag_type=record.flag_type,
            message=record.flag_message,
            distance=record.flag_distance,
        ),
        notifier,
    )


def check_in(
    db: Session,
    employee: Employee,
    lat: float,
    lng: float,
    *,
    branch_id: Optional[int] = None,
    now: Optional[datetime] = None,
    notifier: Optional[FlagNotifier] = None,
) -> AttendanceRecord:
    """
    Check in for today. At most one check-in per employee per work date: a second
    attempt raises DuplicateCheckInError without touching the record.
    """
    now = ensure_utc(now or now_utc())
    work_date = business_date(now)
    store = AttendanceStore(db)

    geofence = resolve_geofence(db, lat, lng, branch_id)
    existing = store.find_for_date(employee.id, work_date)
    decision = decide_check_in(existing, geofence, lat, lng, now)
    record = store.upsert_for_date(employee.id, work_date, decision.patch, guard=_reject_if_checked_in)

    _log.info(
        "check_in: employee_id=%s work_date=%s status=%s flagged=%s distance=%s",
        employee.id, work_date, record.status, record.flagged, geofence.distance,
    )
    log_attendance_event(
        db, employee.id, "ATTENDANCE_CHECK_IN", record,
        check_in_time=now,
        branch_id=geofence.branch_id,
        distance=geofence.distance,
    )
    _notify_if_flagged(employee, record, decision, notifier)
    return record


def check_out(
    db: Session,
    employee: Employee,
    lat: float,
    lng: float,
    *,
    branch_id: Optional[int] = None,
    half_day_type: Optional[HalfDayType] = None,
    now: Optional[datetime] = None,
    notifier: Optional[FlagNotifier] = None,
) -> AttendanceRecord:
    """
    Check out of today's open record: working minutes, 5-hour rule, checkout geofence.
    """
    now = ensure_utc(now or now_utc())
    work_date = business_date(now)
    store = AttendanceStore(db)

    record = store.find_for_date(employee.id, work_date)
    geofence = resolve_geofence(db, lat, lng, branch_id)
    decision = decide_check_out(record, geofence, lat, lng, now, half_day_type)

    if not store.update_if_open(record, decision.patch):
        raise AlreadyCheckedOutError()

    _log.info(
        "check_out: employee_id=%s work_date=%s working_minutes=%s status=%s flagged=%s",
        employee.id, work_date, record.working_minutes, record.status, record.flagged,
    )
    log_attendance_event(
        db, employee.id, "ATTENDANCE_CHECK_OUT", record,
        check_out_time=now,
        branch_id=geofence.branch_id,
        distance=geofence.distance,
        working_minutes=record.working_minutes,
    )
    _notify_if_flagged(employee, record, decision, notifier)
    return record


def get_today(db: Session, employee: Employee, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
    """Today's record (by business work date) for the employee, if any."""
    return AttendanceStore(db).find_for_date(employee.id, business_date(now))


def list_my_records(
    db: Session,
    employee: Employee,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
) -> List[AttendanceRecord]:
    """Employee's own records in an optional inclusive date range, newest first."""
    if from_date is not None and to_date is not None and from_date > to_date:
        raise AttendanceError("from must be less than or equal to to")
    return AttendanceStore(db).find_many(employee_id=employee.id, from_date=from_date, to_date=to_date)
