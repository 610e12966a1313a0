"""
Manager review of flagged attendance records.
MANAGER sees and reviews direct reports only; HR and ADMIN see everyone.
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from geoattend.core.exceptions import (
    AttendanceError,
    NotFlaggedError,
    RecordNotFoundError,
    ReviewForbiddenError,
)
from geoattend.models.attendance import AttendanceRecord, AttendanceStatus, HalfDayType
from geoattend.models.employee import Employee, Role
from geoattend.services.attendance_rules import working_minutes_between
from geoattend.services.attendance_store import AttendanceStore
from geoattend.services.audit_service import log_attendance_event
from geoattend.utils.datetime_utils import ensure_utc, now_utc
from geoattend.utils.enums import enum_to_str

logger = logging.getLogger(__name__)


def _is_unrestricted(reviewer: Employee) -> bool:
    return reviewer.role in (Role.HR, Role.ADMIN)


def _direct_report_ids(db: Session, manager: Employee) -> List[int]:
    rows = db.query(Employee.id).filter(Employee.manager_id == manager.id).all()
    return [row[0] for row in rows]


def list_flagged(db: Session, reviewer: Employee, work_date: Optional[date] = None) -> List[AttendanceRecord]:
    """Flagged records awaiting review, optionally for one work date."""
    store = AttendanceStore(db)
    if _is_unrestricted(reviewer):
        return store.find_many(work_date=work_date, flagged=True)
    return store.find_many(
        employee_ids=_direct_report_ids(db, reviewer),
        work_date=work_date,
        flagged=True,
    )


def review_record(
    db: Session,
    record_id: int,
    reviewer: Employee,
    status: AttendanceStatus,
    remark: Optional[str] = None,
    check_out_time: Optional[datetime] = None,
    half_day_type: Optional[HalfDayType] = None,
) -> AttendanceRecord:
    """
    Settle a flagged record: set its final status, clear the flag and stamp the
    reviewer. A corrected check_out_time recomputes working minutes.

    A reviewed, unflagged record is left alone by the auto-checkout job.
    """
    store = AttendanceStore(db)
    record = store.get(record_id)
    if record is None:
        raise RecordNotFoundError()
    if not _is_unrestricted(reviewer) and record.employee.manager_id != reviewer.id:
        raise ReviewForbiddenError()
    if not record.flagged:
        raise NotFlaggedError()

    status_value = enum_to_str(status)
    meta = {
        "old_status": record.status,
        "new_status": status_value,
        "old_flag_type": record.flag_type,
        "old_flag_message": record.flag_message,
    }
    patch = {
        "status": status_value,
        "flagged": False,
        "flag_type": None,
        "flag_message": None,
        "flag_distance": None,
        "reviewed_by_id": reviewer.id,
        "reviewed_at": now_utc(),
        "review_remark": remark,
    }

    if check_out_time is not None:
        if record.check_in_time is None:
            raise AttendanceError("Cannot set check-out on a record without check-in")
        corrected = ensure_utc(check_out_time)
        if corrected < ensure_utc(record.check_in_time):
            raise AttendanceError("check_out_time must not be before check_in_time")
        meta["old_check_out_time"] = record.check_out_time
        meta["new_check_out_time"] = corrected
        patch["check_out_time"] = corrected
        patch["working_minutes"] = working_minutes_between(record.check_in_time, corrected)

    if status_value == AttendanceStatus.HALF_DAY.value:
        patch["is_half_day"] = True
        patch["half_day_type"] = enum_to_str(half_day_type) if half_day_type is not None else record.half_day_type
    else:
        patch["is_half_day"] = False
        patch["half_day_type"] = None

    record = store.update(record, patch)
    logger.info(
        "review: record_id=%s employee_id=%s status %s -> %s by reviewer_id=%s",
        record.id, record.employee_id, meta["old_status"], status_value, reviewer.id,
    )
    log_attendance_event(db, reviewer.id, "ATTENDANCE_REVIEW", record, remark=remark, **meta)
    return record
