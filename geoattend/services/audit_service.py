"""
Audit trail for attendance changes.

Every entry points at one attendance record and carries a snapshot of the
record's day (employee, work date, status, flag) next to the action details.
"""
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from geoattend.models.attendance import AttendanceRecord
from geoattend.models.audit_log import AuditLog
from geoattend.utils.datetime_utils import now_utc
from geoattend.utils.json_serializer import sanitize_for_json

ATTENDANCE_ENTITY = "attendance_records"


def record_snapshot(record: AttendanceRecord) -> Dict[str, Any]:
    return {
        "employee_id": record.employee_id,
        "work_date": record.work_date,
        "status": record.status,
        "flagged": bool(record.flagged),
        "flag_type": record.flag_type,
    }


def log_attendance_event(
    db: Session,
    actor_id: Optional[int],
    action: str,
    record: AttendanceRecord,
    **details: Any,
) -> AuditLog:
    """
    Write one audit row for an attendance record.

    actor_id is the employee or reviewer who acted, None for nightly jobs.
    details (branch, distance, old/new values, remark) are merged over the
    record snapshot and stored as JSON-safe meta.
    """
    meta = {**record_snapshot(record), **details}

    # created_at is stamped in UTC by the application
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=ATTENDANCE_ENTITY,
        entity_id=record.id,
        meta_json=sanitize_for_json(meta),
        created_at=now_utc(),
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry
