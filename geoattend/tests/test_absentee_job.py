"""
Tests for the nightly absentee marker
"""
from datetime import date, datetime, timezone

import pytest

from geoattend.core.security import hash_password
from geoattend.models.attendance import AttendanceRecord
from geoattend.models.employee import Employee, Role
from geoattend.models.holiday import Holiday
from geoattend.models.leave import LeaveRequest, LeaveStatus
from geoattend.services import absentee_job
from geoattend.services.absentee_job import mark_absentees

TUESDAY = date(2026, 3, 10)
SUNDAY = date(2026, 3, 8)


class RecordingInvalidator:
    def __init__(self):
        self.calls = []

    def invalidate(self, user_ids):
        self.calls.append(list(user_ids))


def _employee(db, emp_code, role=Role.EMPLOYEE, active=True):
    employee = Employee(
        emp_code=emp_code,
        name=emp_code,
        role=role.value,
        password_hash=hash_password("pass"),
        active=active,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


def _record(db, employee_id, day):
    return (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.employee_id == employee_id, AttendanceRecord.work_date == day)
        .first()
    )


@pytest.fixture
def staff(db, employee):
    on_leave = _employee(db, "EMP002")
    checked_in = _employee(db, "EMP003")
    inactive = _employee(db, "EMP004", active=False)
    db.add(LeaveRequest(
        employee_id=on_leave.id,
        start_date=date(2026, 3, 9),
        end_date=date(2026, 3, 11),
        status=LeaveStatus.APPROVED.value,
    ))
    db.add(AttendanceRecord(
        employee_id=checked_in.id,
        work_date=TUESDAY,
        check_in_time=datetime(2026, 3, 10, 4, 30, tzinfo=timezone.utc),
        status="present",
        flagged=False,
    ))
    db.commit()
    return {"absent": employee, "on_leave": on_leave, "checked_in": checked_in, "inactive": inactive}


def test_marks_absent_and_on_leave(db, staff, manager):
    invalidator = RecordingInvalidator()
    summary = mark_absentees(db, TUESDAY, cache_invalidator=invalidator)

    assert summary.absentees == 1
    assert summary.on_leave == 1
    assert summary.skipped_existing == 1
    assert summary.failed == 0
    assert summary.total_processed == 3
    assert sorted(summary.affected_user_ids) == sorted([staff["absent"].id, staff["on_leave"].id])
    assert invalidator.calls == [summary.affected_user_ids]

    absent = _record(db, staff["absent"].id, TUESDAY)
    assert absent.status == "absent"
    assert absent.flagged is False
    assert absent.check_in_time is None
    assert _record(db, staff["on_leave"].id, TUESDAY).status == "on-leave"
    assert _record(db, staff["checked_in"].id, TUESDAY).status == "present"
    # Managers and inactive employees are not marked
    assert _record(db, manager.id, TUESDAY) is None
    assert _record(db, staff["inactive"].id, TUESDAY) is None


def test_rerun_changes_nothing(db, staff):
    mark_absentees(db, TUESDAY)
    summary = mark_absentees(db, TUESDAY)

    assert summary.absentees == 0
    assert summary.on_leave == 0
    assert summary.skipped_existing == 3
    assert db.query(AttendanceRecord).filter(AttendanceRecord.work_date == TUESDAY).count() == 3


def test_small_pages_cover_everyone(db, employee):
    for i in range(5):
        _employee(db, f"PAGE{i}")
    summary = mark_absentees(db, TUESDAY, page_size=2)
    assert summary.total_processed == 6
    assert summary.absentees == 6


def test_sunday_absence_is_flagged(db, employee):
    summary = mark_absentees(db, SUNDAY)

    assert summary.is_holiday is True
    record = _record(db, employee.id, SUNDAY)
    assert record.status == "absent"
    assert record.flagged is True
    assert record.flag_type == "holiday"
    assert record.flag_message == "Sunday holiday"


def test_declared_holiday_absence_is_flagged(db, employee):
    db.add(Holiday(date=TUESDAY, name="Holi"))
    db.commit()

    mark_absentees(db, TUESDAY)

    record = _record(db, employee.id, TUESDAY)
    assert record.flagged is True
    assert record.flag_message == "Declared holiday: Holi"


def test_leave_on_holiday_is_not_flagged(db, staff):
    db.add(Holiday(date=date(2026, 3, 11), name="Festival"))
    db.commit()
    mark_absentees(db, date(2026, 3, 11))

    record = _record(db, staff["on_leave"].id, date(2026, 3, 11))
    assert record.status == "on-leave"
    assert record.flagged is False


def test_one_failing_employee_does_not_stop_the_run(db, staff, monkeypatch):
    real_lookup = absentee_job.find_approved_leave_covering
    broken_id = staff["absent"].id

    def flaky_lookup(db_, employee_id, day):
        if employee_id == broken_id:
            raise RuntimeError("leave service unavailable")
        return real_lookup(db_, employee_id, day)

    monkeypatch.setattr(absentee_job, "find_approved_leave_covering", flaky_lookup)
    summary = mark_absentees(db, TUESDAY)

    assert summary.failed == 1
    assert summary.failures[0][0] == broken_id
    assert summary.on_leave == 1
    assert _record(db, broken_id, TUESDAY) is None


def test_directory_failure_aborts_run(db, employee, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("directory down")

    monkeypatch.setattr(absentee_job, "find_active_employees", broken)
    with pytest.raises(RuntimeError):
        mark_absentees(db, TUESDAY)
