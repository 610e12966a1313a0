"""
Tests for manager review of flagged attendance
"""
from datetime import date, datetime, timezone

import pytest
from fastapi import status

from geoattend.core.security import hash_password
from geoattend.models.attendance import AttendanceRecord
from geoattend.models.audit_log import AuditLog
from geoattend.models.employee import Employee, Role
from geoattend.services.auto_checkout_job import auto_checkout

WORK_DATE = date(2026, 3, 10)
CHECK_IN = datetime(2026, 3, 10, 4, 30, tzinfo=timezone.utc)


@pytest.fixture
def flagged_record(db, employee):
    record = AttendanceRecord(
        employee_id=employee.id,
        work_date=WORK_DATE,
        check_in_time=CHECK_IN,
        status="outside-duty",
        flagged=True,
        flag_type="location_breach",
        flag_message="Check-in outside geofence",
        flag_distance=850.0,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def other_team_employee(db):
    other_manager = Employee(emp_code="MGR002", name="Other Manager", role=Role.MANAGER.value, password_hash=hash_password("x"))
    db.add(other_manager)
    db.commit()
    worker = Employee(
        emp_code="EMP900",
        name="Other Worker",
        role=Role.EMPLOYEE.value,
        manager_id=other_manager.id,
        password_hash=hash_password("x"),
    )
    db.add(worker)
    db.commit()
    db.refresh(worker)
    return worker


def test_manager_lists_direct_reports_only(client, db, flagged_record, other_team_employee, auth_headers):
    db.add(AttendanceRecord(
        employee_id=other_team_employee.id,
        work_date=WORK_DATE,
        status="absent",
        flagged=True,
        flag_type="holiday",
        flag_message="Declared holiday: Holi",
    ))
    db.commit()

    headers = auth_headers("MGR001", "managerpass")
    data = client.get("/api/v1/manager/attendance/flagged?date=2026-03-10", headers=headers).json()

    assert data["total"] == 1
    assert data["items"][0]["id"] == flagged_record.id
    assert data["items"][0]["employee_name"] == "Test Employee"


def test_hr_sees_all_flagged(client, db, flagged_record, other_team_employee, hr_user, auth_headers):
    db.add(AttendanceRecord(employee_id=other_team_employee.id, work_date=WORK_DATE, status="absent", flagged=True))
    db.commit()

    headers = auth_headers("HR001", "hrpass123")
    data = client.get("/api/v1/manager/attendance/flagged", headers=headers).json()
    assert data["total"] == 2


def test_employee_cannot_list_flagged(client, db, employee, auth_headers):
    headers = auth_headers("EMP001", "testpass123")
    response = client.get("/api/v1/manager/attendance/flagged", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_review_clears_flag_and_records_reviewer(client, db, flagged_record, manager, auth_headers):
    headers = auth_headers("MGR001", "managerpass")
    response = client.patch(
        f"/api/v1/manager/attendance/{flagged_record.id}/review",
        json={"status": "present", "remark": "Client visit"},
        headers=headers,
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "present"
    assert data["flagged"] is False
    assert data["flagged_reason"] is None
    assert data["reviewed_by_id"] == manager.id
    assert data["review_remark"] == "Client visit"
    assert data["reviewed_at"] is not None

    entry = db.query(AuditLog).filter(AuditLog.action == "ATTENDANCE_REVIEW").one()
    assert entry.meta_json["old_status"] == "outside-duty"
    assert entry.meta_json["new_status"] == "present"


def test_review_with_check_out_correction(client, db, flagged_record, auth_headers):
    headers = auth_headers("MGR001", "managerpass")
    data = client.patch(
        f"/api/v1/manager/attendance/{flagged_record.id}/review",
        json={"status": "half-day", "check_out_time": "2026-03-10T08:30:00+00:00", "half_day_type": "morning"},
        headers=headers,
    ).json()

    assert data["working_minutes"] == 240
    assert data["is_half_day"] is True
    assert data["half_day_type"] == "morning"
    assert data["check_out_time"] == "2026-03-10T14:00:00+05:30"


def test_reviewed_open_record_survives_auto_checkout(client, db, flagged_record, auth_headers):
    headers = auth_headers("MGR001", "managerpass")
    client.patch(
        f"/api/v1/manager/attendance/{flagged_record.id}/review",
        json={"status": "present"},
        headers=headers,
    )

    summary = auto_checkout(db, WORK_DATE)

    assert summary.skipped_reviewed == 1
    db.refresh(flagged_record)
    assert flagged_record.check_out_time is None
    assert flagged_record.flagged is False


def test_review_of_unflagged_record_rejected(client, db, flagged_record, auth_headers):
    headers = auth_headers("MGR001", "managerpass")
    url = f"/api/v1/manager/attendance/{flagged_record.id}/review"
    client.patch(url, json={"status": "present"}, headers=headers)

    response = client.patch(url, json={"status": "absent"}, headers=headers)
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_review_other_team_forbidden(client, db, manager, other_team_employee, auth_headers):
    record = AttendanceRecord(employee_id=other_team_employee.id, work_date=WORK_DATE, status="absent", flagged=True)
    db.add(record)
    db.commit()

    headers = auth_headers("MGR001", "managerpass")
    response = client.patch(f"/api/v1/manager/attendance/{record.id}/review", json={"status": "present"}, headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_review_missing_record(client, db, manager, auth_headers):
    headers = auth_headers("MGR001", "managerpass")
    response = client.patch("/api/v1/manager/attendance/9999/review", json={"status": "present"}, headers=headers)
    assert response.status_code == status.HTTP_404_NOT_FOUND
