"""
Tests for the job-run registry and the /jobs endpoints
"""
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi import status

from geoattend.core.config import settings
from geoattend.core.exceptions import JobAlreadyRunningError
from geoattend.models.attendance import AttendanceRecord
from geoattend.models.job_run import JobRun, JobRunStatus
from geoattend.services.absentee_job import JOB_NAME, mark_absentees
from geoattend.services.job_run_service import get_job_run, run_job_once
from geoattend.utils.datetime_utils import now_utc

RUN_DATE = date(2026, 3, 10)


def test_completed_run_is_not_repeated(db):
    calls = []
    run, result = run_job_once(db, "demo", RUN_DATE, lambda: calls.append(1) or {"count": len(calls)})
    assert run.status == JobRunStatus.COMPLETED.value
    assert result == {"count": 1}
    assert run.summary_json == {"count": 1}

    run, result = run_job_once(db, "demo", RUN_DATE, lambda: calls.append(1) or {"count": len(calls)})
    assert result is None
    assert len(calls) == 1
    assert db.query(JobRun).count() == 1


def test_force_reruns_completed_job(db):
    run_job_once(db, "demo", RUN_DATE, lambda: {"n": 1})
    first_execution = get_job_run(db, "demo", RUN_DATE).execution_id

    run, result = run_job_once(db, "demo", RUN_DATE, lambda: {"n": 2}, force=True)
    assert result == {"n": 2}
    assert run.execution_id != first_execution
    assert run.summary_json == {"n": 2}


def test_failed_run_is_recorded_and_retried(db):
    def broken():
        raise RuntimeError("database unavailable")

    with pytest.raises(RuntimeError):
        run_job_once(db, "demo", RUN_DATE, broken)

    run = get_job_run(db, "demo", RUN_DATE)
    assert run.status == JobRunStatus.FAILED.value
    assert "database unavailable" in run.error
    assert run.finished_at is not None

    run, result = run_job_once(db, "demo", RUN_DATE, lambda: {"ok": True})
    assert run.status == JobRunStatus.COMPLETED.value
    assert run.error is None


def _seed_running(db, job_name="demo", started_at=None):
    db.add(JobRun(
        job_name=job_name,
        run_date=RUN_DATE,
        status=JobRunStatus.RUNNING.value,
        execution_id="interrupted",
        started_at=started_at or now_utc(),
    ))
    db.commit()


def test_running_job_is_not_started_twice(db):
    _seed_running(db)

    with pytest.raises(JobAlreadyRunningError):
        run_job_once(db, "demo", RUN_DATE, lambda: {})


def test_force_reclaims_interrupted_run(db):
    _seed_running(db)
    calls = []

    run, result = run_job_once(db, "demo", RUN_DATE, lambda: calls.append(1) or {"ok": True}, force=True)

    assert calls == [1]
    assert result == {"ok": True}
    assert run.status == JobRunStatus.COMPLETED.value
    assert run.execution_id != "interrupted"
    assert db.query(JobRun).count() == 1


def test_stale_running_row_is_reclaimed_without_force(db):
    _seed_running(db, started_at=now_utc() - timedelta(minutes=settings.JOB_STALE_AFTER_MINUTES + 5))

    run, result = run_job_once(db, "demo", RUN_DATE, lambda: {"ok": True})

    assert result == {"ok": True}
    assert run.status == JobRunStatus.COMPLETED.value
    assert run.finished_at is not None


def test_interrupted_absentee_run_does_not_double_create(db, employee):
    _seed_running(db, job_name=JOB_NAME)
    run_job_once(db, JOB_NAME, RUN_DATE, lambda: mark_absentees(db, RUN_DATE), force=True)
    run_job_once(db, JOB_NAME, RUN_DATE, lambda: mark_absentees(db, RUN_DATE), force=True)

    assert db.query(AttendanceRecord).filter(AttendanceRecord.employee_id == employee.id).count() == 1


def test_absentee_endpoint_requires_hr(client, db, employee, auth_headers):
    headers = auth_headers("EMP001", "testpass123")
    response = client.post("/api/v1/jobs/absentees?run_date=2026-03-10", headers=headers)
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_absentee_endpoint_runs_once(client, db, employee, hr_user, auth_headers):
    headers = auth_headers("HR001", "hrpass123")

    first = client.post("/api/v1/jobs/absentees?run_date=2026-03-10", headers=headers)
    assert first.status_code == status.HTTP_200_OK
    body = first.json()
    assert body["status"] == "completed"
    assert body["skipped"] is False
    assert body["summary"]["absentees"] == 1
    assert body["summary"]["date"] == "2026-03-10"

    second = client.post("/api/v1/jobs/absentees?run_date=2026-03-10", headers=headers).json()
    assert second["skipped"] is True
    assert second["execution_id"] == body["execution_id"]

    forced = client.post("/api/v1/jobs/absentees?run_date=2026-03-10&force=true", headers=headers).json()
    assert forced["skipped"] is False
    assert forced["summary"]["skipped_existing"] == 1


def test_auto_checkout_endpoint(client, db, employee, hr_user, auth_headers):
    db.add(AttendanceRecord(
        employee_id=employee.id,
        work_date=RUN_DATE,
        check_in_time=datetime(2026, 3, 10, 4, 30, tzinfo=timezone.utc),
        status="present",
        flagged=False,
    ))
    db.commit()

    headers = auth_headers("HR001", "hrpass123")
    response = client.post("/api/v1/jobs/auto-checkout?run_date=2026-03-10", headers=headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["summary"]["checked_out"] == 1


def test_running_job_returns_conflict(client, db, hr_user, auth_headers):
    db.add(JobRun(
        job_name="auto-checkout",
        run_date=RUN_DATE,
        status=JobRunStatus.RUNNING.value,
        execution_id="in-flight",
        started_at=now_utc(),
    ))
    db.commit()

    headers = auth_headers("HR001", "hrpass123")
    response = client.post("/api/v1/jobs/auto-checkout?run_date=2026-03-10", headers=headers)
    assert response.status_code == status.HTTP_409_CONFLICT


def test_forced_endpoint_reclaims_interrupted_run(client, db, hr_user, auth_headers):
    _seed_running(db, job_name="auto-checkout")

    headers = auth_headers("HR001", "hrpass123")
    response = client.post("/api/v1/jobs/auto-checkout?run_date=2026-03-10&force=true", headers=headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["status"] == "completed"
