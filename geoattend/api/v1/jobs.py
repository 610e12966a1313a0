"""
Manual triggers for the nightly jobs (HR/ADMIN).
Each run is recorded per (job, date); a completed run is reused unless force=true.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from geoattend.core.deps import get_db, require_roles
from geoattend.models.employee import Employee, Role
from geoattend.schemas.jobs import JobRunOut
from geoattend.services import absentee_job, auto_checkout_job
from geoattend.services.job_run_service import run_job_once
from geoattend.services.time_rules import business_date

router = APIRouter()


def _run(db: Session, job_name: str, run_date: date, job, force: bool) -> JobRunOut:
    run, result = run_job_once(db, job_name, run_date, job, force=force)
    return JobRunOut(
        job_name=run.job_name,
        run_date=run.run_date,
        status=run.status,
        execution_id=run.execution_id,
        skipped=result is None,
        error=run.error,
        summary=run.summary_json,
        started_at=run.started_at,
        finished_at=run.finished_at,
    )


@router.post("/absentees", response_model=JobRunOut)
async def run_absentees(
    run_date: Optional[date] = Query(None),
    force: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """POST /api/v1/jobs/absentees?run_date=&force="""
    run_date = run_date or business_date()
    return _run(db, absentee_job.JOB_NAME, run_date, lambda: absentee_job.mark_absentees(db, run_date), force)


@router.post("/auto-checkout", response_model=JobRunOut)
async def run_auto_checkout(
    run_date: Optional[date] = Query(None),
    force: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR)),
):
    """POST /api/v1/jobs/auto-checkout?run_date=&force="""
    run_date = run_date or business_date()
    return _run(db, auto_checkout_job.JOB_NAME, run_date, lambda: auto_checkout_job.auto_checkout(db, run_date), force)
