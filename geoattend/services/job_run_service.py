"""
Job run registry: makes the nightly jobs at-most-once per run date unless forced.
"""
import logging
import uuid
from datetime import date, timedelta
from typing import Any, Callable, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.core.exceptions import JobAlreadyRunningError
from geoattend.models.job_run import JobRun, JobRunStatus
from geoattend.utils.datetime_utils import ensure_utc, now_utc
from geoattend.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)


def get_job_run(db: Session, job_name: str, run_date: date) -> Optional[JobRun]:
    return (
        db.query(JobRun)
        .filter(JobRun.job_name == job_name, JobRun.run_date == run_date)
        .first()
    )


def _is_stale(run: JobRun) -> bool:
    started_at = ensure_utc(run.started_at)
    if started_at is None:
        return True
    return now_utc() - started_at >= timedelta(minutes=settings.JOB_STALE_AFTER_MINUTES)


def _claim(db: Session, job_name: str, run_date: date, force: bool) -> Optional[JobRun]:
    """
    Mark the run as started. Returns None when a completed run exists and
    force is off; raises JobAlreadyRunningError while another run is in flight.

    A running row left behind by an interrupted process is reclaimed when
    force is set or once it is older than JOB_STALE_AFTER_MINUTES.
    """
    run = get_job_run(db, job_name, run_date)
    if run is not None:
        if run.status == JobRunStatus.RUNNING.value:
            if not force and not _is_stale(run):
                raise JobAlreadyRunningError(f"Job {job_name} for {run_date} is already running")
            logger.warning(
                "[JOB] %s for %s reclaiming running execution_id=%s started_at=%s (force=%s)",
                job_name, run_date, run.execution_id, run.started_at, force,
            )
        elif run.status == JobRunStatus.COMPLETED.value and not force:
            return None
        run.status = JobRunStatus.RUNNING.value
        run.execution_id = uuid.uuid4().hex
        run.error = None
        run.summary_json = None
        run.started_at = now_utc()
        run.finished_at = None
        db.commit()
        db.refresh(run)
        return run

    run = JobRun(
        job_name=job_name,
        run_date=run_date,
        status=JobRunStatus.RUNNING.value,
        execution_id=uuid.uuid4().hex,
        started_at=now_utc(),
    )
    db.add(run)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise JobAlreadyRunningError(f"Job {job_name} for {run_date} was started concurrently")
    db.refresh(run)
    return run


def run_job_once(
    db: Session,
    job_name: str,
    run_date: date,
    job: Callable[[], Any],
    force: bool = False,
) -> Tuple[JobRun, Optional[Any]]:
    """
    Run job() at most once per (job_name, run_date).

    Returns (job_run, result). result is None when a completed run was found
    and force was not set. A failing job is recorded as failed and re-raised;
    failed runs are retried on the next call, and so are running rows that
    are forced or have gone stale.
    """
    run = _claim(db, job_name, run_date, force)
    if run is None:
        logger.info("[JOB] %s for %s already completed, skipping", job_name, run_date)
        return get_job_run(db, job_name, run_date), None

    logger.info("[JOB] %s for %s started (execution_id=%s)", job_name, run_date, run.execution_id)
    try:
        result = job()
    except Exception as exc:
        db.rollback()
        run.status = JobRunStatus.FAILED.value
        run.error = str(exc)
        run.finished_at = now_utc()
        db.commit()
        logger.error("[JOB] %s for %s failed", job_name, run_date, exc_info=True)
        raise

    run.status = JobRunStatus.COMPLETED.value
    run.summary_json = sanitize_for_json(result)
    run.finished_at = now_utc()
    db.commit()
    db.refresh(run)
    logger.info("[JOB] %s for %s completed", job_name, run_date)
    return run, result
