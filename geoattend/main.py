"""
Geofenced attendance backend - main application entry point
"""
import logging
from datetime import date
from urllib.parse import urlparse, urlunparse

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from starlette.exceptions import HTTPException as StarletteHTTPException

from geoattend.api.router import api_router
from geoattend.core.config import settings
from geoattend.core.errors import (
    attendance_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)
from geoattend.core.exceptions import AttendanceError
from geoattend.core.logging import setup_logging
from geoattend.db.session import SessionLocal
from geoattend.services import absentee_job, auto_checkout_job
from geoattend.services.job_run_service import run_job_once
from geoattend.services.scheduler import DailyScheduler

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


def _mask_database_url(url: str) -> str:
    """Mask password in DATABASE_URL for safe logging; show full path for sqlite."""
    try:
        parsed = urlparse(url)
        if parsed.scheme.startswith("sqlite"):
            return url
        if parsed.password:
            netloc = f"{parsed.username}:****@{parsed.hostname or ''}"
            if parsed.port:
                netloc += f":{parsed.port}"
            return urlunparse(parsed._replace(netloc=netloc))
    except ValueError:
        return "***"
    return url


app = FastAPI(
    title="Geofenced Attendance Backend",
    description="Check-in/check-out with branch geofencing, nightly absentee marking and auto-checkout",
    version=settings.VERSION or "1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register exception handlers
app.add_exception_handler(HTTPException, http_exception_handler)
# Routing errors (404/405) are raised as Starlette exceptions
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(AttendanceError, attendance_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include all API routes under /api/v1
app.include_router(api_router, prefix="/api/v1")


def _scheduled(job_name: str, job):
    """Wrap a batch job for the scheduler: own session, one recorded run per date."""
    def run(run_date: date):
        db = SessionLocal()
        try:
            run_job_once(db, job_name, run_date, lambda: job(db, run_date))
        finally:
            db.close()
    return run


def build_scheduler() -> DailyScheduler:
    scheduler = DailyScheduler()
    scheduler.add_daily_job(
        auto_checkout_job.JOB_NAME,
        settings.AUTO_CHECKOUT_HOUR,
        settings.AUTO_CHECKOUT_MINUTE,
        _scheduled(auto_checkout_job.JOB_NAME, auto_checkout_job.auto_checkout),
    )
    scheduler.add_daily_job(
        absentee_job.JOB_NAME,
        settings.ABSENTEE_JOB_HOUR,
        settings.ABSENTEE_JOB_MINUTE,
        _scheduled(absentee_job.JOB_NAME, absentee_job.mark_absentees),
    )
    return scheduler


@app.on_event("startup")
def startup_log_config() -> None:
    """Log DATABASE_URL at startup so it can be verified against Alembic."""
    masked = _mask_database_url(settings.DATABASE_URL)
    logger.info("DATABASE_URL (app): %s", masked)
    settings.validate_production()


@app.on_event("startup")
def start_scheduler() -> None:
    if not settings.RUN_SCHEDULER:
        logger.info("RUN_SCHEDULER is off, nightly jobs run only via /api/v1/jobs")
        return
    app.state.scheduler = build_scheduler()
    app.state.scheduler.start()


@app.on_event("shutdown")
def stop_scheduler() -> None:
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.stop()
