"""
Nightly auto-checkout.

Force-closes open check-ins of the run date at the configured cutoff and flags
them for manager verification. The final present/half-day status is left to
the reviewing manager.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.models.attendance import AttendanceRecord, AttendanceStatus, FlagType
from geoattend.services.attendance_rules import merge_flag_message, working_minutes_between
from geoattend.services.attendance_store import AttendanceStore
from geoattend.services.notifications import CacheInvalidator, signal_cache_invalidation
from geoattend.services.time_rules import business_date, business_datetime
from geoattend.utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)

JOB_NAME = "auto-checkout"

FINALIZED_STATUSES = frozenset(status.value for status in AttendanceStatus)


@dataclass
class AutoCheckoutSummary:
    date: date
    cutoff: datetime
    checked_out: int = 0
    skipped_reviewed: int = 0
    skipped_closed: int = 0
    failed: int = 0
    affected_user_ids: List[int] = field(default_factory=list)
    failures: List[Tuple[int, str]] = field(default_factory=list)


def cutoff_for(run_date: date) -> datetime:
    return business_datetime(run_date, settings.AUTO_CHECKOUT_HOUR, settings.AUTO_CHECKOUT_MINUTE)


def is_manager_approved(record: AttendanceRecord) -> bool:
    """A reviewed, unflagged record with a final status is never touched again."""
    return (
        record.reviewed_at is not None
        and not record.flagged
        and record.status in FINALIZED_STATUSES
    )


def build_auto_checkout_patch(record: AttendanceRecord, cutoff: datetime) -> dict:
    check_in = ensure_utc(record.check_in_time)
    # Check-ins after the cutoff close one minute later
    check_out = cutoff if check_in <= cutoff else check_in + timedelta(minutes=1)
    label = f"{settings.AUTO_CHECKOUT_HOUR:02d}:{settings.AUTO_CHECKOUT_MINUTE:02d}"
    message = f"Auto checkout applied at {label} - needs manager verification"
    return {
        "check_out_time": check_out,
        "working_minutes": working_minutes_between(check_in, check_out),
        "flagged": True,
        "flag_type": FlagType.AUTO_CHECKOUT.value,
        "flag_message": merge_flag_message(record.flag_message if record.flagged else None, message),
        "flag_distance": record.flag_distance if record.flagged else None,
    }


def auto_checkout(
    db: Session,
    run_date: Optional[date] = None,
    *,
    page_size: Optional[int] = None,
    cache_invalidator: Optional[CacheInvalidator] = None,
) -> AutoCheckoutSummary:
    """
    Close every open check-in of run_date (default: today in settings.BUSINESS_TZ).

    Re-running is harmless: closed records drop out of the open-record query and
    the conditional update refuses records closed concurrently.
    """
    run_date = run_date or business_date()
    page_size = page_size or settings.BATCH_PAGE_SIZE
    store = AttendanceStore(db)
    summary = AutoCheckoutSummary(date=run_date, cutoff=cutoff_for(run_date))
    logger.info("[AUTO_CHECKOUT] Starting run for %s, cutoff %s", run_date, summary.cutoff.isoformat())

    after_id = None
    while True:
        page = store.find_many(work_date=run_date, open_only=True, after_id=after_id, limit=page_size)
        if not page:
            break
        after_id = page[-1].id

        for record in page:
            employee_id = record.employee_id
            try:
                if is_manager_approved(record):
                    summary.skipped_reviewed += 1
                    continue
                if record.check_out_time is not None:
                    summary.skipped_closed += 1
                    continue
                closed = store.update_if_open(record, build_auto_checkout_patch(record, summary.cutoff))
            except Exception as exc:
                db.rollback()
                summary.failed += 1
                summary.failures.append((employee_id, str(exc)))
                logger.error("[AUTO_CHECKOUT] Failed for employee_id=%s on %s", employee_id, run_date, exc_info=True)
                continue

            if not closed:
                summary.skipped_closed += 1
                continue
            summary.checked_out += 1
            summary.affected_user_ids.append(employee_id)
            logger.info(
                "[AUTO_CHECKOUT] employee_id=%s closed at %s (%s min)",
                employee_id, record.check_out_time, record.working_minutes,
            )

    logger.info(
        "[AUTO_CHECKOUT] %s: closed=%d reviewed=%d already_closed=%d failed=%d",
        run_date, summary.checked_out, summary.skipped_reviewed, summary.skipped_closed, summary.failed,
    )
    signal_cache_invalidation(summary.affected_user_ids, cache_invalidator)
    return summary
