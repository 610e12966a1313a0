"""
Nightly absentee marking.

For every active EMPLOYEE with no attendance record on the run date, create one:
on-leave when an approved leave covers the date, otherwise absent (flagged on
holidays). Safe to re-run: existing records are never touched, and inserts go
through the (employee_id, work_date) unique constraint.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from geoattend.core.config import settings
from geoattend.models.attendance import AttendanceStatus, FlagType
from geoattend.models.employee import Role
from geoattend.models.holiday import Holiday
from geoattend.services.attendance_store import AttendanceStore
from geoattend.services.directories import (
    find_active_employees,
    find_approved_leave_covering,
    find_holiday_by_date,
    find_recurring_sunday_holiday,
)
from geoattend.services.notifications import CacheInvalidator, signal_cache_invalidation
from geoattend.services.time_rules import business_date, is_sunday

logger = logging.getLogger(__name__)

JOB_NAME = "daily-absentee"


@dataclass(frozen=True)
class HolidayContext:
    day: date
    is_sunday: bool
    declared: Optional[Holiday] = None
    recurring_sunday: Optional[Holiday] = None

    @property
    def is_holiday(self) -> bool:
        # Plain Sundays count as holidays for flagging even without a declaration
        return self.declared is not None or self.recurring_sunday is not None or self.is_sunday

    @property
    def is_declared(self) -> bool:
        return self.declared is not None or self.recurring_sunday is not None

    @property
    def flag_message(self) -> str:
        if self.is_sunday:
            return "Sunday holiday"
        return f"Declared holiday: {self.declared.name}"


def determine_holiday(db: Session, day: date) -> HolidayContext:
    sunday = is_sunday(day)
    return HolidayContext(
        day=day,
        is_sunday=sunday,
        declared=find_holiday_by_date(db, day),
        recurring_sunday=find_recurring_sunday_holiday(db, day) if sunday else None,
    )


@dataclass
class AbsenteeSummary:
    date: date
    absentees: int = 0
    on_leave: int = 0
    skipped_existing: int = 0
    failed: int = 0
    total_processed: int = 0
    is_holiday: bool = False
    affected_user_ids: List[int] = field(default_factory=list)
    failures: List[Tuple[int, str]] = field(default_factory=list)


def _absentee_values(on_leave: bool, holiday: HolidayContext) -> dict:
    if on_leave:
        return {"status": AttendanceStatus.ON_LEAVE.value, "flagged": False}
    values = {"status": AttendanceStatus.ABSENT.value, "flagged": False}
    if holiday.is_holiday:
        values.update(
            flagged=True,
            flag_type=FlagType.HOLIDAY.value,
            flag_message=holiday.flag_message,
        )
    return values


def mark_absentees(
    db: Session,
    run_date: Optional[date] = None,
    *,
    page_size: Optional[int] = None,
    cache_invalidator: Optional[CacheInvalidator] = None,
) -> AbsenteeSummary:
    """
    Back-fill records for employees with no attendance activity on run_date
    (default: today in settings.BUSINESS_TZ).

    Failure to load the holiday or employee lists aborts the run; a failure on a
    single employee is logged, counted and skipped.
    """
    run_date = run_date or business_date()
    page_size = page_size or settings.BATCH_PAGE_SIZE
    store = AttendanceStore(db)

    holiday = determine_holiday(db, run_date)
    summary = AbsenteeSummary(date=run_date, is_holiday=holiday.is_holiday)
    logger.info(
        "[ABSENTEE] Starting run for %s (sunday=%s declared_holiday=%s)",
        run_date, holiday.is_sunday, holiday.is_declared,
    )

    after_id = None
    while True:
        page = find_active_employees(db, Role.EMPLOYEE, after_id=after_id, limit=page_size)
        if not page:
            break
        employee_ids = [employee.id for employee in page]
        after_id = employee_ids[-1]

        for employee_id in employee_ids:
            summary.total_processed += 1
            try:
                on_leave = find_approved_leave_covering(db, employee_id, run_date) is not None
                record = store.insert_if_absent(employee_id, run_date, _absentee_values(on_leave, holiday))
            except Exception as exc:
                db.rollback()
                summary.failed += 1
                summary.failures.append((employee_id, str(exc)))
                logger.error("[ABSENTEE] Failed for employee_id=%s on %s", employee_id, run_date, exc_info=True)
                continue

            if record is None:
                summary.skipped_existing += 1
                continue
            summary.affected_user_ids.append(employee_id)
            if on_leave:
                summary.on_leave += 1
            else:
                summary.absentees += 1

    logger.info(
        "[ABSENTEE] %s: absent=%d on_leave=%d existing=%d failed=%d total=%d",
        run_date, summary.absentees, summary.on_leave, summary.skipped_existing,
        summary.failed, summary.total_processed,
    )
    signal_cache_invalidation(summary.affected_user_ids, cache_invalidator)
    return summary
