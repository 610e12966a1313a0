"""
Attendance record store.

Every write goes through the (employee_id, work_date) unique constraint: inserts
that lose a race are rolled back and retried as read-then-patch, so concurrent
requests or overlapping batch runs never produce duplicate rows.
"""
import logging
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from geoattend.core.exceptions import StoreConflictError
from geoattend.models.attendance import AttendanceRecord

logger = logging.getLogger(__name__)

Guard = Callable[[AttendanceRecord], None]


class AttendanceStore:
    def __init__(self, db: Session):
        self.db = db

    def find_for_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        return (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.work_date == work_date,
            )
            .first()
        )

    def get(self, record_id: int) -> Optional[AttendanceRecord]:
        return self.db.query(AttendanceRecord).filter(AttendanceRecord.id == record_id).first()

    def find_many(
        self,
        *,
        employee_id: Optional[int] = None,
        employee_ids: Optional[Sequence[int]] = None,
        work_date: Optional[date] = None,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        flagged: Optional[bool] = None,
        status: Optional[str] = None,
        open_only: bool = False,
        after_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[AttendanceRecord]:
        """
        Filtered list ordered by work_date desc then id, or by id asc when paging
        with after_id/limit (keyset pagination for batch jobs).
        """
        query = self.db.query(AttendanceRecord)
        if employee_id is not None:
            query = query.filter(AttendanceRecord.employee_id == employee_id)
        if employee_ids is not None:
            if not employee_ids:
                return []
            query = query.filter(AttendanceRecord.employee_id.in_(list(employee_ids)))
        if work_date is not None:
            query = query.filter(AttendanceRecord.work_date == work_date)
        if from_date is not None:
            query = query.filter(AttendanceRecord.work_date >= from_date)
        if to_date is not None:
            query = query.filter(AttendanceRecord.work_date <= to_date)
        if flagged is not None:
            query = query.filter(AttendanceRecord.flagged == flagged)
        if status is not None:
            query = query.filter(AttendanceRecord.status == status)
        if open_only:
            query = query.filter(
                AttendanceRecord.check_in_time.isnot(None),
                AttendanceRecord.check_out_time.is_(None),
            )

        if after_id is not None or limit is not None:
            if after_id is not None:
                query = query.filter(AttendanceRecord.id > after_id)
            query = query.order_by(AttendanceRecord.id)
            if limit is not None:
                query = query.limit(limit)
        else:
            query = query.order_by(AttendanceRecord.work_date.desc(), AttendanceRecord.id)
        return query.all()

    def _apply(self, record: AttendanceRecord, patch: Dict[str, Any]) -> AttendanceRecord:
        for key, value in patch.items():
            setattr(record, key, value)
        self.db.commit()
        self.db.refresh(record)
        return record

    def upsert_for_date(
        self,
        employee_id: int,
        work_date: date,
        patch: Dict[str, Any],
        guard: Optional[Guard] = None,
    ) -> AttendanceRecord:
        """
        Find-or-create the record for (employee_id, work_date) and apply patch.

        guard(existing) runs against any existing row, including one found after
        losing an insert race, and may raise to reject the write.
        """
        existing = self.find_for_date(employee_id, work_date)
        if existing is None:
            record = AttendanceRecord(employee_id=employee_id, work_date=work_date, **patch)
            self.db.add(record)
            try:
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.info(
                    "Insert conflict for employee_id=%s work_date=%s, retrying as update",
                    employee_id, work_date,
                )
                existing = self.find_for_date(employee_id, work_date)
                if existing is None:
                    raise StoreConflictError()
            else:
                self.db.refresh(record)
                return record

        if guard is not None:
            guard(existing)
        return self._apply(existing, patch)

    def insert_if_absent(
        self,
        employee_id: int,
        work_date: date,
        values: Dict[str, Any],
    ) -> Optional[AttendanceRecord]:
        """Create the record only if none exists for the key. Returns None when one already does."""
        if self.find_for_date(employee_id, work_date) is not None:
            return None
        record = AttendanceRecord(employee_id=employee_id, work_date=work_date, **values)
        self.db.add(record)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Record for employee_id=%s work_date=%s created concurrently, skipping", employee_id, work_date)
            return None
        self.db.refresh(record)
        return record

    def update_if_open(self, record: AttendanceRecord, patch: Dict[str, Any]) -> bool:
        """
        Apply patch only while the record has no check-out. Returns False when
        another writer closed it first.
        """
        updated = (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.id == record.id,
                AttendanceRecord.check_out_time.is_(None),
            )
            .update(patch, synchronize_session=False)
        )
        self.db.commit()
        self.db.refresh(record)
        return updated == 1

    def update(self, record: AttendanceRecord, patch: Dict[str, Any]) -> AttendanceRecord:
        return self._apply(record, patch)
