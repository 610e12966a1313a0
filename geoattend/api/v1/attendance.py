"""
Attendance endpoints: check-in, check-out and the employee's own records.
Work date is the calendar date in settings.BUSINESS_TZ.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from geoattend.core.deps import get_db, get_current_user
from geoattend.models.employee import Employee
from geoattend.schemas.attendance import (
    AttendanceListResponse,
    AttendanceRecordOut,
    CheckInRequest,
    CheckOutRequest,
)
from geoattend.services import attendance_service

router = APIRouter()


@router.post("/checkin", response_model=AttendanceRecordOut, status_code=status.HTTP_201_CREATED)
async def check_in(
    body: CheckInRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    POST /api/v1/attendance/checkin

    A location breach is not an error: the record is stored as outside-duty and flagged.
    """
    record = attendance_service.check_in(db, current_user, body.lat, body.lng, branch_id=body.branch_id)
    return AttendanceRecordOut.from_record(record)


@router.post("/checkout", response_model=AttendanceRecordOut)
async def check_out(
    body: CheckOutRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """POST /api/v1/attendance/checkout - closes today's record and applies the 5-hour rule."""
    record = attendance_service.check_out(
        db, current_user, body.lat, body.lng,
        branch_id=body.branch_id,
        half_day_type=body.half_day_type,
    )
    return AttendanceRecordOut.from_record(record)


@router.get("/today", response_model=Optional[AttendanceRecordOut])
async def get_today(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """GET /api/v1/attendance/today - today's record or null."""
    record = attendance_service.get_today(db, current_user)
    return AttendanceRecordOut.from_record(record) if record else None


@router.get("/me", response_model=AttendanceListResponse)
async def get_my_records(
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """GET /api/v1/attendance/me?from=&to= - newest first."""
    records = attendance_service.list_my_records(db, current_user, from_date, to_date)
    items = [AttendanceRecordOut.from_record(r) for r in records]
    return AttendanceListResponse(items=items, total=len(items))
