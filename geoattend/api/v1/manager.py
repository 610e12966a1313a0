"""
Manager review of flagged attendance.
MANAGER sees direct reports; HR and ADMIN see everyone.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from geoattend.core.deps import get_db, require_roles
from geoattend.models.employee import Employee, Role
from geoattend.schemas.attendance import AttendanceListResponse, AttendanceRecordOut, ReviewRequest
from geoattend.services import review_service

router = APIRouter()

require_reviewer = require_roles(Role.MANAGER, Role.HR)


@router.get("/attendance/flagged", response_model=AttendanceListResponse)
async def list_flagged(
    work_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_reviewer),
):
    """GET /api/v1/manager/attendance/flagged?date="""
    records = review_service.list_flagged(db, current_user, work_date)
    items = [AttendanceRecordOut.from_record(r) for r in records]
    return AttendanceListResponse(items=items, total=len(items))


@router.patch("/attendance/{record_id}/review", response_model=AttendanceRecordOut)
async def review_record(
    record_id: int,
    body: ReviewRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_reviewer),
):
    """PATCH /api/v1/manager/attendance/{record_id}/review - settle a flagged record."""
    record = review_service.review_record(
        db, record_id, current_user,
        status=body.status,
        remark=body.remark,
        check_out_time=body.check_out_time,
        half_day_type=body.half_day_type,
    )
    return AttendanceRecordOut.from_record(record)
