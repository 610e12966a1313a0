"""
Attendance schemas: check-in/check-out requests and the record DTO.
Datetimes are serialized in the business time zone (settings.BUSINESS_TZ).
"""
from datetime import date, datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from geoattend.models.attendance import AttendanceRecord, AttendanceStatus, HalfDayType
from geoattend.utils.datetime_utils import iso_business


class CheckInRequest(BaseModel):
    """Schema for check-in request"""
    lat: float = Field(..., ge=-90, le=90, description="GPS latitude")
    lng: float = Field(..., ge=-180, le=180, description="GPS longitude")
    branch_id: Optional[int] = Field(None, description="Branch chosen by the employee; nearest active branch if omitted")


class CheckOutRequest(CheckInRequest):
    """Schema for check-out request"""
    half_day_type: Optional[HalfDayType] = Field(None, description="Which half was worked, used only for half-day outcomes")


class FlaggedReasonOut(BaseModel):
    type: Optional[str] = None
    message: Optional[str] = None
    distance: Optional[float] = None


class AttendanceRecordOut(BaseModel):
    """Attendance record for API responses. Datetimes in settings.BUSINESS_TZ."""
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    work_date: date
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    check_in_lat: Optional[float] = None
    check_in_lng: Optional[float] = None
    check_out_lat: Optional[float] = None
    check_out_lng: Optional[float] = None
    status: AttendanceStatus
    working_minutes: int = 0
    flagged: bool = False
    flagged_reason: Optional[FlaggedReasonOut] = None
    is_half_day: bool = False
    half_day_type: Optional[HalfDayType] = None
    check_in_branch_id: Optional[int] = None
    check_in_branch_name: Optional[str] = None
    check_in_distance: Optional[float] = None
    check_out_branch_id: Optional[int] = None
    check_out_branch_name: Optional[str] = None
    check_out_distance: Optional[float] = None
    # Older clients read the check-in branch under these names
    branch_id: Optional[int] = None
    distance_from_branch: Optional[float] = None
    reviewed_by_id: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_remark: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("check_in_time", "check_out_time", "reviewed_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_business(dt)

    @classmethod
    def from_record(cls, record: AttendanceRecord) -> "AttendanceRecordOut":
        reason: Optional[Dict[str, Any]] = record.flagged_reason
        return cls(
            id=record.id,
            employee_id=record.employee_id,
            employee_name=record.employee.name if record.employee else None,
            work_date=record.work_date,
            check_in_time=record.check_in_time,
            check_out_time=record.check_out_time,
            check_in_lat=record.check_in_lat,
            check_in_lng=record.check_in_lng,
            check_out_lat=record.check_out_lat,
            check_out_lng=record.check_out_lng,
            status=record.status,
            working_minutes=record.working_minutes or 0,
            flagged=bool(record.flagged),
            flagged_reason=FlaggedReasonOut(**reason) if reason else None,
            is_half_day=bool(record.is_half_day),
            half_day_type=record.half_day_type,
            check_in_branch_id=record.check_in_branch_id,
            check_in_branch_name=record.check_in_branch.name if record.check_in_branch else None,
            check_in_distance=record.check_in_distance,
            check_out_branch_id=record.check_out_branch_id,
            check_out_branch_name=record.check_out_branch.name if record.check_out_branch else None,
            check_out_distance=record.check_out_distance,
            branch_id=record.check_in_branch_id,
            distance_from_branch=record.check_in_distance,
            reviewed_by_id=record.reviewed_by_id,
            reviewed_at=record.reviewed_at,
            review_remark=record.review_remark,
        )


class AttendanceListResponse(BaseModel):
    """Schema for attendance list response"""
    items: List[AttendanceRecordOut]
    total: int


class ReviewRequest(BaseModel):
    """Manager decision on a flagged record"""
    status: AttendanceStatus = Field(..., description="Final status for the day")
    remark: Optional[str] = Field(None, max_length=500)
    check_out_time: Optional[datetime] = Field(None, description="Corrected check-out; naive values are read as UTC")
    half_day_type: Optional[HalfDayType] = None
