"""
Attendance record model: one row per (employee, work date)
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Float,
    Boolean,
    Text,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from geoattend.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half-day"
    ON_LEAVE = "on-leave"
    OUTSIDE_DUTY = "outside-duty"


class FlagType(str, enum.Enum):
    LOCATION_BREACH = "location_breach"
    OFF_HOURS = "off_hours"
    OUTSIDE_WINDOW = "outside_window"
    HOLIDAY = "holiday"
    AUTO_CHECKOUT = "auto_checkout"
    OTHER = "other"


class HalfDayType(str, enum.Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    work_date = Column(Date, nullable=False, index=True)  # Calendar date in settings.BUSINESS_TZ
    check_in_time = Column(DateTime(timezone=True), nullable=True)  # UTC
    check_out_time = Column(DateTime(timezone=True), nullable=True)  # UTC
    check_in_lat = Column(Float, nullable=True)
    check_in_lng = Column(Float, nullable=True)
    check_out_lat = Column(Float, nullable=True)
    check_out_lng = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default=AttendanceStatus.ABSENT.value)
    working_minutes = Column(Integer, nullable=False, default=0)

    flagged = Column(Boolean, nullable=False, default=False, index=True)
    flag_type = Column(String(30), nullable=True)
    flag_message = Column(Text, nullable=True)
    flag_distance = Column(Float, nullable=True)

    is_half_day = Column(Boolean, nullable=False, default=False)
    half_day_type = Column(String(10), nullable=True)

    check_in_branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    check_in_distance = Column(Float, nullable=True)  # meters
    check_out_branch_id = Column(Integer, ForeignKey("branches.id"), nullable=True)
    check_out_distance = Column(Float, nullable=True)  # meters

    reviewed_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_remark = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="uq_attendance_employee_work_date"),
        Index("ix_attendance_open", "work_date", "check_out_time"),
    )

    # Relationships
    employee = relationship("Employee", foreign_keys=[employee_id], backref="attendance_records")
    check_in_branch = relationship("Branch", foreign_keys=[check_in_branch_id])
    check_out_branch = relationship("Branch", foreign_keys=[check_out_branch_id])
    reviewed_by = relationship("Employee", foreign_keys=[reviewed_by_id])

    @property
    def flagged_reason(self):
        """Structured reason; meaningful only while the record is flagged."""
        if not self.flagged:
            return None
        return {
            "type": self.flag_type,
            "message": self.flag_message,
            "distance": self.flag_distance,
        }
