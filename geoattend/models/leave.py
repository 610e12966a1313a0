"""
Leave request model (read-only from the attendance engine's perspective)
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Text, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from geoattend.db.base import Base


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default=LeaveStatus.PENDING.value)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        Index("ix_leave_requests_status_dates", "status", "start_date", "end_date"),
    )

    employee = relationship("Employee", backref="leave_requests")
