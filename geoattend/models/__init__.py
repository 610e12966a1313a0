"""
Database models
"""
from geoattend.models.employee import Employee, Role
from geoattend.models.branch import Branch
from geoattend.models.holiday import Holiday
from geoattend.models.leave import LeaveRequest, LeaveStatus
from geoattend.models.attendance import AttendanceRecord, AttendanceStatus, FlagType, HalfDayType
from geoattend.models.audit_log import AuditLog
from geoattend.models.job_run import JobRun, JobRunStatus

__all__ = [
    "Employee",
    "Role",
    "Branch",
    "Holiday",
    "LeaveRequest",
    "LeaveStatus",
    "AttendanceRecord",
    "AttendanceStatus",
    "FlagType",
    "HalfDayType",
    "AuditLog",
    "JobRun",
    "JobRunStatus",
]
