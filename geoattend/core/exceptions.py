"""
Domain exceptions raised by the attendance engine.

Each carries the HTTP status and detail the API layer reports; the engine itself
never imports FastAPI.
"""
from typing import Optional


class AttendanceError(Exception):
    """Base class for rejected attendance operations (no state change)."""

    status_code = 400
    default_detail = "Attendance operation rejected"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class DuplicateCheckInError(AttendanceError):
    default_detail = "Already checked in today"


class NoOpenCheckInError(AttendanceError):
    default_detail = "No check-in record found for today"


class AlreadyCheckedOutError(AttendanceError):
    default_detail = "Already checked out today"


class StoreConflictError(AttendanceError):
    """Unique (employee, date) conflict that could not be resolved by re-reading."""

    status_code = 409
    default_detail = "Concurrent update conflict, please retry"


class BranchNotFoundError(AttendanceError):
    status_code = 404
    default_detail = "Branch not found or inactive"


class RecordNotFoundError(AttendanceError):
    status_code = 404
    default_detail = "Attendance record not found"


class NotFlaggedError(AttendanceError):
    default_detail = "Only flagged attendance records can be reviewed"


class JobAlreadyRunningError(AttendanceError):
    status_code = 409
    default_detail = "Job is already running for this date"


class ReviewForbiddenError(AttendanceError):
    status_code = 403
    default_detail = "Managers can only review their direct reports"
