"""
Read-only lookups the attendance engine consumes: employees, branches,
holidays and approved leave.
"""
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from geoattend.core.exceptions import BranchNotFoundError
from geoattend.models.branch import Branch
from geoattend.models.employee import Employee, Role
from geoattend.models.holiday import Holiday
from geoattend.models.leave import LeaveRequest, LeaveStatus


def find_active_employees(
    db: Session,
    role: Role = Role.EMPLOYEE,
    after_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[Employee]:
    """Active employees with the given role ordered by id; keyset-paged with after_id/limit."""
    query = db.query(Employee).filter(Employee.active == True, Employee.role == role.value)  # noqa: E712
    if after_id is not None:
        query = query.filter(Employee.id > after_id)
    query = query.order_by(Employee.id)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def find_active_branches(db: Session) -> List[Branch]:
    return db.query(Branch).filter(Branch.active == True).order_by(Branch.id).all()  # noqa: E712


def get_active_branch(db: Session, branch_id: int) -> Branch:
    """Branch chosen explicitly by the employee; must exist and be active."""
    branch = db.query(Branch).filter(Branch.id == branch_id, Branch.active == True).first()  # noqa: E712
    if branch is None:
        raise BranchNotFoundError(f"Branch {branch_id} not found or inactive")
    return branch


def find_holiday_by_date(db: Session, day: date) -> Optional[Holiday]:
    return db.query(Holiday).filter(Holiday.date == day).first()


def find_recurring_sunday_holiday(db: Session, day: date) -> Optional[Holiday]:
    return (
        db.query(Holiday)
        .filter(Holiday.date == day, Holiday.is_recurring_sunday == True)  # noqa: E712
        .first()
    )


def find_approved_leave_covering(db: Session, employee_id: int, day: date) -> Optional[LeaveRequest]:
    return (
        db.query(LeaveRequest)
        .filter(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.APPROVED.value,
            LeaveRequest.start_date <= day,
            LeaveRequest.end_date >= day,
        )
        .first()
    )

