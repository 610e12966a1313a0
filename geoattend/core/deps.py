"""
Request dependencies: database session, bearer-token employee, role guards
"""
from typing import Generator
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from geoattend.db.session import SessionLocal
from geoattend.core.security import decode_token
from geoattend.models.employee import Employee, Role
from geoattend.utils.enums import enum_to_str


bearer_scheme = HTTPBearer()


def get_db() -> Generator:
    """One session per request, closed when the response is sent"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _employee_id_from_token(token: str) -> int:
    # Tokens carry the employee id as a string "sub" claim
    try:
        payload = decode_token(token)
        return int(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise _unauthorized("Invalid authentication credentials")


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Employee:
    """
    Employee behind the bearer token.

    Inactive employees keep valid tokens until expiry but cannot check in,
    check out or review.
    """
    employee_id = _employee_id_from_token(credentials.credentials)

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise _unauthorized("Employee not found")
    if not employee.active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Employee is inactive")
    return employee


def require_roles(*allowed_roles: Role):
    """
    Guard a route by role; ADMIN passes every guard.

        @router.patch("/attendance/{record_id}/review")
        def review(reviewer: Employee = Depends(require_roles(Role.MANAGER, Role.HR))):
            ...
    """
    allowed = {role.value for role in allowed_roles}

    def role_checker(current_user: Employee = Depends(get_current_user)) -> Employee:
        role = enum_to_str(current_user.role)
        if role == Role.ADMIN.value or role in allowed:
            return current_user
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. Required roles: {sorted(allowed)}"
        )
    return role_checker
