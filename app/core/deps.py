"""
Dependencies and guards for FastAPI endpoints
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.core.clock import Clock, SystemClock
from app.core.security import decode_token
from app.models.employee import Employee, Role
from app.services.attendance_service import AttendanceEngine
from app.services.leave_service import LeaveEngine


security = HTTPBearer()

_system_clock = SystemClock()


def get_clock() -> Clock:
    """Overridden in tests with a fixed clock"""
    return _system_clock


def get_attendance_engine(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> AttendanceEngine:
    return AttendanceEngine(db, clock)


def get_leave_engine(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LeaveEngine:
    return LeaveEngine(db, clock)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> Employee:
    """
    Get current authenticated user from JWT token
    """
    token = credentials.credentials

    try:
        payload = decode_token(token)
        sub_value = payload.get("sub")
        if sub_value is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )
        # Convert string sub back to integer
        employee_id: int = int(sub_value)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    employee = db.get(Employee, employee_id)
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return employee


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control

    Usage:
        @router.get("/managers-only")
        async def endpoint(user: Employee = Depends(require_roles(Role.MANAGER))):
            ...
    """
    def role_checker(current_user: Employee = Depends(get_current_user)) -> Employee:
        # ADMIN passes every role check
        if current_user.role == Role.ADMIN:
            return current_user

        if current_user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {[r.value for r in allowed_roles]}"
            )
        return current_user
    return role_checker


def ensure_can_manage(actor: Employee, subject: Employee) -> None:
    """A manager may act on direct reports only; an admin on anyone."""
    if actor.role == Role.ADMIN:
        return
    if subject.reporting_manager_id != actor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only act on your direct reports"
        )
