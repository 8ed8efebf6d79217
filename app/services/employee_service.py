"""
Employee service - business logic for employee management
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.employee import Employee
from app.models.leave import LeaveCategory
from app.schemas.employee import EmployeeCreate, EmployeeUpdate
from app.services.audit_service import log_audit
from app.services.leave_service import build_initial_balance
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def _check_reporting_hierarchy_cycle(
    db: Session,
    employee_id: Optional[int],
    reporting_manager_id: int
) -> bool:
    """
    Check if setting reporting_manager_id would create a cycle

    Args:
        db: Database session
        employee_id: ID of employee being updated (None while creating)
        reporting_manager_id: Proposed reporting manager ID

    Returns:
        True if cycle would be created, False otherwise
    """
    if employee_id is not None and employee_id == reporting_manager_id:
        return True

    # Walk up the chain from the proposed manager
    visited = set()
    current_id = reporting_manager_id
    while current_id is not None:
        if current_id == employee_id:
            return True
        if current_id in visited:
            break
        visited.add(current_id)
        manager = db.get(Employee, current_id)
        if not manager:
            break
        current_id = manager.reporting_manager_id

    return False


def _validate_reporting_manager(db: Session, employee_id: Optional[int], manager_id: int) -> Employee:
    if employee_id is not None and manager_id == employee_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Employee cannot be their own reporting manager",
        )
    manager = db.get(Employee, manager_id)
    if not manager:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Reporting manager with id {manager_id} not found",
        )
    if not manager.active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Reporting manager with id {manager_id} is inactive",
        )
    if _check_reporting_hierarchy_cycle(db, employee_id, manager_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot set reporting manager: would create invalid hierarchy",
        )
    return manager


def get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if not employee:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Employee with id {employee_id} not found"
        )
    return employee


def list_employees(db: Session, active_only: bool = True) -> List[Employee]:
    query = db.query(Employee)
    if active_only:
        query = query.filter(Employee.active.is_(True))
    return query.order_by(Employee.emp_code).all()


def create_employee(
    db: Session,
    employee_data: EmployeeCreate,
    actor_id: Optional[int],
    now: Optional[datetime] = None,
) -> Employee:
    """
    Create a new employee and seed a full-quota balance for every active leave category

    Args:
        db: Database session
        employee_data: Employee creation data
        actor_id: ID of the admin creating the employee
        now: Creation time (defaults to now)

    Returns:
        Created Employee instance

    Raises:
        HTTPException: If emp_code or email is taken, or the reporting manager is invalid
    """
    now = now or now_utc()

    if db.query(Employee.id).filter(Employee.emp_code == employee_data.emp_code).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Employee with emp_code '{employee_data.emp_code}' already exists"
        )
    if db.query(Employee.id).filter(func.lower(Employee.email) == employee_data.email.lower()).first():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Employee with email '{employee_data.email}' already exists"
        )

    if employee_data.reporting_manager_id is not None:
        _validate_reporting_manager(db, None, employee_data.reporting_manager_id)

    employee = Employee(
        emp_code=employee_data.emp_code,
        email=employee_data.email,
        name=employee_data.name,
        phone=employee_data.phone,
        role=employee_data.role.value,
        reporting_manager_id=employee_data.reporting_manager_id,
        active=employee_data.active,
    )
    db.add(employee)
    db.flush()

    seeded = 0
    if employee.active:
        categories = db.query(LeaveCategory).filter(LeaveCategory.is_active.is_(True)).all()
        for category in categories:
            build_initial_balance(db, employee.id, category, now, actor_id)
            seeded += 1

    log_audit(
        db,
        actor_id=actor_id,
        action="EMPLOYEE_CREATED",
        entity_type="employees",
        entity_id=employee.id,
        meta={"emp_code": employee.emp_code, "role": employee.role, "balances_seeded": seeded},
        at=now,
    )
    db.commit()
    db.refresh(employee)
    logger.info("Employee created: id=%s emp_code=%s balances_seeded=%s", employee.id, employee.emp_code, seeded)
    return employee


def update_employee(
    db: Session,
    employee_id: int,
    employee_data: EmployeeUpdate,
    actor_id: Optional[int],
) -> Employee:
    """Apply the fields that were sent; the rest are left untouched."""
    employee = get_employee(db, employee_id)

    update_data = employee_data.model_dump(exclude_unset=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    if "email" in update_data and update_data["email"] is not None:
        update_data["email"] = update_data["email"].strip().lower()
        clash = (
            db.query(Employee.id)
            .filter(func.lower(Employee.email) == update_data["email"], Employee.id != employee_id)
            .first()
        )
        if clash:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Employee with email '{update_data['email']}' already exists"
            )

    if update_data.get("reporting_manager_id") is not None:
        _validate_reporting_manager(db, employee_id, update_data["reporting_manager_id"])

    if "role" in update_data and update_data["role"] is not None:
        update_data["role"] = update_data["role"].value

    old_values = {field: getattr(employee, field) for field in update_data}
    for field, value in update_data.items():
        setattr(employee, field, value)

    log_audit(
        db,
        actor_id=actor_id,
        action="EMPLOYEE_UPDATED",
        entity_type="employees",
        entity_id=employee.id,
        meta={"old": old_values, "new": update_data},
    )
    db.commit()
    db.refresh(employee)
    return employee


def deactivate_employee(db: Session, employee_id: int, actor_id: Optional[int]) -> Employee:
    """Soft delete: the row and its history are kept, the employee is marked inactive."""
    employee = get_employee(db, employee_id)
    if actor_id is not None and employee.id == actor_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account"
        )
    if not employee.active:
        return employee

    employee.active = False
    log_audit(
        db,
        actor_id=actor_id,
        action="EMPLOYEE_DEACTIVATED",
        entity_type="employees",
        entity_id=employee.id,
        meta={"emp_code": employee.emp_code},
    )
    db.commit()
    db.refresh(employee)
    logger.info("Employee deactivated: id=%s", employee.id)
    return employee
