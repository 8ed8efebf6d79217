"""
Employee endpoints. Reads of one's own profile are open to any user; changes are admin-only.
"""
from typing import List
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_clock, require_roles
from app.core.clock import Clock
from app.db.session import get_db
from app.models.employee import Employee, Role
from app.schemas.employee import EmployeeCreate, EmployeeOut, EmployeeUpdate
from app.services.employee_service import (
    create_employee,
    deactivate_employee,
    get_employee,
    list_employees,
    update_employee,
)

router = APIRouter()


@router.get("/me", response_model=EmployeeOut)
async def get_me_endpoint(current_user: Employee = Depends(get_current_user)):
    return current_user


@router.get("", response_model=List[EmployeeOut])
async def list_employees_endpoint(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    return list_employees(db, active_only=not include_inactive)


@router.post("", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
async def create_employee_endpoint(
    employee_data: EmployeeCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """
    Create an employee (ADMIN only).

    A full-quota balance is created for every active leave category.
    """
    return create_employee(db, employee_data, actor_id=current_user.id, now=clock.now())


@router.get("/{employee_id}", response_model=EmployeeOut)
async def get_employee_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    return get_employee(db, employee_id)


@router.patch("/{employee_id}", response_model=EmployeeOut)
async def update_employee_endpoint(
    employee_id: int,
    employee_data: EmployeeUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    return update_employee(db, employee_id, employee_data, actor_id=current_user.id)


@router.delete("/{employee_id}", response_model=EmployeeOut)
async def deactivate_employee_endpoint(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """Soft delete: marks the employee inactive."""
    return deactivate_employee(db, employee_id, actor_id=current_user.id)
