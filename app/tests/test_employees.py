"""
Tests for employee management
"""
from decimal import Decimal

import pytest
from fastapi import HTTPException, status

from app.models import AuditLog, LeaveBalance
from app.schemas.employee import EmployeeCreate, EmployeeUpdate
from app.services.employee_service import create_employee, deactivate_employee, update_employee
from app.tests.conftest import auth_headers


def test_create_employee_seeds_balances(db, admin, annual_category, unlimited_category, clock):
    employee = create_employee(
        db,
        EmployeeCreate(emp_code="EMP010", email=" New.Hire@Example.com ", name="New Hire"),
        actor_id=admin.id,
        now=clock.now(),
    )

    assert employee.email == "new.hire@example.com"
    balances = db.query(LeaveBalance).filter(LeaveBalance.employee_id == employee.id).all()
    assert len(balances) == 2
    casual = next(b for b in balances if b.category_id == annual_category.id)
    assert Decimal(casual.monthly_balance) == Decimal("2")
    assert Decimal(casual.annual_balance) == Decimal("12")
    audit = db.query(AuditLog).filter(AuditLog.action == "EMPLOYEE_CREATED").one()
    assert audit.meta_json["balances_seeded"] == 2


def test_create_employee_duplicate_code(db, admin, employee):
    with pytest.raises(HTTPException) as exc_info:
        create_employee(db, EmployeeCreate(emp_code="EMP001", email="x@example.com", name="Dup"), actor_id=admin.id)
    assert exc_info.value.status_code == status.HTTP_400_BAD_REQUEST


def test_create_employee_duplicate_email_is_case_insensitive(db, admin, employee):
    with pytest.raises(HTTPException) as exc_info:
        create_employee(db, EmployeeCreate(emp_code="EMP011", email="EMP001@example.com", name="Dup"), actor_id=admin.id)
    assert "already exists" in exc_info.value.detail


def test_inactive_manager_rejected(db, admin, manager):
    manager.active = False
    db.commit()

    with pytest.raises(HTTPException) as exc_info:
        create_employee(
            db,
            EmployeeCreate(emp_code="EMP012", email="emp012@example.com", name="Report", reporting_manager_id=manager.id),
            actor_id=admin.id,
        )
    assert "inactive" in exc_info.value.detail


def test_reporting_cycle_rejected(db, admin, manager, employee):
    with pytest.raises(HTTPException) as exc_info:
        update_employee(db, manager.id, EmployeeUpdate(reporting_manager_id=employee.id), actor_id=admin.id)
    assert exc_info.value.detail == "Cannot set reporting manager: would create invalid hierarchy"


def test_update_requires_fields(db, admin, employee):
    with pytest.raises(HTTPException) as exc_info:
        update_employee(db, employee.id, EmployeeUpdate(), actor_id=admin.id)
    assert exc_info.value.detail == "No fields to update"


def test_deactivate_is_soft_delete(db, admin, employee):
    result = deactivate_employee(db, employee.id, actor_id=admin.id)

    assert result.active is False
    assert db.query(AuditLog).filter(AuditLog.action == "EMPLOYEE_DEACTIVATED").count() == 1


def test_cannot_deactivate_self(db, admin):
    with pytest.raises(HTTPException) as exc_info:
        deactivate_employee(db, admin.id, actor_id=admin.id)
    assert exc_info.value.detail == "You cannot deactivate your own account"


# --- endpoints ---

def test_me(client, employee, manager):
    response = client.get("/api/v1/employees/me", headers=auth_headers(employee))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["emp_code"] == "EMP001"
    assert data["reporting_manager_id"] == manager.id
    assert data["role"] == "EMPLOYEE"
    assert "is_manager" not in data


def test_admin_creates_employee(client, admin, annual_category):
    response = client.post(
        "/api/v1/employees",
        json={"emp_code": "EMP020", "email": "emp020@example.com", "name": "Priya Nair", "reporting_manager_id": admin.id},
        headers=auth_headers(admin),
    )

    assert response.status_code == status.HTTP_201_CREATED
    listing = client.get("/api/v1/employees", headers=auth_headers(admin)).json()
    assert [e["emp_code"] for e in listing] == ["ADM001", "EMP020"]


def test_non_admin_cannot_manage_employees(client, manager, employee):
    assert client.get("/api/v1/employees", headers=auth_headers(manager)).status_code == status.HTTP_403_FORBIDDEN
    response = client.post(
        "/api/v1/employees",
        json={"emp_code": "EMP021", "email": "emp021@example.com", "name": "Nope"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_admin_updates_and_deactivates(client, admin, employee, other_employee):
    updated = client.patch(
        f"/api/v1/employees/{other_employee.id}",
        json={"name": "Sara D.", "reporting_manager_id": admin.id},
        headers=auth_headers(admin),
    )
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["name"] == "Sara D."

    self_manager = client.patch(
        f"/api/v1/employees/{other_employee.id}",
        json={"reporting_manager_id": other_employee.id},
        headers=auth_headers(admin),
    )
    assert self_manager.status_code == status.HTTP_400_BAD_REQUEST

    removed = client.delete(f"/api/v1/employees/{other_employee.id}", headers=auth_headers(admin))
    assert removed.json()["active"] is False

    listing = client.get("/api/v1/employees", headers=auth_headers(admin)).json()
    assert other_employee.emp_code not in [e["emp_code"] for e in listing]
    everyone = client.get("/api/v1/employees?include_inactive=true", headers=auth_headers(admin)).json()
    assert other_employee.emp_code in [e["emp_code"] for e in everyone]


def test_get_unknown_employee(client, admin):
    response = client.get("/api/v1/employees/999", headers=auth_headers(admin))
    assert response.status_code == status.HTTP_404_NOT_FOUND
