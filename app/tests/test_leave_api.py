"""
Tests for leave endpoints: apply, approvals, balances, comp-off and categories
"""
from decimal import Decimal

from fastapi import status

from app.models.employee import Role
from app.tests.conftest import auth_headers, make_employee


def _apply(client, employee, category, start="2026-10-20", end="2026-10-21", **extra):
    payload = {
        "category_id": category.id,
        "start_date": start,
        "end_date": end,
        "reason": "Family function",
    }
    payload.update(extra)
    return client.post("/api/v1/leaves/requests", json=payload, headers=auth_headers(employee))


def test_apply_leave(client, employee, annual_category, employee_balance):
    response = _apply(client, employee, annual_category)

    assert response.status_code == status.HTTP_201_CREATED
    assert Decimal(response.json()["total_days"]) == Decimal("2")

    mine = client.get("/api/v1/leaves/requests/my", headers=auth_headers(employee)).json()
    assert mine["total"] == 1
    assert mine["items"][0]["status"] == "pending"


def test_apply_beyond_quota_is_bad_request(client, employee, annual_category, employee_balance):
    response = _apply(client, employee, annual_category, start="2026-10-20", end="2026-10-22")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Insufficient monthly quota"


def test_apply_end_before_start(client, employee, annual_category, employee_balance):
    response = _apply(client, employee, annual_category, start="2026-10-22", end="2026-10-20")

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "End date cannot be before start date"


def test_apply_on_day_with_attendance_is_conflict(client, employee, annual_category, employee_balance):
    client.post("/api/v1/attendance/punch-in", headers=auth_headers(employee))

    response = _apply(client, employee, annual_category, start="2026-10-16", end="2026-10-16")

    assert response.status_code == status.HTTP_409_CONFLICT


def test_apply_without_reason_fails_validation(client, employee, annual_category, employee_balance):
    response = client.post(
        "/api/v1/leaves/requests",
        json={"category_id": annual_category.id, "start_date": "2026-10-20", "end_date": "2026-10-20"},
        headers=auth_headers(employee),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_manager_approves_direct_report(client, employee, manager, annual_category, employee_balance):
    request_id = _apply(client, employee, annual_category).json()["request_id"]

    pending = client.get("/api/v1/leaves/requests/pending", headers=auth_headers(manager)).json()
    assert [item["id"] for item in pending["items"]] == [request_id]

    response = client.post(
        f"/api/v1/leaves/requests/{request_id}/approve",
        json={"notes": "Approved"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_200_OK
    deductions = {pool: Decimal(days) for pool, days in response.json()["deductions"].items()}
    assert deductions == {"monthly": Decimal("2"), "annual": Decimal("2")}

    balances = client.get("/api/v1/leaves/balances/me", headers=auth_headers(employee)).json()
    assert Decimal(balances[0]["monthly_balance"]) == Decimal("0")
    assert Decimal(balances[0]["annual_balance"]) == Decimal("10")

    again = client.post(f"/api/v1/leaves/requests/{request_id}/approve", headers=auth_headers(manager))
    assert again.status_code == status.HTTP_409_CONFLICT
    assert again.json()["detail"] == "Request already processed"

    inbox = client.get("/api/v1/notifications/me", headers=auth_headers(employee)).json()
    assert inbox[0]["title"] == "Leave Approved"


def test_manager_rejects_with_reason(client, employee, manager, annual_category, employee_balance):
    request_id = _apply(client, employee, annual_category).json()["request_id"]

    response = client.post(
        f"/api/v1/leaves/requests/{request_id}/reject",
        json={"notes": "Release week"},
        headers=auth_headers(manager),
    )

    assert response.status_code == status.HTTP_200_OK
    mine = client.get("/api/v1/leaves/requests/my?status=rejected", headers=auth_headers(employee)).json()
    assert mine["items"][0]["review_notes"] == "Release week"


def test_other_manager_cannot_review(client, db, employee, annual_category, employee_balance):
    outsider = make_employee(db, "MGR002", "Vikram Manager", Role.MANAGER)
    request_id = _apply(client, employee, annual_category).json()["request_id"]

    response = client.post(f"/api/v1/leaves/requests/{request_id}/approve", headers=auth_headers(outsider))

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_employee_cannot_list_pending(client, employee):
    response = client.get("/api/v1/leaves/requests/pending", headers=auth_headers(employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_admin_can_review_anyone(client, admin, employee, annual_category, employee_balance):
    request_id = _apply(client, employee, annual_category).json()["request_id"]

    response = client.post(f"/api/v1/leaves/requests/{request_id}/reject", headers=auth_headers(admin))

    assert response.status_code == status.HTTP_200_OK


def test_review_unknown_request(client, manager):
    response = client.post("/api/v1/leaves/requests/999/approve", headers=auth_headers(manager))
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_manager_adds_comp_off(client, employee, manager, annual_category, employee_balance):
    response = client.post(
        "/api/v1/leaves/comp-off",
        json={"employee_id": employee.id, "category_id": annual_category.id, "days": "1", "reason": "Sunday deploy"},
        headers=auth_headers(manager),
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert Decimal(response.json()["comp_off_balance"]) == Decimal("1")

    # comp-off of 1 cannot cover 3 days and the monthly tier holds only 2
    over = _apply(client, employee, annual_category, start="2026-10-20", end="2026-10-22")
    assert over.status_code == status.HTTP_400_BAD_REQUEST


def test_comp_off_for_outside_team_is_forbidden(client, manager, other_employee, annual_category):
    response = client.post(
        "/api/v1/leaves/comp-off",
        json={"employee_id": other_employee.id, "category_id": annual_category.id, "days": "1", "reason": "x"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_comp_off_days_must_be_positive(client, employee, manager, annual_category, employee_balance):
    response = client.post(
        "/api/v1/leaves/comp-off",
        json={"employee_id": employee.id, "category_id": annual_category.id, "days": "0", "reason": "x"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_admin_creates_category(client, admin, employee):
    response = client.post(
        "/api/v1/leaves/categories",
        json={"name": "Sick Leave", "code": "sl", "has_annual_quota": True, "annual_quota_days": "7"},
        headers=auth_headers(admin),
    )

    assert response.status_code == status.HTTP_201_CREATED
    # admin, manager and employee
    assert response.json()["balances_created"] == 3

    categories = client.get("/api/v1/leaves/categories", headers=auth_headers(employee)).json()
    assert [c["code"] for c in categories] == ["SL"]
    balances = client.get("/api/v1/leaves/balances/me", headers=auth_headers(employee)).json()
    assert Decimal(balances[0]["annual_balance"]) == Decimal("7")
    assert balances[0]["monthly_balance"] is None


def test_category_enabled_tier_needs_days(client, admin):
    response = client.post(
        "/api/v1/leaves/categories",
        json={"name": "Earned Leave", "code": "EL", "has_monthly_quota": True},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_duplicate_category_code(client, admin, annual_category):
    response = client.post(
        "/api/v1/leaves/categories",
        json={"name": "Casual", "code": "cl"},
        headers=auth_headers(admin),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_only_admin_creates_categories(client, manager):
    response = client.post(
        "/api/v1/leaves/categories",
        json={"name": "Sick Leave", "code": "SL"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
