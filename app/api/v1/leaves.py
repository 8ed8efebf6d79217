"""
Leave endpoints: apply, my requests, manager approvals, balances, comp-off and categories
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.deps import ensure_can_manage, get_current_user, get_leave_engine, require_roles
from app.core.errors import raise_for_result
from app.db.session import get_db
from app.models.employee import Employee, Role
from app.models.leave import LeaveRequest, LeaveStatus
from app.schemas.leave import (
    CompOffCreate,
    CompOffOut,
    LeaveApprovalOut,
    LeaveBalanceOut,
    LeaveCategoryCreate,
    LeaveCategoryCreated,
    LeaveCategoryOut,
    LeaveRequestCreate,
    LeaveRequestCreated,
    LeaveRequestList,
    LeaveReviewRequest,
)
from app.services.leave_service import LeaveEngine

router = APIRouter()


def _load_for_review(db: Session, request_id: int, reviewer: Employee) -> LeaveRequest:
    leave_request = db.get(LeaveRequest, request_id)
    if leave_request is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Leave request not found"
        )
    if leave_request.employee_id == reviewer.id and reviewer.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You cannot review your own leave request"
        )
    ensure_can_manage(reviewer, leave_request.employee)
    return leave_request


@router.post("/requests", response_model=LeaveRequestCreated, status_code=status.HTTP_201_CREATED)
async def apply_leave_endpoint(
    leave_data: LeaveRequestCreate,
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(get_current_user),
):
    """
    Apply for leave (creates a pending request) for the current user.

    Rejected when any date in the range already has attendance or the quota
    cannot cover the request.
    """
    data = leave_data.model_dump()
    data["employee_id"] = current_user.id
    result = raise_for_result(engine.create_request(data))
    return result.data


@router.get("/requests/my", response_model=LeaveRequestList)
async def my_requests_endpoint(
    status_filter: Optional[LeaveStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(get_current_user),
):
    items = engine.get_user_requests(current_user.id, status=status_filter, limit=limit)
    return {"items": items, "total": len(items)}


@router.get("/requests/pending", response_model=LeaveRequestList)
async def pending_requests_endpoint(
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(require_roles(Role.MANAGER)),
):
    """Pending requests of the current manager's direct reports, oldest first."""
    items = engine.get_pending_requests_for_manager(current_user.id)
    return {"items": items, "total": len(items)}


@router.post("/requests/{request_id}/approve", response_model=LeaveApprovalOut)
async def approve_leave_endpoint(
    request_id: int,
    review: Optional[LeaveReviewRequest] = None,
    db: Session = Depends(get_db),
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(require_roles(Role.MANAGER)),
):
    _load_for_review(db, request_id, current_user)
    result = raise_for_result(engine.approve(request_id, current_user.id, review.notes if review else None))
    return result.data


@router.post("/requests/{request_id}/reject", status_code=status.HTTP_200_OK)
async def reject_leave_endpoint(
    request_id: int,
    review: Optional[LeaveReviewRequest] = None,
    db: Session = Depends(get_db),
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(require_roles(Role.MANAGER)),
):
    _load_for_review(db, request_id, current_user)
    result = raise_for_result(engine.reject(request_id, current_user.id, review.notes if review else None))
    return {"request_id": result.data["request_id"], "message": result.message}


@router.get("/balances/me", response_model=List[LeaveBalanceOut])
async def my_balances_endpoint(
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(get_current_user),
):
    return engine.get_user_balances(current_user.id)


@router.post("/comp-off", response_model=CompOffOut, status_code=status.HTTP_201_CREATED)
async def add_comp_off_endpoint(
    payload: CompOffCreate,
    db: Session = Depends(get_db),
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(require_roles(Role.MANAGER)),
):
    """Credit comp-off to a direct report (admins: anyone)."""
    employee = db.get(Employee, payload.employee_id)
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Employee not found"
        )
    ensure_can_manage(current_user, employee)
    result = raise_for_result(
        engine.add_comp_off(payload.employee_id, payload.category_id, payload.days, payload.reason, actor_id=current_user.id)
    )
    return result.data


@router.get("/categories", response_model=List[LeaveCategoryOut])
async def list_categories_endpoint(
    include_inactive: bool = Query(False),
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(get_current_user),
):
    return engine.get_categories(active_only=not include_inactive)


@router.post("/categories", response_model=LeaveCategoryCreated, status_code=status.HTTP_201_CREATED)
async def create_category_endpoint(
    payload: LeaveCategoryCreate,
    engine: LeaveEngine = Depends(get_leave_engine),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """Create a category and give every active employee a full-quota balance for it."""
    result = raise_for_result(engine.create_category(payload.model_dump(), actor_id=current_user.id))
    return result.data
