"""
Manager reports
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.deps import get_clock, require_roles
from app.db.session import get_db
from app.models.employee import Employee, Role
from app.schemas.notification import DailyReportOut
from app.services.report_service import get_daily_report
from app.utils.datetime_utils import local_date

router = APIRouter()


@router.get("/break-violations", response_model=DailyReportOut)
async def break_violations_report(
    report_date: Optional[date] = Query(None, description="Defaults to today"),
    manager_id: Optional[int] = Query(None, description="ADMIN only: report of another manager"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(require_roles(Role.MANAGER)),
):
    """Break violations of the manager's direct reports for one day."""
    if manager_id is not None and manager_id != current_user.id and current_user.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can view another manager's report"
        )
    return get_daily_report(db, manager_id or current_user.id, report_date or local_date(clock.now()))
