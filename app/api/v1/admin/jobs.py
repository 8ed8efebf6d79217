"""
Manual triggers for the scheduled jobs. Same code path as the cron entry points.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.deps import get_clock, require_roles
from app.core.errors import raise_for_result
from app.db.session import get_db
from app.jobs.auto_logout import run_auto_logout
from app.jobs.reset_quotas import run_reset_quotas
from app.models.employee import Employee, Role
from app.schemas.attendance import AutoLogoutOut
from app.schemas.leave import QuotaResetOut

router = APIRouter()


@router.post("/auto-logout", response_model=AutoLogoutOut)
async def auto_logout_job(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    result = raise_for_result(run_auto_logout(db, clock))
    return result.data


@router.post("/reset-quotas", response_model=QuotaResetOut)
async def reset_quotas_job(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """409 on any date other than December 31."""
    result = raise_for_result(run_reset_quotas(db, clock))
    return result.data
