"""
Attendance endpoints: punch in/out, breaks, today, history and monthly summary.
Every user works on their own attendance; a record's breaks are also visible to
the employee's reporting manager and to admins.
"""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.deps import ensure_can_manage, get_attendance_engine, get_current_user
from app.core.errors import raise_for_result
from app.db.session import get_db
from app.models.attendance import AttendanceRecord
from app.models.employee import Employee
from app.schemas.attendance import (
    AttendanceHistoryItem,
    AttendanceHistoryResponse,
    AttendanceOut,
    BreakEndOut,
    BreakOut,
    BreakStartOut,
    MonthlySummaryOut,
    PunchInOut,
    PunchOutOut,
    PunchRequest,
)
from app.services.attendance_service import AttendanceEngine

router = APIRouter()


def _today_record_or_409(engine: AttendanceEngine, employee_id: int) -> AttendanceRecord:
    record = engine.get_today_attendance(employee_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No punch-in record found"
        )
    return record


@router.post("/punch-in", response_model=PunchInOut, status_code=status.HTTP_201_CREATED)
async def punch_in_endpoint(
    payload: Optional[PunchRequest] = None,
    engine: AttendanceEngine = Depends(get_attendance_engine),
    current_user: Employee = Depends(get_current_user),
):
    """Start today's attendance. Closes any record left open from an earlier day."""
    location = payload.location() if payload else None
    result = raise_for_result(engine.punch_in(current_user.id, location))
    return result.data


@router.post("/punch-out", response_model=PunchOutOut)
async def punch_out_endpoint(
    payload: Optional[PunchRequest] = None,
    engine: AttendanceEngine = Depends(get_attendance_engine),
    current_user: Employee = Depends(get_current_user),
):
    location = payload.location() if payload else None
    result = raise_for_result(engine.punch_out(current_user.id, location))
    return result.data


@router.post("/break/start", response_model=BreakStartOut, status_code=status.HTTP_201_CREATED)
async def start_break_endpoint(
    engine: AttendanceEngine = Depends(get_attendance_engine),
    current_user: Employee = Depends(get_current_user),
):
    record = _today_record_or_409(engine, current_user.id)
    result = raise_for_result(engine.start_break(record.id))
    return result.data


@router.post("/break/end", response_model=BreakEndOut)
async def end_break_endpoint(
    engine: AttendanceEngine = Depends(get_attendance_engine),
    current_user: Employee = Depends(get_current_user),
):
    record = _today_record_or_409(engine, current_user.id)
    result = raise_for_result(engine.end_break(record.id))
    return result.data


@router.get("/today", response_model=Optional[AttendanceOut])
async def today_endpoint(
    engine: AttendanceEngine = Depends(get_attendance_engine),
    current_user: Employee = Depends(get_current_user),
):
    """Today's record for the current user, or null before punch-in."""
    return engine.get_today_attendance(current_user.id)


@router.get("/history", response_model=AttendanceHistoryResponse)
async def history_endpoint(
    limit: int = Query(30, ge=1, le=366),
    offset: int = Query(0, ge=0),
    engine: AttendanceEngine = Depends(get_attendance_engine),
    current_user: Employee = Depends(get_current_user),
):
    rows = engine.get_attendance_history(current_user.id, limit=limit, offset=offset)
    items = [
        AttendanceHistoryItem.model_validate(record).model_copy(update={"total_break_minutes": minutes})
        for record, minutes in rows
    ]
    return AttendanceHistoryResponse(items=items, limit=limit, offset=offset)


@router.get("/summary", response_model=MonthlySummaryOut)
async def monthly_summary_endpoint(
    month: Optional[int] = Query(None, ge=1, le=12),
    year: Optional[int] = Query(None, ge=2000, le=2100),
    engine: AttendanceEngine = Depends(get_attendance_engine),
    current_user: Employee = Depends(get_current_user),
):
    """Defaults to the current month in the organisation timezone."""
    today: date = engine.get_today_date()
    return engine.get_monthly_summary(current_user.id, month or today.month, year or today.year)


@router.get("/{attendance_id}/breaks", response_model=List[BreakOut])
async def breaks_endpoint(
    attendance_id: int,
    db: Session = Depends(get_db),
    engine: AttendanceEngine = Depends(get_attendance_engine),
    current_user: Employee = Depends(get_current_user),
):
    record = db.get(AttendanceRecord, attendance_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Attendance record not found"
        )
    if record.employee_id != current_user.id:
        ensure_can_manage(current_user, record.employee)
    return engine.get_breaks(attendance_id)
