"""
Manager daily report of break violations
"""
from datetime import date
from typing import Any, Dict, List

from sqlalchemy.orm import Session, joinedload

from app.models.report import BreakViolation


def get_break_violations(db: Session, manager_id: int, report_date: date) -> List[BreakViolation]:
    return (
        db.query(BreakViolation)
        .options(joinedload(BreakViolation.employee))
        .filter(
            BreakViolation.manager_id == manager_id,
            BreakViolation.report_date == report_date,
        )
        .order_by(BreakViolation.recorded_at.asc(), BreakViolation.id.asc())
        .all()
    )


def get_daily_report(db: Session, manager_id: int, report_date: date) -> Dict[str, Any]:
    """
    Fold the violation ledger for (manager, date) into the report document.

    A date with no violations yields an empty list rather than no report.
    """
    violations = get_break_violations(db, manager_id, report_date)
    return {
        "report_date": report_date,
        "manager_id": manager_id,
        "violations": [
            {
                "employee_id": v.employee_id,
                "name": v.employee.name if v.employee else None,
                "attendance_id": v.attendance_id,
                "total_break_minutes": v.total_break_minutes,
                "timestamp": v.recorded_at,
            }
            for v in violations
        ],
    }
