"""
Attendance engine: punch in/out, breaks, 6/8/10 status classification,
break-violation detection, auto-logout sweep and midnight-crossing repair.

All timestamps are stored in UTC; the attendance date is the calendar date in
the organisation timezone (settings.APP_TIMEZONE).
"""
import calendar
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.core.constants import (
    AUTO_LOGOUT_HOURS,
    AUTO_LOGOUT_NOTE,
    HALF_DAY_THRESHOLD,
    MAX_BREAK_MINUTES,
    MIDNIGHT_CROSSING_NOTE,
    SHORT_DAY_THRESHOLD,
)
from app.core.exceptions import EngineError, EngineResult, ErrorKind, engine_operation
from app.models.attendance import AttendanceRecord, AttendanceStatus, BreakInterval
from app.models.employee import Employee
from app.models.notification import NotificationType
from app.models.report import BreakViolation
from app.services.audit_service import log_audit
from app.services.notification_service import DatabaseNotificationSink, NotificationSink
from app.utils.datetime_utils import end_of_local_day, ensure_utc, local_date

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def classify_hours(hours: float) -> AttendanceStatus:
    """6/8/10 rule: < 6 half day, 6 to < 8 short day, >= 8 full day."""
    if hours < HALF_DAY_THRESHOLD:
        return AttendanceStatus.HALF_DAY
    if hours < SHORT_DAY_THRESHOLD:
        return AttendanceStatus.SHORT_DAY
    return AttendanceStatus.FULL_DAY


def elapsed_hours(start: datetime, end: datetime) -> float:
    return (ensure_utc(end) - ensure_utc(start)).total_seconds() / 3600


def round_hours(hours: float) -> Decimal:
    return Decimal(str(hours)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def round_minutes(start: datetime, end: datetime) -> int:
    seconds = Decimal(str((ensure_utc(end) - ensure_utc(start)).total_seconds()))
    return int((seconds / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class AttendanceEngine:
    """
    Operates on one Session (the record store). Every public write operation
    returns an EngineResult and commits or rolls back its own unit of work.
    """

    def __init__(
        self,
        db: Session,
        clock: Optional[Clock] = None,
        notifier: Optional[NotificationSink] = None,
    ):
        self.db = db
        self.clock = clock or SystemClock()
        self.notifier = notifier or DatabaseNotificationSink(db, self.clock)

    def _now(self, now: Optional[datetime]) -> datetime:
        return ensure_utc(now or self.clock.now())

    # --- lookups ---

    def _get_record(self, employee_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        return (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date == attendance_date,
            )
            .first()
        )

    def _open_records_before(self, employee_id: int, attendance_date: date) -> List[AttendanceRecord]:
        return (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date < attendance_date,
                AttendanceRecord.punch_in.isnot(None),
                AttendanceRecord.punch_out.is_(None),
            )
            .order_by(AttendanceRecord.attendance_date)
            .all()
        )

    def _active_break(self, attendance_id: int) -> Optional[BreakInterval]:
        return (
            self.db.query(BreakInterval)
            .filter(
                BreakInterval.attendance_id == attendance_id,
                BreakInterval.break_end.is_(None),
            )
            .first()
        )

    # --- punch in / out ---

    @engine_operation("punch_in")
    def punch_in(
        self,
        employee_id: int,
        location: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EngineResult:
        """
        Create today's attendance record with status pending.

        Any record from an earlier date that is still open is force-closed at
        23:59:59 of its own date first (midnight crossing).
        """
        now = self._now(now)
        today = local_date(now)

        existing = self._get_record(employee_id, today)
        if existing is not None and existing.punch_in is not None and existing.punch_out is None:
            raise EngineError(ErrorKind.ALREADY_PUNCHED_IN, "Already punched in today")
        if existing is not None and existing.punch_out is not None:
            raise EngineError(ErrorKind.ALREADY_COMPLETED, "Attendance already completed for today")

        for stale in self._open_records_before(employee_id, today):
            # a punch-in during the last second of the day must not close before it opened
            close_at = max(ensure_utc(stale.punch_in), end_of_local_day(stale.attendance_date))
            self._force_punch_out(stale, close_at, MIDNIGHT_CROSSING_NOTE, now)
            logger.info(
                "Midnight crossing: closed attendance_id=%s employee_id=%s date=%s",
                stale.id, employee_id, stale.attendance_date,
            )

        record = AttendanceRecord(
            employee_id=employee_id,
            attendance_date=today,
            punch_in=now,
            punch_in_location=location,
            status=AttendanceStatus.PENDING,
            auto_logged_out=False,
        )
        self.db.add(record)
        try:
            self.db.flush()
        except IntegrityError:
            # concurrent punch-in for the same (employee, date) won the unique constraint
            self.db.rollback()
            raise EngineError(ErrorKind.ALREADY_PUNCHED_IN, "Already punched in today")

        log_audit(
            self.db,
            actor_id=employee_id,
            action="ATTENDANCE_PUNCH_IN",
            entity_type="attendance",
            entity_id=record.id,
            meta={"attendance_date": today, "punch_in": now, "location": location},
            at=now,
        )
        record_id = record.id
        self.db.commit()
        logger.info("Punch in: employee_id=%s attendance_id=%s at=%s", employee_id, record_id, now.isoformat())
        return EngineResult.ok(
            "Punched in successfully",
            attendance_id=record_id,
            punch_in_time=now,
        )

    @engine_operation("punch_out")
    def punch_out(
        self,
        employee_id: int,
        location: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EngineResult:
        """Close today's record, classify it by the 6/8/10 rule, then check break usage."""
        now = self._now(now)
        today = local_date(now)

        record = self._get_record(employee_id, today)
        if record is None:
            raise EngineError(ErrorKind.NO_PUNCH_IN, "No punch-in record found")
        if record.punch_out is not None:
            raise EngineError(ErrorKind.ALREADY_PUNCHED_OUT, "Already punched out")

        hours = elapsed_hours(record.punch_in, now)
        status = classify_hours(hours)
        total_hours = round_hours(hours)

        record.punch_out = now
        record.punch_out_location = location
        record.total_hours = total_hours
        record.status = status
        self.db.flush()

        log_audit(
            self.db,
            actor_id=employee_id,
            action="ATTENDANCE_PUNCH_OUT",
            entity_type="attendance",
            entity_id=record.id,
            meta={"old_status": AttendanceStatus.PENDING, "status": status, "total_hours": total_hours},
            at=now,
        )
        self._check_break_violations(record, now)
        record_id = record.id
        self.db.commit()
        logger.info(
            "Punch out: employee_id=%s attendance_id=%s total_hours=%s status=%s",
            employee_id, record_id, total_hours, status.value,
        )
        return EngineResult.ok(
            "Punched out successfully",
            attendance_id=record_id,
            total_hours=total_hours,
            status=status,
        )

    def _force_punch_out(
        self,
        record: AttendanceRecord,
        punch_out_at: datetime,
        notes: str,
        now: datetime,
    ) -> AttendanceStatus:
        """Close record at a given time (not now), tagged auto-logged-out. Caller commits."""
        hours = elapsed_hours(record.punch_in, punch_out_at)
        status = classify_hours(hours)
        total_hours = round_hours(hours)

        record.punch_out = ensure_utc(punch_out_at)
        record.total_hours = total_hours
        record.status = status
        record.auto_logged_out = True
        record.notes = notes
        self.db.flush()

        log_audit(
            self.db,
            actor_id=None,
            action="ATTENDANCE_FORCE_PUNCH_OUT",
            entity_type="attendance",
            entity_id=record.id,
            meta={"punch_out": punch_out_at, "total_hours": total_hours, "status": status, "notes": notes},
            at=now,
        )
        return status

    # --- breaks ---

    @engine_operation("start_break")
    def start_break(self, attendance_id: int, now: Optional[datetime] = None) -> EngineResult:
        now = self._now(now)
        if self.db.get(AttendanceRecord, attendance_id) is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Attendance record not found")
        if self._active_break(attendance_id) is not None:
            raise EngineError(ErrorKind.BREAK_IN_PROGRESS, "Break already in progress")

        interval = BreakInterval(attendance_id=attendance_id, break_start=now)
        self.db.add(interval)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise EngineError(ErrorKind.BREAK_IN_PROGRESS, "Break already in progress")
        break_id = interval.id
        self.db.commit()
        return EngineResult.ok("Break started", break_id=break_id, break_start=now)

    @engine_operation("end_break")
    def end_break(self, attendance_id: int, now: Optional[datetime] = None) -> EngineResult:
        now = self._now(now)
        interval = self._active_break(attendance_id)
        if interval is None:
            raise EngineError(ErrorKind.NO_ACTIVE_BREAK, "No active break found")

        duration = round_minutes(interval.break_start, now)
        interval.break_end = now
        interval.duration_minutes = duration
        break_id = interval.id
        self.db.commit()
        return EngineResult.ok("Break ended", break_id=break_id, duration_minutes=duration)

    def total_break_minutes(self, attendance_id: int) -> int:
        """Sum of duration over closed breaks only."""
        total = (
            self.db.query(func.coalesce(func.sum(BreakInterval.duration_minutes), 0))
            .filter(
                BreakInterval.attendance_id == attendance_id,
                BreakInterval.break_end.isnot(None),
            )
            .scalar()
        )
        return int(total or 0)

    def _check_break_violations(self, record: AttendanceRecord, now: datetime) -> bool:
        """Notify the manager and append to their daily report when closed breaks exceed the cap."""
        total = self.total_break_minutes(record.id)
        if total <= MAX_BREAK_MINUTES:
            return False

        employee = self.db.get(Employee, record.employee_id)
        if employee is None or employee.reporting_manager_id is None:
            logger.info(
                "Break limit exceeded without a manager to notify: employee_id=%s minutes=%s",
                record.employee_id, total,
            )
            return False

        logger.warning(
            "Break violation: employee_id=%s attendance_id=%s total_break_minutes=%s manager_id=%s",
            employee.id, record.id, total, employee.reporting_manager_id,
        )
        self.notifier.notify(
            employee.reporting_manager_id,
            NotificationType.BREAK_VIOLATION,
            "Break Time Violation",
            f"{employee.name} exceeded the break time limit. Total break time: {total} minutes "
            f"(Limit: {MAX_BREAK_MINUTES} minutes)",
            f"manager/attendance-details?id={record.id}",
        )
        self.db.add(BreakViolation(
            manager_id=employee.reporting_manager_id,
            report_date=local_date(now),
            employee_id=employee.id,
            attendance_id=record.id,
            total_break_minutes=total,
            recorded_at=now,
        ))
        self.db.flush()
        return True

    # --- sweep ---

    @engine_operation("auto_logout_long_sessions")
    def auto_logout_long_sessions(self, now: Optional[datetime] = None) -> EngineResult:
        """
        Close every open session whose punch-in is at least 10 hours old, at
        exactly punch-in + 10 hours. Meant to run every 15 minutes.
        """
        now = self._now(now)
        limit = timedelta(hours=AUTO_LOGOUT_HOURS)
        cutoff = now - limit

        sessions = (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.punch_out.is_(None),
                AttendanceRecord.punch_in.isnot(None),
                AttendanceRecord.punch_in <= cutoff,
            )
            .order_by(AttendanceRecord.punch_in)
            .all()
        )

        processed = []
        for session in sessions:
            punch_in = ensure_utc(session.punch_in)
            self._force_punch_out(session, punch_in + limit, AUTO_LOGOUT_NOTE, now)
            self.notifier.notify(
                session.employee_id,
                NotificationType.AUTO_LOGOUT,
                "Auto Logout",
                "You were automatically logged out after 10 hours of active session.",
            )
            processed.append(session.id)
            logger.info(
                "Auto-logged out employee_id=%s attendance_id=%s session started at %s",
                session.employee_id, session.id, punch_in.isoformat(),
            )

        self.db.commit()
        return EngineResult.ok(
            f"Auto-logged out {len(processed)} user(s)",
            count=len(processed),
            attendance_ids=processed,
        )

    # --- reads ---

    def get_today_date(self, now: Optional[datetime] = None) -> date:
        return local_date(self._now(now))

    def get_today_attendance(self, employee_id: int, now: Optional[datetime] = None) -> Optional[AttendanceRecord]:
        return self._get_record(employee_id, local_date(self._now(now)))

    def get_breaks(self, attendance_id: int) -> List[BreakInterval]:
        return (
            self.db.query(BreakInterval)
            .filter(BreakInterval.attendance_id == attendance_id)
            .order_by(BreakInterval.break_start.asc())
            .all()
        )

    def get_attendance_history(
        self,
        employee_id: int,
        limit: int = 30,
        offset: int = 0,
    ) -> List[Tuple[AttendanceRecord, int]]:
        """Records newest first, each paired with its total closed break minutes."""
        break_minutes = func.coalesce(func.sum(BreakInterval.duration_minutes), 0)
        rows = (
            self.db.query(AttendanceRecord, break_minutes)
            .outerjoin(
                BreakInterval,
                (BreakInterval.attendance_id == AttendanceRecord.id) & BreakInterval.break_end.isnot(None),
            )
            .filter(AttendanceRecord.employee_id == employee_id)
            .group_by(AttendanceRecord.id)
            .order_by(AttendanceRecord.attendance_date.desc(), AttendanceRecord.punch_in.desc())
            .limit(limit)
            .offset(offset)
            .all()
        )
        return [(record, int(minutes or 0)) for record, minutes in rows]

    def get_monthly_summary(self, employee_id: int, month: int, year: int) -> Dict[str, Any]:
        """Day counts by status and hour totals over completed records of the month."""
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        records = (
            self.db.query(AttendanceRecord)
            .filter(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date >= first,
                AttendanceRecord.attendance_date <= last,
                AttendanceRecord.punch_out.isnot(None),
            )
            .all()
        )
        total_hours = sum((Decimal(r.total_hours or 0) for r in records), Decimal("0"))
        total_days = len(records)
        average = (total_hours / total_days).quantize(TWO_PLACES, rounding=ROUND_HALF_UP) if total_days else Decimal("0.00")
        return {
            "month": month,
            "year": year,
            "total_days": total_days,
            "full_days": sum(1 for r in records if r.status == AttendanceStatus.FULL_DAY),
            "short_days": sum(1 for r in records if r.status == AttendanceStatus.SHORT_DAY),
            "half_days": sum(1 for r in records if r.status == AttendanceStatus.HALF_DAY),
            "auto_logouts": sum(1 for r in records if r.auto_logged_out),
            "total_hours_worked": total_hours.quantize(TWO_PLACES),
            "avg_hours_per_day": average,
        }
