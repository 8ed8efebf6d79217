"""
Tests for the attendance engine: punch flow, 6/8/10 classification, breaks,
break violations, auto-logout and midnight crossing
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest

from app.core.exceptions import ErrorKind
from app.models import (
    AttendanceRecord,
    AttendanceStatus,
    AuditLog,
    BreakInterval,
    BreakViolation,
    Notification,
    NotificationType,
)
from app.services.attendance_service import AttendanceEngine, classify_hours
from app.tests.conftest import UnknownRecipientSink, ist
from app.utils.datetime_utils import ensure_utc


@pytest.mark.parametrize(
    "hours, expected",
    [
        (0.0, AttendanceStatus.HALF_DAY),
        (5.99, AttendanceStatus.HALF_DAY),
        (6.0, AttendanceStatus.SHORT_DAY),
        (7.99, AttendanceStatus.SHORT_DAY),
        (8.0, AttendanceStatus.FULL_DAY),
        (8.01, AttendanceStatus.FULL_DAY),
        (12.5, AttendanceStatus.FULL_DAY),
    ],
)
def test_classify_hours_thresholds(hours, expected):
    assert classify_hours(hours) == expected


def test_punch_in_creates_pending_record(db, attendance_engine, employee, clock):
    result = attendance_engine.punch_in(employee.id, "12.97,77.59")

    assert result.success
    assert result.message == "Punched in successfully"
    record = db.get(AttendanceRecord, result.data["attendance_id"])
    assert record.attendance_date == date(2026, 10, 16)
    assert record.status == AttendanceStatus.PENDING
    assert record.punch_out is None
    assert record.punch_in_location == "12.97,77.59"
    assert result.data["punch_in_time"] == clock.now()


def test_write_operations_leave_no_open_transaction(db, attendance_engine, employee, clock):
    attendance_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    assert not db.in_transaction()

    attendance_engine.start_break(attendance_id)
    assert not db.in_transaction()
    clock.advance(minutes=5)
    attendance_engine.end_break(attendance_id)
    assert not db.in_transaction()
    clock.advance(hours=8)
    attendance_engine.punch_out(employee.id)
    assert not db.in_transaction()


def test_punch_in_twice_is_rejected(attendance_engine, employee, clock):
    assert attendance_engine.punch_in(employee.id)
    clock.advance(minutes=5)

    result = attendance_engine.punch_in(employee.id)

    assert not result.success
    assert result.error == ErrorKind.ALREADY_PUNCHED_IN


def test_punch_in_after_completed_day_is_rejected(attendance_engine, employee, clock):
    attendance_engine.punch_in(employee.id)
    clock.advance(hours=8)
    attendance_engine.punch_out(employee.id)
    clock.advance(minutes=30)

    result = attendance_engine.punch_in(employee.id)

    assert not result.success
    assert result.error == ErrorKind.ALREADY_COMPLETED


def test_attendance_date_uses_organisation_timezone(db, attendance_engine, employee, clock):
    """00:30 IST on the 17th is still the 16th in UTC; the record belongs to the 17th."""
    clock.set(ist(2026, 10, 17, 0, 30))
    result = attendance_engine.punch_in(employee.id)

    record = db.get(AttendanceRecord, result.data["attendance_id"])
    assert record.attendance_date == date(2026, 10, 17)


@pytest.mark.parametrize(
    "worked, expected_hours, expected_status",
    [
        (timedelta(hours=8), Decimal("8.00"), AttendanceStatus.FULL_DAY),
        (timedelta(hours=7, minutes=30), Decimal("7.50"), AttendanceStatus.SHORT_DAY),
        (timedelta(hours=5, minutes=59), Decimal("5.98"), AttendanceStatus.HALF_DAY),
        (timedelta(hours=6), Decimal("6.00"), AttendanceStatus.SHORT_DAY),
    ],
)
def test_punch_out_classifies_day(db, attendance_engine, employee, clock, worked, expected_hours, expected_status):
    punched = attendance_engine.punch_in(employee.id)
    clock.advance(seconds=worked.total_seconds())

    result = attendance_engine.punch_out(employee.id, "12.97,77.59")

    assert result.success
    assert result.data["total_hours"] == expected_hours
    assert result.data["status"] == expected_status
    db.expire_all()
    record = db.get(AttendanceRecord, punched.data["attendance_id"])
    assert Decimal(record.total_hours) == expected_hours
    assert record.status == expected_status
    assert record.auto_logged_out is False


def test_status_uses_unrounded_hours(attendance_engine, employee, clock):
    """7h59m58s rounds to 8.00 for display but is still a short day."""
    attendance_engine.punch_in(employee.id)
    clock.advance(hours=7, minutes=59, seconds=58)

    result = attendance_engine.punch_out(employee.id)

    assert result.data["total_hours"] == Decimal("8.00")
    assert result.data["status"] == AttendanceStatus.SHORT_DAY


def test_punch_out_without_punch_in(attendance_engine, employee):
    result = attendance_engine.punch_out(employee.id)

    assert not result.success
    assert result.error == ErrorKind.NO_PUNCH_IN
    assert result.message == "No punch-in record found"


def test_punch_out_twice_is_rejected(attendance_engine, employee, clock):
    attendance_engine.punch_in(employee.id)
    clock.advance(hours=9)
    attendance_engine.punch_out(employee.id)
    clock.advance(minutes=1)

    result = attendance_engine.punch_out(employee.id)

    assert result.error == ErrorKind.ALREADY_PUNCHED_OUT


def test_punch_in_and_out_are_audited(db, attendance_engine, employee, clock):
    attendance_engine.punch_in(employee.id)
    clock.advance(hours=8)
    attendance_engine.punch_out(employee.id)

    actions = [a.action for a in db.query(AuditLog).order_by(AuditLog.id).all()]
    assert actions == ["ATTENDANCE_PUNCH_IN", "ATTENDANCE_PUNCH_OUT"]


# --- breaks ---

def test_break_duration_is_recorded_in_minutes(db, attendance_engine, employee, clock):
    attendance_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    clock.set(ist(2026, 10, 16, 13, 0))
    started = attendance_engine.start_break(attendance_id)
    clock.advance(minutes=37)

    ended = attendance_engine.end_break(attendance_id)

    assert started.success
    assert ended.success
    assert ended.data["duration_minutes"] == 37
    interval = db.get(BreakInterval, started.data["break_id"])
    assert interval.duration_minutes == 37
    assert interval.break_end is not None


@pytest.mark.parametrize("seconds, minutes", [(36 * 60 + 29, 36), (36 * 60 + 30, 37)])
def test_break_minutes_round_half_up(attendance_engine, employee, clock, seconds, minutes):
    attendance_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    attendance_engine.start_break(attendance_id)
    clock.advance(seconds=seconds)

    assert attendance_engine.end_break(attendance_id).data["duration_minutes"] == minutes


def test_second_break_while_one_is_open(attendance_engine, employee, clock):
    attendance_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    attendance_engine.start_break(attendance_id)
    clock.advance(minutes=2)

    result = attendance_engine.start_break(attendance_id)

    assert result.error == ErrorKind.BREAK_IN_PROGRESS


def test_end_break_without_open_break(attendance_engine, employee):
    attendance_id = attendance_engine.punch_in(employee.id).data["attendance_id"]

    result = attendance_engine.end_break(attendance_id)

    assert result.error == ErrorKind.NO_ACTIVE_BREAK
    assert result.message == "No active break found"


def test_start_break_unknown_record(attendance_engine):
    assert attendance_engine.start_break(999).error == ErrorKind.NOT_FOUND


def _take_breaks(engine, attendance_id, clock, *minutes):
    for m in minutes:
        engine.start_break(attendance_id)
        clock.advance(minutes=m)
        engine.end_break(attendance_id)
        clock.advance(minutes=30)


def test_break_violation_notifies_manager(db, employee, manager, clock, sink):
    engine = AttendanceEngine(db, clock, sink)
    attendance_id = engine.punch_in(employee.id).data["attendance_id"]
    _take_breaks(engine, attendance_id, clock, 45, 31)
    clock.set(ist(2026, 10, 16, 18, 0))

    assert engine.punch_out(employee.id).success

    assert len(sink.sent) == 1
    sent = sink.sent[0]
    assert sent["recipient_id"] == manager.id
    assert sent["type"] == NotificationType.BREAK_VIOLATION
    assert sent["title"] == "Break Time Violation"
    assert "Ravi Kumar" in sent["message"]
    assert "76 minutes" in sent["message"]
    assert sent["action_ref"] == f"manager/attendance-details?id={attendance_id}"

    violation = db.query(BreakViolation).one()
    assert violation.manager_id == manager.id
    assert violation.report_date == date(2026, 10, 16)
    assert violation.total_break_minutes == 76


def test_break_exactly_at_limit_is_not_a_violation(db, employee, clock, sink):
    engine = AttendanceEngine(db, clock, sink)
    attendance_id = engine.punch_in(employee.id).data["attendance_id"]
    _take_breaks(engine, attendance_id, clock, 45, 30)
    clock.set(ist(2026, 10, 16, 18, 0))

    engine.punch_out(employee.id)

    assert sink.sent == []
    assert db.query(BreakViolation).count() == 0


def test_open_break_is_not_counted(db, employee, clock, sink):
    engine = AttendanceEngine(db, clock, sink)
    attendance_id = engine.punch_in(employee.id).data["attendance_id"]
    _take_breaks(engine, attendance_id, clock, 60)
    engine.start_break(attendance_id)
    clock.set(ist(2026, 10, 16, 18, 0))

    engine.punch_out(employee.id)

    assert engine.total_break_minutes(attendance_id) == 60
    assert sink.sent == []


def test_violation_without_manager_is_not_reported(db, other_employee, clock, sink):
    engine = AttendanceEngine(db, clock, sink)
    attendance_id = engine.punch_in(other_employee.id).data["attendance_id"]
    _take_breaks(engine, attendance_id, clock, 90)
    clock.set(ist(2026, 10, 16, 18, 0))

    assert engine.punch_out(other_employee.id).success
    assert sink.sent == []
    assert db.query(BreakViolation).count() == 0


def test_break_violation_persists_notification(db, attendance_engine, employee, manager, clock):
    attendance_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    _take_breaks(attendance_engine, attendance_id, clock, 80)
    clock.set(ist(2026, 10, 16, 18, 0))

    attendance_engine.punch_out(employee.id)

    notification = db.query(Notification).filter(Notification.user_id == manager.id).one()
    assert notification.type == NotificationType.BREAK_VIOLATION.value
    assert notification.is_read is False


# --- auto-logout ---

def test_auto_logout_closes_at_ten_hours(db, employee, clock, sink):
    engine = AttendanceEngine(db, clock, sink)
    attendance_id = engine.punch_in(employee.id).data["attendance_id"]
    clock.set(ist(2026, 10, 16, 19, 40))

    result = engine.auto_logout_long_sessions()

    assert result.success
    assert result.data["count"] == 1
    assert result.message == "Auto-logged out 1 user(s)"
    db.expire_all()
    record = db.get(AttendanceRecord, attendance_id)
    assert Decimal(record.total_hours) == Decimal("10.00")
    assert record.status == AttendanceStatus.FULL_DAY
    assert record.auto_logged_out is True
    assert record.notes == "Auto-logout: 10 hour limit reached"
    assert sink.sent[0]["recipient_id"] == employee.id
    assert sink.sent[0]["type"] == NotificationType.AUTO_LOGOUT
    assert sink.sent[0]["title"] == "Auto Logout"


def test_auto_logout_punch_out_is_punch_in_plus_ten_hours(db, attendance_engine, employee, clock):
    attendance_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    clock.set(ist(2026, 10, 16, 21, 0))

    attendance_engine.auto_logout_long_sessions()

    db.expire_all()
    record = db.get(AttendanceRecord, attendance_id)
    assert ensure_utc(record.punch_out) == ensure_utc(ist(2026, 10, 16, 19, 0))


def test_auto_logout_leaves_short_sessions_open(db, attendance_engine, employee, clock):
    attendance_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    clock.advance(hours=9, minutes=59)

    result = attendance_engine.auto_logout_long_sessions()

    assert result.data["count"] == 0
    db.expire_all()
    assert db.get(AttendanceRecord, attendance_id).punch_out is None


def test_auto_logout_is_idempotent(attendance_engine, employee, clock):
    attendance_engine.punch_in(employee.id)
    clock.advance(hours=11)

    assert attendance_engine.auto_logout_long_sessions().data["count"] == 1
    clock.advance(minutes=15)
    assert attendance_engine.auto_logout_long_sessions().data["count"] == 0


def test_auto_logout_survives_failed_notification(db, employee, clock):
    engine = AttendanceEngine(db, clock, UnknownRecipientSink(db, clock))
    attendance_id = engine.punch_in(employee.id).data["attendance_id"]
    clock.advance(hours=10)

    result = engine.auto_logout_long_sessions()

    assert result.success
    assert result.data["count"] == 1
    db.expire_all()
    assert db.get(AttendanceRecord, attendance_id).auto_logged_out is True
    assert db.query(Notification).count() == 0


# --- midnight crossing ---

def test_punch_in_closes_previous_day_at_midnight(db, attendance_engine, employee, clock):
    clock.set(ist(2026, 10, 15, 22, 0))
    yesterday_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    clock.set(ist(2026, 10, 16, 9, 0))

    result = attendance_engine.punch_in(employee.id)

    assert result.success
    db.expire_all()
    yesterday = db.get(AttendanceRecord, yesterday_id)
    assert ensure_utc(yesterday.punch_out) == ensure_utc(ist(2026, 10, 15, 23, 59, 59))
    assert yesterday.auto_logged_out is True
    assert yesterday.notes == "System: Midnight crossing"
    assert Decimal(yesterday.total_hours) == Decimal("2.00")
    assert yesterday.status == AttendanceStatus.HALF_DAY
    today = db.get(AttendanceRecord, result.data["attendance_id"])
    assert today.attendance_date == date(2026, 10, 16)
    assert today.punch_out is None


def test_punch_in_closes_every_stale_open_record(db, attendance_engine, employee, clock):
    for day in (13, 14):
        db.add(AttendanceRecord(
            employee_id=employee.id,
            attendance_date=date(2026, 10, day),
            punch_in=ensure_utc(ist(2026, 10, day, 20, 0)),
            status=AttendanceStatus.PENDING,
        ))
    db.commit()

    attendance_engine.punch_in(employee.id)

    db.expire_all()
    open_records = (
        db.query(AttendanceRecord)
        .filter(AttendanceRecord.employee_id == employee.id, AttendanceRecord.punch_out.is_(None))
        .all()
    )
    assert [r.attendance_date for r in open_records] == [date(2026, 10, 16)]
    forced = db.query(AuditLog).filter(AuditLog.action == "ATTENDANCE_FORCE_PUNCH_OUT").count()
    assert forced == 2


def test_punch_in_in_last_second_of_day_is_closed_at_its_own_punch_in(db, attendance_engine, employee, clock):
    late = ist(2026, 10, 15, 23, 59, 59) + timedelta(milliseconds=500)
    clock.set(late)
    late_id = attendance_engine.punch_in(employee.id).data["attendance_id"]
    clock.set(ist(2026, 10, 16, 9, 0))

    result = attendance_engine.punch_in(employee.id)

    assert result.success
    db.expire_all()
    record = db.get(AttendanceRecord, late_id)
    assert ensure_utc(record.punch_out) == ensure_utc(late)
    assert Decimal(record.total_hours) == Decimal("0.00")
    assert record.status == AttendanceStatus.HALF_DAY


# --- reads ---

def test_history_and_monthly_summary(db, attendance_engine, employee, clock):
    # full day with a 20 minute break
    clock.set(ist(2026, 10, 14, 9, 0))
    first = attendance_engine.punch_in(employee.id).data["attendance_id"]
    clock.set(ist(2026, 10, 14, 13, 0))
    attendance_engine.start_break(first)
    clock.advance(minutes=20)
    attendance_engine.end_break(first)
    clock.set(ist(2026, 10, 14, 18, 0))
    attendance_engine.punch_out(employee.id)
    # short day
    clock.set(ist(2026, 10, 15, 9, 0))
    attendance_engine.punch_in(employee.id)
    clock.set(ist(2026, 10, 15, 16, 0))
    attendance_engine.punch_out(employee.id)
    # today still open
    clock.set(ist(2026, 10, 16, 9, 0))
    attendance_engine.punch_in(employee.id)

    history = attendance_engine.get_attendance_history(employee.id)
    assert [r.attendance_date.day for r, _ in history] == [16, 15, 14]
    assert history[2][1] == 20

    summary = attendance_engine.get_monthly_summary(employee.id, 10, 2026)
    assert summary["total_days"] == 2
    assert summary["full_days"] == 1
    assert summary["short_days"] == 1
    assert summary["half_days"] == 0
    assert summary["total_hours_worked"] == Decimal("16.00")
    assert summary["avg_hours_per_day"] == Decimal("8.00")


def test_today_attendance(attendance_engine, employee):
    assert attendance_engine.get_today_attendance(employee.id) is None
    attendance_engine.punch_in(employee.id)
    assert attendance_engine.get_today_attendance(employee.id) is not None
