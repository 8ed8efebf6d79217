"""
Attendance record and break interval models
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text
import enum
from app.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PENDING = "pending"
    HALF_DAY = "half_day"
    SHORT_DAY = "short_day"
    FULL_DAY = "full_day"


class AttendanceRecord(Base):
    """One row per (employee, calendar date in the organisation timezone)."""
    __tablename__ = "attendance"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    attendance_date = Column(Date, nullable=False, index=True)
    punch_in = Column(DateTime(timezone=True), nullable=True)  # UTC
    punch_in_location = Column(String, nullable=True)  # "lat,lon"
    punch_out = Column(DateTime(timezone=True), nullable=True)  # UTC
    punch_out_location = Column(String, nullable=True)
    total_hours = Column(Numeric(5, 2), nullable=True)
    status = Column(
        SQLEnum(AttendanceStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AttendanceStatus.PENDING,
    )
    auto_logged_out = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", backref="attendance_records")
    breaks = relationship("BreakInterval", back_populates="attendance", order_by="BreakInterval.break_start")

    __table_args__ = (
        UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_employee_date"),
        CheckConstraint("punch_out IS NULL OR punch_out >= punch_in", name="check_punch_out_after_punch_in"),
    )


class BreakInterval(Base):
    __tablename__ = "attendance_breaks"

    id = Column(Integer, primary_key=True, index=True)
    attendance_id = Column(Integer, ForeignKey("attendance.id"), nullable=False, index=True)
    break_start = Column(DateTime(timezone=True), nullable=False)
    break_end = Column(DateTime(timezone=True), nullable=True)  # NULL while the break is open
    duration_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    attendance = relationship("AttendanceRecord", back_populates="breaks")

    __table_args__ = (
        # at most one open break per attendance record
        Index(
            "uq_attendance_breaks_open",
            "attendance_id",
            unique=True,
            sqlite_where=text("break_end IS NULL"),
            postgresql_where=text("break_end IS NULL"),
        ),
    )
