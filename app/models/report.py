"""
Break-violation ledger: one append-only row per violation, folded into the per-manager daily report
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from app.db.base import Base


class BreakViolation(Base):
    __tablename__ = "break_violations"

    id = Column(Integer, primary_key=True, index=True)
    manager_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    report_date = Column(Date, nullable=False)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    attendance_id = Column(Integer, ForeignKey("attendance.id"), nullable=False)
    total_break_minutes = Column(Integer, nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])

    __table_args__ = (
        Index("ix_break_violations_manager_date", "manager_id", "report_date"),
    )
