"""
Database models
"""
from app.models.employee import Employee, Role
from app.models.audit_log import AuditLog
from app.models.attendance import AttendanceRecord, AttendanceStatus, BreakInterval
from app.models.leave import (
    LeaveCategory,
    LeaveBalance,
    LeaveRequest,
    LeaveStatus,
    LeaveTransaction,
    LeaveTransactionAction,
    QuotaTier,
    QUOTA_TIERS,
)
from app.models.notification import Notification, NotificationType
from app.models.report import BreakViolation

__all__ = [
    "Employee",
    "Role",
    "AuditLog",
    "AttendanceRecord",
    "AttendanceStatus",
    "BreakInterval",
    "LeaveCategory",
    "LeaveBalance",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveTransaction",
    "LeaveTransactionAction",
    "QuotaTier",
    "QUOTA_TIERS",
    "Notification",
    "NotificationType",
    "BreakViolation",
]
