"""
Notification and report schemas
"""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_serializer

from app.utils.datetime_utils import iso_local


class NotificationOut(BaseModel):
    id: int
    type: str
    title: str
    message: str
    action_url: Optional[str] = None
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class BreakViolationOut(BaseModel):
    employee_id: int
    name: Optional[str] = None
    attendance_id: int
    total_break_minutes: int
    timestamp: datetime

    @field_serializer("timestamp", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class DailyReportOut(BaseModel):
    report_date: date
    manager_id: int
    violations: List[BreakViolationOut]
