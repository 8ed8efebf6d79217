"""
Attendance schemas. All datetimes are serialized in the organisation timezone.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.models.attendance import AttendanceStatus
from app.utils.datetime_utils import iso_local


class PunchRequest(BaseModel):
    """Schema for punch-in / punch-out request"""
    lat: Optional[float] = Field(None, ge=-90, le=90, description="GPS latitude")
    lng: Optional[float] = Field(None, ge=-180, le=180, description="GPS longitude")

    def location(self) -> Optional[str]:
        """Stored as 'lat,lng'"""
        if self.lat is None or self.lng is None:
            return None
        return f"{self.lat},{self.lng}"


class PunchInOut(BaseModel):
    attendance_id: int
    punch_in_time: datetime

    @field_serializer("punch_in_time", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class PunchOutOut(BaseModel):
    attendance_id: int
    total_hours: Decimal
    status: AttendanceStatus


class BreakStartOut(BaseModel):
    break_id: int
    break_start: datetime

    @field_serializer("break_start", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class BreakEndOut(BaseModel):
    break_id: int
    duration_minutes: int


class BreakOut(BaseModel):
    id: int
    attendance_id: int
    break_start: datetime
    break_end: Optional[datetime] = None
    duration_minutes: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("break_start", "break_end", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class AttendanceOut(BaseModel):
    """Schema for attendance output"""
    id: int
    employee_id: int
    attendance_date: date
    punch_in: Optional[datetime] = None
    punch_in_location: Optional[str] = None
    punch_out: Optional[datetime] = None
    punch_out_location: Optional[str] = None
    total_hours: Optional[Decimal] = None
    status: AttendanceStatus
    auto_logged_out: bool
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("punch_in", "punch_out", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class AttendanceHistoryItem(AttendanceOut):
    total_break_minutes: int = 0


class AttendanceHistoryResponse(BaseModel):
    items: List[AttendanceHistoryItem]
    limit: int
    offset: int


class MonthlySummaryOut(BaseModel):
    month: int
    year: int
    total_days: int
    full_days: int
    short_days: int
    half_days: int
    auto_logouts: int
    total_hours_worked: Decimal
    avg_hours_per_day: Decimal


class AutoLogoutOut(BaseModel):
    count: int
    attendance_ids: List[int]
