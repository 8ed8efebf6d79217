"""
Leave schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from app.models.leave import LeaveStatus
from app.utils.datetime_utils import iso_local


class LeaveRequestCreate(BaseModel):
    """Leave application by the current user; employee_id comes from the token."""
    category_id: int = Field(..., description="Leave category ID")
    start_date: date = Field(..., description="First day of leave")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    is_half_day: bool = Field(default=False, description="Half-day request (always 0.5 day)")
    reason: str = Field(..., description="Reason for leave")


class LeaveReviewRequest(BaseModel):
    notes: Optional[str] = Field(None, description="Reviewer notes / rejection reason")


class LeaveRequestOut(BaseModel):
    id: int
    employee_id: int
    category_id: int
    start_date: date
    end_date: date
    is_half_day: bool
    total_days: Decimal
    reason: str
    status: LeaveStatus
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    review_notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("reviewed_at", "created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_local(dt)


class LeaveRequestCreated(BaseModel):
    request_id: int
    total_days: Decimal


class LeaveApprovalOut(BaseModel):
    request_id: int
    deductions: Dict[str, Decimal] = Field(default_factory=dict, description="Days taken per pool")


class LeaveBalanceOut(BaseModel):
    id: int
    employee_id: int
    category_id: int
    monthly_balance: Optional[Decimal] = None
    quarterly_balance: Optional[Decimal] = None
    annual_balance: Optional[Decimal] = None
    comp_off_balance: Decimal
    last_reset_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class CompOffCreate(BaseModel):
    employee_id: int = Field(..., description="Employee receiving the comp-off")
    category_id: int = Field(..., description="Leave category whose balance holds the comp-off")
    days: Decimal = Field(..., gt=0, description="Days to credit")
    reason: str = Field(..., min_length=1, description="Reason shown to the employee")


class CompOffOut(BaseModel):
    balance_id: int
    comp_off_balance: Decimal


class LeaveCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1, description="Unique short code, stored upper-case")
    has_monthly_quota: bool = False
    monthly_quota_days: Optional[Decimal] = Field(None, ge=0)
    has_quarterly_quota: bool = False
    quarterly_quota_days: Optional[Decimal] = Field(None, ge=0)
    has_annual_quota: bool = False
    annual_quota_days: Optional[Decimal] = Field(None, ge=0)
    requires_approval: bool = True
    is_paid: bool = True
    is_active: bool = True
    description: Optional[str] = None

    @model_validator(mode="after")
    def quota_days_for_enabled_tiers(self):
        for tier in ("monthly", "quarterly", "annual"):
            if getattr(self, f"has_{tier}_quota") and getattr(self, f"{tier}_quota_days") is None:
                raise ValueError(f"{tier}_quota_days is required when has_{tier}_quota is true")
        return self


class LeaveCategoryOut(BaseModel):
    id: int
    name: str
    code: str
    has_monthly_quota: bool
    monthly_quota_days: Optional[Decimal] = None
    has_quarterly_quota: bool
    quarterly_quota_days: Optional[Decimal] = None
    has_annual_quota: bool
    annual_quota_days: Optional[Decimal] = None
    requires_approval: bool
    is_paid: bool
    is_active: bool
    description: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LeaveCategoryCreated(BaseModel):
    category_id: int
    balances_created: int


class QuotaResetOut(BaseModel):
    reset_date: date
    categories_reset: int
    balances_reset: int


class LeaveRequestList(BaseModel):
    items: List[LeaveRequestOut]
    total: int
