"""
Employee schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_validator, field_serializer, ConfigDict
from app.models.employee import Role


class EmployeeCreate(BaseModel):
    """Schema for creating an employee"""
    emp_code: str = Field(..., min_length=1, description="Employee code (unique)")
    email: str = Field(..., min_length=3, description="Work email (unique)")
    name: str = Field(..., min_length=1, description="Employee name")
    phone: Optional[str] = Field(None, description="Employee phone number")
    role: Role = Field(default=Role.EMPLOYEE, description="Employee role")
    reporting_manager_id: Optional[int] = Field(None, description="Reporting manager ID")
    active: bool = Field(default=True, description="Employee active status")

    @field_validator("emp_code", "email", mode="before")
    @classmethod
    def strip_identifiers(cls, v):
        """Trim identifiers; email is compared case-insensitively"""
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v.lower()


class EmployeeUpdate(BaseModel):
    """Schema for updating an employee. Only fields that are sent are applied."""
    name: Optional[str] = Field(None, description="Employee name")
    email: Optional[str] = Field(None, description="Work email")
    phone: Optional[str] = Field(None, description="Employee phone number")
    role: Optional[Role] = Field(None, description="Employee role")
    reporting_manager_id: Optional[int] = Field(None, description="Reporting manager ID")
    active: Optional[bool] = Field(None, description="Employee active status")


class EmployeeOut(BaseModel):
    """Schema for employee output. Datetimes in the organisation timezone."""
    id: int
    emp_code: str
    email: str
    name: str
    phone: Optional[str] = None
    role: Role
    reporting_manager_id: Optional[int] = None
    active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        from app.utils.datetime_utils import iso_local
        return iso_local(dt) if dt is not None else None
