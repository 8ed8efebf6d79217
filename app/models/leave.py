"""
Leave models: categories, per-employee balances, requests and the balance ledger
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from app.db.base import Base


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class QuotaTier(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


# Checked and deducted in this order
QUOTA_TIERS = (QuotaTier.MONTHLY, QuotaTier.QUARTERLY, QuotaTier.ANNUAL)


class LeaveTransactionAction(str, enum.Enum):
    INITIAL_GRANT = "INITIAL_GRANT"
    APPROVE_DEDUCT = "APPROVE_DEDUCT"
    COMP_OFF_CREDIT = "COMP_OFF_CREDIT"
    ANNUAL_RESET = "ANNUAL_RESET"


class LeaveCategory(Base):
    __tablename__ = "leave_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, unique=True, nullable=False, index=True)
    has_monthly_quota = Column(Boolean, nullable=False, default=False)
    monthly_quota_days = Column(Numeric(5, 2), nullable=True)
    has_quarterly_quota = Column(Boolean, nullable=False, default=False)
    quarterly_quota_days = Column(Numeric(5, 2), nullable=True)
    has_annual_quota = Column(Boolean, nullable=False, default=False)
    annual_quota_days = Column(Numeric(5, 2), nullable=True)
    requires_approval = Column(Boolean, nullable=False, default=True)
    is_paid = Column(Boolean, nullable=False, default=True)
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)

    def tier_enabled(self, tier: QuotaTier) -> bool:
        return bool(getattr(self, f"has_{tier.value}_quota"))

    def tier_quota_days(self, tier: QuotaTier):
        return getattr(self, f"{tier.value}_quota_days")

    @property
    def enabled_tiers(self):
        return [tier for tier in QUOTA_TIERS if self.tier_enabled(tier)]


class LeaveBalance(Base):
    """
    One row per (employee, category).
    Tier balances are NULL when the tier is disabled for the category; comp-off is always present.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("leave_categories.id"), nullable=False, index=True)
    monthly_balance = Column(Numeric(5, 2), nullable=True)
    quarterly_balance = Column(Numeric(5, 2), nullable=True)
    annual_balance = Column(Numeric(5, 2), nullable=True)
    comp_off_balance = Column(Numeric(5, 2), nullable=False, default=0)
    last_reset_date = Column(Date, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    employee = relationship("Employee", backref="leave_balances")
    category = relationship("LeaveCategory")

    __table_args__ = (
        UniqueConstraint("employee_id", "category_id", name="uq_leave_balances_employee_category"),
        CheckConstraint("monthly_balance IS NULL OR monthly_balance >= 0", name="check_monthly_balance_non_negative"),
        CheckConstraint("quarterly_balance IS NULL OR quarterly_balance >= 0", name="check_quarterly_balance_non_negative"),
        CheckConstraint("annual_balance IS NULL OR annual_balance >= 0", name="check_annual_balance_non_negative"),
        CheckConstraint("comp_off_balance >= 0", name="check_comp_off_balance_non_negative"),
    )

    def tier_balance(self, tier: QuotaTier):
        return getattr(self, f"{tier.value}_balance")

    def set_tier_balance(self, tier: QuotaTier, value) -> None:
        setattr(self, f"{tier.value}_balance", value)


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("leave_categories.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_half_day = Column(Boolean, nullable=False, default=False)
    total_days = Column(Numeric(5, 2), nullable=False)  # fixed at creation
    reason = Column(Text, nullable=False)
    status = Column(
        SQLEnum(LeaveStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=LeaveStatus.PENDING,
    )
    reviewed_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    review_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id], backref="leave_requests")
    reviewer = relationship("Employee", foreign_keys=[reviewed_by])
    category = relationship("LeaveCategory")

    __table_args__ = (
        Index("ix_leave_requests_employee_dates", "employee_id", "start_date", "end_date"),
        CheckConstraint("start_date <= end_date", name="check_start_date_le_end_date"),
    )


class LeaveTransaction(Base):
    """Ledger of every balance movement: initial grant, approval deduction, comp-off credit, annual reset."""
    __tablename__ = "leave_transactions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("leave_categories.id"), nullable=False, index=True)
    leave_request_id = Column(Integer, ForeignKey("leave_requests.id", ondelete="SET NULL"), nullable=True, index=True)
    pool = Column(String(20), nullable=False)  # comp_off, monthly, quarterly, annual
    delta_days = Column(Numeric(5, 2), nullable=False)  # + for credit, - for deduct
    action = Column(String(30), nullable=False)
    remarks = Column(Text, nullable=True)
    action_by_employee_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    action_at = Column(DateTime(timezone=True), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])
    leave_request = relationship("LeaveRequest", foreign_keys=[leave_request_id])
