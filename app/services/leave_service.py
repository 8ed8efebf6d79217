"""
Leave engine: request creation with quota pre-check, approval with
comp-off-first deduction, rejection, comp-off credit, Dec-31 annual reset and
category provisioning.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.core.constants import HALF_DAY_LEAVE, QUOTA_RESET_DAY, QUOTA_RESET_MONTH
from app.core.exceptions import EngineError, EngineResult, ErrorKind, engine_operation
from app.models.attendance import AttendanceRecord
from app.models.employee import Employee
from app.models.leave import (
    LeaveBalance,
    LeaveCategory,
    LeaveRequest,
    LeaveStatus,
    LeaveTransaction,
    LeaveTransactionAction,
    QUOTA_TIERS,
)
from app.models.notification import NotificationType
from app.services.audit_service import log_audit
from app.services.notification_service import DatabaseNotificationSink, NotificationSink
from app.utils.datetime_utils import ensure_utc, local_date

logger = logging.getLogger(__name__)

REQUIRED_REQUEST_FIELDS = ("employee_id", "category_id", "start_date", "end_date", "reason")
COMP_OFF_POOL = "comp_off"


@dataclass
class QuotaCheck:
    available: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    use_comp_off: bool = False


def calculate_leave_days(start_date: date, end_date: date, is_half_day: bool = False) -> Decimal:
    """Inclusive calendar days; a half-day request is always 0.5."""
    if is_half_day:
        return HALF_DAY_LEAVE
    return Decimal((end_date - start_date).days + 1)


def format_days(days: Decimal) -> str:
    """1.00 -> '1', 1.50 -> '1.5'"""
    return f"{Decimal(days).normalize():f}"


def _coerce_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise EngineError(ErrorKind.INVALID_VALUE, f"Invalid date for {field_name}")


def _coerce_id(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise EngineError(ErrorKind.INVALID_VALUE, f"Invalid value for {field_name}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise EngineError(ErrorKind.INVALID_VALUE, f"Invalid value for {field_name}")


def _coerce_days(value: Any, field_name: str) -> Decimal:
    """Day counts parse through str() so 1.5 stays exactly 1.5; NaN and infinities are refused."""
    try:
        days = Decimal(str(value))
    except InvalidOperation:
        raise EngineError(ErrorKind.INVALID_VALUE, f"{field_name} must be a number")
    if not days.is_finite():
        raise EngineError(ErrorKind.INVALID_VALUE, f"{field_name} must be a number")
    return days


def next_reset_date(today: date) -> date:
    return date(today.year, QUOTA_RESET_MONTH, QUOTA_RESET_DAY)


def build_initial_balance(
    db: Session,
    employee_id: int,
    category: LeaveCategory,
    now: datetime,
    actor_id: Optional[int] = None,
) -> LeaveBalance:
    """
    Add a full-quota balance row for (employee, category) to the session.

    Disabled tiers stay NULL and comp-off starts at zero. Every granted tier is
    recorded in the ledger as INITIAL_GRANT.
    """
    balance = LeaveBalance(
        employee_id=employee_id,
        category_id=category.id,
        comp_off_balance=Decimal("0"),
        last_reset_date=next_reset_date(local_date(now)),
    )
    for tier in category.enabled_tiers:
        days = Decimal(category.tier_quota_days(tier) or 0)
        balance.set_tier_balance(tier, days)
        db.add(LeaveTransaction(
            employee_id=employee_id,
            category_id=category.id,
            pool=tier.value,
            delta_days=days,
            action=LeaveTransactionAction.INITIAL_GRANT.value,
            remarks=f"Initial {tier.value} quota for {category.code}",
            action_by_employee_id=actor_id,
            action_at=now,
        ))
    db.add(balance)
    return balance


class LeaveEngine:
    """Leave workflow over one Session. Write operations return EngineResult and own their commit."""

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

    def _get_balance(self, employee_id: int, category_id: int, for_update: bool = False) -> Optional[LeaveBalance]:
        query = self.db.query(LeaveBalance).filter(
            LeaveBalance.employee_id == employee_id,
            LeaveBalance.category_id == category_id,
        )
        if for_update:
            query = query.with_for_update()
        return query.first()

    def _get_request_for_review(self, request_id: int) -> LeaveRequest:
        request = (
            self.db.query(LeaveRequest)
            .filter(LeaveRequest.id == request_id)
            .with_for_update()
            .first()
        )
        if request is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Leave request not found")
        if request.status != LeaveStatus.PENDING:
            raise EngineError(ErrorKind.ALREADY_PROCESSED, "Request already processed")
        return request

    def _ledger(
        self,
        balance: LeaveBalance,
        pool: str,
        delta: Decimal,
        action: LeaveTransactionAction,
        now: datetime,
        actor_id: Optional[int] = None,
        leave_request_id: Optional[int] = None,
        remarks: Optional[str] = None,
    ) -> None:
        self.db.add(LeaveTransaction(
            employee_id=balance.employee_id,
            category_id=balance.category_id,
            leave_request_id=leave_request_id,
            pool=pool,
            delta_days=delta,
            action=action.value,
            remarks=remarks,
            action_by_employee_id=actor_id,
            action_at=now,
        ))

    # --- quota check ---

    def check_quota_availability(
        self,
        employee_id: int,
        category_id: int,
        requested_days: Decimal,
    ) -> QuotaCheck:
        """
        Decide whether a request of requested_days can be covered.

        Categories without any quota tier are always available. Otherwise comp-off
        covering the whole request wins; failing that, every enabled tier must
        independently hold at least requested_days.
        """
        requested_days = Decimal(requested_days)
        category = self.db.get(LeaveCategory, category_id)
        if category is None or not category.is_active:
            return QuotaCheck(False, "Invalid leave category", ErrorKind.INVALID_CATEGORY)

        if not category.enabled_tiers:
            return QuotaCheck(True)

        balance = self._get_balance(employee_id, category_id)
        if balance is None:
            return QuotaCheck(False, "No leave balance found", ErrorKind.NO_BALANCE)

        if Decimal(balance.comp_off_balance or 0) >= requested_days:
            return QuotaCheck(True, use_comp_off=True)

        for tier in category.enabled_tiers:
            if Decimal(balance.tier_balance(tier) or 0) < requested_days:
                return QuotaCheck(False, f"Insufficient {tier.value} quota", ErrorKind.INSUFFICIENT_QUOTA)

        return QuotaCheck(True)

    # --- requests ---

    @engine_operation("create_request")
    def create_request(self, data: Mapping[str, Any], now: Optional[datetime] = None) -> EngineResult:
        now = self._now(now)
        for field_name in REQUIRED_REQUEST_FIELDS:
            if data.get(field_name) in (None, ""):
                raise EngineError(ErrorKind.MISSING_FIELD, f"Missing required field: {field_name}")

        employee_id = _coerce_id(data["employee_id"], "employee_id")
        category_id = _coerce_id(data["category_id"], "category_id")
        start_date = _coerce_date(data["start_date"], "start_date")
        end_date = _coerce_date(data["end_date"], "end_date")
        is_half_day = bool(data.get("is_half_day", False))

        if start_date > end_date:
            raise EngineError(ErrorKind.INVALID_DATE_RANGE, "End date cannot be before start date")

        employee = self.db.get(Employee, employee_id)
        if employee is None:
            raise EngineError(ErrorKind.NOT_FOUND, "Employee not found")

        conflict = (
            self.db.query(AttendanceRecord.id)
            .filter(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date >= start_date,
                AttendanceRecord.attendance_date <= end_date,
                AttendanceRecord.punch_in.isnot(None),
            )
            .first()
        )
        if conflict is not None:
            raise EngineError(ErrorKind.ATTENDANCE_CONFLICT, "Cannot request leave for dates with existing attendance")

        total_days = calculate_leave_days(start_date, end_date, is_half_day)
        check = self.check_quota_availability(employee_id, category_id, total_days)
        if not check.available:
            raise EngineError(check.error, check.message)

        request = LeaveRequest(
            employee_id=employee_id,
            category_id=category_id,
            start_date=start_date,
            end_date=end_date,
            is_half_day=is_half_day,
            total_days=total_days,
            reason=data["reason"],
            status=LeaveStatus.PENDING,
            created_at=now,
        )
        self.db.add(request)
        self.db.flush()

        if employee.reporting_manager_id is not None:
            self.notifier.notify(
                employee.reporting_manager_id,
                NotificationType.GENERAL,
                "New Leave Request",
                f"{employee.name} has submitted a new leave request awaiting your approval.",
                f"manager/leave-approvals?request_id={request.id}",
            )

        log_audit(
            self.db,
            actor_id=employee_id,
            action="LEAVE_REQUEST_CREATED",
            entity_type="leave_requests",
            entity_id=request.id,
            meta={
                "category_id": category_id,
                "start_date": start_date,
                "end_date": end_date,
                "total_days": total_days,
                "use_comp_off": check.use_comp_off,
            },
            at=now,
        )
        new_request_id = request.id
        self.db.commit()
        logger.info(
            "Leave request created: request_id=%s employee_id=%s days=%s",
            new_request_id, employee_id, total_days,
        )
        return EngineResult.ok(
            "Leave request submitted successfully",
            request_id=new_request_id,
            total_days=total_days,
        )

    @engine_operation("approve_request")
    def approve(
        self,
        request_id: int,
        reviewer_id: int,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EngineResult:
        """
        Approve a pending request and deduct its days in the same transaction.

        A store failure anywhere rolls back both the status change and the deduction.
        """
        now = self._now(now)
        request = self._get_request_for_review(request_id)

        request.status = LeaveStatus.APPROVED
        request.reviewed_by = reviewer_id
        request.reviewed_at = now
        request.review_notes = notes
        self.db.flush()

        deductions = self._deduct_quota(request, reviewer_id, now)

        self.notifier.notify(
            request.employee_id,
            NotificationType.LEAVE_APPROVED,
            "Leave Approved",
            f"Your leave request from {request.start_date.strftime('%d %b %Y')} to "
            f"{request.end_date.strftime('%d %b %Y')} has been approved.",
        )
        log_audit(
            self.db,
            actor_id=reviewer_id,
            action="LEAVE_APPROVED",
            entity_type="leave_requests",
            entity_id=request.id,
            meta={
                "old_status": LeaveStatus.PENDING,
                "new_status": LeaveStatus.APPROVED,
                "deductions": deductions,
                "notes": notes,
            },
            at=now,
        )
        self.db.commit()
        logger.info("Leave approved: request_id=%s reviewer_id=%s deductions=%s", request_id, reviewer_id, deductions)
        return EngineResult.ok("Leave request approved", request_id=request_id, deductions=deductions)

    def _deduct_quota(self, request: LeaveRequest, actor_id: int, now: datetime) -> Dict[str, Decimal]:
        """
        Comp-off first. What comp-off cannot cover is taken in full from every
        enabled tier that still holds it; a tier that cannot is left untouched.
        """
        balance = self._get_balance(request.employee_id, request.category_id, for_update=True)
        if balance is None:
            logger.info(
                "No balance row for employee_id=%s category_id=%s; approval without deduction",
                request.employee_id, request.category_id,
            )
            return {}

        days = Decimal(request.total_days)
        comp_off = Decimal(balance.comp_off_balance or 0)
        deductions: Dict[str, Decimal] = {}

        if comp_off >= days:
            balance.comp_off_balance = comp_off - days
            deductions[COMP_OFF_POOL] = days
            self._ledger(balance, COMP_OFF_POOL, -days, LeaveTransactionAction.APPROVE_DEDUCT, now, actor_id, request.id)
            self.db.flush()
            return deductions

        remaining = days
        if comp_off > 0:
            remaining -= comp_off
            balance.comp_off_balance = Decimal("0")
            deductions[COMP_OFF_POOL] = comp_off
            self._ledger(balance, COMP_OFF_POOL, -comp_off, LeaveTransactionAction.APPROVE_DEDUCT, now, actor_id, request.id)

        category = request.category or self.db.get(LeaveCategory, request.category_id)
        for tier in category.enabled_tiers:
            current = balance.tier_balance(tier)
            if current is None or Decimal(current) < remaining:
                continue
            balance.set_tier_balance(tier, Decimal(current) - remaining)
            deductions[tier.value] = remaining
            self._ledger(balance, tier.value, -remaining, LeaveTransactionAction.APPROVE_DEDUCT, now, actor_id, request.id)

        if category.enabled_tiers and not any(tier.value in deductions for tier in category.enabled_tiers):
            logger.warning(
                "Approved leave request_id=%s without tier deduction: no enabled tier holds %s day(s)",
                request.id, remaining,
            )
        self.db.flush()
        return deductions

    @engine_operation("reject_request")
    def reject(
        self,
        request_id: int,
        reviewer_id: int,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> EngineResult:
        now = self._now(now)
        request = self._get_request_for_review(request_id)

        request.status = LeaveStatus.REJECTED
        request.reviewed_by = reviewer_id
        request.reviewed_at = now
        request.review_notes = notes
        self.db.flush()

        message = (
            f"Your leave request from {request.start_date.strftime('%d %b %Y')} to "
            f"{request.end_date.strftime('%d %b %Y')} has been rejected."
        )
        if notes:
            message += f" Reason: {notes}"
        self.notifier.notify(request.employee_id, NotificationType.LEAVE_REJECTED, "Leave Rejected", message)

        log_audit(
            self.db,
            actor_id=reviewer_id,
            action="LEAVE_REJECTED",
            entity_type="leave_requests",
            entity_id=request.id,
            meta={"old_status": LeaveStatus.PENDING, "new_status": LeaveStatus.REJECTED, "notes": notes},
            at=now,
        )
        self.db.commit()
        logger.info("Leave rejected: request_id=%s reviewer_id=%s", request_id, reviewer_id)
        return EngineResult.ok("Leave request rejected", request_id=request_id)

    # --- comp-off ---

    @engine_operation("add_comp_off")
    def add_comp_off(
        self,
        employee_id: int,
        category_id: int,
        days: Any,
        reason: str,
        actor_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> EngineResult:
        now = self._now(now)
        days = _coerce_days(days, "Comp-off days")
        if days <= 0:
            raise EngineError(ErrorKind.INVALID_VALUE, "Comp-off days must be greater than zero")
        if not reason:
            raise EngineError(ErrorKind.MISSING_FIELD, "Missing required field: reason")

        balance = self._get_balance(employee_id, category_id, for_update=True)
        if balance is None:
            raise EngineError(ErrorKind.NO_BALANCE, "No leave balance found")

        balance.comp_off_balance = Decimal(balance.comp_off_balance or 0) + days
        self._ledger(balance, COMP_OFF_POOL, days, LeaveTransactionAction.COMP_OFF_CREDIT, now, actor_id, remarks=reason)
        self.db.flush()

        self.notifier.notify(
            employee_id,
            NotificationType.COMP_OFF_ADDED,
            "Comp-Off Added",
            f"{format_days(days)} day(s) comp-off has been added to your account. Reason: {reason}",
        )
        log_audit(
            self.db,
            actor_id=actor_id,
            action="COMP_OFF_ADDED",
            entity_type="leave_balances",
            entity_id=balance.id,
            meta={"employee_id": employee_id, "category_id": category_id, "days": days, "reason": reason},
            at=now,
        )
        balance_id = balance.id
        comp_off_balance = balance.comp_off_balance
        self.db.commit()
        logger.info("Comp-off added: employee_id=%s category_id=%s days=%s", employee_id, category_id, days)
        return EngineResult.ok(
            "Comp-off added successfully",
            balance_id=balance_id,
            comp_off_balance=comp_off_balance,
        )

    # --- annual reset ---

    @engine_operation("reset_annual_quotas")
    def reset_annual_quotas(self, now: Optional[datetime] = None) -> EngineResult:
        """
        Restore every enabled tier of every active category to its full quota.

        Only acts on December 31 in the organisation timezone; any other date
        returns an unsuccessful result with no writes. Comp-off is carried over.
        """
        now = self._now(now)
        today = local_date(now)
        if (today.month, today.day) != (QUOTA_RESET_MONTH, QUOTA_RESET_DAY):
            logger.info("Quota reset skipped: %s is not December 31", today)
            return EngineResult(success=False, message="Quota reset only runs on December 31", data={"skipped": True})

        categories = (
            self.db.query(LeaveCategory)
            .filter(LeaveCategory.is_active.is_(True))
            .order_by(LeaveCategory.id)
            .all()
        )
        categories_reset = 0
        balances_reset = 0
        for category in categories:
            tiers = category.enabled_tiers
            if not tiers:
                continue
            balances = self.db.query(LeaveBalance).filter(LeaveBalance.category_id == category.id).all()
            for balance in balances:
                for tier in tiers:
                    full = Decimal(category.tier_quota_days(tier) or 0)
                    previous = Decimal(balance.tier_balance(tier) or 0)
                    balance.set_tier_balance(tier, full)
                    if full != previous:
                        self._ledger(balance, tier.value, full - previous, LeaveTransactionAction.ANNUAL_RESET, now)
                balance.last_reset_date = today
                balances_reset += 1
            categories_reset += 1
            logger.info("Reset quotas for category %s (%s balances)", category.code, len(balances))

        log_audit(
            self.db,
            actor_id=None,
            action="QUOTA_RESET",
            entity_type="leave_balances",
            meta={"reset_date": today, "categories": categories_reset, "balances": balances_reset},
            at=now,
        )
        self.db.commit()
        return EngineResult.ok(
            "Annual quotas reset successfully",
            reset_date=today,
            categories_reset=categories_reset,
            balances_reset=balances_reset,
        )

    # --- categories ---

    def _seed_category_balances(self, category: LeaveCategory, now: datetime, actor_id: Optional[int] = None) -> int:
        existing = {
            employee_id
            for (employee_id,) in self.db.query(LeaveBalance.employee_id).filter(LeaveBalance.category_id == category.id)
        }
        employees = self.db.query(Employee).filter(Employee.active.is_(True)).order_by(Employee.id).all()
        created = 0
        for employee in employees:
            if employee.id in existing:
                continue
            build_initial_balance(self.db, employee.id, category, now, actor_id)
            created += 1
        self.db.flush()
        return created

    @engine_operation("initialize_category_for_all_users")
    def initialize_category_for_all_users(
        self,
        category_id: int,
        actor_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> EngineResult:
        """Give every active employee without one a full-quota balance row for the category."""
        now = self._now(now)
        category = self.db.get(LeaveCategory, category_id)
        if category is None:
            raise EngineError(ErrorKind.INVALID_CATEGORY, "Invalid leave category")
        created = self._seed_category_balances(category, now, actor_id)
        self.db.commit()
        logger.info("Initialized category %s for %s employee(s)", category_id, created)
        return EngineResult.ok("Category initialized", category_id=category_id, balances_created=created)

    @engine_operation("create_category")
    def create_category(
        self,
        data: Mapping[str, Any],
        actor_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> EngineResult:
        now = self._now(now)
        for field_name in ("name", "code"):
            if not data.get(field_name):
                raise EngineError(ErrorKind.MISSING_FIELD, f"Missing required field: {field_name}")

        code = str(data["code"]).strip().upper()
        if self.db.query(LeaveCategory.id).filter(LeaveCategory.code == code).first() is not None:
            raise EngineError(ErrorKind.INVALID_VALUE, f"Leave category code '{code}' already exists")

        category = LeaveCategory(
            name=data["name"],
            code=code,
            requires_approval=data.get("requires_approval", True),
            is_paid=data.get("is_paid", True),
            is_active=data.get("is_active", True),
            description=data.get("description"),
        )
        for tier in QUOTA_TIERS:
            enabled = bool(data.get(f"has_{tier.value}_quota", False))
            quota_days = data.get(f"{tier.value}_quota_days")
            if enabled and quota_days is None:
                raise EngineError(ErrorKind.MISSING_FIELD, f"Missing required field: {tier.value}_quota_days")
            if quota_days is not None:
                quota_days = _coerce_days(quota_days, f"{tier.value}_quota_days")
                if quota_days < 0:
                    raise EngineError(ErrorKind.INVALID_VALUE, f"{tier.value}_quota_days cannot be negative")
            setattr(category, f"has_{tier.value}_quota", enabled)
            setattr(category, f"{tier.value}_quota_days", quota_days)

        self.db.add(category)
        self.db.flush()

        created = self._seed_category_balances(category, now, actor_id) if category.is_active else 0
        log_audit(
            self.db,
            actor_id=actor_id,
            action="LEAVE_CATEGORY_CREATED",
            entity_type="leave_categories",
            entity_id=category.id,
            meta={"code": code, "tiers": [tier.value for tier in category.enabled_tiers], "balances_created": created},
            at=now,
        )
        category_id = category.id
        self.db.commit()
        logger.info("Leave category created: code=%s balances_created=%s", code, created)
        return EngineResult.ok(
            "Leave category created successfully",
            category_id=category_id,
            balances_created=created,
        )

    # --- reads ---

    def get_categories(self, active_only: bool = True) -> List[LeaveCategory]:
        query = self.db.query(LeaveCategory)
        if active_only:
            query = query.filter(LeaveCategory.is_active.is_(True))
        return query.order_by(LeaveCategory.name).all()

    def get_user_balances(self, employee_id: int) -> List[LeaveBalance]:
        return (
            self.db.query(LeaveBalance)
            .join(LeaveCategory, LeaveCategory.id == LeaveBalance.category_id)
            .filter(LeaveBalance.employee_id == employee_id, LeaveCategory.is_active.is_(True))
            .order_by(LeaveCategory.name)
            .all()
        )

    def get_user_requests(
        self,
        employee_id: int,
        status: Optional[LeaveStatus] = None,
        limit: int = 50,
    ) -> List[LeaveRequest]:
        query = self.db.query(LeaveRequest).filter(LeaveRequest.employee_id == employee_id)
        if status is not None:
            query = query.filter(LeaveRequest.status == LeaveStatus(status))
        return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).limit(limit).all()

    def get_pending_requests_for_manager(self, manager_id: int) -> List[LeaveRequest]:
        """Pending requests of the manager's direct reports, oldest first."""
        return (
            self.db.query(LeaveRequest)
            .join(Employee, Employee.id == LeaveRequest.employee_id)
            .filter(
                Employee.reporting_manager_id == manager_id,
                LeaveRequest.status == LeaveStatus.PENDING,
            )
            .order_by(LeaveRequest.created_at.asc(), LeaveRequest.id.asc())
            .all()
        )
