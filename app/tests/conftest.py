"""
Pytest configuration and fixtures
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-attendance-tests")
os.environ.setdefault("APP_ENV", "local")
os.environ["APP_TIMEZONE"] = "Asia/Kolkata"

from datetime import datetime, timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.deps import get_clock  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import configure_sqlite, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Employee, LeaveCategory, Role  # noqa: E402
from app.services.attendance_service import AttendanceEngine  # noqa: E402
from app.services.leave_service import LeaveEngine, build_initial_balance  # noqa: E402
from app.services.notification_service import DatabaseNotificationSink  # noqa: E402
from app.utils.datetime_utils import ensure_utc  # noqa: E402

IST = ZoneInfo("Asia/Kolkata")


def ist(year, month, day, hour=0, minute=0, second=0) -> datetime:
    """Wall-clock time in the organisation timezone"""
    return datetime(year, month, day, hour, minute, second, tzinfo=IST)


class FixedClock:
    """Clock that only moves when told to"""

    def __init__(self, at: datetime):
        self.current = ensure_utc(at)

    def now(self) -> datetime:
        return self.current

    def set(self, at: datetime) -> None:
        self.current = ensure_utc(at)

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class RecordingSink:
    """Notification sink that keeps notifications in memory"""

    def __init__(self):
        self.sent = []

    def notify(self, recipient_id, type, title, message, action_ref=None):
        self.sent.append({
            "recipient_id": recipient_id,
            "type": type,
            "title": title,
            "message": message,
            "action_ref": action_ref,
        })


class UnknownRecipientSink(DatabaseNotificationSink):
    """Database sink that addresses every notification to an employee id that does not exist"""

    def notify(self, recipient_id, type, title, message, action_ref=None):
        super().notify(999999, type, title, message, action_ref)


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
configure_sqlite(engine)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock():
    """Thursday 16 Oct 2026, 09:00 in the organisation timezone"""
    return FixedClock(ist(2026, 10, 16, 9, 0))


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def attendance_engine(db: Session, clock):
    return AttendanceEngine(db, clock)


@pytest.fixture
def leave_engine(db: Session, clock):
    return LeaveEngine(db, clock)


def make_employee(db: Session, emp_code: str, name: str, role: Role = Role.EMPLOYEE, manager=None, **kwargs) -> Employee:
    employee = Employee(
        emp_code=emp_code,
        email=f"{emp_code.lower()}@example.com",
        name=name,
        role=role.value,
        reporting_manager_id=manager.id if manager else None,
        active=kwargs.pop("active", True),
        **kwargs,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def admin(db: Session):
    return make_employee(db, "ADM001", "Asha Admin", Role.ADMIN)


@pytest.fixture
def manager(db: Session):
    return make_employee(db, "MGR001", "Meera Manager", Role.MANAGER)


@pytest.fixture
def employee(db: Session, manager):
    return make_employee(db, "EMP001", "Ravi Kumar", Role.EMPLOYEE, manager=manager)


@pytest.fixture
def other_employee(db: Session):
    """Employee outside the manager's team"""
    return make_employee(db, "EMP002", "Sara Das", Role.EMPLOYEE)


@pytest.fixture
def annual_category(db: Session):
    """Casual leave: 2 days per month, 12 per year"""
    category = LeaveCategory(
        name="Casual Leave",
        code="CL",
        has_monthly_quota=True,
        monthly_quota_days=Decimal("2"),
        has_annual_quota=True,
        annual_quota_days=Decimal("12"),
        is_active=True,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def unlimited_category(db: Session):
    """Category without any quota tier"""
    category = LeaveCategory(name="Unpaid Leave", code="UL", is_paid=False, is_active=True)
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


@pytest.fixture
def employee_balance(db: Session, employee, annual_category, clock):
    balance = build_initial_balance(db, employee.id, annual_category, clock.now())
    db.commit()
    db.refresh(balance)
    return balance


def auth_headers(employee: Employee) -> dict:
    token = create_access_token({"sub": str(employee.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def client(db, clock):
    """Test client fixture with database and clock overrides"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()
