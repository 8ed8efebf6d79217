"""
Annual quota reset. Does nothing unless it is December 31 in the organisation timezone.

Usage:
  python -m app.jobs.reset_quotas
  python -m app.jobs.reset_quotas --now 2026-12-31T00:05:00+05:30
"""
import argparse
import logging
import sys
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.exceptions import EngineResult
from app.core.logging import setup_logging
from app.db import session as db_session
from app.jobs import parse_now
from app.models.employee import Employee, Role
from app.models.notification import NotificationType
from app.services.leave_service import LeaveEngine
from app.services.notification_service import DatabaseNotificationSink

logger = logging.getLogger(__name__)


def notify_admins(db: Session, clock: Optional[Clock] = None) -> int:
    admins = (
        db.query(Employee)
        .filter(Employee.role == Role.ADMIN.value, Employee.active.is_(True))
        .all()
    )
    sink = DatabaseNotificationSink(db, clock)
    for admin in admins:
        sink.notify(
            admin.id,
            NotificationType.GENERAL,
            "Annual Quota Reset",
            "Leave quotas have been successfully reset for the new year.",
        )
    db.commit()
    return len(admins)


def run_reset_quotas(db: Session, clock: Optional[Clock] = None, now: Optional[datetime] = None) -> EngineResult:
    result = LeaveEngine(db, clock).reset_annual_quotas(now)
    if result.success:
        notified = notify_admins(db, clock)
        logger.info("Quota reset job: %s; %s admin(s) notified", result.message, notified)
    elif result.error is None:
        logger.info("Quota reset job skipped: %s", result.message)
    else:
        logger.error("Quota reset job failed: %s", result.message)
    return result


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Reset annual leave quotas (December 31 only)")
    parser.add_argument("--now", type=parse_now, help="Override current time (ISO-8601)")
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    db = db_session.SessionLocal()
    try:
        result = run_reset_quotas(db, now=args.now)
    finally:
        db.close()
    # a skipped run is not a failure
    return 0 if result.success or result.error is None else 1


if __name__ == "__main__":
    sys.exit(main())
