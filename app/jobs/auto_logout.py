"""
Auto-logout sweep: closes sessions open for 10 hours or more.

Usage:
  python -m app.jobs.auto_logout
  python -m app.jobs.auto_logout --now 2026-10-16T18:30:00+05:30
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
from app.services.attendance_service import AttendanceEngine

logger = logging.getLogger(__name__)


def run_auto_logout(db: Session, clock: Optional[Clock] = None, now: Optional[datetime] = None) -> EngineResult:
    result = AttendanceEngine(db, clock).auto_logout_long_sessions(now)
    if result.success:
        logger.info("Auto-logout job: %s", result.message)
    else:
        logger.error("Auto-logout job failed: %s", result.message)
    return result


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Auto-logout sessions open for 10 hours or more")
    parser.add_argument("--now", type=parse_now, help="Override current time (ISO-8601)")
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run")
    args = parser.parse_args(argv)

    setup_logging(args.log_level)
    db = db_session.SessionLocal()
    try:
        result = run_auto_logout(db, now=args.now)
    finally:
        db.close()
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
