"""
Scheduled jobs. Each module exposes run_*() for the admin endpoints and main() for cron:

  */15 * * * *   python -m app.jobs.auto_logout
  0 0 31 12 *    python -m app.jobs.reset_quotas
"""
import argparse
from datetime import datetime
from typing import Optional

from app.utils.datetime_utils import ensure_utc


def parse_now(value: Optional[str]) -> Optional[datetime]:
    """--now accepts ISO-8601; a value without offset is taken as UTC. Used as an argparse type."""
    if value is None:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid ISO-8601 datetime: {value!r}")
