"""
Time source injected into the engines.
"""
from datetime import datetime
from typing import Protocol

from app.utils.datetime_utils import now_utc


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return now_utc()
