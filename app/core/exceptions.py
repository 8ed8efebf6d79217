"""
Engine error taxonomy and the structured result returned across the engine boundary.
"""
import enum
import functools
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.core.constants import SYSTEM_ERROR_MESSAGE


class ErrorKind(str, enum.Enum):
    # user-state conflicts
    ALREADY_PUNCHED_IN = "AlreadyPunchedIn"
    ALREADY_COMPLETED = "AlreadyCompleted"
    NO_PUNCH_IN = "NoPunchIn"
    ALREADY_PUNCHED_OUT = "AlreadyPunchedOut"
    BREAK_IN_PROGRESS = "BreakInProgress"
    NO_ACTIVE_BREAK = "NoActiveBreak"
    # validation / policy rejections
    MISSING_FIELD = "MissingField"
    INVALID_DATE_RANGE = "InvalidDateRange"
    ATTENDANCE_CONFLICT = "AttendanceConflict"
    INVALID_CATEGORY = "InvalidCategory"
    NO_BALANCE = "NoBalance"
    INSUFFICIENT_QUOTA = "InsufficientQuota"
    INVALID_VALUE = "InvalidValue"
    # review guards
    NOT_FOUND = "NotFound"
    ALREADY_PROCESSED = "AlreadyProcessed"
    FORBIDDEN = "Forbidden"
    SYSTEM_ERROR = "SystemError"


class EngineError(Exception):
    """Raised inside engine code; converted to a failed EngineResult at the boundary."""

    def __init__(self, kind: ErrorKind, message: str, **data: Any):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.data = data


@dataclass
class EngineResult:
    success: bool
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[ErrorKind] = None

    @classmethod
    def ok(cls, message: str, **data: Any) -> "EngineResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, **data: Any) -> "EngineResult":
        return cls(success=False, message=message, data=data, error=kind)

    def __bool__(self) -> bool:
        return self.success


def engine_operation(name: str):
    """
    Wrap an engine method so that it always returns an EngineResult.

    EngineError becomes a failed result with its own kind and message.
    Store faults are logged with context, rolled back and surfaced as an opaque SystemError.
    The wrapped method's instance must expose the session as ``self.db``.
    """
    def decorator(func):
        logger = logging.getLogger(func.__module__)

        @functools.wraps(func)
        def wrapper(self, *args, **kwargs):
            try:
                return func(self, *args, **kwargs)
            except EngineError as e:
                self.db.rollback()
                logger.info("%s rejected: kind=%s message=%s", name, e.kind.value, e.message)
                return EngineResult.fail(e.kind, e.message, **e.data)
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("%s failed: args=%s kwargs=%s", name, args, kwargs)
                return EngineResult.fail(ErrorKind.SYSTEM_ERROR, SYSTEM_ERROR_MESSAGE)
        return wrapper
    return decorator
