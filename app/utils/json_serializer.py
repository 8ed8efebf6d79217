"""
Conversion of audit metadata to JSON-safe values
"""
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel

from app.utils.datetime_utils import ensure_utc


def sanitize_for_json(value: Any) -> Any:
    """
    Recursively convert a value for storage in audit_logs.meta_json.

    Datetimes are written in UTC, day counts keep their exact decimal text
    ("1.5", not 1.4999...), enums become their value.
    """
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return f"{value.normalize():f}"
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {str(k): sanitize_for_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [sanitize_for_json(item) for item in value]
    if isinstance(value, BaseModel):
        return sanitize_for_json(value.model_dump())
    return str(value)
