"""
Audit logging service
"""
from datetime import datetime
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import sanitize_for_json
from typing import Optional, Dict, Any


def log_audit(
    db: Session,
    actor_id: Optional[int],
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None,
    at: Optional[datetime] = None,
) -> AuditLog:
    """
    Add an audit log entry to the caller's unit of work.

    The entry is flushed, not committed: it commits or rolls back together with
    the business change it describes.

    Args:
        db: Database session
        actor_id: ID of the user performing the action (None for scheduled sweeps)
        action: Action type (e.g., "ATTENDANCE_PUNCH_IN", "LEAVE_APPROVED")
        entity_type: Type of entity (e.g., "attendance", "leave_requests")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)
        at: Timestamp of the action (defaults to now)

    Returns:
        Created AuditLog instance
    """
    safe_meta = sanitize_for_json(meta) if meta is not None else None

    # Explicitly set created_at to avoid SQLite issues with server_default
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=safe_meta,
        created_at=at or now_utc(),
    )
    db.add(audit_log)
    db.flush()
    return audit_log
