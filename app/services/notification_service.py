"""
Notification sink used by the engines, plus read helpers for the inbox endpoints.
Delivery is best-effort: a failed notification is logged and never fails the business operation.
"""
import logging
from typing import List, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import Clock, SystemClock
from app.models.notification import Notification, NotificationType
from app.utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify(
        self,
        recipient_id: int,
        type: NotificationType,
        title: str,
        message: str,
        action_ref: Optional[str] = None,
    ) -> None:
        ...


class DatabaseNotificationSink:
    """
    Persists notifications in the caller's session inside a SAVEPOINT, so a failed
    insert rolls back only the notification and the surrounding transaction survives.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        self.db = db
        self.clock = clock or SystemClock()

    def notify(
        self,
        recipient_id: int,
        type: NotificationType,
        title: str,
        message: str,
        action_ref: Optional[str] = None,
    ) -> None:
        try:
            with self.db.begin_nested():
                self.db.add(Notification(
                    user_id=recipient_id,
                    type=NotificationType(type).value,
                    title=title,
                    message=message,
                    action_url=action_ref,
                    is_read=False,
                    created_at=ensure_utc(self.clock.now()),
                ))
        except SQLAlchemyError:
            logger.warning(
                "Notification delivery failed: recipient_id=%s type=%s title=%s",
                recipient_id, type, title, exc_info=True,
            )


def list_notifications(
    db: Session,
    user_id: int,
    unread_only: bool = False,
    limit: int = 50,
) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def mark_read(db: Session, notification_id: int, user_id: int) -> Optional[Notification]:
    """Mark a notification read if it belongs to user_id; returns None otherwise."""
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        return None
    notification.is_read = True
    db.commit()
    db.refresh(notification)
    return notification
