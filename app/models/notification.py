"""
In-app notification model
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
import enum
from app.db.base import Base


class NotificationType(str, enum.Enum):
    GENERAL = "general"
    BREAK_VIOLATION = "break_violation"
    AUTO_LOGOUT = "auto_logout"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    COMP_OFF_ADDED = "comp_off_added"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    type = Column(String(30), nullable=False, default=NotificationType.GENERAL.value)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    user = relationship("Employee")
