"""
modules/notifications/models.py - ORM models for the notifications domain.

Owns tables: notifications
"""

from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Enum as SQLEnum, Text, JSON, Index
)
from sqlalchemy.sql import func

from core.base import Base, NotificationType, NotificationPriority, _ENUM_VALUES


class Notification(Base):
    """
    One in-app notification.

    Addressed to a single user (recipient_user_id), to everyone holding a
    role (recipient_role), or to everyone when both are null. Maintenance
    notifications are created by the dispatcher, at most one outstanding
    per record per unresolved due condition.
    """
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)

    # Recipient
    recipient_user_id = Column(String(100), nullable=True, index=True)
    recipient_role = Column(String(50), nullable=True, index=True)

    # Classification
    notification_type = Column(
        SQLEnum(NotificationType, values_callable=_ENUM_VALUES),
        nullable=False, default=NotificationType.INFO,
    )
    priority = Column(
        SQLEnum(NotificationPriority, values_callable=_ENUM_VALUES),
        nullable=False, default=NotificationPriority.MEDIUM,
    )

    # Content
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    action_url = Column(String(500), nullable=True)

    # References (no FK: notifications outlive deleted records)
    maintenance_id = Column(Integer, nullable=True, index=True)
    asset_id = Column(String(100), nullable=True, index=True)

    # State
    is_read = Column(Boolean, default=False, nullable=False, index=True)

    # Flexible extra data
    metadata_json = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_notifications_recipient_read", "recipient_user_id", "is_read"),
    )

    def __repr__(self):
        return f"<Notification {self.id}: {self.notification_type.value} '{self.title}'>"
