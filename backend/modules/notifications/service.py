"""
Notification delivery surface (polling).

Visibility: a user sees notifications addressed to their user id, those
addressed to their role with no user id, and broadcasts (no user, no role).
Admins additionally see everything not addressed to a specific user.
"""

import logging
from typing import List, Optional

from sqlalchemy import and_, or_, update
from sqlalchemy.orm import Session

from core import events
from core.base import NotificationPriority, NotificationType
from core.db import store_guard
from core.errors import NotFound, ValidationError
from core.event_bus import publish
from modules.notifications.models import Notification
from modules.notifications.schemas import NotificationCreate, NotificationSummary

log = logging.getLogger("upkeep.api")

ADMIN_ROLE = "admin"


def _visible_to(user_id: Optional[str], role: Optional[str]):
    unaddressed = Notification.recipient_user_id.is_(None)
    clauses = [and_(unaddressed, Notification.recipient_role.is_(None))]
    if user_id:
        clauses.append(Notification.recipient_user_id == user_id)
    if role == ADMIN_ROLE:
        clauses.append(unaddressed)
    elif role:
        clauses.append(and_(unaddressed, Notification.recipient_role == role))
    return or_(*clauses)


def create_notification(db: Session, data: NotificationCreate) -> Notification:
    """Store a notification from a collaborator. Maintenance notifications belong to the dispatcher."""
    if data.notification_type == NotificationType.MAINTENANCE:
        raise ValidationError("maintenance notifications are created by the due check only")
    notification = Notification(**data.model_dump())
    with store_guard("notification create"):
        db.add(notification)
        db.commit()
        db.refresh(notification)
    publish(events.NOTIFICATION_CREATED, "notifications",
            notification_id=notification.id,
            maintenance_id=notification.maintenance_id,
            asset_id=notification.asset_id,
            title=notification.title,
            message=notification.message,
            priority=notification.priority.value)
    return notification


def list_for_recipient(db: Session, user_id: Optional[str] = None, role: Optional[str] = None,
                       unread_only: bool = False,
                       notification_type: Optional[NotificationType] = None,
                       limit: int = 50, offset: int = 0) -> List[Notification]:
    query = db.query(Notification).filter(_visible_to(user_id, role))
    if unread_only:
        query = query.filter(Notification.is_read == False)  # noqa: E712
    if notification_type is not None:
        query = query.filter(Notification.notification_type == notification_type)
    with store_guard("notification list"):
        return (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .offset(offset).limit(limit).all()
        )


def unread_count(db: Session, user_id: Optional[str] = None, role: Optional[str] = None) -> int:
    with store_guard("notification count"):
        return db.query(Notification).filter(
            _visible_to(user_id, role),
            Notification.is_read == False,  # noqa: E712
        ).count()


def summary(db: Session, user_id: Optional[str] = None, role: Optional[str] = None) -> NotificationSummary:
    base = db.query(Notification).filter(_visible_to(user_id, role))
    unread = base.filter(Notification.is_read == False)  # noqa: E712
    with store_guard("notification summary"):
        return NotificationSummary(
            total=base.count(),
            unread=unread.count(),
            unread_high=unread.filter(Notification.priority == NotificationPriority.HIGH).count(),
            unread_maintenance=unread.filter(
                Notification.notification_type == NotificationType.MAINTENANCE
            ).count(),
        )


def get_notification(db: Session, notification_id: int,
                     user_id: Optional[str] = None, role: Optional[str] = None) -> Notification:
    with store_guard("notification lookup"):
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            _visible_to(user_id, role),
        ).first()
    if notification is None:
        raise NotFound(f"Notification {notification_id} not found")
    return notification


def mark_read(db: Session, notification_id: int,
              user_id: Optional[str] = None, role: Optional[str] = None) -> Notification:
    notification = get_notification(db, notification_id, user_id, role)
    notification.is_read = True
    with store_guard("notification mark-read"):
        db.commit()
        db.refresh(notification)
    return notification


def mark_all_read(db: Session, user_id: Optional[str] = None, role: Optional[str] = None) -> int:
    with store_guard("notification mark-all-read"):
        res = db.execute(
            update(Notification)
            .where(_visible_to(user_id, role), Notification.is_read == False)  # noqa: E712
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    log.info(f"Marked {res.rowcount} notifications read")
    return res.rowcount


def delete_notification(db: Session, notification_id: int,
                        user_id: Optional[str] = None, role: Optional[str] = None) -> None:
    notification = get_notification(db, notification_id, user_id, role)
    with store_guard("notification delete"):
        db.delete(notification)
        db.commit()


def clear(db: Session, user_id: Optional[str] = None, role: Optional[str] = None,
          read_only: bool = False) -> int:
    """Delete the caller's notifications; with read_only, only the ones already read."""
    if not user_id and not role:
        raise ValidationError("user_id or role is required to clear notifications")
    query = db.query(Notification).filter(_visible_to(user_id, role))
    if read_only:
        query = query.filter(Notification.is_read == True)  # noqa: E712
    with store_guard("notification clear"):
        deleted = query.delete(synchronize_session=False)
        db.commit()
    log.info(f"Cleared {deleted} notifications")
    return deleted
