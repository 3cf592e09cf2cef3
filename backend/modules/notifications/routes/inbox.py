"""Notifications - polling surface: list, counts, mark read, delete, clear."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.base import NotificationType
from core.db import get_db
from modules.notifications import service
from modules.notifications.schemas import (
    NotificationCreate, NotificationResponse, NotificationSummary,
)

router = APIRouter(tags=["Notifications"])


# Recipient identity comes from the caller; authentication lives outside this service.

@router.get("/notifications", response_model=List[NotificationResponse])
def list_notifications(
    user_id: Optional[str] = None,
    role: Optional[str] = None,
    unread_only: bool = False,
    notification_type: Optional[NotificationType] = Query(default=None, alias="type"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    """List notifications visible to a user/role, newest first."""
    return service.list_for_recipient(
        db, user_id=user_id, role=role, unread_only=unread_only,
        notification_type=notification_type, limit=limit, offset=offset,
    )


@router.post("/notifications", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
def create_notification(data: NotificationCreate, db: Session = Depends(get_db)):
    return service.create_notification(db, data)


@router.get("/notifications/unread-count")
def get_unread_count(user_id: Optional[str] = None, role: Optional[str] = None,
                     db: Session = Depends(get_db)):
    """Unread count for the bell badge."""
    return {"unread_count": service.unread_count(db, user_id=user_id, role=role)}


@router.get("/notifications/summary", response_model=NotificationSummary)
def get_summary(user_id: Optional[str] = None, role: Optional[str] = None,
                db: Session = Depends(get_db)):
    return service.summary(db, user_id=user_id, role=role)


@router.patch("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(notification_id: int, user_id: Optional[str] = None,
                           role: Optional[str] = None, db: Session = Depends(get_db)):
    return service.mark_read(db, notification_id, user_id=user_id, role=role)


@router.post("/notifications/mark-all-read")
def mark_all_notifications_read(user_id: Optional[str] = None, role: Optional[str] = None,
                                db: Session = Depends(get_db)):
    updated = service.mark_all_read(db, user_id=user_id, role=role)
    return {"status": "ok", "updated": updated}


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(notification_id: int, user_id: Optional[str] = None,
                        role: Optional[str] = None, db: Session = Depends(get_db)):
    service.delete_notification(db, notification_id, user_id=user_id, role=role)


@router.delete("/notifications")
def clear_notifications(user_id: Optional[str] = None, role: Optional[str] = None,
                        read_only: bool = False, db: Session = Depends(get_db)):
    """Delete all of the caller's notifications, or only the read ones."""
    deleted = service.clear(db, user_id=user_id, role=role, read_only=read_only)
    return {"status": "ok", "deleted": deleted}
