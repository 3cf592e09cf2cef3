"""
modules/notifications/schemas.py - Pydantic schemas for the notifications domain.
"""

from datetime import datetime
from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field

from core.base import NotificationType, NotificationPriority


class NotificationCreate(BaseModel):
    """Generic create, used by collaborators other than the maintenance sweep."""
    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1)
    notification_type: NotificationType = NotificationType.INFO
    priority: NotificationPriority = NotificationPriority.MEDIUM
    recipient_user_id: Optional[str] = None
    recipient_role: Optional[str] = None
    maintenance_id: Optional[int] = None
    asset_id: Optional[str] = None
    action_url: Optional[str] = None
    metadata_json: Optional[Dict[str, Any]] = None


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    recipient_user_id: Optional[str] = None
    recipient_role: Optional[str] = None
    notification_type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    action_url: Optional[str] = None
    maintenance_id: Optional[int] = None
    asset_id: Optional[str] = None
    is_read: bool = False
    metadata_json: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NotificationSummary(BaseModel):
    """Unread counts for the bell badge / dashboard widget."""
    total: int = 0
    unread: int = 0
    unread_high: int = 0
    unread_maintenance: int = 0
