"""
Maintenance notification dispatcher.

Turns overdue and due-today records into notifications, at most one per
record per unresolved condition. The guarantee rests entirely on one atomic
statement per record:

    UPDATE maintenance_records SET maintenance_due_notification_sent = 1
     WHERE id = ? AND maintenance_due_notification_sent = 0
       AND manual_status IN ('scheduled', 'in_progress')
       AND scheduled_date = <value the record was classified with>

Only the caller whose UPDATE touched the row writes the notification. Two
sweeps racing over the same record therefore produce one notification, and a
record rescheduled or completed after the scan is left alone.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core import events
from core.base import ACTIVE_STATUSES, NotificationPriority, NotificationType
from core.config import settings
from core.errors import DuplicateNotificationPrevented
from core.event_bus import publish
from core.interfaces.notification import DispatchResult, DueRecord, MaintenanceNotifier
from modules.maintenance.models import MaintenanceRecord
from modules.notifications.models import Notification

log = logging.getLogger("upkeep.dispatcher")


class MaintenanceDispatcher(MaintenanceNotifier):
    """Default MaintenanceNotifier: in-app notifications addressed to a role."""

    def __init__(self, recipient_role: Optional[str] = None):
        self.recipient_role = recipient_role or settings.maintenance_recipient_role

    def dispatch(self, db: Session, overdue: Sequence, due_today: Sequence,
                 now: Optional[datetime] = None) -> DispatchResult:
        # Snapshot before the first commit expires any ORM instances we were handed
        overdue = [DueRecord.from_record(r) for r in overdue]
        due_today = [DueRecord.from_record(r) for r in due_today]
        overdue_ids = {r.id for r in overdue}

        result = DispatchResult()
        seen = set()
        for item in overdue + due_today:
            if item.id in seen:
                continue
            seen.add(item.id)
            try:
                self._notify(db, item, item.id in overdue_ids)
                result.created += 1
            except DuplicateNotificationPrevented:
                result.skipped += 1
            except SQLAlchemyError:
                result.failed += 1
                result.failed_ids.append(item.id)

        if result.created or result.failed:
            log.info(f"Dispatched {result.created} maintenance notifications "
                     f"({result.skipped} already sent, {result.failed} failed)")
        return result

    def _claim(self, db: Session, item: DueRecord) -> bool:
        res = db.execute(
            update(MaintenanceRecord)
            .where(
                MaintenanceRecord.id == item.id,
                MaintenanceRecord.maintenance_due_notification_sent == False,  # noqa: E712
                MaintenanceRecord.manual_status.in_(list(ACTIVE_STATUSES)),
                MaintenanceRecord.scheduled_date == item.scheduled_date,
            )
            .values(maintenance_due_notification_sent=True)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        return res.rowcount == 1

    def _release(self, db: Session, item: DueRecord) -> None:
        """Undo our own claim so the next sweep retries. Leaves a newer reschedule alone."""
        try:
            db.execute(
                update(MaintenanceRecord)
                .where(
                    MaintenanceRecord.id == item.id,
                    MaintenanceRecord.maintenance_due_notification_sent == True,  # noqa: E712
                    MaintenanceRecord.scheduled_date == item.scheduled_date,
                )
                .values(maintenance_due_notification_sent=False)
                .execution_options(synchronize_session=False)
            )
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            log.error(f"Could not reset notification flag for maintenance {item.id}; "
                      f"it will not be re-notified until rescheduled: {e}")

    def build_notification(self, item: DueRecord, is_overdue: bool) -> Notification:
        day = f"{item.scheduled_date:%Y-%m-%d}"
        if is_overdue:
            title = "Maintenance Overdue"
            message = f"{item.service_type} for {item.asset_name} was due on {day}."
            priority = NotificationPriority.HIGH
        else:
            title = "Maintenance Due Today"
            message = f"{item.service_type} for {item.asset_name} is due today."
            priority = NotificationPriority.MEDIUM
        return Notification(
            recipient_role=self.recipient_role,
            notification_type=NotificationType.MAINTENANCE,
            priority=priority,
            title=title,
            message=message,
            action_url=f"/maintenance/{item.id}",
            maintenance_id=item.id,
            asset_id=item.asset_id,
            is_read=False,
            metadata_json={
                "condition": "overdue" if is_overdue else "due_today",
                "scheduled_date": day,
                "technician": item.technician,
            },
        )

    def _notify(self, db: Session, item: DueRecord, is_overdue: bool) -> None:
        try:
            claimed = self._claim(db, item)
        except SQLAlchemyError as e:
            db.rollback()
            log.error(f"Notification claim failed for maintenance {item.id}: {e}")
            raise
        if not claimed:
            raise DuplicateNotificationPrevented(f"Maintenance {item.id} already notified")

        try:
            notification = self.build_notification(item, is_overdue)
            db.add(notification)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            log.error(f"Notification write failed for maintenance {item.id}: {e}", exc_info=True)
            self._release(db, item)
            raise

        publish(events.NOTIFICATION_CREATED, "notifications",
                notification_id=notification.id,
                maintenance_id=item.id,
                asset_id=item.asset_id,
                title=notification.title,
                message=notification.message,
                priority=notification.priority.value)
