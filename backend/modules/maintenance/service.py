"""
Maintenance record service - creation, edits and explicit status transitions.

Every transition is a single conditional UPDATE guarded on the allowed source
statuses, so a concurrent transition on the same record fails cleanly with
InvalidTransition instead of silently overwriting. Rescheduling and moving to
completed/cancelled reset the notification dedup flag in that same statement.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.orm import Session

from core.base import (
    ACTIVE_STATUSES, EffectiveStatus, MaintenanceStatus, RecurrenceFrequency,
)
from core.config import settings
from core.db import store_guard
from core.errors import InvalidTransition, NotFound, ValidationError
from core.event_bus import publish
from core import events
from core.interfaces.asset_directory import AssetDirectory
from modules.maintenance.classifier import to_storage, local_now
from modules.maintenance.models import MaintenanceRecord
from modules.maintenance.schedule import compute_next_date, next_maintenance_date_for
from modules.maintenance.schemas import (
    MaintenanceRecordCreate, MaintenanceRecordUpdate,
    StartRequest, CompleteRequest, CancelRequest,
)

log = logging.getLogger("upkeep.api")


def _check_cost(cost) -> None:
    if cost is not None and cost < 0:
        raise ValidationError("Cost cannot be negative")


def get_record(db: Session, record_id: int) -> MaintenanceRecord:
    with store_guard("maintenance lookup"):
        record = db.get(MaintenanceRecord, record_id)
    if record is None:
        raise NotFound(f"Maintenance record {record_id} not found")
    return record


def create_record(db: Session, data: MaintenanceRecordCreate,
                  assets: Optional[AssetDirectory] = None,
                  now: Optional[datetime] = None) -> MaintenanceRecord:
    """Validate and persist a new record. Nothing is written when validation fails."""
    now = to_storage(now) or local_now()
    if data.scheduled_date is None:
        raise ValidationError("scheduled_date is required")
    frequency = RecurrenceFrequency.parse(data.recurrence_frequency)
    _check_cost(data.cost)

    status = data.manual_status
    completed_date = to_storage(data.completed_date)
    if completed_date is not None and status != MaintenanceStatus.COMPLETED:
        raise ValidationError("completed_date may only be set on completed records")
    if status == MaintenanceStatus.COMPLETED and completed_date is None:
        completed_date = now
    started_date = to_storage(data.started_date)
    if status == MaintenanceStatus.IN_PROGRESS and started_date is None:
        started_date = now

    asset_name = data.asset_name
    if not asset_name:
        if assets is None:
            raise ValidationError("asset_name is required when no asset directory is configured")
        asset_name = assets.get_asset_name(data.asset_id)
        if asset_name is None:
            raise NotFound(f"Asset {data.asset_id} not found")

    record = MaintenanceRecord(
        asset_id=data.asset_id,
        asset_name=asset_name,
        scheduled_date=to_storage(data.scheduled_date),
        started_date=started_date,
        completed_date=completed_date,
        manual_status=status,
        recurrence_frequency=frequency,
        service_type=data.service_type,
        technician=data.technician,
        completed_by=data.technician if status == MaintenanceStatus.COMPLETED else None,
        priority=data.priority,
        cost=data.cost,
        description=data.description,
        notes=data.notes,
        maintenance_due_notification_sent=False,
        is_overdue=False,
    )
    record.next_maintenance_date = next_maintenance_date_for(record)

    with store_guard("maintenance create"):
        db.add(record)
        db.commit()
        db.refresh(record)

    log.info(f"Scheduled maintenance {record.id} for asset {record.asset_id} on {record.scheduled_date:%Y-%m-%d}")
    publish(events.MAINTENANCE_SCHEDULED, "maintenance",
            maintenance_id=record.id, asset_id=record.asset_id,
            scheduled_date=record.scheduled_date.isoformat())
    return record


def update_record(db: Session, record_id: int, data: MaintenanceRecordUpdate) -> MaintenanceRecord:
    """Apply descriptive edits. A changed scheduled_date counts as a reschedule.

    Like the explicit transitions this is one conditional UPDATE: a reschedule
    only lands while the record is still open, and a frequency change only
    lands while the status its next date was computed from still holds.
    """
    record = get_record(db, record_id)
    values = data.model_dump(exclude_unset=True)

    if "recurrence_frequency" in values:
        values["recurrence_frequency"] = RecurrenceFrequency.parse(values["recurrence_frequency"])
    if "cost" in values:
        if values["cost"] is None:
            raise ValidationError("cost cannot be null")
        _check_cost(values["cost"])
    for required in ("asset_name", "service_type", "priority"):
        if required in values and values[required] is None:
            raise ValidationError(f"{required} cannot be null")

    frequency = values.get("recurrence_frequency", record.recurrence_frequency)
    new_date = None
    if "scheduled_date" in values:
        new_date = to_storage(values.pop("scheduled_date"))
        if new_date is None:
            raise ValidationError("scheduled_date cannot be cleared")
        if new_date == record.scheduled_date:
            new_date = None

    if new_date is not None:
        if MaintenanceStatus(record.manual_status).is_terminal:
            raise InvalidTransition(
                f"Cannot reschedule a {record.manual_status.value} maintenance record"
            )
        values.update(
            scheduled_date=new_date,
            next_maintenance_date=compute_next_date(frequency, new_date),
            maintenance_due_notification_sent=False,
            is_overdue=False,
            cached_status=None,
        )
        record = _transition(db, record_id, "reschedule", ACTIVE_STATUSES, values)
        log.info(f"Maintenance {record.id} rescheduled to {new_date:%Y-%m-%d}")
        publish(events.MAINTENANCE_RESCHEDULED, "maintenance",
                maintenance_id=record.id, asset_id=record.asset_id,
                scheduled_date=new_date.isoformat())
        return record

    if not values:
        return record
    allowed_from = set(MaintenanceStatus)
    if "recurrence_frequency" in values:
        status = MaintenanceStatus(record.manual_status)
        if status == MaintenanceStatus.COMPLETED and record.completed_date:
            reference = record.completed_date
        else:
            reference = record.scheduled_date
        values["next_maintenance_date"] = compute_next_date(frequency, reference)
        allowed_from = {status}
    return _transition(db, record_id, "update", allowed_from, values)


def _transition(db: Session, record_id: int, action: str, allowed_from, values: dict,
                follow_up: Optional[MaintenanceRecord] = None) -> MaintenanceRecord:
    """Apply `values` only if the record is still in one of `allowed_from`."""
    with store_guard(f"maintenance {action}"):
        res = db.execute(
            update(MaintenanceRecord)
            .where(
                MaintenanceRecord.id == record_id,
                MaintenanceRecord.manual_status.in_(list(allowed_from)),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if res.rowcount == 0:
            db.rollback()
            current = db.get(MaintenanceRecord, record_id)
            if current is None:
                raise NotFound(f"Maintenance record {record_id} not found")
            raise InvalidTransition(
                f"Cannot {action} a {current.manual_status.value} maintenance record"
            )
        if follow_up is not None:
            db.add(follow_up)
        db.commit()
        record = db.get(MaintenanceRecord, record_id)
        db.refresh(record)
        if follow_up is not None:
            db.refresh(follow_up)
    return record


def start_record(db: Session, record_id: int, data: Optional[StartRequest] = None,
                 now: Optional[datetime] = None) -> MaintenanceRecord:
    """scheduled -> in_progress."""
    data = data or StartRequest()
    values = {"manual_status": MaintenanceStatus.IN_PROGRESS, "started_date": to_storage(now) or local_now()}
    if data.technician:
        values["technician"] = data.technician
    if data.notes:
        values["notes"] = data.notes
    record = _transition(db, record_id, "start", {MaintenanceStatus.SCHEDULED}, values)
    log.info(f"Maintenance {record.id} started")
    return record


def complete_record(db: Session, record_id: int, data: Optional[CompleteRequest] = None,
                    now: Optional[datetime] = None
                    ) -> Tuple[MaintenanceRecord, Optional[MaintenanceRecord]]:
    """scheduled/in_progress -> completed.

    Computes next_maintenance_date from the completion date and, when
    auto_schedule_next is on and the frequency recurs, schedules the
    follow-up record in the same transaction. Returns (record, follow_up).
    """
    data = data or CompleteRequest()
    _check_cost(data.cost)
    existing = get_record(db, record_id)
    completed_at = to_storage(data.completed_date) or to_storage(now) or local_now()
    next_date = compute_next_date(existing.recurrence_frequency, completed_at)

    values = {
        "manual_status": MaintenanceStatus.COMPLETED,
        "completed_date": completed_at,
        "completed_by": data.completed_by or existing.technician,
        "next_maintenance_date": next_date,
        "maintenance_due_notification_sent": False,
        "is_overdue": False,
        "cached_status": EffectiveStatus.COMPLETED,
    }
    if data.notes:
        values["notes"] = data.notes
    if data.cost is not None:
        values["cost"] = data.cost

    follow_up = None
    if settings.auto_schedule_next and next_date is not None:
        follow_up = MaintenanceRecord(
            asset_id=existing.asset_id,
            asset_name=existing.asset_name,
            scheduled_date=next_date,
            manual_status=MaintenanceStatus.SCHEDULED,
            recurrence_frequency=existing.recurrence_frequency,
            next_maintenance_date=compute_next_date(existing.recurrence_frequency, next_date),
            service_type=existing.service_type,
            technician=existing.technician,
            priority=existing.priority,
            cost=0,
            description=f"Scheduled {existing.recurrence_frequency.value} {existing.service_type}",
            maintenance_due_notification_sent=False,
            is_overdue=False,
        )

    record = _transition(db, record_id, "complete", ACTIVE_STATUSES, values, follow_up=follow_up)
    if next_date:
        log.info(f"Maintenance {record.id} completed; next due {next_date:%Y-%m-%d}")
    else:
        log.info(f"Maintenance {record.id} completed; no recurrence")
    publish(events.MAINTENANCE_COMPLETED, "maintenance",
            maintenance_id=record.id, asset_id=record.asset_id,
            next_maintenance_date=next_date.isoformat() if next_date else None,
            follow_up_id=follow_up.id if follow_up else None)
    return record, follow_up


def cancel_record(db: Session, record_id: int, data: Optional[CancelRequest] = None) -> MaintenanceRecord:
    """scheduled/in_progress -> cancelled."""
    data = data or CancelRequest()
    values = {
        "manual_status": MaintenanceStatus.CANCELLED,
        "maintenance_due_notification_sent": False,
        "is_overdue": False,
        "cached_status": EffectiveStatus.CANCELLED,
    }
    if data.notes:
        values["notes"] = data.notes
    record = _transition(db, record_id, "cancel", ACTIVE_STATUSES, values)
    log.info(f"Maintenance {record.id} cancelled")
    publish(events.MAINTENANCE_CANCELLED, "maintenance",
            maintenance_id=record.id, asset_id=record.asset_id)
    return record


def reschedule_record(db: Session, record_id: int, scheduled_date: datetime,
                      notes: Optional[str] = None) -> MaintenanceRecord:
    """Move an open record to a new date and re-arm its notification."""
    if scheduled_date is None:
        raise ValidationError("scheduled_date is required")
    existing = get_record(db, record_id)
    new_date = to_storage(scheduled_date)
    values = {
        "scheduled_date": new_date,
        "next_maintenance_date": compute_next_date(existing.recurrence_frequency, new_date),
        "maintenance_due_notification_sent": False,
        "is_overdue": False,
        "cached_status": None,
    }
    if notes:
        values["notes"] = notes
    record = _transition(db, record_id, "reschedule", ACTIVE_STATUSES, values)
    log.info(f"Maintenance {record.id} rescheduled to {new_date:%Y-%m-%d}")
    publish(events.MAINTENANCE_RESCHEDULED, "maintenance",
            maintenance_id=record.id, asset_id=record.asset_id,
            scheduled_date=new_date.isoformat())
    return record


def delete_record(db: Session, record_id: int) -> None:
    record = get_record(db, record_id)
    with store_guard("maintenance delete"):
        db.delete(record)
        db.commit()
    log.info(f"Deleted maintenance record {record_id}")
