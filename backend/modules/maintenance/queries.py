"""
Read-only projections over maintenance records: lists by effective status,
by asset, the due/overdue/upcoming lists and completed history.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from core.base import ACTIVE_STATUSES, EffectiveStatus, MaintenanceStatus
from core.db import store_guard
from modules.maintenance.classifier import calendar_day, local_now, start_of_day, to_storage
from modules.maintenance.models import MaintenanceRecord
from modules.maintenance.scanner import scan


def _status_clause(status: EffectiveStatus, today_start: datetime):
    """SQL filter equivalent to classify(record).effective_status == status."""
    if status == EffectiveStatus.OVERDUE:
        return (MaintenanceRecord.manual_status.in_(list(ACTIVE_STATUSES)),
                MaintenanceRecord.scheduled_date < today_start)
    manual = MaintenanceStatus(status.value)
    if manual.is_terminal:
        return (MaintenanceRecord.manual_status == manual,)
    return (MaintenanceRecord.manual_status == manual,
            MaintenanceRecord.scheduled_date >= today_start)


def list_records(db: Session, status: Optional[EffectiveStatus] = None,
                 asset_id: Optional[str] = None, service_type: Optional[str] = None,
                 limit: int = 100, offset: int = 0,
                 now: Optional[datetime] = None) -> List[MaintenanceRecord]:
    today_start = start_of_day(calendar_day(to_storage(now) or local_now()))
    query = db.query(MaintenanceRecord)
    if status is not None:
        query = query.filter(*_status_clause(status, today_start))
    if asset_id:
        query = query.filter(MaintenanceRecord.asset_id == asset_id)
    if service_type:
        query = query.filter(MaintenanceRecord.service_type == service_type)
    with store_guard("maintenance list"):
        return (
            query.order_by(MaintenanceRecord.scheduled_date, MaintenanceRecord.id)
            .offset(offset).limit(limit).all()
        )


def list_by_asset(db: Session, asset_id: str, limit: int = 100,
                  now: Optional[datetime] = None) -> List[MaintenanceRecord]:
    return list_records(db, asset_id=asset_id, limit=limit, now=now)


def due_soon_list(db: Session, now: Optional[datetime] = None) -> List[MaintenanceRecord]:
    """Open records due today or inside the due-soon window. Overdue records are not included."""
    return scan(db, now=now).due_soon


def overdue_list(db: Session, now: Optional[datetime] = None) -> List[MaintenanceRecord]:
    return scan(db, now=now).overdue


def upcoming(db: Session, days: int = 30, now: Optional[datetime] = None) -> List[MaintenanceRecord]:
    """Open records scheduled from today through today + days."""
    today = calendar_day(to_storage(now) or local_now())
    with store_guard("maintenance upcoming"):
        return (
            db.query(MaintenanceRecord)
            .filter(
                MaintenanceRecord.manual_status.in_(list(ACTIVE_STATUSES)),
                MaintenanceRecord.scheduled_date >= start_of_day(today),
                MaintenanceRecord.scheduled_date < start_of_day(today + timedelta(days=days + 1)),
            )
            .order_by(MaintenanceRecord.scheduled_date, MaintenanceRecord.id)
            .all()
        )


def history(db: Session, asset_id: Optional[str] = None,
            start_date: Optional[date] = None, end_date: Optional[date] = None,
            limit: int = 50) -> List[MaintenanceRecord]:
    """Completed records, most recent completion first."""
    query = db.query(MaintenanceRecord).filter(
        MaintenanceRecord.manual_status == MaintenanceStatus.COMPLETED
    )
    if asset_id:
        query = query.filter(MaintenanceRecord.asset_id == asset_id)
    if start_date:
        query = query.filter(MaintenanceRecord.completed_date >= start_of_day(start_date))
    if end_date:
        query = query.filter(MaintenanceRecord.completed_date < start_of_day(end_date + timedelta(days=1)))
    with store_guard("maintenance history"):
        return (
            query.order_by(MaintenanceRecord.completed_date.desc(), MaintenanceRecord.id.desc())
            .limit(limit).all()
        )
