"""
Due-set scanner.

Sweeps non-terminal maintenance records and partitions them into category
sets using the classifier. Read-only apart from the optional status cache
write-back, which is conditional on the classification inputs so it can
never overwrite a concurrent manual edit with a stale answer.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import String, and_, cast, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.base import ACTIVE_STATUSES, EffectiveStatus, MaintenanceStatus
from core.config import settings
from core.db import store_guard
from core.errors import UpkeepError, ValidationError
from core.interfaces.notification import DueRecord
from modules.maintenance.classifier import (
    Classification, calendar_day, classify, local_now, start_of_day, to_storage,
)
from modules.maintenance.models import MaintenanceRecord

log = logging.getLogger("upkeep.sweep")


@dataclass
class ScanResult:
    scanned_at: datetime
    overdue: list = field(default_factory=list)
    due_today: list = field(default_factory=list)
    due_soon: list = field(default_factory=list)
    in_progress: list = field(default_factory=list)
    scheduled: list = field(default_factory=list)
    failed: list = field(default_factory=list)          # [{"id": ..., "error": ...}]
    classifications: dict = field(default_factory=dict)  # record id -> Classification
    due: dict = field(default_factory=dict)               # record id -> DueRecord, overdue and due today only

    def due_records(self, category: str) -> list:
        """DueRecord snapshots for "overdue" or "due_today", as classified.

        Unlike the ORM objects in the lists above these do not reload after a commit.
        """
        flag = "is_overdue" if category == "overdue" else "due_today"
        return [d for rid, d in self.due.items() if getattr(self.classifications[rid], flag)]

    def counts(self) -> dict:
        return {
            "overdue": len(self.overdue),
            "due_today": len(self.due_today),
            "due_soon": len(self.due_soon),
            "in_progress": len(self.in_progress),
            "scheduled": len(self.scheduled),
            "failed": len(self.failed),
        }


def _place(result: ScanResult, record: MaintenanceRecord, c: Classification) -> None:
    result.classifications[record.id] = c
    if c.is_overdue or c.due_today:
        result.due[record.id] = DueRecord.from_record(record)
    if c.is_overdue:
        result.overdue.append(record)
        return
    if c.due_today:
        result.due_today.append(record)
    if c.due_soon:
        result.due_soon.append(record)
    if record.manual_status == MaintenanceStatus.IN_PROGRESS:
        result.in_progress.append(record)
    else:
        result.scheduled.append(record)


def _write_cache(db: Session, result: ScanResult, records: list) -> int:
    """Persist is_overdue/cached_status where it drifted. Returns rows written."""
    written = 0
    for record in records:
        c = result.classifications.get(record.id)
        if c is None:
            continue
        if record.is_overdue == c.is_overdue and record.cached_status == c.effective_status:
            continue
        res = db.execute(
            update(MaintenanceRecord)
            .where(
                MaintenanceRecord.id == record.id,
                MaintenanceRecord.manual_status == record.manual_status,
                MaintenanceRecord.scheduled_date == record.scheduled_date,
            )
            .values(
                is_overdue=c.is_overdue,
                cached_status=c.effective_status,
                status_checked_at=result.scanned_at,
            )
            .execution_options(synchronize_session=False)
        )
        written += res.rowcount
    db.commit()
    return written


def _readable_ids(db: Session, result: ScanResult) -> list:
    """Ids of active records whose stored scheduled_date parses.

    The column is read as text so one malformed value lands in `failed`
    instead of breaking the ORM load for the whole batch.
    """
    rows = db.execute(
        select(MaintenanceRecord.id, cast(MaintenanceRecord.scheduled_date, String))
        .where(MaintenanceRecord.manual_status.in_(list(ACTIVE_STATUSES)))
    ).all()
    ids = []
    for record_id, raw in rows:
        try:
            if raw is None:
                raise ValidationError("scheduled_date is missing")
            datetime.fromisoformat(raw)
        except (ValidationError, ValueError) as e:
            log.warning(f"Skipping maintenance record {record_id} during scan: {e}")
            result.failed.append({"id": record_id, "error": str(e)})
            continue
        ids.append(record_id)
    return ids


def scan(db: Session, now: Optional[datetime] = None, due_soon_days: Optional[int] = None,
         write_cache: bool = False) -> ScanResult:
    """Partition all active records into overdue / due_today / due_soon / in_progress / scheduled.

    Records scheduled past the due-soon window cannot carry any flag, so only
    records inside the date bracket are classified; the rest are listed by
    manual status. Per-record failures, including unreadable stored dates,
    are collected in `failed` and never abort the batch. Raises
    StoreUnavailable when the store cannot be read.
    """
    now = to_storage(now) or local_now()
    window = settings.due_soon_days if due_soon_days is None else due_soon_days
    window_end = start_of_day(calendar_day(now) + timedelta(days=window + 1))
    result = ScanResult(scanned_at=now)

    with store_guard("maintenance scan"):
        ids = _readable_ids(db, result)
        candidates, beyond = [], []
        if ids:
            readable = and_(
                MaintenanceRecord.id.in_(ids),
                MaintenanceRecord.manual_status.in_(list(ACTIVE_STATUSES)),
            )
            candidates = (
                db.query(MaintenanceRecord)
                .filter(readable, MaintenanceRecord.scheduled_date < window_end)
                .order_by(MaintenanceRecord.scheduled_date, MaintenanceRecord.id)
                .all()
            )
            beyond = (
                db.query(MaintenanceRecord)
                .filter(readable, MaintenanceRecord.scheduled_date >= window_end)
                .order_by(MaintenanceRecord.scheduled_date, MaintenanceRecord.id)
                .all()
            )

    for record in candidates:
        try:
            c = classify(record, now, window)
        except (UpkeepError, ValueError, TypeError) as e:
            log.warning(f"Skipping maintenance record {record.id} during scan: {e}")
            result.failed.append({"id": record.id, "error": str(e)})
            continue
        _place(result, record, c)

    for record in beyond:
        _place(result, record, Classification(effective_status=EffectiveStatus(record.manual_status.value)))

    if write_cache:
        try:
            written = _write_cache(db, result, candidates + beyond)
            log.debug(f"Status cache refreshed for {written} records")
        except SQLAlchemyError as e:
            db.rollback()
            log.warning(f"Status cache write-back skipped: {e}")

    log.info(f"Scan complete: {result.counts()}")
    return result
