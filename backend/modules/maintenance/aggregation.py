"""
Aggregation layer - calendar buckets, dashboard counts and summary statistics.

Everything here is recomputed from the store on each call; nothing is cached.
"""

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.base import EffectiveStatus
from core.db import store_guard
from core.errors import ValidationError
from modules.maintenance.classifier import calendar_day, classify, local_now, start_of_day, to_storage
from modules.maintenance.models import MaintenanceRecord
from modules.maintenance.scanner import scan
from modules.maintenance.schemas import DashboardCounts, StatisticsFilter, StatisticsResponse


def calendar(db: Session, year: int, month: int) -> Dict[str, List[MaintenanceRecord]]:
    """Group the month's records by scheduled calendar day ("YYYY-MM-DD")."""
    if not 1 <= month <= 12:
        raise ValidationError(f"Invalid month {month}")
    first = date(year, month, 1)
    following = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)

    with store_guard("maintenance calendar"):
        records = (
            db.query(MaintenanceRecord)
            .filter(
                MaintenanceRecord.scheduled_date >= start_of_day(first),
                MaintenanceRecord.scheduled_date < start_of_day(following),
            )
            .order_by(MaintenanceRecord.scheduled_date, MaintenanceRecord.id)
            .all()
        )

    days = defaultdict(list)
    for record in records:
        days[calendar_day(record.scheduled_date).isoformat()].append(record)
    return dict(days)


def dashboard_counts(db: Session, now: Optional[datetime] = None) -> DashboardCounts:
    counts = scan(db, now=now).counts()
    counts.pop("failed")
    return DashboardCounts(**counts)


def statistics(db: Session, filters: Optional[StatisticsFilter] = None,
               now: Optional[datetime] = None) -> StatisticsResponse:
    """Summary over the filtered set. An empty set yields zeros, never an error."""
    filters = filters or StatisticsFilter()
    now = to_storage(now) or local_now()

    query = db.query(MaintenanceRecord)
    if filters.start_date:
        query = query.filter(MaintenanceRecord.scheduled_date >= start_of_day(filters.start_date))
    if filters.end_date:
        query = query.filter(
            MaintenanceRecord.scheduled_date < start_of_day(filters.end_date + timedelta(days=1))
        )
    if filters.service_type:
        query = query.filter(MaintenanceRecord.service_type == filters.service_type)
    if filters.technician:
        query = query.filter(MaintenanceRecord.technician == filters.technician)
    if filters.asset_id:
        query = query.filter(MaintenanceRecord.asset_id == filters.asset_id)
    if filters.search:
        escaped = filters.search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        query = query.filter(or_(
            MaintenanceRecord.asset_name.ilike(pattern, escape="\\"),
            MaintenanceRecord.asset_id.ilike(pattern, escape="\\"),
            MaintenanceRecord.service_type.ilike(pattern, escape="\\"),
            MaintenanceRecord.technician.ilike(pattern, escape="\\"),
            MaintenanceRecord.description.ilike(pattern, escape="\\"),
            MaintenanceRecord.notes.ilike(pattern, escape="\\"),
        ))

    with store_guard("maintenance statistics"):
        records = query.order_by(MaintenanceRecord.scheduled_date, MaintenanceRecord.id).all()

    status_counts = {s.value: 0 for s in EffectiveStatus}
    service_types = Counter()
    technicians = Counter()
    total_cost = 0.0
    total = 0

    for record in records:
        status = classify(record, now).effective_status
        if filters.status is not None and status != filters.status:
            continue
        total += 1
        total_cost += record.cost or 0
        status_counts[status.value] += 1
        if record.service_type:
            service_types[record.service_type] += 1
        if record.technician:
            technicians[record.technician] += 1

    # most_common keeps first-encountered order among equal counts
    top_service = service_types.most_common(1)
    top_technician = technicians.most_common(1)
    return StatisticsResponse(
        total_records=total,
        total_cost=round(total_cost, 2),
        average_cost=round(total_cost / total, 2) if total else 0,
        most_common_service_type=top_service[0][0] if top_service else None,
        most_common_technician=top_technician[0][0] if top_technician else None,
        status_counts=status_counts,
    )
