"""Maintenance read views - calendar, dashboard, statistics and the due/overdue/upcoming lists."""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.base import EffectiveStatus
from core.db import get_db
from modules.maintenance import aggregation, queries
from modules.maintenance.classifier import local_now
from modules.maintenance.schemas import (
    CalendarResponse, DashboardCounts, MaintenanceRecordResponse,
    StatisticsFilter, StatisticsResponse,
)

router = APIRouter(tags=["Maintenance"])


def _out(records, now) -> List[MaintenanceRecordResponse]:
    return [MaintenanceRecordResponse.from_record(r, now) for r in records]


@router.get("/maintenance/calendar", response_model=CalendarResponse)
def maintenance_calendar(
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
):
    """Records of one month grouped by scheduled day."""
    now = local_now()
    days = aggregation.calendar(db, year, month)
    return CalendarResponse(
        year=year, month=month,
        days={day: _out(records, now) for day, records in days.items()},
    )


@router.get("/maintenance/dashboard", response_model=DashboardCounts)
def maintenance_dashboard(db: Session = Depends(get_db)):
    return aggregation.dashboard_counts(db)


@router.get("/maintenance/statistics", response_model=StatisticsResponse)
def maintenance_statistics(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    service_type: Optional[str] = None,
    technician: Optional[str] = None,
    asset_id: Optional[str] = None,
    status: Optional[EffectiveStatus] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
):
    filters = StatisticsFilter(
        start_date=start_date, end_date=end_date, service_type=service_type,
        technician=technician, asset_id=asset_id, status=status, search=search,
    )
    return aggregation.statistics(db, filters)


@router.get("/maintenance/due", response_model=List[MaintenanceRecordResponse])
def maintenance_due(db: Session = Depends(get_db)):
    """Open records due today or within the due-soon window."""
    now = local_now()
    return _out(queries.due_soon_list(db, now=now), now)


@router.get("/maintenance/overdue", response_model=List[MaintenanceRecordResponse])
def maintenance_overdue(db: Session = Depends(get_db)):
    now = local_now()
    return _out(queries.overdue_list(db, now=now), now)


@router.get("/maintenance/upcoming", response_model=List[MaintenanceRecordResponse])
def maintenance_upcoming(days: int = Query(default=30, ge=0, le=3650), db: Session = Depends(get_db)):
    now = local_now()
    return _out(queries.upcoming(db, days=days, now=now), now)


@router.get("/maintenance/history", response_model=List[MaintenanceRecordResponse])
def maintenance_history(
    asset_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Completed maintenance, newest first."""
    now = local_now()
    return _out(queries.history(db, asset_id=asset_id, start_date=start_date,
                                end_date=end_date, limit=limit), now)


@router.get("/maintenance/asset/{asset_id}", response_model=List[MaintenanceRecordResponse])
def maintenance_for_asset(asset_id: str, limit: int = Query(default=100, ge=1, le=500),
                          db: Session = Depends(get_db)):
    now = local_now()
    return _out(queries.list_by_asset(db, asset_id, limit=limit, now=now), now)


@router.get("/maintenance/asset/{asset_id}/statistics", response_model=StatisticsResponse)
def maintenance_asset_statistics(asset_id: str, db: Session = Depends(get_db)):
    return aggregation.statistics(db, StatisticsFilter(asset_id=asset_id))
