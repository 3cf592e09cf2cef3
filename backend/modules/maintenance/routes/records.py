"""Maintenance records - CRUD and status transitions."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from core.base import EffectiveStatus
from core.db import get_db
from core.registry import registry
from modules.maintenance import queries, service
from modules.maintenance.classifier import local_now
from modules.maintenance.schemas import (
    MaintenanceRecordCreate, MaintenanceRecordUpdate, MaintenanceRecordResponse,
    StartRequest, CompleteRequest, CompleteResponse, CancelRequest, RescheduleRequest,
)

router = APIRouter(tags=["Maintenance"])


@router.get("/maintenance", response_model=List[MaintenanceRecordResponse])
def list_maintenance(
    status_filter: Optional[EffectiveStatus] = Query(default=None, alias="status"),
    asset_id: Optional[str] = None,
    service_type: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    """List records, optionally filtered by effective status, asset or service type."""
    now = local_now()
    records = queries.list_records(
        db, status=status_filter, asset_id=asset_id, service_type=service_type,
        limit=limit, offset=offset, now=now,
    )
    return [MaintenanceRecordResponse.from_record(r, now) for r in records]


@router.post("/maintenance", response_model=MaintenanceRecordResponse, status_code=status.HTTP_201_CREATED)
def create_maintenance(data: MaintenanceRecordCreate, db: Session = Depends(get_db)):
    """Schedule a maintenance record."""
    record = service.create_record(db, data, assets=registry.get_optional("AssetDirectory"))
    return MaintenanceRecordResponse.from_record(record)


@router.get("/maintenance/{record_id}", response_model=MaintenanceRecordResponse)
def get_maintenance(record_id: int, db: Session = Depends(get_db)):
    return MaintenanceRecordResponse.from_record(service.get_record(db, record_id))


@router.patch("/maintenance/{record_id}", response_model=MaintenanceRecordResponse)
def update_maintenance(record_id: int, data: MaintenanceRecordUpdate, db: Session = Depends(get_db)):
    """Edit descriptive fields. Changing scheduled_date re-arms the due notification."""
    record = service.update_record(db, record_id, data)
    return MaintenanceRecordResponse.from_record(record)


@router.delete("/maintenance/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_maintenance(record_id: int, db: Session = Depends(get_db)):
    service.delete_record(db, record_id)


# ============== Transitions ==============

@router.post("/maintenance/{record_id}/start", response_model=MaintenanceRecordResponse)
def start_maintenance(record_id: int, data: Optional[StartRequest] = None, db: Session = Depends(get_db)):
    return MaintenanceRecordResponse.from_record(service.start_record(db, record_id, data))


@router.post("/maintenance/{record_id}/complete", response_model=CompleteResponse)
def complete_maintenance(record_id: int, data: Optional[CompleteRequest] = None, db: Session = Depends(get_db)):
    """Complete a record. Recurring records get their follow-up scheduled automatically."""
    now = local_now()
    record, follow_up = service.complete_record(db, record_id, data, now=now)
    return CompleteResponse(
        maintenance=MaintenanceRecordResponse.from_record(record, now),
        next_maintenance_date=record.next_maintenance_date,
        follow_up=MaintenanceRecordResponse.from_record(follow_up, now) if follow_up else None,
    )


@router.post("/maintenance/{record_id}/cancel", response_model=MaintenanceRecordResponse)
def cancel_maintenance(record_id: int, data: Optional[CancelRequest] = None, db: Session = Depends(get_db)):
    return MaintenanceRecordResponse.from_record(service.cancel_record(db, record_id, data))


@router.post("/maintenance/{record_id}/reschedule", response_model=MaintenanceRecordResponse)
def reschedule_maintenance(record_id: int, data: RescheduleRequest, db: Session = Depends(get_db)):
    record = service.reschedule_record(db, record_id, data.scheduled_date, notes=data.notes)
    return MaintenanceRecordResponse.from_record(record)
