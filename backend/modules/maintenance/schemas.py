"""
modules/maintenance/schemas.py - Pydantic schemas for the maintenance domain.

Request schemas forbid unknown fields, so derived values (effective_status,
is_overdue, next_maintenance_date, the dedup flag) cannot be written by callers.
"""

from datetime import date, datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field

from core.base import (
    MaintenanceStatus, EffectiveStatus, RecurrenceFrequency, MaintenancePriority,
)


# ============== Requests ==============

class MaintenanceRecordCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    asset_id: str
    asset_name: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    started_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    manual_status: MaintenanceStatus = MaintenanceStatus.SCHEDULED
    # Free text on the way in; "Every 3 Months" and friends are accepted
    recurrence_frequency: Optional[str] = RecurrenceFrequency.AS_NEEDED.value
    service_type: str = "Routine Maintenance"
    technician: Optional[str] = None
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    cost: float = 0
    description: Optional[str] = None
    notes: Optional[str] = None


class MaintenanceRecordUpdate(BaseModel):
    """Descriptive edits. A changed scheduled_date is treated as a reschedule."""
    model_config = ConfigDict(extra="forbid")

    asset_name: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    recurrence_frequency: Optional[str] = None
    service_type: Optional[str] = None
    technician: Optional[str] = None
    priority: Optional[MaintenancePriority] = None
    cost: Optional[float] = None
    description: Optional[str] = None
    notes: Optional[str] = None


class StartRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    technician: Optional[str] = None
    notes: Optional[str] = None


class CompleteRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    completed_by: Optional[str] = None
    completed_date: Optional[datetime] = None
    notes: Optional[str] = None
    cost: Optional[float] = None


class CancelRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    notes: Optional[str] = None


class RescheduleRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scheduled_date: datetime
    notes: Optional[str] = None


# ============== Responses ==============

class MaintenanceRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    asset_id: str
    asset_name: str
    scheduled_date: datetime
    started_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    manual_status: MaintenanceStatus
    recurrence_frequency: RecurrenceFrequency
    next_maintenance_date: Optional[datetime] = None
    service_type: str
    technician: Optional[str] = None
    completed_by: Optional[str] = None
    priority: MaintenancePriority
    cost: float = 0
    description: Optional[str] = None
    notes: Optional[str] = None
    maintenance_due_notification_sent: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Recomputed on every read
    effective_status: Optional[EffectiveStatus] = None
    is_overdue: bool = False
    due_today: bool = False
    due_soon: bool = False

    @classmethod
    def from_record(cls, record, now: Optional[datetime] = None) -> "MaintenanceRecordResponse":
        from modules.maintenance.classifier import classify

        data = cls.model_validate(record)
        c = classify(record, now)
        data.effective_status = c.effective_status
        data.is_overdue = c.is_overdue
        data.due_today = c.due_today
        data.due_soon = c.due_soon
        return data


class CompleteResponse(BaseModel):
    maintenance: MaintenanceRecordResponse
    next_maintenance_date: Optional[datetime] = None
    follow_up: Optional[MaintenanceRecordResponse] = None


class DashboardCounts(BaseModel):
    overdue: int = 0
    due_today: int = 0
    due_soon: int = 0
    in_progress: int = 0
    scheduled: int = 0


class StatisticsFilter(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    service_type: Optional[str] = None
    technician: Optional[str] = None
    asset_id: Optional[str] = None
    status: Optional[EffectiveStatus] = None
    search: Optional[str] = None


class StatisticsResponse(BaseModel):
    total_records: int = 0
    total_cost: float = 0
    average_cost: float = 0
    most_common_service_type: Optional[str] = None
    most_common_technician: Optional[str] = None
    status_counts: Dict[str, int] = Field(default_factory=dict)


class CalendarResponse(BaseModel):
    year: int
    month: int
    days: Dict[str, List[MaintenanceRecordResponse]]


class DueCheckResult(BaseModel):
    """Return value of one sweep. For logging/observability only."""
    checked_at: datetime
    overdue_count: int = 0
    due_today_count: int = 0
    due_soon_count: int = 0
    notifications_created: int = 0
    notifications_skipped: int = 0
    notifications_failed: int = 0
    scan_failures: int = 0
