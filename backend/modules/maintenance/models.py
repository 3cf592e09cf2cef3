"""
modules/maintenance/models.py - ORM models for the maintenance domain.

Owns tables: maintenance_records
"""

from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Boolean,
    Enum as SQLEnum, Text, Index
)
from sqlalchemy.sql import func

from core.base import (
    Base, MaintenanceStatus, EffectiveStatus, RecurrenceFrequency,
    MaintenancePriority, _ENUM_VALUES,
)


class MaintenanceRecord(Base):
    """
    One scheduled or completed upkeep action for one asset.

    manual_status is user intent and only changes through explicit
    transitions. Overdue is never stored as a status: is_overdue and
    cached_status are a scanner-written cache and every read path
    reclassifies from scheduled_date.
    """
    __tablename__ = "maintenance_records"

    id = Column(Integer, primary_key=True)

    # Asset reference (registry is external; name is denormalized for display)
    asset_id = Column(String(100), nullable=False, index=True)
    asset_name = Column(String(200), nullable=False)

    # Scheduling
    scheduled_date = Column(DateTime, nullable=False, index=True)
    started_date = Column(DateTime, nullable=True)
    completed_date = Column(DateTime, nullable=True)

    # Classification inputs
    manual_status = Column(
        SQLEnum(MaintenanceStatus, values_callable=_ENUM_VALUES),
        nullable=False, default=MaintenanceStatus.SCHEDULED,
    )
    recurrence_frequency = Column(
        SQLEnum(RecurrenceFrequency, values_callable=_ENUM_VALUES),
        nullable=False, default=RecurrenceFrequency.AS_NEEDED,
    )
    next_maintenance_date = Column(DateTime, nullable=True)

    # Descriptive
    service_type = Column(String(100), nullable=False, default="Routine Maintenance")
    technician = Column(String(100), nullable=True)
    completed_by = Column(String(100), nullable=True)
    priority = Column(
        SQLEnum(MaintenancePriority, values_callable=_ENUM_VALUES),
        nullable=False, default=MaintenancePriority.MEDIUM,
    )
    cost = Column(Float, nullable=False, default=0)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Dedup guard for due/overdue notifications
    maintenance_due_notification_sent = Column(Boolean, nullable=False, default=False)

    # Scanner cache (optimization only)
    is_overdue = Column(Boolean, nullable=False, default=False, index=True)
    cached_status = Column(SQLEnum(EffectiveStatus, values_callable=_ENUM_VALUES), nullable=True)
    status_checked_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_maintenance_status_scheduled", "manual_status", "scheduled_date"),
        Index("ix_maintenance_asset_scheduled", "asset_id", "scheduled_date"),
    )

    def __repr__(self):
        return f"<MaintenanceRecord {self.id}: {self.asset_id} {self.manual_status.value if self.manual_status else None}>"
