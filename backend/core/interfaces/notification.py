# core/interfaces/notification.py
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence


@dataclass(frozen=True)
class DueRecord:
    """The fields of a maintenance record the notifier needs, frozen at scan time.

    scheduled_date is the value the record was classified with; the dispatcher's
    flag update is conditional on it still matching.
    """
    id: int
    asset_id: str
    asset_name: str
    service_type: str
    scheduled_date: datetime
    technician: Optional[str] = None

    @classmethod
    def from_record(cls, record) -> "DueRecord":
        if isinstance(record, cls):
            return record
        return cls(
            id=record.id,
            asset_id=record.asset_id,
            asset_name=record.asset_name,
            service_type=record.service_type,
            scheduled_date=record.scheduled_date,
            technician=record.technician,
        )


@dataclass
class DispatchResult:
    created: int = 0
    skipped: int = 0
    failed: int = 0
    failed_ids: list = field(default_factory=list)


class MaintenanceNotifier(ABC):
    """What the maintenance sweep calls to turn due records into notifications."""

    @abstractmethod
    def dispatch(self, db, overdue: Sequence, due_today: Sequence,
                 now: Optional[datetime] = None) -> DispatchResult:
        ...
