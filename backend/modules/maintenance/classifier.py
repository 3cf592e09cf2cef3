"""
Status classification for maintenance records.

The effective status is derived at read time from manual_status and
scheduled_date and is never written back as user intent. Dates are compared
at calendar-day resolution: time-of-day is dropped, and timezone-aware
values are first converted to the configured zone.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from core.base import EffectiveStatus, MaintenanceStatus
from core.config import settings
from core.errors import ValidationError


@dataclass(frozen=True)
class Classification:
    effective_status: EffectiveStatus
    is_overdue: bool = False
    due_today: bool = False
    due_soon: bool = False

    def as_dict(self) -> dict:
        return {
            "effective_status": self.effective_status.value,
            "is_overdue": self.is_overdue,
            "due_today": self.due_today,
            "due_soon": self.due_soon,
        }


@lru_cache(maxsize=8)
def _zone(name: str) -> ZoneInfo:
    return ZoneInfo(name)


def calendar_day(value, tz_name: Optional[str] = None) -> date:
    """Reduce a date/datetime to its calendar day in the configured zone."""
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(_zone(tz_name or settings.timezone))
        return value.date()
    if isinstance(value, date):
        return value
    raise ValidationError(f"Expected a date, got {type(value).__name__}")


def local_now() -> datetime:
    """Current wall-clock time in the configured zone, naive, matching what the DateTime columns store."""
    return datetime.now(_zone(settings.timezone)).replace(tzinfo=None)


def start_of_day(day: date) -> datetime:
    return datetime(day.year, day.month, day.day)


def classify(record, now: Optional[datetime] = None,
             due_soon_days: Optional[int] = None) -> Classification:
    """Classify one record against `now`.

    Terminal statuses short-circuit: a completed or cancelled record is never
    overdue, due today or due soon regardless of its dates.
    """
    try:
        manual = MaintenanceStatus(record.manual_status)
    except ValueError:
        raise ValidationError(f"Unknown manual status {record.manual_status!r}") from None

    if manual.is_terminal:
        return Classification(effective_status=EffectiveStatus(manual.value))

    if record.scheduled_date is None:
        raise ValidationError(f"Maintenance record {record.id} has no scheduled date")

    window = settings.due_soon_days if due_soon_days is None else due_soon_days
    today = calendar_day(now or local_now())
    scheduled = calendar_day(record.scheduled_date)
    unchanged = EffectiveStatus(manual.value)

    if scheduled < today:
        return Classification(effective_status=EffectiveStatus.OVERDUE, is_overdue=True)
    if scheduled == today:
        # today sits inside its own due-soon window
        return Classification(effective_status=unchanged, due_today=True, due_soon=True)
    if scheduled <= today + timedelta(days=window):
        return Classification(effective_status=unchanged, due_soon=True)
    return Classification(effective_status=unchanged)


def to_storage(value) -> Optional[datetime]:
    """Normalize an incoming timestamp to the naive wall-clock form stored in DateTime columns.

    A bare date becomes midnight. Aware values are converted to the configured
    zone first so the stored calendar day is the one the caller meant.
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return start_of_day(value)
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(_zone(settings.timezone)).replace(tzinfo=None)
