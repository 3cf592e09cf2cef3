"""
Recurrence arithmetic for maintenance schedules.

compute_next_date() is pure: no I/O, no clock reads. Month-based frequencies
use calendar months and clamp to the last day of the target month, so
Jan 31 + 1 month is Feb 28 (Feb 29 in leap years).
"""

from datetime import date, datetime
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from core.base import MaintenanceStatus, RecurrenceFrequency

DateLike = Union[date, datetime]

_INTERVALS = {
    RecurrenceFrequency.WEEKLY: relativedelta(days=7),
    RecurrenceFrequency.BIWEEKLY: relativedelta(days=14),
    RecurrenceFrequency.MONTHLY: relativedelta(months=1),
    RecurrenceFrequency.QUARTERLY: relativedelta(months=3),
    RecurrenceFrequency.SEMIANNUAL: relativedelta(months=6),
    RecurrenceFrequency.ANNUAL: relativedelta(months=12),
    RecurrenceFrequency.BIENNIAL: relativedelta(months=24),
}


def compute_next_date(frequency, reference_date: DateLike) -> Optional[DateLike]:
    """Return the next due date after reference_date, or None when nothing recurs.

    frequency may be a RecurrenceFrequency, one of its values/aliases, or None
    (treated as as_needed). Raises InvalidFrequency for unknown values.
    """
    freq = RecurrenceFrequency.parse(frequency)
    if freq == RecurrenceFrequency.AS_NEEDED:
        return None
    # relativedelta clamps the day-of-month when the target month is shorter
    return reference_date + _INTERVALS[freq]


def next_maintenance_date_for(record) -> Optional[datetime]:
    """next_maintenance_date derived from a record: completed_date when completed, else scheduled_date."""
    if record.manual_status == MaintenanceStatus.COMPLETED and record.completed_date:
        reference = record.completed_date
    else:
        reference = record.scheduled_date
    if reference is None:
        return None
    return compute_next_date(record.recurrence_frequency, reference)
