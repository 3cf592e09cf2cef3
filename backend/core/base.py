"""
core/base.py - Declarative Base and shared enums.

All ORM models import Base from here.
All shared enums (used across multiple domain modules) live here
to avoid circular imports between domain modules.
"""

from enum import Enum
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# SQLAlchemy 2.x defaults to using enum member NAMES as DB values.
# We want member VALUES (lowercase strings) instead.
_ENUM_VALUES = lambda x: [e.value for e in x]


class MaintenanceStatus(str, Enum):
    """User-controlled status of a maintenance record."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({MaintenanceStatus.COMPLETED, MaintenanceStatus.CANCELLED})
ACTIVE_STATUSES = frozenset({MaintenanceStatus.SCHEDULED, MaintenanceStatus.IN_PROGRESS})


class EffectiveStatus(str, Enum):
    """Status after reconciling the manual status with the calendar. Never stored as intent."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    OVERDUE = "overdue"


class RecurrenceFrequency(str, Enum):
    AS_NEEDED = "as_needed"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    BIENNIAL = "biennial"

    @classmethod
    def parse(cls, value) -> 'RecurrenceFrequency':
        """Convert a stored or user-entered label (e.g. "Every 3 Months") to a frequency.

        Raises InvalidFrequency for anything unrecognized.
        """
        from core.errors import InvalidFrequency

        if value is None:
            return cls.AS_NEEDED
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise InvalidFrequency(value)
        aliases = {
            "": cls.AS_NEEDED,
            "none": cls.AS_NEEDED,
            "as needed": cls.AS_NEEDED,
            "bi-weekly": cls.BIWEEKLY,
            "every 2 weeks": cls.BIWEEKLY,
            "every 3 months": cls.QUARTERLY,
            "every 6 months": cls.SEMIANNUAL,
            "semi-annual": cls.SEMIANNUAL,
            "bi-annually": cls.SEMIANNUAL,
            "annually": cls.ANNUAL,
            "yearly": cls.ANNUAL,
            "every 2 years": cls.BIENNIAL,
        }
        normalized = value.strip().lower()
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized.replace(" ", "_"))
        except ValueError:
            raise InvalidFrequency(value) from None


class MaintenancePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationType(str, Enum):
    MAINTENANCE = "maintenance"
    STATUS_CHANGE = "status_change"
    ASSIGNMENT = "assignment"
    ALERT = "alert"
    INFO = "info"


class NotificationPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
