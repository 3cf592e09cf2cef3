"""
core/errors.py - Domain exception taxonomy.

Services raise these; core/app.py maps them to HTTP responses so route
handlers never have to translate them by hand.
"""


class UpkeepError(Exception):
    """Base class for all domain errors."""
    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(UpkeepError):
    """Malformed input on create/update. Nothing was persisted."""
    status_code = 400


class InvalidFrequency(ValidationError):
    """Unrecognized recurrence frequency."""

    def __init__(self, frequency):
        super().__init__(f"Invalid recurrence frequency: {frequency!r}")
        self.frequency = frequency


class InvalidTransition(ValidationError):
    """Requested status change is not allowed from the record's current status."""
    status_code = 409


class NotFound(UpkeepError):
    status_code = 404


class StoreUnavailable(UpkeepError):
    """Transient storage failure. The operation aborted cleanly and is safe to retry."""
    status_code = 503


class DuplicateNotificationPrevented(UpkeepError):
    """Not a failure: the dedup guard was already set for this record."""
    status_code = 200
