"""
Due check - one scan + dispatch pass.

Called by the in-process timer (core/app.py), by due_check_runner.py and by
POST /api/cron/maintenance-notifications. Safe to run concurrently with
itself: duplicate notifications are prevented by the dispatcher's
conditional flag update, not by any lock here.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from core import events
from core.event_bus import publish
from core.interfaces.notification import MaintenanceNotifier
from modules.maintenance.scanner import scan
from modules.maintenance.schemas import DueCheckResult

log = logging.getLogger("upkeep.sweep")

# Last completed sweep, surfaced by GET /api/cron/status
_last_result: Optional[DueCheckResult] = None


def run_due_check(db: Session, notifier: Optional[MaintenanceNotifier],
                  now: Optional[datetime] = None) -> DueCheckResult:
    """Scan all open records and notify on overdue and due-today ones.

    StoreUnavailable from the scan propagates: the sweep aborts before any
    notification is written and the next run starts over.
    """
    global _last_result

    result = scan(db, now=now, write_cache=True)
    outcome = DueCheckResult(
        checked_at=result.scanned_at,
        overdue_count=len(result.overdue),
        due_today_count=len(result.due_today),
        due_soon_count=len(result.due_soon),
        scan_failures=len(result.failed),
    )

    if notifier is None:
        log.warning("No MaintenanceNotifier registered; due records were not notified")
    elif result.overdue or result.due_today:
        dispatched = notifier.dispatch(
            db,
            result.due_records("overdue"),
            result.due_records("due_today"),
            now=result.scanned_at,
        )
        outcome.notifications_created = dispatched.created
        outcome.notifications_skipped = dispatched.skipped
        outcome.notifications_failed = dispatched.failed

    log.info(
        f"Due check: {outcome.overdue_count} overdue, {outcome.due_today_count} due today, "
        f"{outcome.notifications_created} notified, {outcome.notifications_skipped} already notified, "
        f"{outcome.notifications_failed} failed"
    )
    publish(events.SWEEP_COMPLETED, "maintenance", **outcome.model_dump(mode="json"))
    _last_result = outcome
    return outcome


def last_result() -> Optional[DueCheckResult]:
    return _last_result
