"""Scheduler trigger endpoints - run a due check on demand and report the last run."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from core.config import settings
from core.db import get_db
from core.registry import registry
from modules.maintenance.schemas import DueCheckResult
from modules.maintenance.sweep import last_result, run_due_check

log = logging.getLogger("upkeep.api")

router = APIRouter(tags=["Cron"])


@router.post("/cron/maintenance-notifications", response_model=DueCheckResult)
def trigger_due_check(db: Session = Depends(get_db)):
    """Scan for overdue and due-today maintenance and send notifications."""
    log.info("Due check triggered via API")
    return run_due_check(db, registry.get_optional("MaintenanceNotifier"))


@router.get("/cron/status")
def due_check_status():
    last = last_result()
    return {
        "interval_hours": settings.due_check_interval_hours,
        "due_soon_days": settings.due_soon_days,
        "last_run": last.model_dump(mode="json") if last else None,
    }
