"""Maintenance routes package - assembles all sub-routers.

views is included first so fixed paths like /maintenance/calendar win over
/maintenance/{record_id}.
"""

from fastapi import APIRouter
from .views import router as views_router
from .records import router as records_router
from .cron import router as cron_router

router = APIRouter()
router.include_router(views_router)
router.include_router(records_router)
router.include_router(cron_router)
