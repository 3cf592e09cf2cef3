"""Notifications routes package - assembles all sub-routers."""

from fastapi import APIRouter
from .inbox import router as inbox_router

router = APIRouter()
router.include_router(inbox_router)
