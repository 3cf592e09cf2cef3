"""
Upkeep Test Suite - Shared Fixtures

Every test gets its own SQLite file. The process-wide DATABASE_URL (used by
core.db.engine and the app's lifespan) points at a scratch directory so no
test ever touches ./upkeep.db.

Usage:
    pytest tests/ -v --tb=short
"""

import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

# Must be set before core.config is imported anywhere.
_SCRATCH = tempfile.mkdtemp(prefix="upkeep-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_SCRATCH}/upkeep.db"
os.environ["DUE_CHECK_INTERVAL_HOURS"] = "0"
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""
os.environ["TIMEZONE"] = "UTC"

from sqlalchemy.orm import sessionmaker  # noqa: E402

from core.base import (  # noqa: E402
    Base, MaintenancePriority, MaintenanceStatus, RecurrenceFrequency,
)
from core.db import make_engine  # noqa: E402
from modules.maintenance.models import MaintenanceRecord  # noqa: E402
from modules.notifications.models import Notification  # noqa: E402,F401

# Fixed clock for service-level tests: Sunday 15 March 2026, mid-morning.
NOW = datetime(2026, 3, 15, 10, 30)


@pytest.fixture()
def now():
    return NOW


@pytest.fixture()
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path}/test.db")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def make_record(db):
    """Insert a MaintenanceRecord directly, bypassing service validation."""

    def _make(**overrides) -> MaintenanceRecord:
        fields = {
            "asset_id": "AST-001",
            "asset_name": "Air Compressor",
            "scheduled_date": NOW,
            "manual_status": MaintenanceStatus.SCHEDULED,
            "recurrence_frequency": RecurrenceFrequency.AS_NEEDED,
            "service_type": "Routine Maintenance",
            "priority": MaintenancePriority.MEDIUM,
            "cost": 0,
            "maintenance_due_notification_sent": False,
            "is_overdue": False,
        }
        fields.update(overrides)
        record = MaintenanceRecord(**fields)
        db.add(record)
        db.commit()
        db.refresh(record)
        return record

    return _make


@pytest.fixture()
def client(session_factory):
    """TestClient wired to the per-test database."""
    from fastapi.testclient import TestClient
    from core.app import create_app
    from core.db import get_db

    app = create_app()

    def _get_test_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_test_db
    with TestClient(app) as c:
        yield c
