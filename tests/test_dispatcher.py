"""
Notification dispatcher - one outstanding notification per unresolved condition.

Covers the overdue/due-today notification path end to end against SQLite:
priority selection, idempotence across sweeps, racing dispatchers, and
per-record rollback when a notification write fails.

Run: pytest tests/test_dispatcher.py -v
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError

from core.base import MaintenanceStatus, NotificationPriority, NotificationType
from core.interfaces.notification import DueRecord, MaintenanceNotifier
from modules.maintenance.models import MaintenanceRecord
from modules.maintenance.scanner import scan
from modules.maintenance.sweep import run_due_check
from modules.notifications.dispatcher import MaintenanceDispatcher
from modules.notifications.models import Notification


def _notifications_for(db, record_id):
    db.expire_all()
    return db.query(Notification).filter(Notification.maintenance_id == record_id).all()


def _flag(db, record_id):
    db.expire_all()
    return db.get(MaintenanceRecord, record_id).maintenance_due_notification_sent


def _sweep(db, now, dispatcher=None):
    result = scan(db, now=now)
    return (dispatcher or MaintenanceDispatcher()).dispatch(
        db, result.due_records("overdue"), result.due_records("due_today"), now=now,
    )


class TestInterface:
    def test_dispatcher_implements_notifier(self):
        assert isinstance(MaintenanceDispatcher(), MaintenanceNotifier)

    def test_notifier_is_abstract(self):
        with pytest.raises(TypeError):
            MaintenanceNotifier()  # type: ignore[abstract]


class TestOverdueNotification:
    def test_yesterday_creates_one_high_priority_notification(self, db, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14), asset_name="Boiler 2",
                             service_type="Inspection")
        outcome = _sweep(db, now)

        assert outcome.created == 1
        notes = _notifications_for(db, record.id)
        assert len(notes) == 1
        n = notes[0]
        assert n.priority == NotificationPriority.HIGH
        assert n.notification_type == NotificationType.MAINTENANCE
        assert n.recipient_role == "admin"
        assert n.is_read is False
        assert "Boiler 2" in n.message
        assert n.action_url == f"/maintenance/{record.id}"
        assert _flag(db, record.id) is True

    def test_due_today_is_medium_priority(self, db, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 15, 17, 0))
        _sweep(db, now)
        notes = _notifications_for(db, record.id)
        assert len(notes) == 1
        assert notes[0].priority == NotificationPriority.MEDIUM
        assert notes[0].metadata_json["condition"] == "due_today"

    def test_due_soon_only_is_not_notified(self, db, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 18))
        outcome = _sweep(db, now)
        assert outcome.created == 0
        assert _notifications_for(db, record.id) == []

    def test_record_in_both_sets_is_notified_once_as_overdue(self, db, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14))
        item = DueRecord.from_record(record)
        outcome = MaintenanceDispatcher().dispatch(db, [item], [item], now=now)
        assert outcome.created == 1
        notes = _notifications_for(db, record.id)
        assert len(notes) == 1
        assert notes[0].priority == NotificationPriority.HIGH


class TestIdempotence:
    def test_second_sweep_same_day_creates_nothing(self, db, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14))
        first = _sweep(db, now)
        second = _sweep(db, now)

        assert (first.created, first.skipped) == (1, 0)
        assert (second.created, second.skipped) == (0, 1)
        assert len(_notifications_for(db, record.id)) == 1

    def test_replaying_the_same_snapshot_is_skipped(self, db, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14))
        item = DueRecord.from_record(record)
        dispatcher = MaintenanceDispatcher()

        first = dispatcher.dispatch(db, [item], [], now=now)
        second = dispatcher.dispatch(db, [item], [], now=now)

        assert first.created == 1
        assert second.created == 0
        assert second.skipped == 1
        assert len(_notifications_for(db, record.id)) == 1

    def test_racing_dispatchers_create_one_notification(self, session_factory, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14))
        item = DueRecord.from_record(record)

        def _run(_):
            session = session_factory()
            try:
                return MaintenanceDispatcher().dispatch(session, [item], [], now=now)
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=4) as pool:
            outcomes = list(pool.map(_run, range(4)))

        assert sum(o.created for o in outcomes) == 1
        assert sum(o.skipped for o in outcomes) == 3
        check = session_factory()
        try:
            assert len(_notifications_for(check, record.id)) == 1
        finally:
            check.close()

    def test_rescheduled_after_scan_is_left_alone(self, db, session_factory, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14))
        item = DueRecord.from_record(record)

        editor = session_factory()
        try:
            editor.get(MaintenanceRecord, record.id).scheduled_date = datetime(2026, 4, 1)
            editor.commit()
        finally:
            editor.close()

        outcome = MaintenanceDispatcher().dispatch(db, [item], [], now=now)
        assert outcome.skipped == 1
        assert _notifications_for(db, record.id) == []
        assert _flag(db, record.id) is False

    def test_completed_after_scan_is_left_alone(self, db, session_factory, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14))
        item = DueRecord.from_record(record)

        editor = session_factory()
        try:
            stored = editor.get(MaintenanceRecord, record.id)
            stored.manual_status = MaintenanceStatus.COMPLETED
            stored.completed_date = now
            editor.commit()
        finally:
            editor.close()

        outcome = MaintenanceDispatcher().dispatch(db, [item], [], now=now)
        assert outcome.created == 0
        assert _notifications_for(db, record.id) == []


class _FailingDispatcher(MaintenanceDispatcher):
    """Fails the notification write for one record id."""

    def __init__(self, fail_id):
        super().__init__()
        self.fail_id = fail_id

    def build_notification(self, item, is_overdue):
        if item.id == self.fail_id:
            raise SQLAlchemyError("disk I/O error")
        return super().build_notification(item, is_overdue)


class TestWriteFailure:
    def test_failure_rolls_back_only_that_record(self, db, make_record, now):
        broken = make_record(scheduled_date=datetime(2026, 3, 13), asset_id="AST-BAD")
        healthy = make_record(scheduled_date=datetime(2026, 3, 14), asset_id="AST-OK")

        outcome = _sweep(db, now, dispatcher=_FailingDispatcher(broken.id))

        assert outcome.created == 1
        assert outcome.failed == 1
        assert outcome.failed_ids == [broken.id]
        assert _flag(db, broken.id) is False
        assert _flag(db, healthy.id) is True
        assert _notifications_for(db, broken.id) == []
        assert len(_notifications_for(db, healthy.id)) == 1

    def test_failed_record_is_retried_next_sweep(self, db, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14))
        _sweep(db, now, dispatcher=_FailingDispatcher(record.id))
        retry = _sweep(db, now)
        assert retry.created == 1
        assert len(_notifications_for(db, record.id)) == 1


class TestRunDueCheck:
    def test_scenario_overdue_then_repeat_sweep(self, db, make_record, now):
        record = make_record(scheduled_date=datetime(2026, 3, 14))
        first = run_due_check(db, MaintenanceDispatcher(), now=now)
        second = run_due_check(db, MaintenanceDispatcher(), now=now)

        assert first.overdue_count == 1
        assert first.notifications_created == 1
        assert second.overdue_count == 1
        assert second.notifications_created == 0
        assert len(_notifications_for(db, record.id)) == 1

    def test_without_notifier_only_scans(self, db, make_record, now):
        make_record(scheduled_date=datetime(2026, 3, 14))
        outcome = run_due_check(db, None, now=now)
        assert outcome.overdue_count == 1
        assert outcome.notifications_created == 0

    def test_publishes_sweep_completed(self, db, make_record, now):
        from core import events
        from core.event_bus import get_event_bus

        received = []
        bus = get_event_bus()
        bus.subscribe(events.SWEEP_COMPLETED, received.append)
        try:
            make_record(scheduled_date=datetime(2026, 3, 15))
            run_due_check(db, MaintenanceDispatcher(), now=now)
        finally:
            bus.unsubscribe(events.SWEEP_COMPLETED, received.append)

        assert len(received) == 1
        assert received[0].data["due_today_count"] == 1
        assert received[0].data["notifications_created"] == 1
