"""
Contract tests - InMemoryEventBus.

Verifies publish/subscribe/unsubscribe behaviour of InMemoryEventBus including:
- Subscribers receive events they subscribed to.
- Unsubscribed handlers are not called.
- Wildcard ("*") subscribers receive all events.
- Exceptions in one handler do not block other handlers.
- The singleton get_event_bus() is stable.

These tests run without a server: pytest tests/test_contracts/test_event_bus.py -v
"""

import sys
from pathlib import Path

import pytest

BACKEND_DIR = Path(__file__).resolve().parents[2] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from core import events  # noqa: E402
from core.interfaces.event_bus import Event, EventBus  # noqa: E402
from core.event_bus import InMemoryEventBus, get_event_bus, publish  # noqa: E402


def _make_event(event_type: str, source: str = "test", data: dict = None) -> Event:
    return Event(event_type=event_type, source_module=source, data=data or {})


def _fresh_bus() -> InMemoryEventBus:
    """Return a new, isolated bus for each test."""
    return InMemoryEventBus()


# ---------------------------------------------------------------------------
# ABC contract
# ---------------------------------------------------------------------------

class TestEventBusABC:
    def test_event_bus_is_abstract(self):
        with pytest.raises(TypeError):
            EventBus()  # type: ignore[abstract]

    def test_in_memory_bus_is_concrete(self):
        assert isinstance(_fresh_bus(), EventBus)

    def test_abstract_methods_defined(self):
        assert set(EventBus.__abstractmethods__) == {"publish", "subscribe", "unsubscribe"}

    def test_event_has_timestamp(self):
        assert _make_event(events.NOTIFICATION_CREATED).occurred_at.tzinfo is not None


# ---------------------------------------------------------------------------
# Publish / Subscribe
# ---------------------------------------------------------------------------

class TestPublishSubscribe:
    def test_subscriber_receives_event(self):
        bus = _fresh_bus()
        received = []
        bus.subscribe(events.MAINTENANCE_COMPLETED, received.append)
        evt = _make_event(events.MAINTENANCE_COMPLETED)
        bus.publish(evt)
        assert received == [evt]

    def test_subscriber_does_not_receive_other_event_types(self):
        bus = _fresh_bus()
        received = []
        bus.subscribe(events.MAINTENANCE_COMPLETED, received.append)
        bus.publish(_make_event(events.MAINTENANCE_CANCELLED))
        assert received == []

    def test_same_handler_not_registered_twice(self):
        bus = _fresh_bus()
        calls = []
        handler = calls.append
        bus.subscribe(events.SWEEP_COMPLETED, handler)
        bus.subscribe(events.SWEEP_COMPLETED, handler)
        bus.publish(_make_event(events.SWEEP_COMPLETED))
        assert len(calls) == 1

    def test_event_data_is_passed_through(self):
        bus = _fresh_bus()
        received = []
        bus.subscribe(events.NOTIFICATION_CREATED, received.append)
        data = {"notification_id": 3, "maintenance_id": 9}
        bus.publish(_make_event(events.NOTIFICATION_CREATED, source="notifications", data=data))
        assert received[0].data == data
        assert received[0].source_module == "notifications"


# ---------------------------------------------------------------------------
# Unsubscribe
# ---------------------------------------------------------------------------

class TestUnsubscribe:
    def test_unsubscribed_handler_not_called(self):
        bus = _fresh_bus()
        calls = []
        bus.subscribe(events.MAINTENANCE_SCHEDULED, calls.append)
        bus.unsubscribe(events.MAINTENANCE_SCHEDULED, calls.append)
        bus.publish(_make_event(events.MAINTENANCE_SCHEDULED))
        assert calls == []

    def test_unsubscribe_nonexistent_handler_does_not_raise(self):
        _fresh_bus().unsubscribe(events.MAINTENANCE_SCHEDULED, lambda e: None)

    def test_unsubscribe_from_wrong_event_type_is_noop(self):
        bus = _fresh_bus()
        calls = []
        bus.subscribe(events.MAINTENANCE_COMPLETED, calls.append)
        bus.unsubscribe(events.MAINTENANCE_CANCELLED, calls.append)
        bus.publish(_make_event(events.MAINTENANCE_COMPLETED))
        assert len(calls) == 1


# ---------------------------------------------------------------------------
# Wildcard subscription
# ---------------------------------------------------------------------------

class TestWildcardSubscription:
    def test_wildcard_receives_all_events(self):
        bus = _fresh_bus()
        received = []
        bus.subscribe("*", received.append)
        bus.publish(_make_event(events.MAINTENANCE_COMPLETED))
        bus.publish(_make_event(events.NOTIFICATION_CREATED))
        assert len(received) == 2

    def test_specific_handlers_run_before_wildcards(self):
        bus = _fresh_bus()
        order = []
        bus.subscribe("*", lambda e: order.append("wildcard"))
        bus.subscribe(events.SWEEP_COMPLETED, lambda e: order.append("specific"))
        bus.publish(_make_event(events.SWEEP_COMPLETED))
        assert order == ["specific", "wildcard"]


# ---------------------------------------------------------------------------
# Error isolation
# ---------------------------------------------------------------------------

class TestErrorIsolation:
    def test_exception_in_handler_does_not_prevent_subsequent_handlers(self):
        bus = _fresh_bus()
        second_called = []

        def bad_handler(event):
            raise RuntimeError("handler explodes")

        bus.subscribe(events.NOTIFICATION_CREATED, bad_handler)
        bus.subscribe(events.NOTIFICATION_CREATED, second_called.append)
        bus.publish(_make_event(events.NOTIFICATION_CREATED))
        assert len(second_called) == 1, "Second handler must still be called after first raised"


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

class TestSingleton:
    def test_get_event_bus_is_stable(self):
        assert get_event_bus() is get_event_bus()

    def test_publish_helper_uses_singleton(self):
        received = []
        bus = get_event_bus()
        bus.subscribe("test.ping", received.append)
        try:
            publish("test.ping", "test", value=1)
        finally:
            bus.unsubscribe("test.ping", received.append)
        assert received[0].data == {"value": 1}
