"""Unit tests for the event bus."""

from unittest import TestCase

from petcare.event_bus import EventBus, EventType


class TestEventBus(TestCase):
    """Tests for EventBus."""

    def setUp(self):
        self.bus = EventBus()

    def test_publish_reaches_subscribers(self):
        """Test publishing to subscribers."""
        received = []
        self.bus.subscribe(EventType.ALERT_RAISED, received.append)

        assert self.bus.publish(EventType.ALERT_RAISED, "payload") == 1
        assert self.bus.publish(EventType.WORK_STARTED, "other") == 0
        assert received == ["payload"]

    def test_failing_handler_does_not_break_others(self):
        """Test that a failing handler does not break others."""
        received = []

        def broken(_data):
            raise RuntimeError("boom")

        self.bus.subscribe(EventType.WORK_COMPLETED, broken)
        self.bus.subscribe(EventType.WORK_COMPLETED, received.append)

        with self.assertLogs("petcare.event_bus", level="ERROR"):
            delivered = self.bus.publish(EventType.WORK_COMPLETED, 42)
        assert delivered == 1
        assert received == [42]

    def test_unsubscribe(self):
        """Test unsubscribing a handler."""
        received = []
        self.bus.subscribe(EventType.PROACTIVE_REQUEST, received.append)
        self.bus.unsubscribe(EventType.PROACTIVE_REQUEST, received.append)

        self.bus.publish(EventType.PROACTIVE_REQUEST, "ignored")
        assert received == []
        assert self.bus.subscriber_count(EventType.PROACTIVE_REQUEST) == 0

    def test_subscribe_all_receives_type(self):
        """Test that catch-all handlers receive the event type."""
        seen = []
        self.bus.subscribe_all(lambda event_type, data: seen.append((event_type, data)))

        self.bus.publish(EventType.WORK_CANCELLED, "task")
        self.bus.publish(EventType.PERSISTENCE_FAILED, "disk")
        assert seen == [(EventType.WORK_CANCELLED, "task"), (EventType.PERSISTENCE_FAILED, "disk")]

    def test_clear(self):
        """Test clearing all handlers."""
        self.bus.subscribe(EventType.ALERT_RAISED, print)
        self.bus.clear()
        assert self.bus.subscriber_count(EventType.ALERT_RAISED) == 0
