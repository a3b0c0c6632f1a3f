"""
Notification Tests
==================

Tests for the ordered callback lists used by StreamClient.
"""

import logging

from presence_stream.stream.notifications import Notification


class TestNotification:
    """Tests for Notification."""

    def test_emit_in_subscription_order(self):
        calls = []
        notification = Notification("message")
        notification.subscribe(lambda value: calls.append(("first", value)))
        notification.subscribe(lambda value: calls.append(("second", value)))

        notification.emit(1)

        assert calls == [("first", 1), ("second", 1)]

    def test_subscribe_as_decorator(self):
        notification = Notification("message")

        @notification.subscribe
        def handler(value):
            pass

        assert handler in notification
        assert len(notification) == 1

    def test_unsubscribe(self):
        calls = []
        notification = Notification("message")
        callback = notification.subscribe(calls.append)

        assert notification.unsubscribe(callback) is True
        assert notification.unsubscribe(callback) is False

        notification.emit(1)
        assert calls == []

    def test_failing_callback_does_not_stop_others(self, caplog):
        calls = []
        notification = Notification("message")

        def broken(value):
            raise RuntimeError("boom")

        notification.subscribe(broken)
        notification.subscribe(calls.append)

        with caplog.at_level(logging.ERROR):
            notification.emit(1)

        assert calls == [1]
        assert "Error in message callback" in caplog.text

    def test_callback_may_unsubscribe_itself(self):
        calls = []
        notification = Notification("message")

        def once(value):
            calls.append(value)
            notification.unsubscribe(once)

        notification.subscribe(once)
        notification.emit(1)
        notification.emit(2)

        assert calls == [1]

    def test_clear(self):
        notification = Notification("message")
        notification.subscribe(print)
        notification.clear()

        assert len(notification) == 0
