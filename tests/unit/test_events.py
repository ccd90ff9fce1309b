"""
Unit tests for notifications, the logging event sink and notification dispatch.
"""

import logging
import threading
from datetime import datetime

from freezegun import freeze_time

from wifikeeper.connection.context import ConnectionState
from wifikeeper.connection.events import (
    EventSink,
    LoggingEventSink,
    Notification,
    NotificationDeliveryError,
    NotificationDispatcher,
    NotificationKind,
)


class FailingSink(EventSink):
    """Sink whose notification delivery always fails."""

    def on_transition(self, state, message):
        pass

    def on_notification(self, notification):
        raise OSError("toast service unavailable")


class SignallingSink(EventSink):
    """Sink recording the delivering thread."""

    def __init__(self):
        self.delivered = threading.Event()
        self.thread = None

    def on_transition(self, state, message):
        pass

    def on_notification(self, notification):
        self.thread = threading.current_thread()
        self.delivered.set()


class TestNotification:
    """Test notification factories."""

    @freeze_time("2024-01-15 12:00:00")
    def test_timestamp(self):
        """Test notifications are stamped at creation."""
        notification = Notification.connected("HomeNet")
        assert notification.created_at == datetime(2024, 1, 15, 12, 0)

    def test_messages(self):
        """Test titles and bodies of the notification kinds."""
        assert Notification.connected("A").title == "Connected"
        assert Notification.connection_failed("A").body == "Could not connect to A"
        assert Notification.lost("A").kind == NotificationKind.LOST
        assert Notification.not_configured().kind == NotificationKind.FAILURE


class TestLoggingEventSink:
    """Test the logging sink's presentation state."""

    def test_initial_presentation(self):
        sink = LoggingEventSink()
        assert sink.tooltip == "WiFi Keeper - Not Connected"
        assert sink.status_line == "Status: Initializing..."

    def test_transition_updates_presentation(self, caplog):
        """Test tooltip and status line follow transitions."""
        sink = LoggingEventSink()
        with caplog.at_level(logging.INFO, logger="wifikeeper"):
            sink.on_transition(ConnectionState.SEARCHING, "Connecting to A...")

        assert sink.tooltip == "WiFi Keeper - Connecting..."
        assert sink.status_line == "Status: Connecting to A..."
        assert "Connecting to A..." in caplog.text

    def test_tooltips(self):
        assert LoggingEventSink.tooltip_for(
            ConnectionState.CONNECTED) == "WiFi Keeper - Connected"
        assert LoggingEventSink.tooltip_for(
            ConnectionState.DISCONNECTED) == "WiFi Keeper - Disconnected"


class TestNotificationDispatcher:
    """Test fire-and-forget notification delivery."""

    def test_deliver_wraps_errors(self):
        """Test synchronous delivery raises NotificationDeliveryError."""
        dispatcher = NotificationDispatcher(FailingSink(), background=False)
        try:
            dispatcher.deliver(Notification.lost("A"))
        except NotificationDeliveryError as e:
            assert "Disconnected" in str(e)
        else:
            raise AssertionError("expected NotificationDeliveryError")

    def test_dispatch_swallows_errors(self, caplog):
        """Test dispatch logs delivery failures instead of raising."""
        dispatcher = NotificationDispatcher(FailingSink(), background=False)
        with caplog.at_level(logging.WARNING, logger="wifikeeper"):
            dispatcher.dispatch(Notification.connected("A"))

        assert "toast service unavailable" in caplog.text

    def test_background_delivery(self):
        """Test background delivery happens on another thread."""
        sink = SignallingSink()
        dispatcher = NotificationDispatcher(sink)

        dispatcher.dispatch(Notification.connected("A"))

        assert sink.delivered.wait(5)
        assert sink.thread is not threading.current_thread()
