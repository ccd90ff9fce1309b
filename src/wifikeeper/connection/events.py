"""
Event sink interface for connection transitions and user notifications.
Lets the tray shell, the settings UI or a test double observe the state machine.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from wifikeeper.connection.context import ConnectionState

logger = logging.getLogger(__name__)


class NotificationKind(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    LOST = "lost"


class NotificationDeliveryError(RuntimeError):
    """A notification could not be delivered to the user."""


@dataclass(frozen=True)
class Notification:
    """A notification-worthy moment (connect success/failure, link lost)."""
    kind: NotificationKind
    title: str
    body: str
    created_at: datetime = field(default_factory=lambda: datetime.now())

    @classmethod
    def connected(cls, ssid: str) -> "Notification":
        return cls(NotificationKind.SUCCESS, "Connected",
                   f"Successfully connected to {ssid}")

    @classmethod
    def connection_failed(cls, ssid: str) -> "Notification":
        return cls(NotificationKind.FAILURE, "Connection Failed",
                   f"Could not connect to {ssid}")

    @classmethod
    def not_configured(cls) -> "Notification":
        return cls(NotificationKind.FAILURE, "Error",
                   "No target network configured. Open Settings to configure.")

    @classmethod
    def lost(cls, ssid: str) -> "Notification":
        return cls(NotificationKind.LOST, "Disconnected",
                   f"Lost connection to {ssid}")


class EventSink(ABC):
    """Abstract consumer of state machine events."""

    @abstractmethod
    def on_transition(self, state: ConnectionState, message: str) -> None:
        """
        Called on every transition, in the order transitions were applied.

        Args:
            state: New connection state
            message: Human-readable status message
        """

    @abstractmethod
    def on_notification(self, notification: Notification) -> None:
        """
        Deliver a user notification.

        Raises:
            Exception: Any failure is treated as a delivery error
        """


class LoggingEventSink(EventSink):
    """
    Event sink that writes transitions and notifications to the log.

    Also keeps the tray presentation (tooltip and status line) for the
    latest transition, for shells that only poll.
    """

    APP_TITLE = "WiFi Keeper"

    TOOLTIPS = {
        ConnectionState.CONNECTED: "Connected",
        ConnectionState.SEARCHING: "Connecting...",
        ConnectionState.DISCONNECTED: "Disconnected",
    }

    def __init__(self):
        self.tooltip = f"{self.APP_TITLE} - Not Connected"
        self.status_line = "Status: Initializing..."

    @classmethod
    def tooltip_for(cls, state: ConnectionState) -> str:
        return f"{cls.APP_TITLE} - {cls.TOOLTIPS[state]}"

    def on_transition(self, state: ConnectionState, message: str) -> None:
        self.tooltip = self.tooltip_for(state)
        self.status_line = f"Status: {message}"
        logger.info(f"State {state.value}: {message}")

    def on_notification(self, notification: Notification) -> None:
        if notification.kind == NotificationKind.SUCCESS:
            logger.info(f"{notification.title}: {notification.body}")
        else:
            logger.warning(f"{notification.title}: {notification.body}")


class NotificationDispatcher:
    """
    Hands notifications to an event sink without blocking the caller.

    Delivery runs on a daemon thread by default; failures are logged and
    never reach the state machine.
    """

    def __init__(self, sink: EventSink, background: bool = True):
        """
        Args:
            sink: Event sink receiving notifications
            background: Deliver on a separate thread (False for tests)
        """
        self.sink = sink
        self.background = background

    def dispatch(self, notification: Notification) -> None:
        """Deliver a notification, in the background unless disabled."""
        if not self.background:
            self._deliver_quietly(notification)
            return

        thread = threading.Thread(
            target=self._deliver_quietly,
            args=(notification,),
            name="notification",
            daemon=True)
        thread.start()

    def deliver(self, notification: Notification) -> None:
        """
        Deliver a notification on the calling thread.

        Raises:
            NotificationDeliveryError: If the sink fails
        """
        try:
            self.sink.on_notification(notification)
        except Exception as e:
            raise NotificationDeliveryError(
                f"Failed to deliver {notification.title!r}: {e}") from e

    def _deliver_quietly(self, notification: Notification) -> None:
        try:
            self.deliver(notification)
        except NotificationDeliveryError as e:
            logger.warning(str(e))
