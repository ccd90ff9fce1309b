"""
Connection state machine keeping the host on its target wireless network.
Decides per tick whether to idle, connect or declare failure, and publishes
transitions and notifications to the event sink.
"""

import logging
import threading
import time
from typing import Callable, Optional, Tuple

from wifikeeper.connection.context import (
    ConnectionState,
    ConnectorContext,
    TargetConfig,
)
from wifikeeper.connection.events import (
    EventSink,
    Notification,
    NotificationDispatcher,
)
from wifikeeper.wifi.adapter import ExecutionError, NetworkCommandAdapter

logger = logging.getLogger(__name__)

TickResult = Tuple[ConnectionState, str]


class ConnectionStateMachine:
    """
    Drives the Disconnected / Searching / Connected cycle.

    Decision procedure for a tick:
    1. No target network configured: Disconnected
    2. Status query fails: Disconnected
    3. Already connected to the target: Connected
    4. Target not visible (or scan fails): Disconnected
    5. Target visible: Searching, issue connect (failure: Disconnected + notify)
    6. Wait the settle delay, re-query once: Connected + notify, or Disconnected

    A manual connect runs steps 4-6. Scheduled ticks and manual runs may
    overlap; they only serialize on publishing transitions.
    """

    DEFAULT_SETTLE_DELAY_SECONDS = 2.0

    def __init__(
        self,
        context: ConnectorContext,
        command_adapter: NetworkCommandAdapter,
        event_sink: EventSink,
        dispatcher: Optional[NotificationDispatcher] = None,
        settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize state machine.

        Args:
            context: Shared config/state owner
            command_adapter: Network utility adapter
            event_sink: Receives transitions (and notifications by default)
            dispatcher: Notification delivery (default: background delivery
                to event_sink)
            settle_delay_seconds: Wait between connect and verification
            sleep: Sleep function used for the settle delay
        """
        self.context = context
        self.command_adapter = command_adapter
        self.event_sink = event_sink
        self.dispatcher = dispatcher or NotificationDispatcher(event_sink)
        self.settle_delay_seconds = settle_delay_seconds
        self._sleep = sleep
        self._publish_lock = threading.Lock()

    def tick(self) -> TickResult:
        """
        Run one scheduled check.

        Returns:
            The last (state, message) pair this tick published
        """
        config = self.context.refresh_config()
        target = config.selected_network

        if not config.is_configured:
            return self._transition(
                ConnectionState.DISCONNECTED, "No network configured")

        try:
            status = self.command_adapter.get_connection_status(
                config.selected_adapter)
        except ExecutionError as e:
            logger.warning(f"Status query failed: {e}")
            return self._transition(
                ConnectionState.DISCONNECTED, "Error checking status")

        if status.is_connected_to(target):
            return self._transition(
                ConnectionState.CONNECTED, f"Connected to {target}")

        logger.debug(
            f"Not connected to {target} (adapter={status.adapter_name!r}, "
            f"ssid={status.ssid!r})")
        return self._connect_if_available(config)

    def connect_now(self) -> TickResult:
        """
        Run a manual connection attempt, skipping the already-connected check.

        Returns:
            The last (state, message) pair this run published
        """
        config = self.context.refresh_config()

        if not config.is_configured:
            logger.warning("Manual connect requested with no target network")
            self.dispatcher.dispatch(Notification.not_configured())
            return self._transition(
                ConnectionState.DISCONNECTED, "No network configured")

        logger.info(f"Manual connect to {config.selected_network}")
        return self._connect_if_available(config)

    def _connect_if_available(self, config: TargetConfig) -> TickResult:
        target = config.selected_network
        adapter_name = config.selected_adapter

        try:
            available = self.command_adapter.is_network_available(
                adapter_name, target)
        except ExecutionError as e:
            logger.warning(f"Network scan failed: {e}")
            return self._transition(
                ConnectionState.DISCONNECTED, "Error scanning networks")

        if not available:
            return self._transition(
                ConnectionState.DISCONNECTED, f"{target} not in range")

        self._transition(ConnectionState.SEARCHING, f"Connecting to {target}...")

        try:
            self.command_adapter.connect(target, adapter_name)
        except ExecutionError as e:
            logger.warning(f"Connect to {target} rejected: {e}")
            result = self._transition(
                ConnectionState.DISCONNECTED, "Connection failed")
            self.dispatcher.dispatch(Notification.connection_failed(target))
            return result

        # Not a cancellation point: shutdown lets an in-flight verify finish.
        self._sleep(self.settle_delay_seconds)
        return self._verify(config)

    def _verify(self, config: TargetConfig) -> TickResult:
        target = config.selected_network

        try:
            status = self.command_adapter.get_connection_status(
                config.selected_adapter)
        except ExecutionError as e:
            logger.warning(f"Verification status query failed: {e}")
            status = None

        if status is not None and status.is_connected_to(target):
            result = self._transition(
                ConnectionState.CONNECTED, f"Connected to {target}")
            self.dispatcher.dispatch(Notification.connected(target))
            return result

        logger.warning(
            f"Verification failed for {target}: "
            f"{'no status' if status is None else repr(status.ssid)}")
        return self._transition(
            ConnectionState.DISCONNECTED, "Connection verification failed")

    def _transition(self, state: ConnectionState, message: str) -> TickResult:
        """Apply a transition and publish it to the sink."""
        with self._publish_lock:
            previous = self.context.swap_state(state, message)
            if previous != state:
                logger.info(
                    f"Transition {previous.value} -> {state.value}: {message}")

            self.event_sink.on_transition(state, message)

            if previous == ConnectionState.CONNECTED and \
                    state == ConnectionState.DISCONNECTED:
                target = self.context.get_config().selected_network
                if target:
                    self.dispatcher.dispatch(Notification.lost(target))

        return state, message
