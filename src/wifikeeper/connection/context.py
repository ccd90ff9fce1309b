"""
Shared connector context: target configuration and connection state.

Both values are read and written from the poller thread, manual connect
threads and the settings UI, so every access goes through the accessors
below.
"""

import logging
import queue
import threading
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5


class ConnectionState(Enum):
    """Connection state machine states."""
    DISCONNECTED = "disconnected"
    SEARCHING = "searching"
    CONNECTED = "connected"


@dataclass(frozen=True)
class TargetConfig:
    """Which network to keep, on which adapter, and how often to check."""
    selected_adapter: str = ""    # "" = any adapter
    selected_network: str = ""    # "" = unconfigured
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS

    def __post_init__(self):
        interval = self.poll_interval_seconds
        if isinstance(interval, bool) or not isinstance(interval, int) \
                or interval <= 0:
            object.__setattr__(
                self, 'poll_interval_seconds', DEFAULT_POLL_INTERVAL_SECONDS)

    @property
    def is_configured(self) -> bool:
        return bool(self.selected_network)

    def with_changes(self, **changes) -> "TargetConfig":
        return replace(self, **changes)


class ConnectorContext:
    """
    Owns the TargetConfig and the (state, message) pair.

    Configuration updates are published onto a queue and only applied when
    ``refresh_config`` runs at the start of a tick.
    """

    INITIAL_MESSAGE = "Initializing..."

    def __init__(self, config: Optional[TargetConfig] = None):
        self._config = config or TargetConfig()
        self._config_lock = threading.Lock()
        self._config_updates: "queue.Queue[TargetConfig]" = queue.Queue()

        self._state = ConnectionState.DISCONNECTED
        self._message = self.INITIAL_MESSAGE
        self._state_lock = threading.Lock()

    def publish_config(self, config: TargetConfig) -> None:
        """Queue a new configuration for the next tick."""
        self._config_updates.put(config)
        logger.info(
            f"Configuration published: network={config.selected_network!r}, "
            f"adapter={config.selected_adapter!r}, "
            f"interval={config.poll_interval_seconds}s")

    def refresh_config(self) -> TargetConfig:
        """Apply the latest published configuration, if any, and return it."""
        with self._config_lock:
            latest = None
            while True:
                try:
                    latest = self._config_updates.get_nowait()
                except queue.Empty:
                    break

            if latest is not None:
                self._config = latest
                logger.debug(f"Configuration applied: {latest}")
            return self._config

    def get_config(self) -> TargetConfig:
        with self._config_lock:
            return self._config

    def swap_state(
            self,
            state: ConnectionState,
            message: str) -> ConnectionState:
        """
        Replace the (state, message) pair.

        Returns:
            The state that was current before the swap
        """
        with self._state_lock:
            previous = self._state
            self._state = state
            self._message = message
        return previous

    def snapshot(self) -> Tuple[ConnectionState, str]:
        with self._state_lock:
            return self._state, self._message

    @property
    def state(self) -> ConnectionState:
        return self.snapshot()[0]

    @property
    def message(self) -> str:
        return self.snapshot()[1]
