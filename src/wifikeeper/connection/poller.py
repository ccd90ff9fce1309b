"""
Poller driving the connection state machine on a fixed interval.
"""

import logging
import threading
from typing import List, Optional

from wifikeeper.connection.context import ConnectorContext
from wifikeeper.connection.state_machine import ConnectionStateMachine

logger = logging.getLogger(__name__)


class Poller:
    """
    Runs the state machine once on start, then every poll interval.

    The interval is re-read from the context before each wait, so a new
    configuration applies from the next wait on. Manual triggers run on
    their own threads and do not touch the schedule.
    """

    def __init__(
        self,
        state_machine: ConnectionStateMachine,
        context: Optional[ConnectorContext] = None,
    ):
        """
        Initialize poller.

        Args:
            state_machine: State machine to drive
            context: Context holding the poll interval (default: the
                state machine's)
        """
        self.state_machine = state_machine
        self.context = context or state_machine.context
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._manual_threads: List[threading.Thread] = []
        self._manual_lock = threading.Lock()
        self.tick_count = 0

    def start(self) -> None:
        """
        Start the background schedule.

        A schedule thread left behind by a timed-out ``stop`` must exit
        before a new one is started.

        Raises:
            RuntimeError: If already running, still stopping, or the thread
                cannot be started
        """
        if self.is_running():
            if self._stop_event.is_set():
                raise RuntimeError("Poller is still finishing its last tick")
            raise RuntimeError("Poller is already running")

        # One event per run
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), name="poller",
            daemon=True)
        self._thread.start()
        logger.info("Poller started")

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop scheduling ticks and wait for the schedule thread to exit.

        A tick already in progress is allowed to finish. If it outlasts
        ``timeout`` the thread stays tracked and ``is_running`` keeps
        returning True until it exits.

        Args:
            timeout: Maximum seconds to wait for the thread
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Poller thread still finishing a tick")
                return
        self._thread = None
        logger.info("Poller stopped")

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def trigger(self) -> threading.Thread:
        """
        Run a manual connection attempt out of band.

        Returns:
            The thread running the attempt
        """
        thread = threading.Thread(
            target=self._run_manual, name="manual-connect", daemon=True)
        with self._manual_lock:
            self._manual_threads = [
                t for t in self._manual_threads if t.is_alive()] + [thread]
        thread.start()
        return thread

    def wait_for_manual(self, timeout: Optional[float] = None) -> None:
        """Wait for outstanding manual attempts (used on shutdown)."""
        with self._manual_lock:
            threads = list(self._manual_threads)
        for thread in threads:
            thread.join(timeout)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.is_set():
            self._tick()
            interval = self.context.get_config().poll_interval_seconds
            if stop_event.wait(interval):
                break

    def _tick(self) -> None:
        self.tick_count += 1
        try:
            state, message = self.state_machine.tick()
            logger.debug(f"Tick {self.tick_count}: {state.value} ({message})")
        except Exception as e:
            logger.error(f"Tick {self.tick_count} failed: {e}", exc_info=True)

    def _run_manual(self) -> None:
        try:
            self.state_machine.connect_now()
        except Exception as e:
            logger.error(f"Manual connect failed: {e}", exc_info=True)
