"""
netsh-based network command adapter.
Shells out to ``netsh wlan`` for adapter, scan, profile and connect operations.
"""

import logging
import shutil
import subprocess
from typing import List

from wifikeeper.wifi.adapter import ExecutionError, NetworkCommandAdapter

logger = logging.getLogger(__name__)


class NetshAdapter(NetworkCommandAdapter):
    """Network command adapter implementation using ``netsh wlan``."""

    DEFAULT_TIMEOUT_SECONDS = 15

    def __init__(
            self,
            executable: str = "netsh",
            timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        """
        Initialize netsh adapter.

        Args:
            executable: Utility to invoke (default: netsh on PATH)
            timeout_seconds: Upper bound for each invocation
        """
        self.executable = executable
        self.timeout_seconds = timeout_seconds
        if shutil.which(executable) is None:
            logger.warning(
                f"{executable} not found; network commands will fail")

    def run_command(self, args: List[str]) -> str:
        """
        Run ``netsh wlan <args>`` and return its standard output.

        Raises:
            ExecutionError: On launch failure, timeout or non-zero exit
        """
        command = [self.executable, 'wlan', *args]
        logger.debug(f"Running {' '.join(command)}")

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds
            )
        except subprocess.TimeoutExpired as e:
            logger.warning(
                f"{' '.join(command)} timed out after {self.timeout_seconds}s")
            raise ExecutionError(
                f"Command timed out after {self.timeout_seconds}s",
                command=command) from e
        except OSError as e:
            logger.error(f"Failed to launch {command[0]}: {e}")
            raise ExecutionError(
                f"Failed to launch {command[0]}: {e}",
                command=command) from e

        if result.returncode != 0:
            stderr = (result.stderr or result.stdout or "").strip()
            logger.warning(
                f"{' '.join(command)} exited with {result.returncode}: {stderr}")
            raise ExecutionError(
                f"Command exited with status {result.returncode}",
                command=command,
                returncode=result.returncode,
                stderr=stderr)

        return result.stdout or ""
