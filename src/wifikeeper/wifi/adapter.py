"""
Network command adapter interface for the OS wireless configuration utility.
Allows canned-text doubles to be injected in CI environments.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from wifikeeper.wifi import status_parser
from wifikeeper.wifi.status_parser import Adapter, ConnectionStatus, NetworkProfile

logger = logging.getLogger(__name__)


class ExecutionError(RuntimeError):
    """The network utility could not be launched or exited abnormally."""

    def __init__(
            self,
            message: str,
            command: Optional[Sequence[str]] = None,
            returncode: Optional[int] = None,
            stderr: str = ""):
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode
        self.stderr = stderr


class NetworkCommandAdapter(ABC):
    """
    Abstract base class for network utility implementations.

    Subclasses only supply ``run_command``; every public operation builds a
    deterministic argument list, runs it and hands the raw text to the
    status parser.
    """

    @abstractmethod
    def run_command(self, args: List[str]) -> str:
        """
        Run the utility with the given arguments.

        Args:
            args: Arguments following the utility name,
                e.g. ['show', 'interfaces']

        Returns:
            Raw text output

        Raises:
            ExecutionError: If the utility cannot be invoked or fails
        """

    def get_adapters(self) -> List[Adapter]:
        """Enumerate wireless adapters."""
        output = self.run_command(['show', 'interfaces'])
        adapters = status_parser.parse_adapters(output)
        logger.debug(f"Found {len(adapters)} adapters")
        return adapters

    def scan_networks(self, adapter_name: str = "") -> List[NetworkProfile]:
        """
        Enumerate visible networks, optionally on one adapter.

        Args:
            adapter_name: Adapter to scan on ("" = system default)

        Returns:
            Visible networks in the order the utility reported them
        """
        args = ['show', 'networks']
        if adapter_name:
            args.append(f"interface={adapter_name}")
        networks = status_parser.parse_networks(self.run_command(args))
        logger.debug(f"Scan found {len(networks)} networks")
        return networks

    def get_saved_profiles(self) -> List[str]:
        """Enumerate saved network profile names."""
        return status_parser.parse_profiles(
            self.run_command(['show', 'profiles']))

    def get_connection_status(self, adapter_name: str = "") -> ConnectionStatus:
        """
        Get connection status for an adapter.

        Args:
            adapter_name: Adapter to report on ("" = any adapter)

        Returns:
            ConnectionStatus; an unknown adapter yields a disconnected status
        """
        output = self.run_command(['show', 'interfaces'])
        return status_parser.parse_connection_status(output, adapter_name)

    def connect(self, ssid: str, adapter_name: str = "") -> None:
        """
        Ask the utility to connect using an existing profile.

        Success only means the command was accepted; the link may still
        come up later (or not at all).

        Raises:
            ExecutionError: If the utility rejects the command
        """
        args = ['connect', f"name={ssid}"]
        if adapter_name:
            args.append(f"interface={adapter_name}")
        self.run_command(args)
        logger.info(f"Connect command accepted for {ssid}")

    def is_network_available(self, adapter_name: str, ssid: str) -> bool:
        """Check whether ``ssid`` is among the currently visible networks."""
        return any(
            network.ssid == ssid
            for network in self.scan_networks(adapter_name))
