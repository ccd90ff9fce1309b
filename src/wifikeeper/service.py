"""
WiFi keeper service entry point.
Wires config, command adapter, state machine and poller, and runs until interrupted.
"""

import argparse
import sys
import time
from typing import List, Optional

from wifikeeper.config import load_config, resolve_config_path
from wifikeeper.connection.context import ConnectorContext
from wifikeeper.connection.events import EventSink, LoggingEventSink
from wifikeeper.connection.poller import Poller
from wifikeeper.connection.state_machine import ConnectionStateMachine
from wifikeeper.logging import (
    configure_logging,
    get_logger,
    parse_component_levels,
)
from wifikeeper.wifi.adapter import ExecutionError, NetworkCommandAdapter
from wifikeeper.wifi.netsh_adapter import NetshAdapter

logger = get_logger("service")


class KeeperService:
    """Owns one context, state machine and poller for a command adapter."""

    def __init__(
            self,
            command_adapter: NetworkCommandAdapter,
            config_path: Optional[str] = None,
            event_sink: Optional[EventSink] = None,
            settle_delay_seconds: float = ConnectionStateMachine.DEFAULT_SETTLE_DELAY_SECONDS):
        """
        Initialize service.

        Args:
            command_adapter: Network utility adapter
            config_path: Configuration file (default: standard location)
            event_sink: Transition/notification consumer (default: log only)
            settle_delay_seconds: Wait between connect and verification
        """
        self.command_adapter = command_adapter
        self.config_path = resolve_config_path(config_path)
        self.context = ConnectorContext(load_config(self.config_path))
        self.event_sink = event_sink or LoggingEventSink()
        self.state_machine = ConnectionStateMachine(
            self.context,
            command_adapter,
            self.event_sink,
            settle_delay_seconds=settle_delay_seconds)
        self.poller = Poller(self.state_machine, self.context)

        config = self.context.get_config()
        logger.info(
            f"Loaded config from {self.config_path}: "
            f"network={config.selected_network!r}, "
            f"adapter={config.selected_adapter or 'any'}, "
            f"interval={config.poll_interval_seconds}s")

    def run_once(self):
        """Run a single tick and return its (state, message)."""
        return self.state_machine.tick()

    def start(self) -> None:
        self.poller.start()

    def stop(self, timeout: float = 10.0) -> None:
        self.poller.stop(timeout)
        self.poller.wait_for_manual(timeout)


def _print_listing(command_adapter: NetworkCommandAdapter, args) -> int:
    try:
        if args.list_adapters:
            for adapter in command_adapter.get_adapters():
                print(f"{adapter.name}\t{adapter.state}")
        if args.list_networks:
            for network in command_adapter.scan_networks(args.adapter):
                print(network.ssid)
        if args.list_profiles:
            for profile in command_adapter.get_saved_profiles():
                print(profile)
    except ExecutionError as e:
        logger.error(f"Network command failed: {e}")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wifikeeper",
        description="Keep this host connected to one wireless network.")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file")
    parser.add_argument("--log-component", action="append", default=[],
                        metavar="COMPONENT=LEVEL",
                        help="Per-component level, e.g. wifi=DEBUG (repeatable)")
    parser.add_argument("--timeout", type=float,
                        default=NetshAdapter.DEFAULT_TIMEOUT_SECONDS,
                        help="Timeout for each network command (seconds)")
    parser.add_argument("--list-adapters", action="store_true")
    parser.add_argument("--list-networks", action="store_true")
    parser.add_argument("--list-profiles", action="store_true")
    parser.add_argument("--adapter", default="",
                        help="Adapter for --list-networks")
    parser.add_argument("--once", action="store_true",
                        help="Run a single check and exit")
    parser.add_argument("--settings-port", type=int,
                        help="Serve the settings UI on this local port")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Service entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(
            log_level=args.log_level,
            log_file=args.log_file,
            component_levels=parse_component_levels(args.log_component))
    except ValueError as e:
        parser.error(str(e))

    command_adapter = NetshAdapter(timeout_seconds=args.timeout)

    if args.list_adapters or args.list_networks or args.list_profiles:
        return _print_listing(command_adapter, args)

    service = None
    try:
        service = KeeperService(command_adapter, args.config)

        if args.once:
            state, message = service.run_once()
            print(f"{state.value}: {message}")
            return 0

        try:
            service.start()
        except RuntimeError as e:
            logger.critical(f"Could not start poller: {e}")
            return 1

        if args.settings_port:
            from wifikeeper.settings.app import create_app

            app = create_app(
                service.context,
                command_adapter,
                poller=service.poller,
                config_path=service.config_path)
            logger.info(
                f"Settings UI at http://127.0.0.1:{args.settings_port}/")
            app.run(host='127.0.0.1', port=args.settings_port, debug=False)
        else:
            while service.poller.is_running():
                time.sleep(1)

        return 0

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1
    finally:
        if service is not None:
            service.stop()


if __name__ == "__main__":
    sys.exit(main())
