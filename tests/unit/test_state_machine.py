"""
Unit tests for the connection state machine.
Tests the per-tick decision procedure, manual connect, and transition notifications.
"""

import pytest

from wifikeeper.connection.context import (
    ConnectionState,
    ConnectorContext,
    TargetConfig,
)
from wifikeeper.connection.events import (
    EventSink,
    NotificationDispatcher,
    NotificationKind,
)
from wifikeeper.connection.state_machine import ConnectionStateMachine
from wifikeeper.wifi.canned_adapter import CannedTextAdapter

CONNECTED_HOME = "Name : Wi-Fi\nState : connected\nSSID 1 : HomeNet\n"
CONNECTED_OFFICE = "Name : Wi-Fi\nState : connected\nSSID 1 : OfficeNet\n"
DISCONNECTED = "Name : Wi-Fi\nState : disconnected\n"


class RecordingSink(EventSink):
    """Event sink collecting everything it receives."""

    def __init__(self):
        self.transitions = []
        self.notifications = []

    def on_transition(self, state, message):
        self.transitions.append((state, message))

    def on_notification(self, notification):
        self.notifications.append(notification)

    def kinds(self):
        return [n.kind for n in self.notifications]


@pytest.fixture
def network():
    return CannedTextAdapter()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def sleeps():
    return []


def make_machine(network, sink, sleeps, config):
    context = ConnectorContext(config)
    return ConnectionStateMachine(
        context,
        network,
        sink,
        dispatcher=NotificationDispatcher(sink, background=False),
        settle_delay_seconds=2.0,
        sleep=sleeps.append)


class TestInitialState:
    """Test the machine before any tick."""

    def test_initial_state(self, network, sink, sleeps):
        """Test the machine starts Disconnected and initializing."""
        machine = make_machine(network, sink, sleeps, TargetConfig())
        assert machine.context.snapshot() == (
            ConnectionState.DISCONNECTED, "Initializing...")


class TestTick:
    """Test the scheduled decision procedure."""

    def test_no_network_configured(self, network, sink, sleeps):
        """Test an empty target forces Disconnected without querying."""
        machine = make_machine(network, sink, sleeps, TargetConfig())

        result = machine.tick()

        assert result == (ConnectionState.DISCONNECTED, "No network configured")
        assert network.calls == []

    @pytest.mark.parametrize("interfaces", [CONNECTED_HOME, DISCONNECTED, ""])
    def test_no_network_configured_ignores_status(
            self, network, sink, sleeps, interfaces):
        """Test an empty target is Disconnected whatever the live status."""
        network.set_interfaces(interfaces)
        network.set_visible_ssids(["HomeNet"])
        machine = make_machine(network, sink, sleeps, TargetConfig())

        state, _ = machine.tick()

        assert state == ConnectionState.DISCONNECTED

    def test_already_connected(self, network, sink, sleeps):
        """Test a live link to the target is reported as Connected."""
        network.set_interfaces(CONNECTED_HOME)
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        result = machine.tick()

        assert result == (ConnectionState.CONNECTED, "Connected to HomeNet")
        assert network.calls_to('connect') == []
        assert network.calls_to('show', 'networks') == []
        assert sink.notifications == []

    def test_status_error(self, network, sink, sleeps):
        """Test a failing status query gives a generic message."""
        network.set_failure(('show', 'interfaces'))
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        assert machine.tick() == (
            ConnectionState.DISCONNECTED, "Error checking status")

    def test_target_not_in_range(self, network, sink, sleeps):
        """Test a target missing from the scan is not connected to."""
        network.set_interfaces(CONNECTED_HOME)
        network.set_visible_ssids(["HomeNet"])
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="OfficeNet"))

        result = machine.tick()

        assert result == (ConnectionState.DISCONNECTED, "OfficeNet not in range")
        assert network.calls_to('connect') == []

    def test_scan_error(self, network, sink, sleeps):
        """Test a failing scan gives a generic message."""
        network.set_interfaces(DISCONNECTED)
        network.set_failure(('show', 'networks'))
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        assert machine.tick() == (
            ConnectionState.DISCONNECTED, "Error scanning networks")

    def test_scan_uses_selected_adapter(self, network, sink, sleeps):
        """Test the scan and connect are issued on the selected adapter."""
        network.set_interfaces(DISCONNECTED, CONNECTED_OFFICE)
        network.set_visible_ssids(["OfficeNet"], adapter_name="Wi-Fi")
        machine = make_machine(network, sink, sleeps, TargetConfig(
            selected_adapter="Wi-Fi", selected_network="OfficeNet"))

        state, _ = machine.tick()

        assert state == ConnectionState.CONNECTED
        assert network.calls_to('connect') == [
            ('connect', 'name=OfficeNet', 'interface=Wi-Fi')]

    def test_connect_and_verify_success(self, network, sink, sleeps):
        """Test Searching then Connected with a success notification."""
        network.set_interfaces(DISCONNECTED, CONNECTED_OFFICE)
        network.set_visible_ssids(["HomeNet", "OfficeNet"])
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="OfficeNet"))

        result = machine.tick()

        assert result == (ConnectionState.CONNECTED, "Connected to OfficeNet")
        assert sink.transitions == [
            (ConnectionState.SEARCHING, "Connecting to OfficeNet..."),
            (ConnectionState.CONNECTED, "Connected to OfficeNet"),
        ]
        assert sleeps == [2.0]
        assert sink.kinds() == [NotificationKind.SUCCESS]
        assert sink.notifications[0].body == "Successfully connected to OfficeNet"

    def test_verification_wrong_ssid(self, network, sink, sleeps):
        """Test verification finding another SSID fails without notifying."""
        network.set_interfaces(DISCONNECTED, CONNECTED_HOME)
        network.set_visible_ssids(["OfficeNet"])
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="OfficeNet"))

        result = machine.tick()

        assert result == (
            ConnectionState.DISCONNECTED, "Connection verification failed")
        assert sink.notifications == []
        assert network.calls_to('connect') == [('connect', 'name=OfficeNet')]

    def test_verification_status_error(self, network, sink, sleeps):
        """Test a failing verification query counts as verification failure."""
        from wifikeeper.wifi.adapter import ExecutionError

        network.set_output(('show', 'interfaces'), [
            DISCONNECTED, ExecutionError("gone")])
        network.set_visible_ssids(["OfficeNet"])
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="OfficeNet"))

        assert machine.tick() == (
            ConnectionState.DISCONNECTED, "Connection verification failed")

    def test_connect_rejected(self, network, sink, sleeps):
        """Test a rejected connect fails with a failure notification."""
        network.set_interfaces(DISCONNECTED)
        network.set_visible_ssids(["OfficeNet"])
        network.set_failure(('connect', 'name=OfficeNet'))
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="OfficeNet"))

        result = machine.tick()

        assert result == (ConnectionState.DISCONNECTED, "Connection failed")
        assert sink.kinds() == [NotificationKind.FAILURE]
        assert sink.notifications[0].title == "Connection Failed"
        assert sleeps == []

    def test_config_published_applies_on_next_tick(self, network, sink, sleeps):
        """Test published config is consumed at the start of a tick."""
        network.set_interfaces(CONNECTED_HOME)
        machine = make_machine(network, sink, sleeps, TargetConfig())

        machine.context.publish_config(TargetConfig(selected_network="HomeNet"))
        assert machine.context.get_config().selected_network == ""

        assert machine.tick() == (
            ConnectionState.CONNECTED, "Connected to HomeNet")


class TestLostConnection:
    """Test the Connected -> Disconnected notification."""

    def test_lost_notification(self, network, sink, sleeps):
        """Test dropping from Connected notifies once."""
        network.set_interfaces(CONNECTED_HOME, DISCONNECTED)
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        machine.tick()
        result = machine.tick()

        assert result == (ConnectionState.DISCONNECTED, "HomeNet not in range")
        assert sink.kinds() == [NotificationKind.LOST]
        assert sink.notifications[0].body == "Lost connection to HomeNet"

    def test_no_lost_notification_when_unconfigured(self, network, sink, sleeps):
        """Test clearing the target does not report a lost connection."""
        network.set_interfaces(CONNECTED_HOME)
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        machine.tick()
        machine.context.publish_config(TargetConfig())
        machine.tick()

        assert machine.context.state == ConnectionState.DISCONNECTED
        assert sink.notifications == []

    def test_no_lost_notification_from_disconnected(self, network, sink, sleeps):
        """Test Disconnected -> Disconnected does not notify."""
        network.set_interfaces(DISCONNECTED)
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        machine.tick()
        machine.tick()

        assert sink.notifications == []

    def test_no_lost_notification_via_searching(self, network, sink, sleeps):
        """Test Connected -> Searching -> Disconnected does not report a loss."""
        network.set_interfaces(CONNECTED_HOME, DISCONNECTED)
        network.set_visible_ssids(["HomeNet"])
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        machine.tick()
        machine.connect_now()

        assert NotificationKind.LOST not in sink.kinds()


class TestConnectNow:
    """Test the manual connection path."""

    def test_unconfigured(self, network, sink, sleeps):
        """Test manual connect with no target notifies and disconnects."""
        machine = make_machine(network, sink, sleeps, TargetConfig())

        result = machine.connect_now()

        assert result == (ConnectionState.DISCONNECTED, "No network configured")
        assert sink.notifications[0].title == "Error"
        assert sink.notifications[0].kind == NotificationKind.FAILURE
        assert network.calls == []

    def test_skips_already_connected_check(self, network, sink, sleeps):
        """Test manual connect goes straight to scan and connect."""
        network.set_interfaces(CONNECTED_HOME)
        network.set_visible_ssids(["HomeNet"])
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        result = machine.connect_now()

        assert result == (ConnectionState.CONNECTED, "Connected to HomeNet")
        assert network.calls[0] == ('show', 'networks')
        assert network.calls_to('connect') == [('connect', 'name=HomeNet')]

    def test_not_in_range(self, network, sink, sleeps):
        """Test manual connect checks availability first."""
        network.set_visible_ssids([])
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        assert machine.connect_now() == (
            ConnectionState.DISCONNECTED, "HomeNet not in range")


class TestConnectedInvariant:
    """Test Connected is only reported for a matching live status."""

    @pytest.mark.parametrize("interfaces", [
        CONNECTED_OFFICE,
        DISCONNECTED,
        "Name : Wi-Fi\nState : connected\n",
        "Name : Wi-Fi\nState : disconnected\nSSID : HomeNet\n",
    ])
    def test_never_connected_without_matching_status(
            self, network, sink, sleeps, interfaces):
        """Test mismatching statuses never yield Connected."""
        network.set_interfaces(interfaces)
        network.set_visible_ssids(["HomeNet"])
        machine = make_machine(
            network, sink, sleeps, TargetConfig(selected_network="HomeNet"))

        state, _ = machine.tick()

        assert state != ConnectionState.CONNECTED
