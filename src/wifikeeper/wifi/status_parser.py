"""
Parser for the free-text output of the wireless configuration utility.

Output is read line by line as ``<Label><whitespace>: <value>`` pairs.
Parsing is best effort: unrecognised or malformed lines are skipped and
never raise, so a truncated or foreign-locale output degrades to partial
or empty results.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)

# Label of an SSID field: the bare token, optionally followed by an index
# ("SSID : Foo" in interface output, "SSID 1 : Foo" in network listings).
_SSID_LABEL = re.compile(r'^SSID(\s+\d+)?$')

_PROFILE_MARKERS = ('All User Profile', 'Current User Profile')


@dataclass(frozen=True)
class Adapter:
    """A wireless interface as reported by one enumeration call."""
    name: str
    state: str = ""


@dataclass(frozen=True)
class NetworkProfile:
    """A saved or visible network, identified by SSID only."""
    ssid: str


@dataclass(frozen=True)
class ConnectionStatus:
    """Live state of one adapter at the moment of the query."""
    connected: bool = False
    ssid: str = ""
    adapter_name: str = ""
    signal_strength: str = ""

    def is_connected_to(self, ssid: str) -> bool:
        """Check whether this status shows a live link to ``ssid``."""
        return self.connected and bool(ssid) and self.ssid == ssid


def _lines(text: Optional[str]) -> Iterator[str]:
    for raw in (text or "").splitlines():
        line = raw.strip()
        if line:
            yield line


def _field_value(line: str) -> Optional[str]:
    """Return the trimmed value after the first colon, or None."""
    parts = line.split(':', 1)
    if len(parts) != 2:
        return None
    return parts[1].strip()


def _is_ssid_field(line: str) -> bool:
    label = line.split(':', 1)[0].strip()
    return bool(_SSID_LABEL.match(label)) and ':' in line


def parse_adapters(text: str) -> List[Adapter]:
    """
    Parse adapter enumeration output.

    A ``Name`` line starts a new record and flushes the previous one; a
    following ``State`` line sets the record's state. Records without a
    name are dropped.

    Args:
        text: Raw ``show interfaces`` output

    Returns:
        Adapters in the order they were reported
    """
    adapters = []
    name = ""
    state = ""

    for line in _lines(text):
        if line.startswith('Name'):
            value = _field_value(line)
            if value is None:
                continue
            if name:
                adapters.append(Adapter(name, state))
            name, state = value, ""
        elif line.startswith('State'):
            value = _field_value(line)
            if value is not None:
                state = value

    if name:
        adapters.append(Adapter(name, state))

    return adapters


def parse_networks(text: str) -> List[NetworkProfile]:
    """
    Parse visible network listing output.

    Args:
        text: Raw ``show networks`` output

    Returns:
        One NetworkProfile per non-empty SSID field, in listing order
    """
    networks = []
    for line in _lines(text):
        if not _is_ssid_field(line):
            continue
        ssid = _field_value(line)
        if ssid:
            networks.append(NetworkProfile(ssid))
    return networks


def parse_profiles(text: str) -> List[str]:
    """
    Parse saved profile listing output.

    Args:
        text: Raw ``show profiles`` output

    Returns:
        Profile names in listing order
    """
    profiles = []
    for line in _lines(text):
        if not any(marker in line for marker in _PROFILE_MARKERS):
            continue
        name = _field_value(line)
        if name:
            profiles.append(name)
    return profiles


def parse_connection_status(
        text: str,
        adapter_name: str = "") -> ConnectionStatus:
    """
    Parse interface output into the connection status of one adapter.

    Each ``Name`` line opens a line group; the group is in target when no
    filter was given or its name equals ``adapter_name``. Only in-target
    groups contribute fields. The first ``State`` seen for an adapter name
    wins. With a filter, parsing stops as soon as the in-target record has
    its state, SSID and signal; a field reported after that point is not
    read. Without a filter each field keeps the value from the last adapter
    that printed it, so on a multi-adapter host the SSID may belong to a
    different adapter than the state. Pass ``adapter_name`` to avoid that.

    Args:
        text: Raw ``show interfaces`` output
        adapter_name: Adapter to report on ("" = any adapter)

    Returns:
        ConnectionStatus; disconnected and empty when the adapter is absent
    """
    connected = False
    ssid = ""
    signal = ""
    status_adapter = ""
    current_adapter = ""
    in_target = False
    states_seen = set()

    for line in _lines(text):
        if line.startswith('Name'):
            value = _field_value(line)
            if value is not None:
                current_adapter = value
                in_target = not adapter_name or current_adapter == adapter_name

        if not in_target:
            continue

        if line.startswith('State'):
            value = _field_value(line)
            if value is not None and current_adapter not in states_seen:
                states_seen.add(current_adapter)
                connected = value == 'connected'
                status_adapter = current_adapter
        elif _is_ssid_field(line):
            ssid = _field_value(line) or ""
        elif line.startswith('Signal'):
            value = _field_value(line)
            if value is not None:
                signal = value

        if adapter_name and status_adapter and ssid and signal:
            break

    if connected and not ssid:
        logger.debug(
            f"Adapter {status_adapter!r} reports connected without an SSID")
        connected = False

    return ConnectionStatus(connected, ssid, status_adapter, signal)
