"""
In-memory network command adapter fed with canned utility output.
Used by tests and dry runs in place of the real utility.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from wifikeeper.wifi.adapter import ExecutionError, NetworkCommandAdapter

logger = logging.getLogger(__name__)

CannedOutput = Union[str, ExecutionError]


class CannedTextAdapter(NetworkCommandAdapter):
    """
    Command adapter returning registered text per argument list.

    A command may be given several outputs; each call consumes the next
    one and the last one repeats. An ExecutionError registered as an
    output is raised instead of returned. Unregistered commands return
    empty text.
    """

    def __init__(self, outputs: Optional[Dict[Tuple[str, ...], object]] = None):
        """
        Initialize canned adapter.

        Args:
            outputs: Mapping of argument tuple to text, error, or a list of them
        """
        self._outputs: Dict[Tuple[str, ...], List[CannedOutput]] = {}
        self.calls: List[Tuple[str, ...]] = []
        self._lock = threading.Lock()
        for args, output in (outputs or {}).items():
            self.set_output(args, output)

    def set_output(self, args: Sequence[str], output) -> None:
        """Register the output(s) for a command."""
        if isinstance(output, (str, ExecutionError)):
            queue = [output]
        else:
            queue = list(output)
        self._outputs[tuple(args)] = queue

    def set_failure(self, args: Sequence[str], message: str = "failed") -> None:
        """Make a command raise ExecutionError."""
        self.set_output(args, ExecutionError(message, command=list(args)))

    def set_interfaces(self, *texts: str) -> None:
        """Register ``show interfaces`` output, one entry per call."""
        self.set_output(('show', 'interfaces'), texts)

    def set_networks(self, text: str, adapter_name: str = "") -> None:
        """Register ``show networks`` output for an adapter."""
        self.set_output(self._networks_args(adapter_name), text)

    def set_visible_ssids(self, ssids: Iterable[str], adapter_name: str = "") -> None:
        """Register a network listing made of the given SSIDs."""
        lines = [
            f"SSID {index} : {ssid}\n    Network type            : Infrastructure"
            for index, ssid in enumerate(ssids, start=1)
        ]
        self.set_networks("\n".join(lines) + "\n", adapter_name)

    def calls_to(self, *prefix: str) -> List[Tuple[str, ...]]:
        """Return recorded calls starting with the given arguments."""
        return [call for call in self.calls if call[:len(prefix)] == prefix]

    def run_command(self, args: List[str]) -> str:
        key = tuple(args)
        with self._lock:
            self.calls.append(key)
            queue = self._outputs.get(key)
            if not queue:
                logger.debug(f"No canned output for {key}")
                return ""
            output = queue.pop(0) if len(queue) > 1 else queue[0]

        if isinstance(output, ExecutionError):
            raise output
        return output

    @staticmethod
    def _networks_args(adapter_name: str) -> Tuple[str, ...]:
        if adapter_name:
            return ('show', 'networks', f"interface={adapter_name}")
        return ('show', 'networks')
