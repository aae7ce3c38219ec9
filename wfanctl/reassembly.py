"""Reassembly of the ``connecteddevices`` routing table.

The daemon answers ``connecteddevices`` with a free-form text dump of its
routing table that is not guaranteed to be complete in a single reply. The
client keeps asking for the property again, collecting every line that
looks like a device address, until a reply carries the ``Last IPs`` line.
Records seen in earlier rounds are not repeated in the final listing.
"""

from __future__ import annotations

import io
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from .dump import render_value
from .status import ERRORCODE_CANCELLED, ERRORCODE_INCOMPLETE, WfanctlError

logger = logging.getLogger(__name__)

CONNECTED_DEVICES_PROPERTY = "connecteddevices"
SENTINEL = "Last IPs"
LEGACY_DEVICE_CAPACITY = 1000
LISTING_HEADER = "List of connected devices currently in routing table:"


class ReassemblyExhaustedError(WfanctlError):
    """Raised when the sentinel line never shows up within the round budget."""

    code = ERRORCODE_INCOMPLETE


class ReassemblyCancelledError(WfanctlError):
    """Raised when a caller cancels the fetch between two rounds."""

    code = ERRORCODE_CANCELLED


@dataclass
class ConnectedDeviceSet:
    """Device records in first-seen order, without duplicates.

    Once ``capacity`` records are held further inserts are dropped without
    error; ``None`` removes the cap.
    """

    capacity: int | None = LEGACY_DEVICE_CAPACITY
    more_pending: bool = True
    _records: dict[str, None] = field(default_factory=dict, repr=False)

    def add(self, record: str) -> bool:
        if record in self._records:
            return False
        if self.capacity is not None and len(self._records) >= self.capacity:
            return False
        self._records[record] = None
        return True

    @property
    def records(self) -> list[str]:
        return list(self._records)

    def __contains__(self, record: object) -> bool:
        return record in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


def is_sentinel_line(line: str) -> bool:
    """True for the line that marks the end of the routing table dump."""

    return SENTINEL in line


def is_device_record(line: str) -> bool:
    """True when *line* is a device address (it starts with a decimal digit)."""

    return bool(line) and "0" <= line[0] <= "9"


def scan_round(blob: str, devices: ConnectedDeviceSet) -> bool:
    """Fold one reply's text into *devices*; return whether more rounds are needed.

    Records keep their line terminators, so ``"2020::1\\n"`` and a final
    unterminated ``"2020::1"`` are distinct entries.
    """

    more_pending = True
    for line in io.StringIO(blob):
        if is_sentinel_line(line):
            more_pending = False
        if is_device_record(line):
            devices.add(line)
    devices.more_pending = more_pending
    return more_pending


def reassemble(
    first_value: Any,
    fetch_next: Callable[[], Any],
    *,
    max_rounds: int | None = None,
    capacity: int | None = LEGACY_DEVICE_CAPACITY,
    cancel_event: threading.Event | None = None,
) -> ConnectedDeviceSet:
    """Poll until the routing table is complete and return the collected devices.

    *first_value* is the value from the reply that triggered reassembly and
    counts as round one. *fetch_next* performs another full property request
    and returns its value; any exception it raises ends the fetch.
    """

    devices = ConnectedDeviceSet(capacity=capacity)
    value = first_value
    rounds = 0
    while True:
        rounds += 1
        known = len(devices)
        more_pending = scan_round(render_value(value) + "\n", devices)
        logger.debug(
            "connecteddevices round %d: %d new record(s), %d total, %s",
            rounds,
            len(devices) - known,
            len(devices),
            "more pending" if more_pending else "complete",
        )
        if not more_pending:
            return devices
        if max_rounds and rounds >= max_rounds:
            raise ReassemblyExhaustedError(
                f"{CONNECTED_DEVICES_PROPERTY}: no '{SENTINEL}' line after {rounds} rounds "
                f"({len(devices)} devices collected)"
            )
        if cancel_event is not None and cancel_event.is_set():
            raise ReassemblyCancelledError(
                f"{CONNECTED_DEVICES_PROPERTY}: cancelled after {rounds} rounds"
            )
        value = fetch_next()


def format_connected_devices(property_name: str, devices: ConnectedDeviceSet) -> str:
    """Render the consolidated listing printed once reassembly completes."""

    return (
        f'{property_name} = "\n{LISTING_HEADER}\n\n'
        + "".join(devices)
        + f'\nNumber of connected devices: {len(devices)}\n"\n'
    )
