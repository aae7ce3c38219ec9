"""The ``getprop`` command: fetch one, several or all daemon properties."""

from __future__ import annotations

import enum
import logging
import sys
import threading
from typing import Any, Sequence, TextIO

from .dump import render_value
from .endpoint import Endpoint
from .reassembly import (
    CONNECTED_DEVICES_PROPERTY,
    LEGACY_DEVICE_CAPACITY,
    format_connected_devices,
    reassemble,
)
from .status import (
    ERRORCODE_BADARG,
    ERRORCODE_OK,
    BadArgumentError,
    PropertyStatusError,
    WfanctlError,
)
from .transport import PropertyReply, PropertyRequest, Transport, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 10 * 1000


class InvocationKind(enum.Enum):
    ALL = "all"
    SINGLE = "single"
    BATCH = "batch"


def classify_invocation(
    names: Sequence[str], get_all: bool, interface_name: str | None
) -> InvocationKind:
    """Decide how a ``getprop`` command line is executed.

    Raises :class:`BadArgumentError` for ``--all`` combined with property
    names and when no interface is selected.
    """

    if names and get_all:
        raise BadArgumentError(
            "Can't specify a specific property and request all properties at the same time."
        )
    if not interface_name:
        raise BadArgumentError(
            "No WPAN interface set (use the `-I` argument for `wfanctl`, or WFANCTL_INTERFACE)."
        )
    if not names:
        return InvocationKind.ALL
    if len(names) == 1:
        return InvocationKind.SINGLE
    return InvocationKind.BATCH


def error_line(prog: str, message: str) -> str:
    return f"{prog}: error: {message}\n"


def property_names_from_listing(value: Any) -> list[str]:
    """Pull property names out of an enumerate-all reply.

    Entries are either bare names or ``(name, value)`` pairs; the daemon's
    order is kept.
    """

    if isinstance(value, dict):
        return [str(key) for key in value]
    names: list[str] = []
    for entry in value or []:
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, (list, tuple)) and entry and isinstance(entry[0], str):
            names.append(entry[0])
    return names


class PropertyGetter:
    """Issue ``PropGet`` requests against one endpoint and print the results.

    Every public method returns a process status: ``0`` on success, the
    daemon's status on a refused request, or the exit code of the local
    failure. Per-property failures are written to ``err`` and never stop a
    batch.
    """

    def __init__(
        self,
        transport: Transport,
        endpoint: Endpoint,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        value_only: bool = False,
        max_rounds: int | None = None,
        device_capacity: int | None = LEGACY_DEVICE_CAPACITY,
        cancel_event: threading.Event | None = None,
        prog: str = "getprop",
        out: TextIO | None = None,
        err: TextIO | None = None,
    ) -> None:
        self.transport = transport
        self.endpoint = endpoint
        self.timeout_ms = timeout_ms
        self.value_only = value_only
        self.max_rounds = max_rounds
        self.device_capacity = device_capacity
        self.cancel_event = cancel_event
        self.prog = prog
        self.out = out or sys.stdout
        self.err = err or sys.stderr

    def run(
        self,
        names: Sequence[str],
        get_all: bool = False,
        *,
        kind: InvocationKind | None = None,
    ) -> int:
        """Execute a full ``getprop`` command line.

        Pass ``kind`` when the command line was already classified.
        """

        if kind is None:
            try:
                kind = classify_invocation(names, get_all, self.endpoint.interface_name)
            except BadArgumentError as exc:
                self._error(str(exc))
                return ERRORCODE_BADARG

        if kind is InvocationKind.ALL:
            return self.get_all()
        if kind is InvocationKind.SINGLE:
            return self.get(names[0])

        status = ERRORCODE_OK
        for name in names:
            status = self.get(name)
        return status

    def get_all(self) -> int:
        """Enumerate every property, then fetch each one individually."""

        try:
            reply = self._fetch("")
        except WfanctlError as exc:
            return self._report(exc)

        status = ERRORCODE_OK
        for name in property_names_from_listing(reply.value):
            status = self.get(name)
        return status

    def get(self, property_name: str) -> int:
        """Fetch and print a single property."""

        try:
            reply = self._fetch(property_name)
            if self.value_only:
                self.out.write(render_value(reply.value) + "\n")
            elif property_name == CONNECTED_DEVICES_PROPERTY:
                devices = reassemble(
                    reply.value,
                    lambda: self._fetch(property_name).value,
                    max_rounds=self.max_rounds,
                    capacity=self.device_capacity,
                    cancel_event=self.cancel_event,
                )
                self.out.write(format_connected_devices(property_name, devices))
            else:
                self.out.write(f"{property_name} = {render_value(reply.value)}\n")
        except WfanctlError as exc:
            return self._report(exc)
        return ERRORCODE_OK

    def _fetch(self, property_name: str) -> PropertyReply:
        request = PropertyRequest(
            endpoint=self.endpoint,
            property_name=property_name,
            timeout_ms=self.timeout_ms,
        )
        reply = self.transport.send(request)
        if not reply.ok:
            raise PropertyStatusError(property_name, reply.status, reply.error_message)
        return reply

    def _report(self, exc: WfanctlError) -> int:
        if isinstance(exc, PropertyStatusError):
            self.err.write(f"{exc}\n")
        else:
            if isinstance(exc, TransportError):
                logger.debug("Request to %s failed", self.endpoint.bus_name, exc_info=True)
            self._error(str(exc))
        return exc.code

    def _error(self, message: str) -> None:
        self.err.write(error_line(self.prog, message))
