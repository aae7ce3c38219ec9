"""Addressing for the per-interface daemon objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from .status import ERRORCODE_UNKNOWN, WfanctlError

WPAN_TUNNEL_DBUS_INTERFACE = "com.nestlabs.WPANTunnelDriver"
WPAN_TUNNEL_DBUS_PATH = "/com/nestlabs/WPANTunnelDriver"

WPAN_TUNNEL_CMD_GET_INTERFACES = "GetInterfaces"
WPANTUND_IF_CMD_PROP_GET = "PropGet"


class EndpointLookupError(WfanctlError):
    """Raised when no daemon on the bus serves the requested interface."""

    code = ERRORCODE_UNKNOWN


@dataclass(frozen=True)
class Endpoint:
    """Bus address of the daemon object that manages one network interface."""

    interface_name: str
    bus_name: str
    object_path: str
    dbus_interface: str = WPAN_TUNNEL_DBUS_INTERFACE


def endpoint_for_interface(interface_name: str, bus_name: str) -> Endpoint:
    """Return the endpoint for *interface_name* served by *bus_name*."""

    return Endpoint(
        interface_name=interface_name,
        bus_name=bus_name,
        object_path=f"{WPAN_TUNNEL_DBUS_PATH}/{interface_name}",
    )


def is_daemon_bus_name(name: str) -> bool:
    return name.startswith(WPAN_TUNNEL_DBUS_INTERFACE)


def interfaces_from_listing(listing: Iterable[Any]) -> list[str]:
    """Normalise a ``GetInterfaces`` reply into a list of interface names.

    Daemons answer either with plain names or with ``[name, bus_name]``
    pairs; only the interface name is kept.
    """

    names: list[str] = []
    for entry in listing or []:
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, (list, tuple)) and entry and isinstance(entry[0], str):
            names.append(entry[0])
    return names
