"""D-Bus transport and interface discovery, built on dasbus."""

from __future__ import annotations

import logging
from typing import Any

from dasbus.connection import SessionMessageBus, SystemMessageBus
from dasbus.error import DBusError
from dasbus.typing import get_native, get_variant
from gi.repository import Gio, GLib

from .endpoint import (
    WPAN_TUNNEL_CMD_GET_INTERFACES,
    WPAN_TUNNEL_DBUS_INTERFACE,
    WPAN_TUNNEL_DBUS_PATH,
    Endpoint,
    EndpointLookupError,
    endpoint_for_interface,
    interfaces_from_listing,
    is_daemon_bus_name,
)
from .transport import PropertyReply, PropertyRequest, TransportError, decode_reply

logger = logging.getLogger(__name__)

DISCOVERY_TIMEOUT_MS = 5 * 1000


def open_message_bus(bus: str = "system"):
    return SessionMessageBus() if bus == "session" else SystemMessageBus()


class DBusTransport:
    """Send ``PropGet`` calls straight to the daemon over the message bus.

    ``bus_name`` pins the daemon's well-known name; without it the bus is
    searched for a daemon that lists the interface.
    """

    def __init__(self, message_bus: Any, *, bus_name: str | None = None) -> None:
        self._bus = message_bus
        self._bus_name = bus_name

    @classmethod
    def open(cls, bus: str = "system", *, bus_name: str | None = None) -> "DBusTransport":
        message_bus = open_message_bus(bus)
        try:
            message_bus.connection
        except GLib.Error as exc:
            raise TransportError(f"Unable to connect to the {bus} bus: {exc.message}") from exc
        return cls(message_bus, bus_name=bus_name)

    def resolve_endpoint(self, interface_name: str) -> Endpoint:
        if self._bus_name:
            return endpoint_for_interface(interface_name, self._bus_name)

        try:
            names = self._bus.proxy.ListNames()
        except DBusError as exc:
            raise EndpointLookupError(f"Unable to list bus names: {exc}") from exc
        except GLib.Error as exc:
            raise EndpointLookupError(f"Unable to list bus names: {exc.message}") from exc

        for name in names:
            if not is_daemon_bus_name(name):
                continue
            try:
                listing = self._call(
                    name,
                    WPAN_TUNNEL_DBUS_PATH,
                    WPAN_TUNNEL_CMD_GET_INTERFACES,
                    None,
                    DISCOVERY_TIMEOUT_MS,
                )
            except TransportError as exc:
                logger.debug("Skipping %s during interface lookup: %s", name, exc)
                continue
            interfaces = interfaces_from_listing(listing[0] if listing else [])
            logger.debug("%s serves interfaces %s", name, interfaces)
            if interface_name in interfaces:
                return endpoint_for_interface(interface_name, name)

        raise EndpointLookupError(
            f"Unable to find a {WPAN_TUNNEL_DBUS_INTERFACE} daemon for interface '{interface_name}'"
        )

    def send(self, request: PropertyRequest) -> PropertyReply:
        endpoint = request.endpoint
        logger.debug(
            "D-Bus call %s.%s(%r) on %s%s",
            endpoint.dbus_interface,
            request.method,
            request.property_name,
            endpoint.bus_name,
            endpoint.object_path,
        )
        try:
            arguments = self._call(
                endpoint.bus_name,
                endpoint.object_path,
                request.method,
                get_variant("(s)", (request.property_name,)),
                request.timeout_ms,
                dbus_interface=endpoint.dbus_interface,
            )
        except TransportError as exc:
            logger.debug("D-Bus call %s(%r) failed: %s", request.method, request.property_name, exc)
            raise
        return decode_reply(arguments)

    def _call(
        self,
        bus_name: str,
        object_path: str,
        method: str,
        parameters: Any,
        timeout_ms: int,
        *,
        dbus_interface: str = WPAN_TUNNEL_DBUS_INTERFACE,
    ) -> list[Any]:
        try:
            reply = self._bus.connection.call_sync(
                bus_name,
                object_path,
                dbus_interface,
                method,
                parameters,
                None,
                Gio.DBusCallFlags.NONE,
                timeout_ms,
                None,
            )
        except GLib.Error as exc:
            raise TransportError(exc.message) from exc
        return list(get_native(reply)) if reply is not None else []

    def close(self) -> None:
        self._bus.disconnect()
