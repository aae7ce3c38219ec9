"""Request/reply plumbing for property queries.

A transport sends one :class:`PropertyRequest` and hands back the raw reply
arguments; :func:`decode_reply` turns those into a :class:`PropertyReply`.
Two transports exist: the D-Bus one in :mod:`wfanctl.dbus_transport` talks to
the daemon directly, while :class:`HTTPBridgeTransport` below reaches it
through a JSON-RPC bridge (for hosts where the daemon's bus is not local).
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

import requests
from requests import RequestException, Response

from .endpoint import (
    WPAN_TUNNEL_DBUS_INTERFACE,
    WPANTUND_IF_CMD_PROP_GET,
    Endpoint,
    endpoint_for_interface,
)
from .status import ERRORCODE_TIMEOUT, WfanctlError

logger = logging.getLogger(__name__)


class TransportError(WfanctlError):
    """Raised when a request gets no reply in time or cannot be sent."""

    code = ERRORCODE_TIMEOUT


@dataclass(frozen=True)
class PropertyRequest:
    """One ``PropGet`` call. An empty property name asks for every property."""

    endpoint: Endpoint
    property_name: str
    timeout_ms: int

    @property
    def method(self) -> str:
        return WPANTUND_IF_CMD_PROP_GET

    @property
    def wants_all(self) -> bool:
        return not self.property_name


@dataclass
class PropertyReply:
    status: int
    error_message: str | None = None
    value: Any = None

    @property
    def ok(self) -> bool:
        return self.status == 0


def decode_reply(arguments: Sequence[Any]) -> PropertyReply:
    """Split a reply's argument list into status and value.

    The first argument is always the integer status. On success the second
    argument, if any, is the value; on failure it may be an explanatory
    string.
    """

    if not arguments:
        raise TransportError("Malformed reply: missing status")
    try:
        status = int(arguments[0])
    except (TypeError, ValueError) as exc:
        raise TransportError(f"Malformed reply: bad status {arguments[0]!r}") from exc

    rest = list(arguments[1:])
    if status:
        message = rest[0] if rest and isinstance(rest[0], str) else None
        return PropertyReply(status=status, error_message=message or None)
    return PropertyReply(status=0, value=rest[0] if rest else None)


class Transport(Protocol):
    def resolve_endpoint(self, interface_name: str) -> Endpoint:
        ...

    def send(self, request: PropertyRequest) -> PropertyReply:
        ...

    def close(self) -> None:
        ...


class HTTPBridgeTransport:
    """JSON-RPC client for a bridge that forwards ``PropGet`` to the daemon.

    The bridge takes ``[interface, property]`` as params and answers with the
    daemon's reply arguments as a list, ``[status, value]`` on success or
    ``[status, message]`` on failure.
    """

    def __init__(self, bridge_url: str, *, bus_name: str | None = None) -> None:
        self._url = bridge_url
        self._bus_name = bus_name or WPAN_TUNNEL_DBUS_INTERFACE
        self._session = requests.Session()

    def resolve_endpoint(self, interface_name: str) -> Endpoint:
        return endpoint_for_interface(interface_name, self._bus_name)

    def send(self, request: PropertyRequest) -> PropertyReply:
        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": request.method,
            "params": [request.endpoint.interface_name, request.property_name],
        }
        logger.debug("Bridge call %s %r via %s", request.method, request.property_name, self._url)
        try:
            response = self._session.post(
                self._url,
                data=json.dumps(payload),
                headers={"content-type": "application/json"},
                timeout=request.timeout_ms / 1000.0,
            )
        except requests.Timeout as exc:
            raise TransportError(
                f"Did not receive a reply within {request.timeout_ms} ms"
            ) from exc
        except RequestException as exc:
            logger.error(
                "Bridge connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise TransportError(f"Bridge connection failed: {exc}") from exc

        return decode_reply(self._result_arguments(response))

    def _result_arguments(self, response: Response) -> list[Any]:
        if not response.ok:
            logger.error("Bridge HTTP error %s from %s", response.status_code, response.url)
            raise TransportError(f"Bridge returned HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            logger.debug("Bridge JSON parse error: %s", response.text, exc_info=True)
            raise TransportError("Bridge returned malformed JSON") from exc
        if not isinstance(body, dict):
            raise TransportError("Bridge returned malformed JSON")
        if body.get("error"):
            error = body["error"]
            if isinstance(error, dict):
                raise TransportError(
                    f"Bridge error {error.get('code', -1)}: {error.get('message', 'unknown')}"
                )
            raise TransportError(f"Bridge error: {error}")
        result = body.get("result")
        if not isinstance(result, list):
            raise TransportError("Bridge reply is missing the result list")
        return result

    def close(self) -> None:
        self._session.close()
