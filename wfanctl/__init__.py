"""Client-side property queries for Wi-SUN / WPAN interface daemons."""

from .config import ConfigurationError, CtlConfig, load_ctl_config
from .dump import render_value
from .endpoint import Endpoint, EndpointLookupError, endpoint_for_interface
from .getprop import InvocationKind, PropertyGetter, classify_invocation
from .reassembly import (
    CONNECTED_DEVICES_PROPERTY,
    ConnectedDeviceSet,
    ReassemblyCancelledError,
    ReassemblyExhaustedError,
    format_connected_devices,
    reassemble,
    scan_round,
)
from .status import BadArgumentError, PropertyStatusError, WfanctlError, describe_status
from .transport import (
    HTTPBridgeTransport,
    PropertyReply,
    PropertyRequest,
    TransportError,
    decode_reply,
)

__version__ = "0.1.0"

__all__ = [
    "BadArgumentError",
    "CONNECTED_DEVICES_PROPERTY",
    "ConfigurationError",
    "ConnectedDeviceSet",
    "CtlConfig",
    "Endpoint",
    "EndpointLookupError",
    "HTTPBridgeTransport",
    "InvocationKind",
    "PropertyGetter",
    "PropertyReply",
    "PropertyRequest",
    "PropertyStatusError",
    "ReassemblyCancelledError",
    "ReassemblyExhaustedError",
    "TransportError",
    "WfanctlError",
    "classify_invocation",
    "decode_reply",
    "describe_status",
    "endpoint_for_interface",
    "format_connected_devices",
    "load_ctl_config",
    "reassemble",
    "render_value",
    "scan_round",
]
