"""Command line interface for wfanctl.

Only the read side of the daemon is exposed: ``getprop`` (alias ``get``)
prints one, several or all properties of the selected interface.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from .config import BUSES, TRANSPORTS, CtlConfig, load_ctl_config, set_default_config_path
from .getprop import PropertyGetter, classify_invocation, error_line
from .status import (
    ERRORCODE_BADARG,
    ERRORCODE_CANCELLED,
    ERRORCODE_HELP,
    ERRORCODE_NOCOMMAND,
    BadArgumentError,
    WfanctlError,
)
from .transport import HTTPBridgeTransport, Transport

logger = logging.getLogger(__name__)

GETPROP_COMMANDS = {"getprop", "get"}


def _parse_timeout(raw: str) -> int:
    try:
        value = int(raw, 0)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid timeout: {raw}") from exc
    if value <= 0:
        raise argparse.ArgumentTypeError(f"timeout must be positive: {raw}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wfanctl",
        description="Query properties of a Wi-SUN / WPAN interface daemon",
    )
    parser.add_argument(
        "-I",
        "--interface",
        help="Interface to operate on (default: WFANCTL_INTERFACE, config file, or wfan0)",
    )
    parser.add_argument("--config", help="Path to a YAML config file (default: ~/.wfanctl.yaml)")
    parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        help="Reach the daemon over D-Bus or through an HTTP JSON-RPC bridge",
    )
    parser.add_argument("--bus", choices=BUSES, help="D-Bus bus to connect to (default: system)")
    parser.add_argument(
        "--bus-name",
        help="Daemon's well-known bus name; skips interface discovery",
    )
    parser.add_argument("--bridge-url", help="URL of the HTTP JSON-RPC bridge")
    parser.add_argument(
        "--max-rounds",
        type=int,
        help="Give up on connecteddevices after this many rounds (0 = no limit)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    getprop_parser = subparsers.add_parser(
        "getprop",
        aliases=["get"],
        add_help=False,
        usage="%(prog)s [args] <property-name>",
        help="Get a property",
        description="Get the value of one or more properties of the selected interface.",
    )
    getprop_parser.add_argument(
        "-h",
        "--help",
        action="store_true",
        help="Print Help.  For the list of TI Wi-SUN Supported Properties, please see ti_wisun_commands.MD.",
    )
    getprop_parser.add_argument(
        "-t",
        "--timeout",
        type=_parse_timeout,
        metavar="ms",
        help="Set timeout period in milliseconds (must be positive)",
    )
    getprop_parser.add_argument(
        "-a",
        "--all",
        action="store_true",
        help="Get all properties",
    )
    getprop_parser.add_argument(
        "-v",
        "--value-only",
        action="store_true",
        help="Print only the value of the property",
    )
    getprop_parser.add_argument("properties", nargs="*", metavar="property-name")
    getprop_parser.set_defaults(print_command_help=getprop_parser.print_help)

    return parser


def _config_from_args(args: argparse.Namespace) -> CtlConfig:
    return load_ctl_config(
        overrides={
            "interface": args.interface,
            "transport": args.transport,
            "bus": args.bus,
            "bus_name": args.bus_name,
            "bridge_url": args.bridge_url,
            "max_rounds": args.max_rounds,
        },
    )


def open_transport(config: CtlConfig) -> Transport:
    """Open the transport selected by *config*."""

    if config.transport == "http":
        return HTTPBridgeTransport(config.bridge_url, bus_name=config.bus_name)
    try:
        from .dbus_transport import DBusTransport
    except ImportError as exc:
        raise BadArgumentError(
            "The dbus transport needs dasbus and PyGObject (pip install 'wfanctl[dbus]')"
        ) from exc
    return DBusTransport.open(config.bus, bus_name=config.bus_name)


def cmd_getprop(args: argparse.Namespace) -> int:
    prog = args.command
    if args.help:
        args.print_command_help()
        return ERRORCODE_HELP

    config = _config_from_args(args)
    try:
        kind = classify_invocation(args.properties, args.all, config.interface)
    except BadArgumentError as exc:
        sys.stderr.write(error_line(prog, str(exc)))
        return ERRORCODE_BADARG

    transport = open_transport(config)
    try:
        endpoint = transport.resolve_endpoint(config.interface)
        logger.debug("Using %s%s for %s", endpoint.bus_name, endpoint.object_path, config.interface)
        getter = PropertyGetter(
            transport,
            endpoint,
            timeout_ms=args.timeout or config.timeout_ms,
            value_only=args.value_only,
            max_rounds=config.max_rounds,
            device_capacity=config.device_capacity,
            prog=prog,
        )
        return getter.run(args.properties, args.all, kind=kind)
    finally:
        transport.close()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)
    set_default_config_path(args.config)
    try:
        if args.command in GETPROP_COMMANDS:
            return cmd_getprop(args)
        sys.stderr.write(error_line(parser.prog, f"Unknown command: {args.command}"))
        return ERRORCODE_NOCOMMAND  # pragma: no cover - argparse enforces choices
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
        return ERRORCODE_CANCELLED
    except WfanctlError as exc:
        sys.stderr.write(error_line(parser.prog, str(exc)))
        return exc.code


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
