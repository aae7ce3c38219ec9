import io
import os
import threading

import pytest

from stubs import StubTransport, failed, ok, routing_table
from wfanctl.endpoint import endpoint_for_interface
from wfanctl.getprop import (
    InvocationKind,
    PropertyGetter,
    classify_invocation,
    error_line,
    property_names_from_listing,
)
from wfanctl.status import (
    ERRORCODE_BADARG,
    ERRORCODE_CANCELLED,
    ERRORCODE_INCOMPLETE,
    ERRORCODE_TIMEOUT,
    BadArgumentError,
)
from wfanctl.transport import TransportError

ENDPOINT = endpoint_for_interface("wfan0", "com.nestlabs.WPANTunnelDriver.wfan0")


def _getter(transport: StubTransport, endpoint=ENDPOINT, **kwargs) -> PropertyGetter:
    return PropertyGetter(transport, endpoint, out=io.StringIO(), err=io.StringIO(), **kwargs)


@pytest.mark.parametrize(
    "names, get_all, expected",
    [
        ([], False, InvocationKind.ALL),
        ([], True, InvocationKind.ALL),
        (["NCP:State"], False, InvocationKind.SINGLE),
        (["NCP:State", "Network:Name"], False, InvocationKind.BATCH),
    ],
)
def test_classify_invocation(names, get_all, expected) -> None:
    assert classify_invocation(names, get_all, "wfan0") is expected


def test_classify_rejects_all_with_names() -> None:
    with pytest.raises(BadArgumentError, match="at the same time"):
        classify_invocation(["NCP:State"], True, "wfan0")


def test_classify_requires_interface() -> None:
    with pytest.raises(BadArgumentError, match="No WPAN interface set"):
        classify_invocation(["NCP:State"], False, "")


def test_property_names_from_listing_accepts_names_and_pairs() -> None:
    assert property_names_from_listing(["a", "b"]) == ["a", "b"]
    assert property_names_from_listing([("a", 1), ["b", "x"]]) == ["a", "b"]
    assert property_names_from_listing(None) == []


def test_single_property_prints_name_and_value() -> None:
    transport = StubTransport({"NCP:State": [ok("associated")]})
    getter = _getter(transport, timeout_ms=2500)

    assert getter.run(["NCP:State"]) == 0
    assert getter.out.getvalue() == 'NCP:State = "associated"\n'
    assert getter.err.getvalue() == ""
    request = transport.requests[0]
    assert request.timeout_ms == 2500
    assert request.method == "PropGet"
    assert request.endpoint == ENDPOINT


def test_value_only_suppresses_name() -> None:
    transport = StubTransport({"Network:PANID": [ok(0xABCD)]})
    getter = _getter(transport, value_only=True)

    assert getter.run(["Network:PANID"]) == 0
    assert getter.out.getvalue() == f"{0xABCD}\n"


def test_batch_fetches_every_name_in_order_and_returns_last_status() -> None:
    transport = StubTransport({"foo": [ok("one")], "bar": [ok(2)]})
    getter = _getter(transport)

    assert getter.run(["foo", "bar"]) == 0
    assert getter.out.getvalue() == 'foo = "one"\nbar = 2\n'
    assert transport.requested_names == ["foo", "bar"]


def test_batch_keeps_going_after_failure_and_last_status_wins() -> None:
    transport = StubTransport({"foo": [failed(7, "Property not found")], "bar": [ok("x")]})
    getter = _getter(transport)

    assert getter.run(["foo", "bar"]) == 0
    assert getter.err.getvalue() == "foo: Property not found (7)\n"
    assert getter.out.getvalue() == 'bar = "x"\n'

    transport = StubTransport({"foo": [ok("x")], "bar": [failed(7)]})
    getter = _getter(transport)

    assert getter.run(["foo", "bar"]) == 7


def test_batch_continues_after_timeout() -> None:
    transport = StubTransport(
        {"foo": [TransportError("Timeout was reached")], "bar": [ok(1)], "baz": [ok(2)]}
    )
    getter = _getter(transport)

    assert getter.run(["foo", "bar", "baz"]) == 0
    assert transport.requested_names == ["foo", "bar", "baz"]
    assert "getprop: error: Timeout was reached" in getter.err.getvalue()


def test_all_properties_fetches_each_listed_name() -> None:
    transport = StubTransport(
        {"": [ok(["NCP:State", "Network:Name"])], "NCP:State": [ok("offline")], "Network:Name": [ok("ti")]}
    )
    getter = _getter(transport)

    assert getter.run([]) == 0
    assert transport.requested_names == ["", "NCP:State", "Network:Name"]
    assert getter.out.getvalue() == 'NCP:State = "offline"\nNetwork:Name = "ti"\n'


def test_all_flag_matches_no_arguments() -> None:
    transport = StubTransport({"": [ok(["a"])], "a": [ok(True)]})
    getter = _getter(transport)

    assert getter.run([], get_all=True) == 0
    assert getter.out.getvalue() == "a = true\n"


def test_all_properties_status_is_last_seen() -> None:
    transport = StubTransport({"": [ok(["a", "b"])], "a": [failed(3)], "b": [failed(9)]})
    getter = _getter(transport)

    assert getter.run([]) == 9


def test_all_with_names_is_rejected_before_any_request() -> None:
    transport = StubTransport()
    getter = _getter(transport)

    assert getter.run(["foo"], get_all=True) == ERRORCODE_BADARG
    assert transport.requests == []
    assert "Can't specify a specific property" in getter.err.getvalue()


def test_missing_interface_is_rejected_before_any_request() -> None:
    transport = StubTransport()
    getter = _getter(transport, endpoint=endpoint_for_interface("", "x"))

    assert getter.run(["foo"]) == ERRORCODE_BADARG
    assert transport.requests == []


def test_timeout_reports_transport_text() -> None:
    transport = StubTransport({"foo": [TransportError("Timeout was reached")]})
    getter = _getter(transport)

    assert getter.run(["foo"]) == ERRORCODE_TIMEOUT
    assert getter.err.getvalue() == "getprop: error: Timeout was reached\n"
    assert len(transport.requests) == 1


def test_failure_without_message_uses_generic_text() -> None:
    transport = StubTransport({"foo": [failed(3, "")]})
    getter = _getter(transport)

    assert getter.run(["foo"]) == 3
    assert getter.err.getvalue() == "foo: Get failed (3)\n"


def test_negative_status_uses_platform_error_string() -> None:
    transport = StubTransport({"foo": [failed(-19)]})
    getter = _getter(transport)

    assert getter.run(["foo"]) == -19
    assert getter.err.getvalue() == f"foo: {os.strerror(19)} (-19)\n"


def test_success_with_empty_error_string_writes_nothing_to_err() -> None:
    transport = StubTransport({"foo": [ok("")]})
    getter = _getter(transport)

    assert getter.run(["foo"]) == 0
    assert getter.err.getvalue() == ""


def test_connected_devices_are_reassembled_over_rounds() -> None:
    transport = StubTransport(
        {
            "connecteddevices": [
                ok(routing_table("2020::a", "2020::b")),
                ok(routing_table("2020::b", "2020::c", complete=True)),
            ]
        }
    )
    getter = _getter(transport)

    assert getter.run(["connecteddevices"]) == 0
    assert transport.requested_names == ["connecteddevices", "connecteddevices"]
    assert getter.out.getvalue() == (
        'connecteddevices = "\n'
        "List of connected devices currently in routing table:\n\n"
        "2020::a\n2020::b\n2020::c\n"
        "\nNumber of connected devices: 3\n"
        '"\n'
    )


def test_connected_devices_fetch_starts_clean_each_time() -> None:
    transport = StubTransport(
        {
            "connecteddevices": [
                ok(routing_table("2020::a", complete=True)),
                ok(routing_table("2020::z", complete=True)),
            ]
        }
    )
    getter = _getter(transport)

    getter.run(["connecteddevices"])
    getter.out = io.StringIO()
    getter.run(["connecteddevices"])

    assert "2020::a" not in getter.out.getvalue()
    assert "Number of connected devices: 1" in getter.out.getvalue()


def test_connected_devices_name_match_is_case_sensitive() -> None:
    transport = StubTransport({"ConnectedDevices": [ok(routing_table("2020::a"))]})
    getter = _getter(transport)

    assert getter.run(["ConnectedDevices"]) == 0
    assert len(transport.requests) == 1
    assert getter.out.getvalue().startswith('ConnectedDevices = "Connected devices')


def test_connected_devices_value_only_skips_reassembly() -> None:
    transport = StubTransport({"connecteddevices": [ok(routing_table("2020::a"))]})
    getter = _getter(transport, value_only=True)

    assert getter.run(["connecteddevices"]) == 0
    assert len(transport.requests) == 1
    assert getter.out.getvalue().startswith('"Connected devices in routing table:\n2020::a\n')


def test_connected_devices_round_failure_aborts_listing() -> None:
    transport = StubTransport(
        {
            "connecteddevices": [
                ok(routing_table("2020::a")),
                TransportError("Timeout was reached"),
            ]
        }
    )
    getter = _getter(transport)

    assert getter.run(["connecteddevices"]) == ERRORCODE_TIMEOUT
    assert getter.out.getvalue() == ""


def test_connected_devices_round_budget() -> None:
    transport = StubTransport({"connecteddevices": [ok(routing_table("2020::a"))]})
    getter = _getter(transport, max_rounds=4)

    assert getter.run(["connecteddevices"]) == ERRORCODE_INCOMPLETE
    assert len(transport.requests) == 4
    assert "no 'Last IPs' line after 4 rounds" in getter.err.getvalue()


def test_connected_devices_cancelled_after_current_round() -> None:
    cancel = threading.Event()
    cancel.set()
    transport = StubTransport({"connecteddevices": [ok(routing_table("2020::a"))]})
    getter = _getter(transport, cancel_event=cancel)

    assert getter.run(["connecteddevices"]) == ERRORCODE_CANCELLED
    assert len(transport.requests) == 1


def test_connected_devices_honours_capacity() -> None:
    transport = StubTransport(
        {"connecteddevices": [ok(routing_table("1::1", "2::2", "3::3", complete=True))]}
    )
    getter = _getter(transport, device_capacity=2)

    assert getter.run(["connecteddevices"]) == 0
    assert "Number of connected devices: 2" in getter.out.getvalue()
    assert "3::3" not in getter.out.getvalue()


def test_run_uses_given_kind_without_reclassifying() -> None:
    transport = StubTransport({"foo": [ok(1)], "bar": [ok(2)]})
    getter = _getter(transport, endpoint=endpoint_for_interface("", "x.y"))

    assert getter.run(["foo", "bar"], kind=InvocationKind.BATCH) == 0

    assert transport.requested_names == ["foo", "bar"]
    assert getter.out.getvalue() == "foo = 1\nbar = 2\n"


def test_bad_argument_errors_are_prefixed_with_prog() -> None:
    getter = _getter(StubTransport(), prog="get")

    assert getter.run(["foo"], get_all=True) == ERRORCODE_BADARG
    assert getter.err.getvalue().startswith("get: error: ")
    assert error_line("get", "boom") == "get: error: boom\n"
