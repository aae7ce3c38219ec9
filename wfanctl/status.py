"""Exit codes and error types shared by the wfanctl commands."""

from __future__ import annotations

import os

ERRORCODE_OK = 0
ERRORCODE_HELP = 1
ERRORCODE_BADARG = 2
ERRORCODE_NOCOMMAND = 3
ERRORCODE_UNKNOWN = 4
ERRORCODE_TIMEOUT = 5
ERRORCODE_INCOMPLETE = 6
ERRORCODE_CANCELLED = 130

GENERIC_GET_FAILURE = "Get failed"


class WfanctlError(RuntimeError):
    """Base class for failures that map onto a process exit code."""

    code = ERRORCODE_UNKNOWN


class BadArgumentError(WfanctlError):
    """Raised for conflicting flags or a missing interface selection."""

    code = ERRORCODE_BADARG


class PropertyStatusError(WfanctlError):
    """Raised when the daemon answers a property request with a non-zero status."""

    def __init__(self, property_name: str, status: int, message: str | None = None) -> None:
        self.property_name = property_name
        self.status = status
        self.message = describe_status(status, message)
        super().__init__(f"{property_name}: {self.message} ({status})")

    @property
    def code(self) -> int:  # type: ignore[override]
        return self.status


def describe_status(status: int, message: str | None = None) -> str:
    """Return the text reported for a failed property request.

    A message supplied by the daemon always wins. Negative statuses are
    errno values and fall back to the platform error string; anything else
    falls back to a fixed message so the report is never empty.
    """

    if message:
        return message
    if status < 0:
        text = os.strerror(-status)
        if text:
            return text
    return GENERIC_GET_FAILURE
