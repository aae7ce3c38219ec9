"""Text rendering for property values decoded from daemon replies."""

from __future__ import annotations

from typing import Any


def _indent(level: int) -> str:
    return "\t" * level


def render_value(value: Any, indent: int = 0) -> str:
    """Render *value* the way property values are shown on the command line.

    Strings are quoted, byte strings become an uppercase hex run inside
    brackets, and containers open a bracketed block with one element per
    line, indented by tabs.
    """

    if value is None:
        return "(null)"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (bytes, bytearray)):
        return "[" + bytes(value).hex().upper() + "]"
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, dict):
        lines = ["{"]
        for key, item in value.items():
            lines.append(f"{_indent(indent + 1)}{key} => {render_value(item, indent + 1)}")
        lines.append(f"{_indent(indent)}}}")
        return "\n".join(lines)
    if isinstance(value, (list, tuple)):
        lines = ["["]
        for item in value:
            lines.append(f"{_indent(indent + 1)}{render_value(item, indent + 1)}")
        lines.append(f"{_indent(indent)}]")
        return "\n".join(lines)
    return str(value)
