"""Shared configuration loader for wfanctl."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

from .status import BadArgumentError


class ConfigurationError(BadArgumentError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".wfanctl.yaml"
_CONFIG_PATH_OVERRIDE: Path | None = None

DEFAULT_INTERFACE = "wfan0"
DEFAULT_TIMEOUT_MS = 10 * 1000
DEFAULT_MAX_ROUNDS = 100
DEFAULT_DEVICE_CAPACITY = 1000

TRANSPORTS = ("dbus", "http")
BUSES = ("system", "session")


@dataclass
class CtlConfig:
    """Connection and polling settings for talking to the interface daemon."""

    interface: str = DEFAULT_INTERFACE
    transport: str = "dbus"
    bus: str = "system"
    bus_name: str | None = None
    bridge_url: str | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_rounds: int | None = DEFAULT_MAX_ROUNDS
    device_capacity: int | None = DEFAULT_DEVICE_CAPACITY


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with a 'daemon' section")
    return loaded


def _coerce_int(raw: Any, *, source: str) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ConfigurationError(f"Invalid integer in {source}: {raw}")
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip(), 0)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid integer in {source}: {raw}") from exc


def _coerce_limit(raw: Any, *, source: str) -> int | None:
    """Integers where zero or a negative value means "no limit"."""

    value = _coerce_int(raw, source=source)
    if value is not None and value <= 0:
        return 0
    return value


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _check_choice(value: str, choices: tuple[str, ...], *, field: str) -> str:
    normalized = value.strip().lower()
    if normalized not in choices:
        raise ConfigurationError(
            f"Unsupported {field} '{value}' (expected one of: {', '.join(choices)})"
        )
    return normalized


def _check_bridge_url(raw: str | None) -> str | None:
    if not raw:
        return None
    parsed = urlparse(raw)
    if parsed.scheme not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid bridge URL: {raw}")
    return raw.rstrip("/")


def load_ctl_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> CtlConfig:
    """Load wfanctl configuration from overrides, environment and optional YAML."""

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    section = file_config.get("daemon", {}) if isinstance(file_config, dict) else {}
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected 'daemon' to be a mapping in {path}")

    override_map = {key: value for key, value in dict(overrides or {}).items() if value is not None}

    resolved_interface = _first_value(
        override_map.get("interface"),
        env_map.get("WFANCTL_INTERFACE"),
        section.get("interface"),
        DEFAULT_INTERFACE,
    )
    resolved_transport = _check_choice(
        str(
            _first_value(
                override_map.get("transport"),
                env_map.get("WFANCTL_TRANSPORT"),
                section.get("transport"),
                "dbus",
            )
        ),
        TRANSPORTS,
        field="transport",
    )
    resolved_bus = _check_choice(
        str(_first_value(override_map.get("bus"), env_map.get("WFANCTL_BUS"), section.get("bus"), "system")),
        BUSES,
        field="bus",
    )
    resolved_bus_name = _first_value(
        override_map.get("bus_name"), env_map.get("WFANCTL_BUS_NAME"), section.get("bus_name")
    )
    resolved_bridge_url = _check_bridge_url(
        _first_value(
            override_map.get("bridge_url"),
            env_map.get("WFANCTL_BRIDGE_URL"),
            section.get("bridge_url"),
        )
    )
    if resolved_transport == "http" and not resolved_bridge_url:
        raise ConfigurationError(
            "The http transport needs a bridge URL (--bridge-url, WFANCTL_BRIDGE_URL or daemon.bridge_url)"
        )

    resolved_timeout = _first_value(
        _coerce_int(override_map.get("timeout_ms"), source="overrides"),
        _coerce_int(env_map.get("WFANCTL_TIMEOUT_MS"), source="environment"),
        _coerce_int(section.get("timeout_ms"), source=f"{path} daemon.timeout_ms"),
        DEFAULT_TIMEOUT_MS,
    )
    if resolved_timeout <= 0:
        raise ConfigurationError(f"Timeout must be positive, got {resolved_timeout}")

    resolved_max_rounds = _first_value(
        _coerce_limit(override_map.get("max_rounds"), source="overrides"),
        _coerce_limit(env_map.get("WFANCTL_MAX_ROUNDS"), source="environment"),
        _coerce_limit(section.get("max_rounds"), source=f"{path} daemon.max_rounds"),
        DEFAULT_MAX_ROUNDS,
    )
    resolved_capacity = _first_value(
        _coerce_limit(override_map.get("device_capacity"), source="overrides"),
        _coerce_limit(env_map.get("WFANCTL_DEVICE_CAPACITY"), source="environment"),
        _coerce_limit(section.get("device_capacity"), source=f"{path} daemon.device_capacity"),
        DEFAULT_DEVICE_CAPACITY,
    )

    return CtlConfig(
        interface=str(resolved_interface),
        transport=resolved_transport,
        bus=resolved_bus,
        bus_name=resolved_bus_name,
        bridge_url=resolved_bridge_url,
        timeout_ms=resolved_timeout,
        max_rounds=resolved_max_rounds or None,
        device_capacity=resolved_capacity or None,
    )
