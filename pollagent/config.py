from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml

from .errors import AgentConfigError

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_FORMATS = {"text", "json"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

ENV_PREFIX = "POLLAGENT_"


@dataclass(frozen=True)
class AgentConfig:
    server_url: str = "http://localhost:8080"
    health_path: str = "/health"
    device_path: str = "/device"
    command_path: str = "/client"

    poll_interval_s: float = 2.0
    probe_interval_s: float = 5.0
    reprobe_interval_s: float = 20.0
    request_timeout_s: float = 30.0
    command_deadline_s: float = 10.0
    reprobe_on_failure: bool = True

    mac_address: str | None = None
    log_level: str = "INFO"
    log_format: str = "text"

    def url(self, path: str) -> str:
        return f"{self.server_url.rstrip('/')}{path}"

    @property
    def health_url(self) -> str:
        return self.url(self.health_path)

    @property
    def device_url(self) -> str:
        return self.url(self.device_path)

    @property
    def command_url(self) -> str:
        return self.url(self.command_path)


_STR_KEYS = ("server_url", "health_path", "device_path", "command_path", "mac_address", "log_level", "log_format")
_FLOAT_KEYS = (
    "poll_interval_s",
    "probe_interval_s",
    "reprobe_interval_s",
    "request_timeout_s",
    "command_deadline_s",
)
_BOOL_KEYS = ("reprobe_on_failure",)
_KNOWN_KEYS = frozenset(_STR_KEYS + _FLOAT_KEYS + _BOOL_KEYS)


def load_agent_config_from_env() -> AgentConfig:
    """Build the config from an optional YAML file plus ``POLLAGENT_*`` overrides."""

    config_path = os.getenv(f"{ENV_PREFIX}CONFIG_PATH")

    raw: dict[str, Any] = {}
    origin = "env defaults"
    if config_path:
        path = Path(config_path).expanduser()
        if not path.exists():
            raise AgentConfigError(f"{ENV_PREFIX}CONFIG_PATH does not exist: {path}")
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise AgentConfigError(f"failed to parse agent config at {path}: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise AgentConfigError(f"agent config at {path} must be a YAML object")
        raw = dict(loaded)
        origin = str(path)

    for key in _KNOWN_KEYS:
        value = os.getenv(f"{ENV_PREFIX}{key.upper()}")
        if value is not None and value.strip() != "":
            raw[key] = value

    return parse_agent_config(raw, origin=origin)


def parse_agent_config(raw: Mapping[str, Any], *, origin: str = "config") -> AgentConfig:
    unknown = sorted(str(k) for k in raw if k not in _KNOWN_KEYS)
    if unknown:
        raise AgentConfigError(f"{origin}: unknown keys: {', '.join(unknown)}")

    defaults = AgentConfig()
    values: dict[str, Any] = {}

    for key in _STR_KEYS:
        if key in raw and raw[key] is not None:
            values[key] = str(raw[key]).strip()
    for key in _FLOAT_KEYS:
        if key in raw:
            values[key] = _positive_float(raw[key], key=key, origin=origin)
    for key in _BOOL_KEYS:
        if key in raw:
            values[key] = _bool(raw[key], key=key, origin=origin)

    server_url = values.get("server_url", defaults.server_url)
    parsed = urlparse(server_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise AgentConfigError(f"{origin}: server_url must be an http(s) URL, got {server_url!r}")

    for key in ("health_path", "device_path", "command_path"):
        path = values.get(key, getattr(defaults, key))
        if not path.startswith("/"):
            raise AgentConfigError(f"{origin}: {key} must start with '/'")

    log_level = values.get("log_level", defaults.log_level).upper()
    if log_level not in _LOG_LEVELS:
        raise AgentConfigError(f"{origin}: log_level must be one of: {sorted(_LOG_LEVELS)}")
    values["log_level"] = log_level

    log_format = values.get("log_format", defaults.log_format).lower()
    if log_format not in _LOG_FORMATS:
        raise AgentConfigError(f"{origin}: log_format must be one of: {sorted(_LOG_FORMATS)}")
    values["log_format"] = log_format

    if "mac_address" in values and not values["mac_address"]:
        values["mac_address"] = None

    return AgentConfig(**values)


def _positive_float(value: Any, *, key: str, origin: str) -> float:
    if isinstance(value, bool):
        raise AgentConfigError(f"{origin}: {key} must be a number")
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise AgentConfigError(f"{origin}: {key} must be a number") from exc
    if parsed <= 0:
        raise AgentConfigError(f"{origin}: {key} must be > 0")
    return parsed


def _bool(value: Any, *, key: str, origin: str) -> bool:
    if isinstance(value, bool):
        return value
    norm = str(value).strip().lower()
    if norm in _TRUE_VALUES:
        return True
    if norm in _FALSE_VALUES:
        return False
    raise AgentConfigError(f"{origin}: {key} must be one of: {sorted(_TRUE_VALUES | _FALSE_VALUES)}")
