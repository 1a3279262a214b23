"""Gateway configuration loaded from JSON files and the environment."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from fractions import Fraction
from pathlib import Path
from typing import Any, Optional

DEFAULT_POLL_INTERVAL = "10s"
DEFAULT_PORT_GATEWAY = 8082
DEFAULT_PORT_PRIVATE = 8083
DEFAULT_PORT_METRICS = 9099
DEFAULT_MAX_SERVICE_RESPONSE_SIZE = 1024 * 1024
DEFAULT_MAX_REQUESTS_PER_QUERY = 50

DEFAULT_ADDRESS_GATEWAY = f"0.0.0.0:{DEFAULT_PORT_GATEWAY}"
DEFAULT_ADDRESS_PRIVATE = f"0.0.0.0:{DEFAULT_PORT_PRIVATE}"
DEFAULT_ADDRESS_METRICS = f"0.0.0.0:{DEFAULT_PORT_METRICS}"

ENV_LOG_LEVEL = "BRAMBLE_LOG_LEVEL"
ENV_SERVICE_LIST = "BRAMBLE_SERVICE_LIST"

_log = logging.getLogger("bramble")
_cfg_log = logging.getLogger("bramble.config")
_cfg_log.setLevel(logging.INFO)


class LogLevel(Enum):
    PANIC = "panic"
    FATAL = "fatal"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"
    TRACE = "trace"

    @classmethod
    def parse(cls, text: str) -> LogLevel:
        """Parse a level name, case-insensitively; "warn" means warning."""
        name = text.lower()
        if name == "warn":
            name = "warning"
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f'not a valid log level: "{text}"') from None

    @property
    def logging_level(self) -> int:
        return _LOGGING_LEVELS[self]

    def __str__(self) -> str:
        return self.value


_LOGGING_LEVELS = {
    LogLevel.PANIC: logging.CRITICAL,
    LogLevel.FATAL: logging.CRITICAL,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.INFO: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.TRACE: logging.DEBUG - 5,
}

DEFAULT_LOG_LEVEL = LogLevel.DEBUG

_NANOSECONDS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_COMPONENT = re.compile(r"(\d+(?:\.\d*)?|\.\d+)([^\d.]*)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "10s", "1h30m" or "1.5ms"."""
    rest = text
    negative = False
    if rest and rest[0] in "+-":
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ValueError(f'time: invalid duration "{text}"')

    total = Fraction(0)
    pos = 0
    while pos < len(rest):
        match = _COMPONENT.match(rest, pos)
        if match is None:
            raise ValueError(f'time: invalid duration "{text}"')
        number, unit = match.groups()
        if not unit:
            raise ValueError(f'time: missing unit in duration "{text}"')
        if unit not in _NANOSECONDS:
            raise ValueError(f'time: unknown unit "{unit}" in duration "{text}"')
        total += Fraction(number) * _NANOSECONDS[unit]
        pos = match.end()

    if negative:
        total = -total
    return timedelta(microseconds=float(total / 1000))


class ConfigError(Exception):
    """The configuration is invalid or could not be loaded."""


@dataclass
class PluginConfig:
    """The configuration for the named plugin."""

    name: str
    config: Any = None


# JSON key -> (attribute, expected type)
_SCALAR_KEYS: dict[str, tuple[str, type]] = {
    "id-field-name": ("id_field_name", str),
    "id-field-type": ("id_field_type", str),
    "gateway-address": ("gateway_listen_address", str),
    "disable-introspection": ("disable_introspection", bool),
    "metrics-address": ("metrics_listen_address", str),
    "private-address": ("private_listen_address", str),
    "gateway-port": ("gateway_port", int),
    "metrics-port": ("metrics_port", int),
    "private-port": ("private_port", int),
    "poll-interval": ("poll_interval", str),
    "max-requests-per-query": ("max_requests_per_query", int),
    "max-service-response-size": ("max_service_response_size", int),
}


def _check_type(key: str, value: Any, expected: type) -> Any:
    if expected is int:
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise ValueError(f"cannot use {value!r} as {expected.__name__} for {key!r}")
    return value


def _plugin_from_json(data: Any) -> PluginConfig:
    if not isinstance(data, dict):
        raise ValueError(f"invalid plugin configuration: {data!r}")
    lowered = {key.lower(): value for key, value in data.items()}
    name = lowered.get("name") or ""
    if not isinstance(name, str):
        raise ValueError(f"invalid plugin name: {name!r}")
    return PluginConfig(name=name, config=lowered.get("config"))


@dataclass
class Config:
    """The gateway configuration."""

    id_field_name: str = ""
    id_field_type: str = ""
    gateway_listen_address: str = ""
    disable_introspection: bool = False
    metrics_listen_address: str = ""
    private_listen_address: str = ""
    gateway_port: int = DEFAULT_PORT_GATEWAY
    metrics_port: int = DEFAULT_PORT_METRICS
    private_port: int = DEFAULT_PORT_PRIVATE
    services: list[str] = field(default_factory=list)
    log_level: LogLevel = DEFAULT_LOG_LEVEL
    poll_interval: str = DEFAULT_POLL_INTERVAL
    poll_interval_duration: timedelta = timedelta(0)
    max_requests_per_query: int = DEFAULT_MAX_REQUESTS_PER_QUERY
    max_service_response_size: int = DEFAULT_MAX_SERVICE_RESPONSE_SIZE
    plugins: list[PluginConfig] = field(default_factory=list)
    extensions: Optional[dict[str, Any]] = None
    config_files: list[str] = field(default_factory=list)
    linked_files: list[str] = field(default_factory=list)

    @staticmethod
    def _addr_or_port(addr: str, port: int) -> str:
        return addr if addr else f":{port}"

    def gateway_address(self) -> str:
        """The host:port the gateway listens on."""
        return self._addr_or_port(self.gateway_listen_address, self.gateway_port)

    def private_address(self) -> str:
        """The host:port of the private listener."""
        return self._addr_or_port(self.private_listen_address, self.private_port)

    def private_http_address(self, path: str) -> str:
        """The HTTP URL of the given path on the private listener."""
        if not self.private_listen_address:
            return f"http://localhost:{self.private_port}/{path}"
        return f"http://{self.private_listen_address}/{path}"

    def metric_address(self) -> str:
        """The host:port of the metrics listener."""
        return self._addr_or_port(self.metrics_listen_address, self.metrics_port)

    def load(self) -> None:
        """Load all the config files."""
        self._load(is_reload=False)

    def reload(self) -> None:
        """Reload all the config files."""
        self._load(is_reload=True)

    def _load(self, is_reload: bool) -> None:
        previous_level = self.log_level

        self.extensions = None
        # plugins from every config file are concatenated
        plugins: list[PluginConfig] = []
        for path in self.config_files:
            self._read_config_file(path)
            plugins.extend(self.plugins)
        self.plugins = plugins

        env_level = os.environ.get(ENV_LOG_LEVEL)
        if env_level is not None:
            try:
                self.log_level = LogLevel.parse(env_level)
            except ValueError:
                _cfg_log.warning("invalid loglevel %r; using default", env_level)
                self.log_level = DEFAULT_LOG_LEVEL

        if is_reload and previous_level != self.log_level:
            _cfg_log.info("log level has changed from %s to %s", previous_level, self.log_level)
        _log.setLevel(self.log_level.logging_level)

        try:
            self.poll_interval_duration = parse_duration(self.poll_interval)
        except ValueError as exc:
            raise ConfigError(f"invalid poll interval: {exc}") from exc

        self.services = self._build_service_list()

    def _read_config_file(self, path: str) -> None:
        with open(path, encoding="utf-8") as fp:
            try:
                self._apply(json.load(fp))
            except ValueError as exc:
                raise ConfigError(f'error decoding config file "{path}": {exc}') from exc

    def _apply(self, data: Any) -> None:
        if data is None:
            return
        if not isinstance(data, dict):
            raise ValueError("config must be a JSON object")
        for key, value in data.items():
            if value is None:
                continue
            lowered = key.lower()
            if lowered in _SCALAR_KEYS:
                attr, expected = _SCALAR_KEYS[lowered]
                setattr(self, attr, _check_type(key, value, expected))
            elif lowered == "services":
                if not isinstance(value, list) or not all(isinstance(s, str) for s in value):
                    raise ValueError(f"services must be a list of strings: {value!r}")
                self.services = list(value)
            elif lowered == "loglevel":
                self.log_level = LogLevel.parse(_check_type(key, value, str))
            elif lowered == "plugins":
                if not isinstance(value, list):
                    raise ValueError(f"plugins must be a list: {value!r}")
                self.plugins = [_plugin_from_json(item) for item in value]
            elif lowered == "extensions":
                if not isinstance(value, dict):
                    raise ValueError(f"extensions must be an object: {value!r}")
                if self.extensions is None:
                    self.extensions = {}
                self.extensions.update(value)

    def _build_service_list(self) -> list[str]:
        services = dict.fromkeys(self.services)
        services.update(dict.fromkeys(os.environ.get(ENV_SERVICE_LIST, "").split()))
        if not services:
            files = "[" + " ".join(self.config_files) + "]"
            raise ConfigError(f"no services found in {ENV_SERVICE_LIST} or {files}")
        return list(services)


def _linked_file(path: str) -> str:
    try:
        return str(Path(path).resolve(strict=True))
    except (OSError, RuntimeError):
        return ""


def get_config(config_files: list[str]) -> Config:
    """Load the gateway configuration from the given files."""
    linked_files = []
    for path in config_files:
        directory = os.path.dirname(path) or "."
        if not os.path.isdir(directory):
            raise ConfigError(f"cannot watch config directory {directory!r}: no such directory")
        linked_files.append(_linked_file(path))

    cfg = Config(config_files=list(config_files), linked_files=linked_files)
    cfg.load()
    return cfg