"""Loading of the TOML configuration file."""

from __future__ import annotations

import ipaddress
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/yadex/config.toml")


class ConfigError(Exception):
    """Raised when the configuration file is missing or malformed."""


@dataclass(frozen=True)
class NetworkConfig:
    address: str
    port: int


@dataclass(frozen=True)
class TemplateConfig:
    """Template paths, relative to the directory holding the config file."""

    index_file: Path
    error_file: Path


@dataclass(frozen=True)
class ServiceConfig:
    """Listing limit (0 means unbounded) and the directory to confine to."""

    limit: int
    root: Path


@dataclass(frozen=True)
class Config:
    network: NetworkConfig
    template: TemplateConfig
    service: ServiceConfig
    config_dir: Path


def load_config(path: Path) -> Config:
    """Read ``path`` and return the validated configuration.

    Raises:
        ConfigError: If the file cannot be read or a key is missing or invalid
    """
    try:
        with path.open("rb") as handle:
            raw = tomllib.load(handle)
    except OSError as exc:
        raise ConfigError(f"cannot read configuration file {path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"invalid TOML in {path}: {exc}") from exc

    network = _table(raw, "network")
    template = _table(raw, "template")
    service = _table(raw, "service")

    address = _value(network, "network", "address", str)
    try:
        ipaddress.ip_address(address)
    except ValueError as exc:
        raise ConfigError(f"network.address: {address!r} is not an IP address") from exc

    port = _value(network, "network", "port", int)
    if not 0 < port < 65536:
        raise ConfigError(f"network.port: {port} is out of range")

    limit = _value(service, "service", "limit", int)
    if limit < 0:
        raise ConfigError(f"service.limit: {limit} must not be negative")

    root = Path(_value(service, "service", "root", str))
    if not root.is_absolute():
        raise ConfigError(f"service.root: {root} must be an absolute path")

    config = Config(
        network=NetworkConfig(address=address, port=port),
        template=TemplateConfig(
            index_file=Path(_value(template, "template", "index_file", str)),
            error_file=Path(_value(template, "template", "error_file", str)),
        ),
        service=ServiceConfig(limit=limit, root=root),
        config_dir=path.resolve().parent,
    )
    logger.debug("Loaded configuration from %s", path)
    return config


def _table(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    table = raw.get(name)
    if not isinstance(table, dict):
        raise ConfigError(f"missing [{name}] table")
    return table


def _value(table: Dict[str, Any], section: str, key: str, kind: type) -> Any:
    if key not in table:
        raise ConfigError(f"{section}.{key}: missing")
    value = table[key]
    # bool is an int subclass; reject it for numeric keys.
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ConfigError(f"{section}.{key}: expected {kind.__name__}, got {type(value).__name__}")
    return value
