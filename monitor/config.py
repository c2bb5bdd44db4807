from __future__ import annotations

import logging
import os
from typing import Any, Dict, Tuple

from dotenv import load_dotenv

DEFAULT_CONFIG: Dict[str, Any] = {
    "client_name": "",
    "client_port": "localhost:36330",
    "elasticsearch": "http://localhost:9200/",
    "index_prefix": "foldingathome",
    "heartbeat_interval": 60,
    "queue_info_interval": 30,
    "slot_info_interval": 30,
    "reconnect_backoff": 5.0,
    "connect_timeout": 10.0,
    "index_timeout": 10.0,
    "log_level": "INFO",
}

MONITOR_CONFIG: Dict[str, Any] = DEFAULT_CONFIG.copy()


class ConfigError(Exception):
    """Raised when configuration values are invalid."""

    pass


def load_config(env_path: str = ".env") -> Dict[str, Any]:
    """Load monitor configuration from env file/environment variables.

    Values are only coerced here; `validate_config` runs once the command line
    overrides are applied.
    """
    if os.path.exists(env_path):
        load_dotenv(env_path)

    for key, default_value in DEFAULT_CONFIG.items():
        env_key = f"MONITOR_{key.upper()}"
        value = os.getenv(env_key, default_value)
        MONITOR_CONFIG[key] = _coerce_type(value, type(default_value))

    return MONITOR_CONFIG


def _coerce_type(value: Any, target_type: type) -> Any:
    if isinstance(value, target_type):
        return value
    try:
        if target_type is bool:
            return str(value).lower() in ("1", "true", "yes", "on")
        return target_type(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Cannot convert {value} to {target_type}") from exc


def split_endpoint(endpoint: str) -> Tuple[str, int]:
    """Split `host:port` into its parts."""
    host, sep, port = endpoint.rpartition(":")
    if not sep or not host:
        raise ConfigError(f"client_port must look like host:port, got {endpoint!r}")
    try:
        port_number = int(port)
    except ValueError as exc:
        raise ConfigError(f"client_port has a non-numeric port: {endpoint!r}") from exc
    if not (1 <= port_number <= 65535):
        raise ConfigError("client_port port must be between 1 and 65535")
    return host.strip("[]"), port_number


def validate_config(config: Dict[str, Any]) -> None:
    split_endpoint(config["client_port"])
    for key in ("heartbeat_interval", "queue_info_interval", "slot_info_interval"):
        if int(config[key]) <= 0:
            raise ConfigError(f"{key} must be positive")
    if float(config["reconnect_backoff"]) < 0:
        raise ConfigError("reconnect_backoff must not be negative")
    if not [url for url in str(config["elasticsearch"]).split(",") if url.strip()]:
        raise ConfigError("elasticsearch needs at least one URL")
    config["log_level"] = str(config["log_level"]).upper()
    if not isinstance(logging.getLevelName(config["log_level"]), int):
        raise ConfigError(f"Unknown log_level {config['log_level']!r}")


__all__ = ["MONITOR_CONFIG", "DEFAULT_CONFIG", "ConfigError", "load_config", "split_endpoint", "validate_config"]
