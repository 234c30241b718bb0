"""Configuration and logging setup for the Netatmo MQTT bridge.

The configuration is a JSON file validated with a voluptuous schema.
The log level may be overridden with the ``NETATMO_LOGLVL`` environment
variable.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import voluptuous as vol

from .const import (
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_GET_FAVORITES,
    CONF_HOST,
    CONF_LOG_LEVEL,
    CONF_MQTT,
    CONF_MQTT_CLIENT_ID,
    CONF_PASSWORD,
    CONF_PORT,
    CONF_QOS,
    CONF_REQUEST_TIMEOUT,
    CONF_RETAIN,
    CONF_TOKEN_FILE,
    CONF_TOPIC_PREFIX,
    CONF_USERNAME,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MQTT_PORT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TOKEN_FILE,
    DEFAULT_TOPIC_PREFIX,
    DOMAIN,
    ENV_LOG_LEVEL,
)

LOG_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
}

MQTT_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_HOST, default="localhost"): str,
        vol.Optional(CONF_PORT, default=DEFAULT_MQTT_PORT): vol.All(
            int, vol.Range(min=1, max=65535)
        ),
        vol.Optional(CONF_USERNAME): str,
        vol.Optional(CONF_PASSWORD): str,
        vol.Optional(CONF_TOPIC_PREFIX, default=DEFAULT_TOPIC_PREFIX): str,
        vol.Optional(CONF_QOS, default=0): vol.In([0, 1, 2]),
        vol.Optional(CONF_RETAIN, default=False): bool,
        vol.Optional(CONF_MQTT_CLIENT_ID, default=DOMAIN): str,
    }
)

CONFIG_SCHEMA = vol.Schema(
    {
        vol.Required(CONF_CLIENT_ID): vol.All(str, vol.Length(min=1)),
        vol.Required(CONF_CLIENT_SECRET): vol.All(str, vol.Length(min=1)),
        vol.Optional(CONF_GET_FAVORITES, default=False): bool,
        vol.Optional(CONF_TOKEN_FILE, default=DEFAULT_TOKEN_FILE): str,
        vol.Optional(CONF_REQUEST_TIMEOUT, default=DEFAULT_REQUEST_TIMEOUT): vol.Any(
            None, vol.All(vol.Coerce(float), vol.Range(min=0, min_included=False))
        ),
        vol.Optional(CONF_LOG_LEVEL, default=DEFAULT_LOG_LEVEL): vol.All(
            str, vol.Lower, vol.In(list(LOG_LEVELS))
        ),
        vol.Optional(CONF_MQTT, default={}): MQTT_SCHEMA,
    },
    extra=vol.REMOVE_EXTRA,
)


class ConfigError(Exception):
    """Exception raised when the configuration cannot be loaded."""


def validate_config(data: dict[str, Any]) -> dict[str, Any]:
    """Validate raw configuration and fill in defaults.

    Raises:
        ConfigError: If the configuration does not match the schema.

    """
    try:
        return CONFIG_SCHEMA(data)
    except vol.Invalid as err:
        error_msg = f"Invalid configuration: {err}"
        raise ConfigError(error_msg) from err


def load_config(path: Path) -> dict[str, Any]:
    """Load and validate the JSON configuration file.

    A relative ``token_file`` is resolved against the configuration
    file's directory.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid.

    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as err:
        error_msg = f"Configuration file {path} could not be read: {err}"
        raise ConfigError(error_msg) from err

    if not isinstance(data, dict):
        error_msg = f"Configuration file {path} must contain a JSON object"
        raise ConfigError(error_msg)

    config = validate_config(data)
    token_file = Path(config[CONF_TOKEN_FILE])
    if not token_file.is_absolute():
        config[CONF_TOKEN_FILE] = str(path.parent / token_file)
    return config


class _LevelPrefixFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, UTC).isoformat(
            timespec="milliseconds"
        )
        return f"[{timestamp} {record.levelname}] {super().format(record)}"


def resolve_log_level(config_level: str | None = None) -> int:
    """Return the logging level from the environment or configuration."""
    name = os.getenv(ENV_LOG_LEVEL) or config_level or DEFAULT_LOG_LEVEL
    return LOG_LEVELS.get(name.lower(), logging.INFO)


def setup_logging(level: int) -> None:
    """Configure the root logger to write prefixed lines to stderr."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_LevelPrefixFormatter("%(message)s"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
