"""Structured logging configuration (JSON or text format)."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from .config import LoggingConfig

_EXTRA_FIELDS = ("server", "server_id", "location", "address_type", "label_selector", "total_addresses")


def _structured_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Extra fields passed via ``extra=``, in a fixed order, skipping unset and empty ones."""
    extras = {}
    for key in _EXTRA_FIELDS:
        val = getattr(record, key, None)
        if val is not None and val != "":
            extras[key] = val
    return extras


class JSONFormatter(logging.Formatter):
    """Emits log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_structured_extras(record),
        }
        if record.exc_info and record.exc_info[1]:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines with extras as trailing key=value pairs.

        2026-01-02 10:00:00 [INFO] hcloud_discovery.provider: Detected current server web-1 with id 42 server=web-1 server_id=42 location=fsn1
    """

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        extras = _structured_extras(record)
        if extras:
            line += " " + " ".join(f"{key}={val}" for key, val in extras.items())
        return line


def configure_logging(config: LoggingConfig) -> None:
    """Install a single stderr handler on the root logger.

    Addresses are printed on stdout by the CLI, so logs must never go there.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if config.format == "json" else TextFormatter())
    root.addHandler(handler)

    for noisy in ("urllib3", "requests", "hcloud"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
