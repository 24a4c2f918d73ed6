"""Structured logging helpers.

Modules log snake_case event names and pass context through ``extra=``.
``configure_logging`` installs a formatter that renders those extras as a JSON
suffix so the event stream stays greppable.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

__all__ = ["StructuredFormatter", "configure_logging", "get_logger"]

ROOT_LOGGER_NAME = "vaultstamp"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes present on every LogRecord; anything else came from ``extra=``.
_RESERVED_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """Formatter appending ``extra`` fields as a compact JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
        }
        if not extras:
            return base
        return f"{base} {json.dumps(extras, default=str, sort_keys=True)}"


def get_logger(name: str) -> logging.Logger:
    """Return a module logger parented under the ``vaultstamp`` hierarchy."""

    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_logging(config: Mapping[str, Any] | None = None) -> logging.Logger:
    """Attach a single structured stream handler to the package root logger."""

    config = config or {}
    level_name = str(config.get("level", DEFAULT_LOG_LEVEL)).upper()
    fmt = str(config.get("format", DEFAULT_LOG_FORMAT))

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, level_name, logging.INFO))
    for handler in list(root.handlers):
        if getattr(handler, "_vaultstamp_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(fmt))
    handler._vaultstamp_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root
