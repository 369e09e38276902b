"""Logging setup for the ``AgentSDK.Storage`` logger tree.

Library modules only call ``logging.getLogger(__name__)``; applications (and
the CLI) opt into output with :func:`setup_logging`.  The JSON formatter
includes ``extra=`` fields and masks credential-like keys such as the
Pinata JWT.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

__all__ = ["LOGGER_NAME", "JSONFormatter", "mask_sensitive_data", "setup_logging"]

LOGGER_NAME = "AgentSDK.Storage"

_SENSITIVE_KEYS = frozenset({"authorization", "jwt", "private_key", "token", "api_key", "secret"})
_MASK = "***masked***"
_MANAGED = "_agentsdk_managed"
_LEVELS = frozenset({"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"})

# attributes every LogRecord has; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def mask_sensitive_data(payload: dict[str, Any]) -> dict[str, Any]:
    """Copy ``payload``, replacing credential-like values at any depth."""
    return {key: _mask(key, value) for key, value in payload.items()}


def _mask(key: str, value: Any) -> Any:
    if key.lower() in _SENSITIVE_KEYS:
        return _MASK
    if isinstance(value, dict):
        return mask_sensitive_data(value)
    return value


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(entry), default=str)


def setup_logging(
    *,
    level: str = "INFO",
    json_output: bool = False,
    stream: Optional[TextIO] = None,
    propagate: bool = False,
) -> logging.Logger:
    """Attach a single stream handler to the ``AgentSDK.Storage`` logger.

    Calling it again replaces the handler installed by the previous call and
    leaves handlers added by the application alone.
    """
    logger = logging.getLogger(LOGGER_NAME)
    name = level.upper()
    logger.setLevel(name if name in _LEVELS else logging.INFO)
    logger.handlers[:] = [h for h in logger.handlers if not getattr(h, _MANAGED, False)]

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        JSONFormatter() if json_output else logging.Formatter("%(levelname)s %(name)s: %(message)s")
    )
    setattr(handler, _MANAGED, True)
    logger.addHandler(handler)
    logger.propagate = propagate
    return logger

