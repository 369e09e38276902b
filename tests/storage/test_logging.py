"""Logging helper tests."""

from __future__ import annotations

import io
import json
import logging

from AgentSDK.Storage.logging_utils import (
    LOGGER_NAME,
    JSONFormatter,
    mask_sensitive_data,
    setup_logging,
)


def test_mask_sensitive_data_is_recursive() -> None:
    payload = {"jwt": "abc", "nested": {"Authorization": "Bearer x", "host": "ipfs.io"}, "n": 1}

    masked = mask_sensitive_data(payload)

    assert masked["jwt"] == "***masked***"
    assert masked["nested"] == {"Authorization": "***masked***", "host": "ipfs.io"}
    assert masked["n"] == 1
    assert payload["jwt"] == "abc"


def test_json_formatter_includes_extra_fields() -> None:
    record = logging.makeLogRecord(
        {
            "name": LOGGER_NAME,
            "levelno": logging.INFO,
            "levelname": "INFO",
            "msg": "fetched %s",
            "args": ("cid",),
        }
    )
    record.host = "ipfs.io"
    record.token = "secret"

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "fetched cid"
    assert entry["level"] == "INFO"
    assert entry["host"] == "ipfs.io"
    assert entry["token"] == "***masked***"
    assert entry["timestamp"].endswith("Z")


def test_setup_logging_replaces_its_own_handler() -> None:
    first, second = io.StringIO(), io.StringIO()

    setup_logging(level="DEBUG", stream=first)
    logger = setup_logging(level="DEBUG", json_output=True, stream=second)
    logging.getLogger(f"{LOGGER_NAME}.hedging").debug("gateway won")

    managed = [h for h in logger.handlers if getattr(h, "_agentsdk_managed", False)]
    assert len(managed) == 1
    assert first.getvalue() == ""
    assert json.loads(second.getvalue())["logger"] == f"{LOGGER_NAME}.hedging"
