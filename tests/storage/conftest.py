"""Shared pytest fixtures for AgentSDK.Storage tests."""

from __future__ import annotations

import logging

import pytest

from AgentSDK.Storage.logging_utils import LOGGER_NAME
from AgentSDK.Storage.net.instrumentation import (
    AttemptEvent,
    AttemptEventEmitter,
    reset_attempt_emitter,
)


@pytest.fixture(autouse=True)
def _restore_storage_logger():
    """Undo ``setup_logging`` calls made by CLI tests so ``caplog`` keeps working."""
    logger = logging.getLogger(LOGGER_NAME)
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
    reset_attempt_emitter()


@pytest.fixture
def events() -> list[AttemptEvent]:
    return []


@pytest.fixture
def emitter(events: list[AttemptEvent]) -> AttemptEventEmitter:
    """Emitter recording every gateway.attempt event into ``events``."""
    emitter = AttemptEventEmitter()
    emitter.add_handler(events.append)
    return emitter
