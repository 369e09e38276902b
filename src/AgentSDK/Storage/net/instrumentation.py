"""
Gateway attempt telemetry.

Each hedged attempt carries an :class:`AttemptTrace` while it is in flight.
When the attempt settles (won, failed, or cancelled after another gateway
won) the trace is frozen into an :class:`AttemptEvent` and handed to an
:class:`AttemptEventEmitter`. Exactly one ``gateway.attempt`` event exists per
launched attempt.
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

from .client import host_for_telemetry

logger = logging.getLogger(__name__)

AttemptHandler = Callable[["AttemptEvent"], None]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ============================================================================
# Events
# ============================================================================


class AttemptStatus(str, Enum):
    """How a gateway attempt settled."""

    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    NETWORK_ERROR = "network_error"
    REDIRECT = "redirect"
    TIMEOUT = "timeout"
    TOO_LARGE = "too_large"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class AttemptEvent:
    """Settled gateway attempt."""

    url: str
    host: str
    index: int  # launch position in the gateway list
    status: AttemptStatus
    status_code: int = 0  # 0 when no response headers arrived
    elapsed_ms: float = 0.0
    bytes_read: int = 0
    error: Optional[str] = None
    ts: str = field(default_factory=_utc_timestamp)
    event_type: str = "gateway.attempt"

    @property
    def ok(self) -> bool:
        return self.status is AttemptStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        payload["elapsed_ms"] = round(self.elapsed_ms, 2)
        return payload


class AttemptTrace:
    """Mutable state of one in-flight attempt; the clock starts at construction."""

    def __init__(self, url: str, index: int) -> None:
        self.url = url
        self.index = index
        self.status = AttemptStatus.SUCCESS
        self.status_code = 0
        self.error: Optional[str] = None
        self._started = time.perf_counter()

    def response(self, status_code: int) -> None:
        self.status_code = status_code

    def fail(self, status: AttemptStatus, error: str) -> None:
        self.status = status
        self.error = error

    def settle(self, bytes_read: int) -> AttemptEvent:
        return AttemptEvent(
            url=self.url,
            host=host_for_telemetry(self.url),
            index=self.index,
            status=self.status,
            status_code=self.status_code,
            elapsed_ms=(time.perf_counter() - self._started) * 1000.0,
            bytes_read=bytes_read,
            error=self.error,
        )


# ============================================================================
# Emission
# ============================================================================


class AttemptEventEmitter:
    """
    Fan-out for ``gateway.attempt`` events.

    Every event is logged at debug level, then passed to each registered
    handler (metrics, JSONL sinks, test recorders). A failing handler is
    logged and skipped; it never fails the retrieval.
    """

    def __init__(self) -> None:
        self.handlers: list[AttemptHandler] = []

    def add_handler(self, handler: AttemptHandler) -> None:
        self.handlers.append(handler)

    def emit(self, event: AttemptEvent) -> None:
        logger.debug(
            f"gateway.attempt #{event.index} {event.host}: {event.status.value} "
            f"({event.elapsed_ms:.1f}ms, {event.bytes_read} bytes)"
            + (f" [{event.error}]" if event.error else "")
        )
        for handler in self.handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler failed: {e}", exc_info=True)


_default_emitter: Optional[AttemptEventEmitter] = None


def get_attempt_emitter() -> AttemptEventEmitter:
    """Process-wide emitter used by fetchers built without one."""
    global _default_emitter
    if _default_emitter is None:
        _default_emitter = AttemptEventEmitter()
    return _default_emitter


def reset_attempt_emitter() -> None:
    """Drop the process-wide emitter and its handlers."""
    global _default_emitter
    _default_emitter = None
