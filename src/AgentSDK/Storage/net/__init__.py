"""
Network layer for AgentSDK.Storage.

Provides the async HTTPX client, bounded body streaming, and structured
attempt telemetry used by gateway and node retrieval.

Architecture:
- One AsyncClient per IPFSClient (injectable for tests)
- Redirects never followed; 3xx fails the attempt
- Hard byte ceiling enforced while streaming
- gateway.attempt events for every settled attempt
"""

from .body import BoundedBodyReader, advertised_length, read_bounded
from .client import build_async_client, check_response, host_for_telemetry
from .instrumentation import (
    AttemptEvent,
    AttemptTrace,
    AttemptEventEmitter,
    AttemptStatus,
    get_attempt_emitter,
    reset_attempt_emitter,
)

__all__ = [
    # Client factory
    "build_async_client",
    "check_response",
    "host_for_telemetry",
    # Body streaming
    "BoundedBodyReader",
    "advertised_length",
    "read_bounded",
    # Telemetry
    "AttemptEvent",
    "AttemptTrace",
    "AttemptEventEmitter",
    "AttemptStatus",
    "get_attempt_emitter",
    "reset_attempt_emitter",
]
