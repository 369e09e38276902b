"""
HTTPX AsyncClient Factory & Response Gates.

Async HTTP client for gateway and node traffic with:
- Explicit timeouts and pool limits
- Redirects never followed (3xx is a failed attempt, not a hop)
- Event hooks for debug-level request/response logging
- Status gate shared by gateway and node paths

Architecture:
1. build_async_client(config) → httpx.AsyncClient owned by one IPFSClient
2. Hooks log each request/response pair
3. check_response() rejects redirects and non-success statuses
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any

import httpx

from ..errors import RedirectBlockedError, TransportError

__all__ = ["build_async_client", "check_response", "host_for_telemetry"]

logger = logging.getLogger(__name__)


# ============================================================================
# Client Construction
# ============================================================================


def build_async_client(config: Any) -> httpx.AsyncClient:
    """Build a new AsyncClient from a :class:`StorageConfig`."""
    cfg = config.http

    timeout = httpx.Timeout(
        cfg.timeout_read_s,
        connect=cfg.timeout_connect_s,
    )
    limits = httpx.Limits(
        max_connections=cfg.max_connections,
        max_keepalive_connections=cfg.max_keepalive_connections,
    )

    client = httpx.AsyncClient(
        timeout=timeout,
        limits=limits,
        verify=cfg.verify_tls,
        trust_env=cfg.trust_env,
        headers={
            "User-Agent": cfg.user_agent,
            "Accept": "*/*",
        },
        follow_redirects=False,  # CRITICAL: redirects could target internal addresses
        event_hooks={"request": [_on_request], "response": [_on_response]},
    )

    logger.debug(f"HTTPX async client created: verify_tls={cfg.verify_tls}")
    return client


# ============================================================================
# Event Hooks
# ============================================================================


async def _on_request(request: httpx.Request) -> None:
    """Hook: capture request start time and correlation id."""
    request.extensions["t0_perf"] = time.perf_counter()
    request.extensions["request_id"] = os.urandom(8).hex()


async def _on_response(response: httpx.Response) -> None:
    """Hook: log method, host, status and time to headers."""
    req = response.request
    t0 = req.extensions.get("t0_perf", time.perf_counter())
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(
        f"http: {req.method} {host_for_telemetry(str(req.url))} -> {response.status_code} "
        f"({elapsed_ms:.1f}ms, request_id={req.extensions.get('request_id')})"
    )


# ============================================================================
# Response Gates
# ============================================================================


def check_response(response: httpx.Response, url: str) -> None:
    """Raise unless ``response`` is a 2xx answer.

    Raises:
        RedirectBlockedError: For any 3xx status (with or without Location).
        TransportError: For every other non-success status.
    """
    status = response.status_code
    if 300 <= status < 400:
        location = response.headers.get("location")
        logger.warning(f"Redirect blocked from {host_for_telemetry(url)} (HTTP {status})")
        raise RedirectBlockedError(url, status, location)
    if not 200 <= status < 300:
        raise TransportError(f"HTTP {status}", url=url, status_code=status)


def host_for_telemetry(url: str) -> str:
    """
    Extract and normalize host from URL for consistent log and event keys.

    Returns:
        Lowercased hostname, or "unknown" on error
    """
    try:
        host = httpx.URL(url).host
    except Exception:
        return "unknown"
    return host.lower() if host else "unknown"
