"""HTTP RPC plumbing for a self-hosted IPFS node.

The node exposes ``/api/v0/<command>`` endpoints that only accept ``POST``.
Base URLs are normalised so ``http://host:5001``, ``http://host:5001/`` and
``http://host:5001/api/v0`` all address the same API root.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx

from .errors import AttemptTimeoutError, TransportError

__all__ = ["NodeAPI", "normalize_node_api_base"]

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v0"


def normalize_node_api_base(url: str) -> str:
    """Return ``url`` with ``/api/v0`` appended and query/fragment removed.

    Examples:
        >>> normalize_node_api_base("http://localhost:5001/")
        'http://localhost:5001/api/v0'
        >>> normalize_node_api_base("http://node.internal/api/v0?x=1")
        'http://node.internal/api/v0'
    """
    parts = urlsplit(url)
    path = parts.path.rstrip("/")
    if not path.endswith(API_PREFIX):
        path = f"{path}{API_PREFIX}"
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


class NodeAPI:
    """Thin wrapper issuing RPC calls against one node."""

    def __init__(self, client: httpx.AsyncClient, url: str, *, timeout_s: float = 10.0) -> None:
        self.client = client
        self.base_url = normalize_node_api_base(url)
        self.timeout_s = timeout_s

    def endpoint(self, command: str) -> str:
        return f"{self.base_url}/{command.lstrip('/')}"

    async def post(
        self,
        command: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        files: Optional[Any] = None,
    ) -> httpx.Response:
        """POST ``command`` and return the fully read response."""
        url = self.endpoint(command)
        try:
            return await asyncio.wait_for(
                self.client.post(url, params=params, files=files), self.timeout_s
            )
        except asyncio.TimeoutError as e:
            raise AttemptTimeoutError(url, self.timeout_s) from e
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}", url=url) from e

    @asynccontextmanager
    async def stream(
        self, command: str, *, params: Optional[Mapping[str, str]] = None
    ) -> AsyncIterator[httpx.Response]:
        """POST ``command`` and yield the response with its body still unread."""
        url = self.endpoint(command)
        try:
            async with self.client.stream("POST", url, params=params) as response:
                yield response
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}", url=url) from e
