"""Helpers for AgentSDK.Storage tests.

All network behaviour is simulated with ``httpx.MockTransport`` async
handlers; tests drive coroutines with ``asyncio.run``.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Awaitable, Callable

import httpx

from AgentSDK.Storage.config import StorageConfig

Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]

GATEWAYS = [f"https://gw{i}.test/ipfs/" for i in range(6)]


def gateway_config(
    count: int = 3,
    *,
    timeout_s: float = 2.0,
    hedge_delay_s: float = 0.02,
    max_concurrent: int = 3,
    max_response_bytes: int = 1 << 20,
) -> StorageConfig:
    """Pinata-mode config (gateway retrieval) over ``count`` fake gateways."""
    return StorageConfig(
        max_response_bytes=max_response_bytes,
        pinata={"enabled": True, "jwt": "test-jwt"},
        gateway={
            "gateways": GATEWAYS[:count],
            "timeout_s": timeout_s,
            "hedge_delay_s": hedge_delay_s,
            "max_concurrent": max_concurrent,
        },
    )


def node_config(**overrides: Any) -> StorageConfig:
    return StorageConfig(node={"url": "http://node.test:5001", **overrides})


def mock_client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler), follow_redirects=False)


def gateway_index(request: httpx.Request) -> int:
    """Return ``N`` for a request sent to ``gwN.test``."""
    return int(request.url.host.split(".")[0][2:])


async def hang(seconds: float = 30.0) -> None:
    await asyncio.sleep(seconds)


def counting_body(chunks: int, chunk_size: int, delivered: list[int]) -> AsyncIterator[bytes]:
    """Async body that records every chunk handed to the reader."""

    async def _body() -> AsyncIterator[bytes]:
        for _ in range(chunks):
            delivered.append(chunk_size)
            yield b"x" * chunk_size

    return _body()


def multipart_file(request: httpx.Request) -> bytes:
    """Return the ``file`` part of a multipart request already read with ``aread``."""
    content_type = request.headers["content-type"]
    boundary = content_type.split("boundary=", 1)[1].encode("ascii")
    for part in request.content.split(b"--" + boundary):
        if b'name="file"' in part:
            payload = part.split(b"\r\n\r\n", 1)[1]
            return payload[: -len(b"\r\n")] if payload.endswith(b"\r\n") else payload
    raise AssertionError("multipart request has no file part")
