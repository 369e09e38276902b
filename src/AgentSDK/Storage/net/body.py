# === NAVMAP v1 ===
# {
#   "module": "AgentSDK.Storage.net.body",
#   "purpose": "Read one streamed HTTP response body under a hard byte ceiling",
#   "sections": [
#     {"id": "advertised-length", "name": "advertised_length", "anchor": "function-advertised-length", "kind": "function"},
#     {"id": "boundedbodyreader", "name": "BoundedBodyReader", "anchor": "class-boundedbodyreader", "kind": "class"},
#     {"id": "read-bounded", "name": "read_bounded", "anchor": "function-read-bounded", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Bounded streaming of untrusted response bodies.

Memory discipline for gateway responses:
- Reject early when ``Content-Length`` already exceeds the ceiling
- Count every chunk; fail the instant the running total crosses the ceiling
  (servers may omit or understate ``Content-Length``)
- Check the shared cancellation token between chunks
- Never return a partial body
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..cancellation import CancellationToken
from ..errors import ContentTooLargeError

__all__ = ["BoundedBodyReader", "advertised_length", "read_bounded"]

logger = logging.getLogger(__name__)


def advertised_length(response: httpx.Response) -> Optional[int]:
    """Return the ``Content-Length`` header as an int, or ``None`` if absent or malformed."""

    raw = response.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        logger.debug(f"Ignoring malformed Content-Length header: {raw[:32]!r}")
        return None


class BoundedBodyReader:
    """Accumulate a streamed response body, enforcing ``max_bytes``.

    The reader keeps its running byte counter and chunk list as attributes so
    an owning attempt can report how far a transfer got when it failed.
    """

    def __init__(self, max_bytes: int, token: Optional[CancellationToken] = None) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")
        self.max_bytes = max_bytes
        self.token = token
        self.bytes_read = 0
        self.chunks: list[bytes] = []

    async def read(self, response: httpx.Response) -> bytes:
        """Consume ``response`` and return the complete body.

        Raises:
            ContentTooLargeError: If the advertised or actual size exceeds the ceiling.
            AttemptCancelledError: If the cancellation token fires mid-stream.
        """
        length = advertised_length(response)
        if length is not None and length > self.max_bytes:
            raise ContentTooLargeError(self.max_bytes, length, advertised=True)

        async for chunk in response.aiter_bytes():
            if self.token is not None:
                self.token.raise_if_cancelled()
            if not chunk:
                continue
            self.bytes_read += len(chunk)
            if self.bytes_read > self.max_bytes:
                self.chunks.clear()
                raise ContentTooLargeError(self.max_bytes, self.bytes_read)
            self.chunks.append(chunk)

        return b"".join(self.chunks)


async def read_bounded(
    response: httpx.Response,
    max_bytes: int,
    *,
    token: Optional[CancellationToken] = None,
) -> bytes:
    """Read ``response`` with a hard byte ceiling (see :class:`BoundedBodyReader`)."""

    return await BoundedBodyReader(max_bytes, token).read(response)
