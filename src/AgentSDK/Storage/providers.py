"""Retrieval strategies selected once per client from the configured provider.

Each strategy implements the same ``fetch(cid) -> bytes`` contract:

- :class:`GatewayRetrieval` races the configured public gateways through a
  :class:`HedgedGatewayFetcher` (Pinata and Filecoin Pin modes).
- :class:`NodeRetrieval` streams ``cat`` from one self-hosted node through
  the same bounded reader; there is only one source, so no hedging.

Neither strategy verifies content; the client verifies unconditionally.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, Sequence
from urllib.parse import quote

import httpx

from .cid import ContentIdentifier
from .errors import AttemptTimeoutError, ConfigurationError
from .hedging import HedgedGatewayFetcher
from .net.body import read_bounded
from .net.client import check_response
from .net.instrumentation import AttemptEventEmitter
from .node import NodeAPI

if TYPE_CHECKING:
    from .config.models import StorageConfig

__all__ = [
    "GatewayRetrieval",
    "NodeRetrieval",
    "ProviderMode",
    "RetrievalStrategy",
    "build_retrieval_strategy",
    "gateway_urls",
]

logger = logging.getLogger(__name__)


class ProviderMode(str, Enum):
    """Storage provider backing a client."""

    PINATA = "pinata"
    FILECOIN_PIN = "filecoin_pin"
    NODE = "node"

    @property
    def uses_gateways(self) -> bool:
        return self is not ProviderMode.NODE


class RetrievalStrategy(Protocol):
    async def fetch(self, cid: ContentIdentifier) -> bytes: ...


def gateway_urls(gateways: Sequence[str], cid: ContentIdentifier | str) -> list[str]:
    """Bind ``cid`` to every gateway base, URL-encoding the identifier."""
    encoded = quote(str(cid), safe="")
    return [f"{gateway}{encoded}" for gateway in gateways]


class GatewayRetrieval:
    """Hedged retrieval across an ordered gateway list."""

    def __init__(self, fetcher: HedgedGatewayFetcher, gateways: Sequence[str]) -> None:
        self.fetcher = fetcher
        self.gateways = list(gateways)

    async def fetch(self, cid: ContentIdentifier) -> bytes:
        return await self.fetcher.fetch(gateway_urls(self.gateways, cid))


class NodeRetrieval:
    """Direct retrieval from a single node via ``/api/v0/cat``."""

    def __init__(self, node: NodeAPI, max_bytes: int) -> None:
        self.node = node
        self.max_bytes = max_bytes

    async def fetch(self, cid: ContentIdentifier) -> bytes:
        try:
            return await asyncio.wait_for(self._cat(cid), self.node.timeout_s)
        except asyncio.TimeoutError as e:
            raise AttemptTimeoutError(self.node.endpoint("cat"), self.node.timeout_s) from e

    async def _cat(self, cid: ContentIdentifier) -> bytes:
        async with self.node.stream("cat", params={"arg": str(cid)}) as response:
            check_response(response, self.node.endpoint("cat"))
            return await read_bounded(response, self.max_bytes)


def build_retrieval_strategy(
    mode: ProviderMode,
    config: "StorageConfig",
    client: httpx.AsyncClient,
    *,
    emitter: Optional[AttemptEventEmitter] = None,
) -> RetrievalStrategy:
    """Construct the retrieval strategy for ``mode``."""
    if mode.uses_gateways:
        policy = config.gateway
        fetcher = HedgedGatewayFetcher(
            client,
            max_bytes=config.max_response_bytes,
            timeout_s=policy.timeout_s,
            hedge_delay_s=policy.hedge_delay_s,
            max_concurrent=policy.max_concurrent,
            emitter=emitter,
        )
        return GatewayRetrieval(fetcher, policy.gateways)

    if not config.node.url:
        raise ConfigurationError("No IPFS node API URL configured")
    node = NodeAPI(client, config.node.url, timeout_s=config.node.timeout_s)
    return NodeRetrieval(node, config.max_response_bytes)
