# === NAVMAP v1 ===
# {
#   "module": "AgentSDK.Storage.client",
#   "purpose": "Public IPFS client: verified retrieval plus upload and pin helpers",
#   "sections": [
#     {"id": "ipfsclient", "name": "IPFSClient", "anchor": "class-ipfsclient", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Client for decentralized storage with verified, content-addressed reads.

Retrieval pipeline (``IPFSClient.get``)::

    normalise -> validate -> fetch (hedged gateways | single node)
              -> verify digest -> decode UTF-8

Security:
- Identifiers are validated before any URL is built from them
- Responses are read under a hard byte ceiling
- Redirects are refused (SSRF via redirect to internal addresses)
- Losing gateway requests are cancelled once one succeeds
- Content is verified in every mode, including node mode, where the node
  already checks hashes

NOTE: DNS rebinding between validation and connection is NOT mitigated.
High-security deployments should resolve and pin gateway addresses, or use a
dedicated node.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional

import httpx

from .cid import parse_cid
from .config.models import StorageConfig
from .errors import IntegrityError
from .integrity import verify_content
from .net.client import build_async_client
from .net.instrumentation import AttemptEventEmitter
from .providers import ProviderMode, RetrievalStrategy, build_retrieval_strategy
from .upload import UploadStrategy, build_upload_strategy

__all__ = ["IPFSClient"]

logger = logging.getLogger(__name__)


class IPFSClient:
    """Async client for IPFS retrieval and upload.

    The provider is chosen once from ``config`` (Pinata, then Filecoin Pin,
    then a node URL).  Pinata and Filecoin Pin read through public gateways;
    node mode reads directly from the node.

    Args:
        config: Storage configuration.
        http_client: Optional AsyncClient to use instead of building one. It
            must not follow redirects, and it is not closed by :meth:`close`.
        emitter: Optional receiver for gateway.attempt events.

    Example:
        >>> async with IPFSClient(StorageConfig(node={"url": "http://localhost:5001"})) as ipfs:
        ...     text = await ipfs.get("ipfs://QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG")
    """

    def __init__(
        self,
        config: StorageConfig,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        emitter: Optional[AttemptEventEmitter] = None,
    ) -> None:
        self.config = config
        self.provider: ProviderMode = config.provider_mode()
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else build_async_client(config)
        self._retrieval: RetrievalStrategy = build_retrieval_strategy(
            self.provider, config, self._http, emitter=emitter
        )
        self._upload: UploadStrategy = build_upload_strategy(self.provider, config, self._http)
        logger.debug(f"IPFSClient ready: provider={self.provider.value}")

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    async def get_bytes(self, cid: str) -> bytes:
        """Return the verified bytes named by ``cid``.

        Raises:
            InvalidCIDError: Malformed identifier (no network access happened).
            GatewaysExhaustedError: Every gateway failed (gateway modes).
            TransportError / ContentTooLargeError: Node request failed (node mode).
            IntegrityError: Bytes do not match the identifier.
        """
        identifier = parse_cid(cid)
        content = await self._retrieval.fetch(identifier)
        if not verify_content(identifier, content):
            raise IntegrityError(identifier.value)
        return content

    async def get(self, cid: str) -> str:
        """Return the verified content named by ``cid`` decoded as UTF-8."""
        content = await self.get_bytes(cid)
        return content.decode("utf-8", errors="replace")

    async def get_json(self, cid: str) -> Any:
        """Return the verified content named by ``cid`` parsed as JSON."""
        return json.loads(await self.get(cid))

    # ------------------------------------------------------------------
    # Upload & pinning
    # ------------------------------------------------------------------

    async def add(self, data: str) -> str:
        """Upload ``data`` and return its CID."""
        return await self._upload.add(
            data.encode("utf-8"), filename="data.json", content_type="application/json"
        )

    async def add_json(self, data: Any) -> str:
        """Serialise ``data`` as indented JSON, upload it, and return its CID."""
        return await self.add(json.dumps(data, indent=2))

    async def add_file(self, path: str | Path) -> str:
        """Upload the file at ``path`` and return its CID."""
        file_path = Path(path)
        return await self._upload.add(
            file_path.read_bytes(),
            filename=file_path.name or "file",
            content_type="application/octet-stream",
        )

    async def pin(self, cid: str) -> list[str]:
        """Pin ``cid`` on the node; returns the pinned identifiers."""
        return await self._upload.pin(cid)

    async def unpin(self, cid: str) -> list[str]:
        """Unpin ``cid`` from the node; returns the unpinned identifiers."""
        return await self._upload.unpin(cid)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "IPFSClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
