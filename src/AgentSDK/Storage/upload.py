"""Upload and pin strategies, one per provider mode.

Uploads are plain sequential HTTP calls:

- node: multipart ``POST /api/v0/add?pin=true``; the CID is read from the
  last NDJSON line of the response.
- pinata: multipart ``POST`` to the v3 files endpoint with a bearer JWT,
  followed by a best-effort gateway propagation check.
- filecoin_pin: not available over HTTP; uploads raise :class:`UploadError`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Optional, Protocol

import httpx

from .errors import ConfigurationError, UploadError
from .node import NodeAPI
from .providers import ProviderMode

if TYPE_CHECKING:
    from .config.models import PinataConfig, StorageConfig

__all__ = [
    "FilecoinPinUpload",
    "NodeUpload",
    "PinataUpload",
    "UploadStrategy",
    "build_upload_strategy",
    "extract_cid_from_add_response",
]

logger = logging.getLogger(__name__)


class UploadStrategy(Protocol):
    async def add(self, data: bytes, *, filename: str, content_type: str) -> str: ...

    async def pin(self, cid: str) -> list[str]: ...

    async def unpin(self, cid: str) -> list[str]: ...


def extract_cid_from_add_response(text: str) -> str:
    """Return the CID from an ``add`` response (one JSON object per line, last wins)."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        raise UploadError("Empty response from IPFS add endpoint")

    parsed: list[dict[str, Any]] = []
    for line in lines:
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(entry, dict):
            parsed.append(entry)
    if not parsed:
        raise UploadError("Invalid JSON response from IPFS add endpoint")

    last = parsed[-1]
    cid = last.get("Hash") or last.get("Cid") or last.get("cid")
    if not isinstance(cid, str) or not cid:
        raise UploadError(f"No CID returned from IPFS add endpoint: {text[:200]}")
    return cid


def _pins_from_payload(response: httpx.Response, cid: str) -> list[str]:
    try:
        payload = response.json()
    except ValueError:
        return [cid]
    pins = payload.get("Pins") if isinstance(payload, dict) else None
    if isinstance(pins, list):
        return [entry for entry in pins if isinstance(entry, str)]
    return [cid]


class NodeUpload:
    """Add and pin content on a self-hosted node."""

    def __init__(self, node: NodeAPI) -> None:
        self.node = node

    async def add(self, data: bytes, *, filename: str, content_type: str) -> str:
        response = await self.node.post(
            "add", params={"pin": "true"}, files={"file": (filename, data, content_type)}
        )
        if response.is_error:
            raise UploadError(
                f"Failed to add data to IPFS node: HTTP {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        return extract_cid_from_add_response(response.text)

    async def pin(self, cid: str) -> list[str]:
        return await self._pin_command("pin/add", cid, "pin")

    async def unpin(self, cid: str) -> list[str]:
        return await self._pin_command("pin/rm", cid, "unpin")

    async def _pin_command(self, command: str, cid: str, verb: str) -> list[str]:
        response = await self.node.post(command, params={"arg": cid})
        if response.is_error:
            raise UploadError(
                f"Failed to {verb} CID on IPFS node: HTTP {response.status_code} {response.text[:200]}",
                status_code=response.status_code,
            )
        return _pins_from_payload(response, cid)


class PinataUpload:
    """Upload through the Pinata v3 files API."""

    def __init__(self, client: httpx.AsyncClient, config: "PinataConfig") -> None:
        if config.jwt is None:
            raise ConfigurationError("pinata.jwt is required when pinata.enabled=true")
        self.client = client
        self.config = config

    async def add(self, data: bytes, *, filename: str, content_type: str) -> str:
        headers = {"Authorization": f"Bearer {self.config.jwt.get_secret_value()}"}
        try:
            response = await asyncio.wait_for(
                self.client.post(
                    self.config.upload_url,
                    headers=headers,
                    files={"file": (filename, data, content_type)},
                    data={"network": "public"},
                ),
                self.config.upload_timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise UploadError(
                f"Pinata upload timed out after {self.config.upload_timeout_s:g} seconds"
            ) from e
        except httpx.HTTPError as e:
            raise UploadError(f"Failed to pin to Pinata: {type(e).__name__}: {e}") from e

        if response.is_error:
            raise UploadError(
                f"Failed to pin to Pinata: HTTP {response.status_code} - {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise UploadError("Failed to pin to Pinata: response is not JSON") from e

        cid = _cid_from_pinata_result(result)
        if not cid:
            raise UploadError(f"No CID returned from Pinata. Response: {json.dumps(result)[:200]}")

        await self._check_propagation(cid)
        return cid

    async def _check_propagation(self, cid: str) -> None:
        """Best-effort gateway check; content may take a while to propagate."""
        url = f"{self.config.gateway_url}{cid}"
        try:
            response = await asyncio.wait_for(
                self.client.head(url), self.config.verify_timeout_s
            )
        except asyncio.TimeoutError:
            logger.warning("Pinata verification timed out, content may propagate with delay")
            return
        except httpx.HTTPError:
            logger.warning("Pinata verification failed, content may propagate with delay")
            return

        if response.status_code == 429:
            logger.warning("Pinata gateway rate-limited, verification skipped")
        elif response.is_error or response.is_redirect:
            logger.warning(
                f"Pinata verification failed (HTTP {response.status_code}), "
                "content may propagate with delay"
            )

    async def pin(self, cid: str) -> list[str]:
        raise ConfigurationError("pin() requires a node provider; Pinata pins on upload")

    async def unpin(self, cid: str) -> list[str]:
        raise ConfigurationError("unpin() requires a node provider")


def _cid_from_pinata_result(result: Any) -> Optional[str]:
    if not isinstance(result, dict):
        return None
    data = result.get("data")
    if isinstance(data, dict) and isinstance(data.get("cid"), str):
        return data["cid"]
    for key in ("cid", "IpfsHash"):
        if isinstance(result.get(key), str):
            return result[key]
    return None


class FilecoinPinUpload:
    """Filecoin Pin pins automatically; HTTP uploads are not available."""

    async def add(self, data: bytes, *, filename: str, content_type: str) -> str:
        raise UploadError(
            "Filecoin Pin uploads are not available over HTTP. "
            "Use the filecoin-pin CLI or a node provider."
        )

    async def pin(self, cid: str) -> list[str]:
        return [cid]

    async def unpin(self, cid: str) -> list[str]:
        return [cid]


def build_upload_strategy(
    mode: ProviderMode, config: "StorageConfig", client: httpx.AsyncClient
) -> UploadStrategy:
    """Construct the upload strategy for ``mode``."""
    if mode is ProviderMode.PINATA:
        return PinataUpload(client, config.pinata)
    if mode is ProviderMode.FILECOIN_PIN:
        return FilecoinPinUpload()
    if not config.node.url:
        raise ConfigurationError("No IPFS node API URL configured")
    return NodeUpload(NodeAPI(client, config.node.url, timeout_s=config.node.timeout_s))
