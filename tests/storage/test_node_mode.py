"""Node-mode tests: direct ``/api/v0`` retrieval, uploads, and pinning."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from AgentSDK.Storage import IPFSClient, ProviderMode
from AgentSDK.Storage.errors import (
    AttemptTimeoutError,
    ContentTooLargeError,
    IntegrityError,
    RedirectBlockedError,
    TransportError,
    UploadError,
)
from AgentSDK.Storage.integrity import compute_cid_v0
from AgentSDK.Storage.node import normalize_node_api_base
from tests.storage.support import hang, mock_client, multipart_file, node_config


class FakeNode:
    """In-memory node answering add, cat, pin/add and pin/rm."""

    def __init__(self) -> None:
        self.blocks: dict[str, bytes] = {}
        self.pins: set[str] = set()
        self.requests: list[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method != "POST":
            return httpx.Response(405)
        command = request.url.path.removeprefix("/api/v0/")
        arg = request.url.params.get("arg")

        if command == "add":
            await request.aread()
            data = multipart_file(request)
            cid = compute_cid_v0(data)
            self.blocks[cid] = data
            if request.url.params.get("pin") == "true":
                self.pins.add(cid)
            line = json.dumps({"Name": "data.json", "Hash": cid, "Size": str(len(data))})
            return httpx.Response(200, text=line + "\n")
        if command == "cat":
            if arg not in self.blocks:
                return httpx.Response(500, json={"Message": "block not found", "Code": 0})
            return httpx.Response(200, content=self.blocks[arg])
        if command == "pin/add":
            self.pins.add(arg)
            return httpx.Response(200, json={"Pins": [arg]})
        if command == "pin/rm":
            if arg not in self.pins:
                return httpx.Response(500, json={"Message": "not pinned"})
            self.pins.discard(arg)
            return httpx.Response(200, json={"Pins": [arg]})
        return httpx.Response(404)


def _run(node, operation, **config_overrides):
    async def scenario():
        config = node_config(**config_overrides)
        async with IPFSClient(config, http_client=mock_client(node)) as ipfs:
            assert ipfs.provider is ProviderMode.NODE
            return await operation(ipfs)

    return asyncio.run(scenario())


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://localhost:5001", "http://localhost:5001/api/v0"),
        ("http://localhost:5001/", "http://localhost:5001/api/v0"),
        ("http://localhost:5001/api/v0", "http://localhost:5001/api/v0"),
        ("http://localhost:5001/api/v0/", "http://localhost:5001/api/v0"),
        ("https://node.internal/ipfs-rpc?token=x#frag", "https://node.internal/ipfs-rpc/api/v0"),
    ],
)
def test_normalize_node_api_base(url: str, expected: str) -> None:
    assert normalize_node_api_base(url) == expected


def test_cat_returns_verified_content() -> None:
    node = FakeNode()
    content = b'{"kind": "agent"}'
    cid = compute_cid_v0(content)
    node.blocks[cid] = content

    assert _run(node, lambda ipfs: ipfs.get_json(f"ipfs://{cid}")) == {"kind": "agent"}
    request = node.requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"http://node.test:5001/api/v0/cat?arg={cid}"


def test_node_content_is_still_verified() -> None:
    node = FakeNode()
    cid = compute_cid_v0(b"original")
    node.blocks[cid] = b"tampered"

    with pytest.raises(IntegrityError):
        _run(node, lambda ipfs: ipfs.get(cid))


def test_node_http_error_raises_transport_error() -> None:
    node = FakeNode()

    with pytest.raises(TransportError) as exc_info:
        _run(node, lambda ipfs: ipfs.get(compute_cid_v0(b"missing")))

    assert exc_info.value.status_code == 500


def test_node_response_over_ceiling_is_rejected() -> None:
    node = FakeNode()
    content = b"y" * 2048
    cid = compute_cid_v0(content)
    node.blocks[cid] = content

    with pytest.raises(ContentTooLargeError):
        asyncio.run(_oversized(node, cid))


async def _oversized(node: FakeNode, cid: str) -> None:
    config = node_config()
    config.max_response_bytes = 1024
    async with IPFSClient(config, http_client=mock_client(node)) as ipfs:
        await ipfs.get(cid)


def test_node_redirect_is_refused() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(307, headers={"Location": "http://127.0.0.1:8080/"})

    with pytest.raises(RedirectBlockedError):
        _run(handler, lambda ipfs: ipfs.get(compute_cid_v0(b"x")))


def test_node_timeout() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        await hang()
        return httpx.Response(200)

    with pytest.raises(AttemptTimeoutError):
        _run(handler, lambda ipfs: ipfs.get(compute_cid_v0(b"x")), timeout_s=0.05)


def test_node_connection_failure_is_wrapped() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        _run(handler, lambda ipfs: ipfs.get(compute_cid_v0(b"x")))

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


def test_add_pin_unpin_round_trip() -> None:
    node = FakeNode()
    payload = {"name": "agent", "skills": ["search"]}

    async def flow(ipfs: IPFSClient):
        cid = await ipfs.add_json(payload)
        fetched = await ipfs.get_json(cid)
        pinned = await ipfs.pin(cid)
        unpinned = await ipfs.unpin(cid)
        return cid, fetched, pinned, unpinned

    cid, fetched, pinned, unpinned = _run(node, flow)

    assert fetched == payload
    assert pinned == [cid]
    assert unpinned == [cid]
    assert cid not in node.pins
    add_request = node.requests[0]
    assert add_request.url.path == "/api/v0/add"
    assert add_request.url.params["pin"] == "true"


def test_unpin_failure_raises_upload_error() -> None:
    node = FakeNode()

    with pytest.raises(UploadError) as exc_info:
        _run(node, lambda ipfs: ipfs.unpin(compute_cid_v0(b"never pinned")))

    assert exc_info.value.status_code == 500


def test_add_failure_raises_upload_error() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="repo locked")

    with pytest.raises(UploadError) as exc_info:
        _run(handler, lambda ipfs: ipfs.add("data"))

    assert "repo locked" in str(exc_info.value)
