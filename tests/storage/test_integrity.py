"""Content verification tests for CIDv0 digests and the CIDv1 fail-closed path."""

from __future__ import annotations

import hashlib

import base58
import pytest

from AgentSDK.Storage.integrity import SHA256_MULTIHASH_PREFIX, compute_cid_v0, verify_content
from AgentSDK.Storage.cid import parse_cid

CID_V1 = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"


def test_compute_cid_v0_shape() -> None:
    cid = compute_cid_v0(b"hello world")

    assert cid.startswith("Qm")
    assert len(cid) == 46
    decoded = base58.b58decode(cid)
    assert decoded[:2] == SHA256_MULTIHASH_PREFIX
    assert decoded[2:] == hashlib.sha256(b"hello world").digest()


def test_verify_content_accepts_matching_bytes() -> None:
    content = b'{"name": "agent"}'
    cid = compute_cid_v0(content)

    assert verify_content(cid, content) is True
    assert verify_content(parse_cid(f"ipfs://{cid}"), content) is True


def test_verify_content_rejects_tampered_bytes(caplog) -> None:
    cid = compute_cid_v0(b"original")

    with caplog.at_level("ERROR"):
        assert verify_content(cid, b"tampered") is False

    assert any("possible tampering" in record.message for record in caplog.records)


def test_verify_content_rejects_empty_body_for_nonempty_cid() -> None:
    assert verify_content(compute_cid_v0(b"data"), b"") is False


def test_verify_content_cid_v1_always_fails_closed(caplog) -> None:
    with caplog.at_level("WARNING"):
        assert verify_content(CID_V1, b"") is False
        assert verify_content(CID_V1, b"anything at all") is False

    assert any("CIDv1" in record.message for record in caplog.records)


def test_verify_content_rejects_unexpected_multihash_layout() -> None:
    digest = hashlib.sha256(b"data").digest()
    wrong_prefix = base58.b58encode(bytes([0x12, 0x21]) + digest).decode("ascii")

    assert verify_content(wrong_prefix, b"data") is False


@pytest.mark.parametrize("cid", ["QmShort", "Qm" + "1" * 44])
def test_verify_content_rejects_undecodable_or_short_digests(cid: str) -> None:
    assert verify_content(cid, b"data") is False
