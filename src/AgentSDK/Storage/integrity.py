"""Content verification against the digest embedded in a CID.

Gateways are untrusted: a 200 response only proves that *some* bytes arrived.
A CIDv0 is the base58btc encoding of a SHA-256 multihash, so the digest it
names can be recomputed locally and compared.  CIDv1 verification is not
implemented and fails closed: unverifiable content is always rejected.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

import base58

from .cid import CIDVersion, ContentIdentifier

__all__ = ["SHA256_MULTIHASH_PREFIX", "compute_cid_v0", "verify_content"]

logger = logging.getLogger(__name__)

# multihash header: 0x12 = sha2-256, 0x20 = 32-byte digest
SHA256_MULTIHASH_PREFIX = bytes([0x12, 0x20])
_MULTIHASH_LENGTH = len(SHA256_MULTIHASH_PREFIX) + hashlib.sha256().digest_size


def compute_cid_v0(content: bytes) -> str:
    """Return the CIDv0 naming ``content`` stored as a single raw block."""

    digest = hashlib.sha256(content).digest()
    return base58.b58encode(SHA256_MULTIHASH_PREFIX + digest).decode("ascii")


def verify_content(cid: ContentIdentifier | str, content: bytes) -> bool:
    """Return ``True`` only if ``content`` hashes to the digest named by ``cid``."""

    value = str(cid)
    if ContentIdentifier(value).version is not CIDVersion.V0:
        logger.warning("CIDv1 hash verification not implemented, rejecting unverifiable content")
        return False

    try:
        decoded = base58.b58decode(value)
    except ValueError:
        logger.warning("Failed to decode CID for verification, rejecting")
        return False

    if len(decoded) != _MULTIHASH_LENGTH or decoded[:2] != SHA256_MULTIHASH_PREFIX:
        logger.warning("CIDv0 unexpected multihash layout, rejecting")
        return False

    matches = hmac.compare_digest(hashlib.sha256(content).digest(), decoded[2:])
    if not matches:
        logger.error("Security: IPFS content hash mismatch - possible tampering")
    return matches
