"""
AgentSDK.Storage — verified content-addressed retrieval for decentralized storage.

Fetches bytes named by an IPFS CID from untrusted HTTP gateways (hedged and
capped) or a single node, enforces a byte ceiling while streaming, and
verifies the bytes against the digest embedded in the CID before returning
them.

Example:
    from AgentSDK.Storage import IPFSClient, StorageConfig

    config = StorageConfig(pinata={"enabled": True, "jwt": "..."})
    async with IPFSClient(config) as ipfs:
        registration = await ipfs.get_json("ipfs://Qm...")
"""

from .cid import CIDVersion, ContentIdentifier, normalize_cid, parse_cid, validate_cid
from .client import IPFSClient
from .config import StorageConfig, load_config
from .errors import (
    AttemptTimeoutError,
    ConfigurationError,
    ContentTooLargeError,
    GatewaysExhaustedError,
    IntegrityError,
    InvalidCIDError,
    RedirectBlockedError,
    StorageError,
    TransportError,
    UploadError,
)
from .hedging import HedgedGatewayFetcher
from .integrity import compute_cid_v0, verify_content
from .providers import ProviderMode

__all__ = [
    # Client
    "IPFSClient",
    "ProviderMode",
    "HedgedGatewayFetcher",
    # Configuration
    "StorageConfig",
    "load_config",
    # Identifiers
    "CIDVersion",
    "ContentIdentifier",
    "normalize_cid",
    "parse_cid",
    "validate_cid",
    "compute_cid_v0",
    "verify_content",
    # Errors
    "StorageError",
    "ConfigurationError",
    "InvalidCIDError",
    "TransportError",
    "RedirectBlockedError",
    "AttemptTimeoutError",
    "ContentTooLargeError",
    "GatewaysExhaustedError",
    "IntegrityError",
    "UploadError",
]
