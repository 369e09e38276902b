# === NAVMAP v1 ===
# {
#   "module": "AgentSDK.Storage.cid",
#   "purpose": "Normalise and validate caller-supplied IPFS content identifiers",
#   "sections": [
#     {"id": "cidversion", "name": "CIDVersion", "anchor": "class-cidversion", "kind": "class"},
#     {"id": "contentidentifier", "name": "ContentIdentifier", "anchor": "class-contentidentifier", "kind": "class"},
#     {"id": "normalize-cid", "name": "normalize_cid", "anchor": "function-normalize-cid", "kind": "function"},
#     {"id": "validate-cid", "name": "validate_cid", "anchor": "function-validate-cid", "kind": "function"},
#     {"id": "parse-cid", "name": "parse_cid", "anchor": "function-parse-cid", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Content identifier normalisation and format validation.

Identifiers arrive from manifests, on-chain URIs, and user input in several
shapes (``ipfs://<cid>``, ``ipfs://<cid>/<path>`` or a bare CID).  Before any
URL is built from one, it is reduced to the bare identifier and matched
against exactly two accepted shapes:

- CIDv0: ``Qm`` followed by 44 base58btc characters (46 in total)
- CIDv1: ``b`` followed by at least 58 lowercase base32 characters

Anything else is rejected with :class:`InvalidCIDError` so the identifier can
never smuggle path segments, query strings, or schemes into a gateway URL.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum

from .errors import InvalidCIDError

__all__ = ["CIDVersion", "ContentIdentifier", "normalize_cid", "validate_cid", "parse_cid"]

IPFS_SCHEME = "ipfs://"

_CID_PATTERN = re.compile(r"^(Qm[1-9A-HJ-NP-Za-km-z]{44}|b[a-z2-7]{58,})$")


class CIDVersion(IntEnum):
    """Supported identifier versions."""

    V0 = 0
    V1 = 1


@dataclass(frozen=True, slots=True)
class ContentIdentifier:
    """A validated, bare content identifier."""

    value: str

    @property
    def version(self) -> CIDVersion:
        return CIDVersion.V0 if self.value.startswith("Qm") else CIDVersion.V1

    def __str__(self) -> str:
        return self.value


def normalize_cid(raw: str) -> str:
    """Strip an ``ipfs://`` scheme and anything after the first ``/``.

    Examples:
        >>> normalize_cid("ipfs://QmHash/metadata.json")
        'QmHash'
        >>> normalize_cid("QmHash")
        'QmHash'
    """

    cid = raw[len(IPFS_SCHEME) :] if raw.startswith(IPFS_SCHEME) else raw
    return cid.split("/", 1)[0]


def validate_cid(cid: str) -> None:
    """Raise :class:`InvalidCIDError` unless ``cid`` is a bare v0 or v1 identifier."""

    if not isinstance(cid, str) or not _CID_PATTERN.fullmatch(cid):
        raise InvalidCIDError(cid if isinstance(cid, str) else repr(cid))


def parse_cid(raw: str) -> ContentIdentifier:
    """Normalise and validate ``raw``, returning a :class:`ContentIdentifier`."""

    if not isinstance(raw, str):
        raise InvalidCIDError(repr(raw))
    cid = normalize_cid(raw)
    validate_cid(cid)
    return ContentIdentifier(cid)
