"""Exception hierarchy shared across CID validation, retrieval, and upload.

Retrieval spans input validation, speculative gateway requests, bounded body
reads, and content verification.  The failure modes are grouped into a small
hierarchy so callers can react to high-level categories (bad input vs.
exhausted gateways vs. tampered content) while still having access to the
concrete error that explains a failure.
"""

from __future__ import annotations

from typing import Optional

__all__ = [
    "StorageError",
    "ConfigurationError",
    "InvalidCIDError",
    "TransportError",
    "RedirectBlockedError",
    "AttemptTimeoutError",
    "AttemptCancelledError",
    "ContentTooLargeError",
    "GatewaysExhaustedError",
    "IntegrityError",
    "UploadError",
]


class StorageError(RuntimeError):
    """Base exception for decentralized-storage client failures."""

    retryable: bool = False


class ConfigurationError(StorageError):
    """Raised when provider configuration is missing or inconsistent."""


class InvalidCIDError(StorageError, ValueError):
    """Raised when an identifier does not match a supported CID shape."""

    def __init__(self, cid: str) -> None:
        self.cid = cid
        super().__init__(f"Security: Invalid IPFS CID format: {cid[:20]}...")


class TransportError(StorageError):
    """Raised when a single gateway or node request fails."""

    retryable = True

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class RedirectBlockedError(TransportError):
    """Raised when a gateway answers with a redirect; redirects are never followed."""

    def __init__(self, url: str, status_code: int, location: Optional[str]) -> None:
        super().__init__(
            f"Redirect refused: HTTP {status_code} from gateway",
            url=url,
            status_code=status_code,
        )
        self.location = location


class AttemptTimeoutError(TransportError):
    """Raised when a gateway does not finish within its per-attempt timeout."""

    def __init__(self, url: str, timeout_s: float) -> None:
        super().__init__(f"Gateway timed out after {timeout_s:g}s", url=url)
        self.timeout_s = timeout_s


class AttemptCancelledError(StorageError):
    """Raised inside an attempt that observed the shared cancellation signal."""


class ContentTooLargeError(StorageError):
    """Raised when a response body exceeds the configured byte ceiling."""

    def __init__(self, limit: int, observed: int, *, advertised: bool = False) -> None:
        if advertised:
            message = f"Content too large: {observed} bytes > {limit} max"
        else:
            message = f"Response exceeded max size: {observed} > {limit} bytes"
        super().__init__(message)
        self.limit = limit
        self.observed = observed
        self.advertised = advertised


class GatewaysExhaustedError(StorageError):
    """Raised when every gateway attempt failed; ``last_error`` explains why."""

    retryable = True

    def __init__(self, attempts: int, last_error: Optional[BaseException]) -> None:
        if last_error is None:
            message = "Failed to retrieve data from all IPFS gateways"
        else:
            message = (
                f"Failed to retrieve data from all {attempts} IPFS gateway(s); "
                f"last error: {last_error}"
            )
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class IntegrityError(StorageError):
    """Raised when retrieved bytes do not hash to the digest named by the CID."""

    def __init__(self, cid: str) -> None:
        super().__init__("Security: IPFS content hash verification failed")
        self.cid = cid


class UploadError(StorageError):
    """Raised when adding or pinning content fails."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
