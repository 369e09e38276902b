"""
Pydantic v2 Configuration Models for AgentSDK.Storage

Provides strict, typed configuration for the storage client:
- HTTP client settings (timeouts, TLS, pool limits)
- Gateway hedging policy (gateway list, per-gateway timeout, hedge delay, ceiling)
- Provider sections (self-hosted node, Pinata, Filecoin Pin)
- Top-level StorageConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

from typing import ClassVar, List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from ..errors import ConfigurationError
from ..providers import ProviderMode

DEFAULT_GATEWAYS = [
    "https://gateway.pinata.cloud/ipfs/",
    "https://ipfs.io/ipfs/",
    "https://dweb.link/ipfs/",
]

DEFAULT_MAX_RESPONSE_BYTES = 1 << 20

# ============================================================================
# Shared Policy Models
# ============================================================================


class HttpClientConfig(BaseModel):
    """Configuration for HTTP client behavior."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    user_agent: str = Field(default="AgentSDK/Storage", description="User-Agent string")
    timeout_connect_s: float = Field(default=5.0, description="Connection timeout in seconds")
    timeout_read_s: float = Field(default=30.0, description="Read timeout in seconds")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")
    trust_env: bool = Field(default=True, description="Honour proxy environment variables")
    max_connections: int = Field(default=20, description="Connection pool size")
    max_keepalive_connections: int = Field(default=10, description="Idle keep-alive connections")

    @field_validator("timeout_connect_s", "timeout_read_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @field_validator("max_connections", "max_keepalive_connections")
    @classmethod
    def validate_pool(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Pool sizes must be >= 1")
        return v


class GatewayPolicy(BaseModel):
    """Configuration for hedged gateway retrieval."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    gateways: List[str] = Field(
        default_factory=lambda: list(DEFAULT_GATEWAYS),
        description="Gateway base URLs in priority order; the CID is appended",
    )
    timeout_s: float = Field(default=10.0, description="Per-gateway timeout in seconds")
    hedge_delay_s: float = Field(
        default=2.0, description="Delay before launching the next speculative gateway"
    )
    max_concurrent: int = Field(default=3, description="Maximum simultaneous gateway attempts")

    @field_validator("gateways")
    @classmethod
    def validate_gateways(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("gateways must not be empty")
        for gateway in v:
            if not gateway.startswith(("https://", "http://")):
                raise ValueError(f"Gateway must be an http(s) URL: {gateway}")
        return v

    @field_validator("timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_s must be > 0")
        return v

    @field_validator("hedge_delay_s")
    @classmethod
    def validate_hedge_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("hedge_delay_s must be >= 0")
        return v

    @field_validator("max_concurrent")
    @classmethod
    def validate_max_concurrent(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent must be >= 1")
        return v


# ============================================================================
# Provider Models
# ============================================================================


class NodeConfig(BaseModel):
    """Self-hosted IPFS node (HTTP RPC API)."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    url: Optional[str] = Field(default=None, description="Node URL, e.g. http://localhost:5001")
    timeout_s: float = Field(default=10.0, description="Per-request timeout in seconds")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("https://", "http://")):
            raise ValueError(f"Node URL must be an http(s) URL: {v}")
        return v


class PinataConfig(BaseModel):
    """Pinata pinning service."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    enabled: bool = Field(default=False, description="Use Pinata for uploads")
    jwt: Optional[SecretStr] = Field(default=None, description="Pinata API JWT")
    upload_url: str = Field(
        default="https://uploads.pinata.cloud/v3/files", description="v3 upload endpoint"
    )
    gateway_url: str = Field(
        default="https://gateway.pinata.cloud/ipfs/",
        description="Gateway used for post-upload propagation checks",
    )
    upload_timeout_s: float = Field(default=80.0, description="Upload timeout in seconds")
    verify_timeout_s: float = Field(default=5.0, description="Propagation check timeout")


class FilecoinPinConfig(BaseModel):
    """Filecoin Pin service."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    enabled: bool = Field(default=False, description="Use Filecoin Pin")
    private_key: Optional[SecretStr] = Field(default=None, description="Filecoin signing key")


# ============================================================================
# Top-Level Configuration
# ============================================================================


class StorageConfig(BaseModel):
    """
    Single source of truth for AgentSDK.Storage configuration.

    Loaded from file (YAML/JSON), overlaid with environment variables,
    and finally overridden by CLI arguments. Precedence: file < env < CLI.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", validate_assignment=True)

    max_response_bytes: int = Field(
        default=DEFAULT_MAX_RESPONSE_BYTES,
        description="Byte ceiling for any retrieved response, in every mode",
    )
    http: HttpClientConfig = Field(
        default_factory=HttpClientConfig, description="HTTP client configuration"
    )
    gateway: GatewayPolicy = Field(
        default_factory=GatewayPolicy, description="Gateway hedging policy"
    )
    node: NodeConfig = Field(default_factory=NodeConfig, description="Self-hosted node")
    pinata: PinataConfig = Field(default_factory=PinataConfig, description="Pinata service")
    filecoin_pin: FilecoinPinConfig = Field(
        default_factory=FilecoinPinConfig, description="Filecoin Pin service"
    )

    @field_validator("max_response_bytes")
    @classmethod
    def validate_max_response_bytes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_response_bytes must be > 0")
        return v

    def provider_mode(self) -> ProviderMode:
        """
        Select the provider: Pinata, then Filecoin Pin, then a node URL.

        Raises:
            ConfigurationError: If no provider is configured, or Pinata is
                enabled without a JWT.
        """
        if self.pinata.enabled:
            if self.pinata.jwt is None or not self.pinata.jwt.get_secret_value():
                raise ConfigurationError("pinata.jwt is required when pinata.enabled=true")
            return ProviderMode.PINATA
        if self.filecoin_pin.enabled:
            return ProviderMode.FILECOIN_PIN
        if self.node.url:
            return ProviderMode.NODE
        raise ConfigurationError(
            "No IPFS provider configured. Set node.url, pinata.enabled, or filecoin_pin.enabled."
        )

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Secret values are masked before hashing.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
