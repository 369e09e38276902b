"""
AgentSDK.Storage Configuration Package

Public API for loading, validating, and introspecting storage configuration.

Example:
    from AgentSDK.Storage.config import load_config

    # Load from file with env/CLI overrides
    config = load_config(
        path="storage.yaml",
        cli_overrides={"gateway": {"hedge_delay_s": 1.0}},
    )
"""

from .loader import (
    ENV_PREFIX,
    export_config_schema,
    load_config,
    validate_config_file,
)
from .models import (
    DEFAULT_GATEWAYS,
    DEFAULT_MAX_RESPONSE_BYTES,
    FilecoinPinConfig,
    GatewayPolicy,
    HttpClientConfig,
    NodeConfig,
    PinataConfig,
    StorageConfig,
)

__all__ = [
    # Models
    "StorageConfig",
    "GatewayPolicy",
    "HttpClientConfig",
    "NodeConfig",
    "PinataConfig",
    "FilecoinPinConfig",
    "DEFAULT_GATEWAYS",
    "DEFAULT_MAX_RESPONSE_BYTES",
    # Loading/validation
    "ENV_PREFIX",
    "load_config",
    "validate_config_file",
    "export_config_schema",
]
