"""Configuration model and loader tests (file < env < CLI precedence)."""

from __future__ import annotations

import json
import os

import pytest
from pydantic import ValidationError

from AgentSDK.Storage.config import (
    DEFAULT_GATEWAYS,
    DEFAULT_MAX_RESPONSE_BYTES,
    StorageConfig,
    export_config_schema,
    load_config,
    validate_config_file,
)
from AgentSDK.Storage.config.loader import CONFIG_PATH_ENV
from AgentSDK.Storage.errors import ConfigurationError
from AgentSDK.Storage.providers import ProviderMode

YAML_CONFIG = """
max_response_bytes: 4096
node:
  url: http://localhost:5001
gateway:
  hedge_delay_s: 1.5
  max_concurrent: 2
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("AGENTSDK_STORAGE_"):
            monkeypatch.delenv(key)


# ============================================================================
# Models
# ============================================================================


def test_defaults() -> None:
    config = StorageConfig()

    assert config.max_response_bytes == DEFAULT_MAX_RESPONSE_BYTES == 1024 * 1024
    assert config.gateway.gateways == DEFAULT_GATEWAYS
    assert config.gateway.timeout_s == 10.0
    assert config.gateway.hedge_delay_s == 2.0
    assert config.gateway.max_concurrent == 3
    assert config.http.verify_tls is True


def test_provider_precedence() -> None:
    both = StorageConfig(
        pinata={"enabled": True, "jwt": "jwt"},
        filecoin_pin={"enabled": True},
        node={"url": "http://localhost:5001"},
    )
    filecoin_and_node = StorageConfig(
        filecoin_pin={"enabled": True}, node={"url": "http://localhost:5001"}
    )
    node_only = StorageConfig(node={"url": "http://localhost:5001"})

    assert both.provider_mode() is ProviderMode.PINATA
    assert filecoin_and_node.provider_mode() is ProviderMode.FILECOIN_PIN
    assert node_only.provider_mode() is ProviderMode.NODE
    assert ProviderMode.PINATA.uses_gateways and not ProviderMode.NODE.uses_gateways


def test_missing_provider_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="No IPFS provider configured"):
        StorageConfig().provider_mode()


def test_pinata_without_jwt_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="pinata.jwt"):
        StorageConfig(pinata={"enabled": True}).provider_mode()


@pytest.mark.parametrize(
    "overrides",
    [
        {"gateway": {"gateways": []}},
        {"gateway": {"gateways": ["ftp://gw.example/ipfs/"]}},
        {"gateway": {"max_concurrent": 0}},
        {"gateway": {"hedge_delay_s": -1}},
        {"gateway": {"timeout_s": 0}},
        {"max_response_bytes": 0},
        {"node": {"url": "localhost:5001"}},
        {"unknown_section": {}},
        {"gateway": {"retries": 3}},
    ],
)
def test_invalid_values_rejected(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        StorageConfig.model_validate(overrides)


def test_secrets_are_masked_in_dumps_and_hash() -> None:
    config = StorageConfig(pinata={"enabled": True, "jwt": "super-secret"})

    dumped = json.dumps(config.model_dump(mode="json"))

    assert "super-secret" not in dumped
    assert config.pinata.jwt.get_secret_value() == "super-secret"
    assert len(config.config_hash()) == 64


def test_config_hash_is_deterministic() -> None:
    a = StorageConfig(node={"url": "http://localhost:5001"})
    b = StorageConfig(node={"url": "http://localhost:5001"})
    c = StorageConfig(node={"url": "http://localhost:5002"})

    assert a.config_hash() == b.config_hash()
    assert a.config_hash() != c.config_hash()


# ============================================================================
# Loader
# ============================================================================


def test_load_yaml_file(tmp_path) -> None:
    path = tmp_path / "storage.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")

    config = load_config(str(path))

    assert config.max_response_bytes == 4096
    assert config.node.url == "http://localhost:5001"
    assert config.gateway.hedge_delay_s == 1.5
    assert config.provider_mode() is ProviderMode.NODE
    assert validate_config_file(str(path)) is True


def test_load_json_file(tmp_path) -> None:
    path = tmp_path / "storage.json"
    path.write_text(json.dumps({"filecoin_pin": {"enabled": True}}), encoding="utf-8")

    assert load_config(str(path)).provider_mode() is ProviderMode.FILECOIN_PIN


def test_env_overrides_file_and_cli_overrides_env(tmp_path, monkeypatch) -> None:
    path = tmp_path / "storage.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")
    monkeypatch.setenv("AGENTSDK_STORAGE_GATEWAY__HEDGE_DELAY_S", "0.5")
    monkeypatch.setenv("AGENTSDK_STORAGE_GATEWAY__MAX_CONCURRENT", "5")
    monkeypatch.setenv("AGENTSDK_STORAGE_GATEWAY__GATEWAYS", '["https://env.example/ipfs/"]')
    monkeypatch.setenv("AGENTSDK_STORAGE_PINATA__ENABLED", "true")
    monkeypatch.setenv("AGENTSDK_STORAGE_PINATA__JWT", "env-jwt")

    config = load_config(str(path), cli_overrides={"gateway": {"max_concurrent": 1}})

    assert config.gateway.hedge_delay_s == 0.5
    assert config.gateway.max_concurrent == 1
    assert config.gateway.gateways == ["https://env.example/ipfs/"]
    assert config.max_response_bytes == 4096
    assert config.pinata.jwt.get_secret_value() == "env-jwt"
    assert config.provider_mode() is ProviderMode.PINATA


def test_env_values_are_never_logged(monkeypatch, caplog) -> None:
    monkeypatch.setenv("AGENTSDK_STORAGE_PINATA__JWT", "leak-me-not")

    with caplog.at_level("DEBUG"):
        load_config()

    assert "leak-me-not" not in caplog.text
    assert "pinata.jwt" in caplog.text


def test_config_path_variable_is_not_a_field(monkeypatch) -> None:
    monkeypatch.setenv(CONFIG_PATH_ENV, "/etc/agentsdk/storage.yaml")

    assert load_config().max_response_bytes == DEFAULT_MAX_RESPONSE_BYTES


def test_missing_or_unsupported_file(tmp_path) -> None:
    with pytest.raises(ValueError, match="not found"):
        load_config(str(tmp_path / "absent.yaml"))

    toml = tmp_path / "storage.toml"
    toml.write_text("x = 1", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported file format"):
        load_config(str(toml))


def test_invalid_yaml(tmp_path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("node: [unclosed", encoding="utf-8")

    with pytest.raises(ValueError, match="Invalid YAML"):
        load_config(str(path))


def test_export_schema_lists_sections() -> None:
    schema = export_config_schema()

    assert set(schema["properties"]) >= {"gateway", "node", "pinata", "filecoin_pin", "http"}
