# === NAVMAP v1 ===
# {
#   "module": "AgentSDK.Storage.config.loader",
#   "purpose": "Build a StorageConfig from a file layer, an environment layer and CLI overrides",
#   "sections": [
#     {"id": "file-layer", "name": "file_layer", "anchor": "function-file-layer", "kind": "function"},
#     {"id": "env-layer", "name": "env_layer", "anchor": "function-env-layer", "kind": "function"},
#     {"id": "deep-merge", "name": "deep_merge", "anchor": "function-deep-merge", "kind": "function"},
#     {"id": "load-config", "name": "load_config", "anchor": "function-load-config", "kind": "function"},
#     {"id": "validate-config-file", "name": "validate_config_file", "anchor": "function-validate-config-file", "kind": "function"},
#     {"id": "export-config-schema", "name": "export_config_schema", "anchor": "function-export-config-schema", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Layered storage configuration.

Each source produces a plain nested dict ("layer"); layers are deep-merged in
order and validated once at the end:

    file (YAML/JSON)  <  AGENTSDK_STORAGE_* environment  <  CLI overrides

Environment keys map onto sections with a double underscore:

    AGENTSDK_STORAGE_PINATA__JWT=...              -> pinata.jwt
    AGENTSDK_STORAGE_GATEWAY__HEDGE_DELAY_S=0.5   -> gateway.hedge_delay_s
    AGENTSDK_STORAGE_GATEWAY__GATEWAYS='["https://ipfs.io/ipfs/"]'

Values that parse as JSON (numbers, booleans, lists) are used as parsed;
anything else stays a string for pydantic to coerce. Environment values are
never logged because they routinely carry credentials.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Callable

import yaml

from .models import StorageConfig

ENV_PREFIX = "AGENTSDK_STORAGE_"

# names the config file itself (CLI --config); never a config field
CONFIG_PATH_ENV = f"{ENV_PREFIX}CONFIG"

_LOGGER = logging.getLogger(__name__)

_PARSERS: dict[str, Callable[[str], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.loads,
}

# ============================================================================
# Layers
# ============================================================================


def file_layer(path: str | os.PathLike[str]) -> dict[str, Any]:
    """
    Parse a YAML or JSON config file into a layer.

    Raises:
        ValueError: Missing, unreadable, unsupported or malformed file, or a
            document whose top level is not a mapping.
    """
    source = Path(path).expanduser()
    parser = _PARSERS.get(source.suffix.lower())
    if parser is None:
        raise ValueError(f"Unsupported file format: {source.suffix or '<none>'}. Use .yaml or .json")
    if not source.is_file():
        raise ValueError(f"Config file not found: {source}")

    try:
        document = parser(source.read_text(encoding="utf-8"))
    except OSError as e:
        raise ValueError(f"Cannot read config file {source}: {e}") from e
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {source}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {source}: {e}") from e

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ValueError(f"Config file {source} must contain a mapping at the top level")
    return document


def _env_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def env_layer(
    prefix: str = ENV_PREFIX, environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Collect ``<prefix>SECTION__FIELD`` variables into a nested layer."""
    layer: dict[str, Any] = {}
    for name, raw in (os.environ if environ is None else environ).items():
        if not name.startswith(prefix) or name == CONFIG_PATH_ENV:
            continue
        *sections, field_name = name[len(prefix) :].lower().split("__")
        target = layer
        for section in sections:
            target = target.setdefault(section, {})
        target[field_name] = _env_value(raw)
        _LOGGER.debug(f"Environment override: {name} → {'.'.join([*sections, field_name])}")
    return layer


def deep_merge(base: dict[str, Any], overlay: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge ``overlay`` into ``base`` in place; nested mappings merge, everything else replaces."""
    for key, value in (overlay or {}).items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            deep_merge(base[key], value)
        elif isinstance(value, Mapping):
            base[key] = deep_merge({}, value)
        else:
            base[key] = value
    return base


# ============================================================================
# Public API
# ============================================================================


def load_config(
    path: str | os.PathLike[str] | None = None,
    env_prefix: str = ENV_PREFIX,
    cli_overrides: Mapping[str, Any] | None = None,
) -> StorageConfig:
    """
    Build and validate a :class:`StorageConfig` (file < environment < CLI).

    Raises:
        ValueError: The file layer could not be loaded.
        pydantic.ValidationError: The merged layers do not form a valid config.
    """
    merged: dict[str, Any] = {}
    if path:
        try:
            deep_merge(merged, file_layer(path))
        except ValueError as e:
            _LOGGER.error(f"Failed to load config: {e}")
            raise
        _LOGGER.info(f"Loaded config from {path}")

    deep_merge(merged, env_layer(env_prefix))
    if cli_overrides:
        _LOGGER.debug(f"CLI overrides for sections: {sorted(cli_overrides)}")
        deep_merge(merged, cli_overrides)

    config = StorageConfig.model_validate(merged)
    _LOGGER.info(
        f"Storage config ready: provider sections={_enabled_sections(config)}, "
        f"hash={config.config_hash()[:8]}"
    )
    return config


def _enabled_sections(config: StorageConfig) -> list[str]:
    sections = []
    if config.pinata.enabled:
        sections.append("pinata")
    if config.filecoin_pin.enabled:
        sections.append("filecoin_pin")
    if config.node.url:
        sections.append("node")
    return sections


def validate_config_file(path: str | os.PathLike[str]) -> bool:
    """Return ``True`` if ``path`` (plus the current environment) yields a valid config."""
    load_config(path=path)
    return True


def export_config_schema() -> dict[str, Any]:
    """JSON Schema of :class:`StorageConfig`, for editors and config linting."""
    return StorageConfig.model_json_schema()
