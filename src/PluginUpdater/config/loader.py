# === NAVMAP v1 ===
# {
#   "module": "PluginUpdater.config.loader",
#   "purpose": "Configuration Loading with File/Env/CLI Precedence.",
#   "sections": [
#     {
#       "id": "read-file",
#       "name": "_read_file",
#       "anchor": "function-read-file",
#       "kind": "function"
#     },
#     {
#       "id": "assign-nested",
#       "name": "_assign_nested",
#       "anchor": "function-assign-nested",
#       "kind": "function"
#     },
#     {
#       "id": "coerce-env-value",
#       "name": "_coerce_env_value",
#       "anchor": "function-coerce-env-value",
#       "kind": "function"
#     },
#     {
#       "id": "merge-env-overrides",
#       "name": "_merge_env_overrides",
#       "anchor": "function-merge-env-overrides",
#       "kind": "function"
#     },
#     {
#       "id": "merge-cli-overrides",
#       "name": "_merge_cli_overrides",
#       "anchor": "function-merge-cli-overrides",
#       "kind": "function"
#     },
#     {
#       "id": "load-config",
#       "name": "load_config",
#       "anchor": "function-load-config",
#       "kind": "function"
#     },
#     {
#       "id": "validate-config-file",
#       "name": "validate_config_file",
#       "anchor": "function-validate-config-file",
#       "kind": "function"
#     },
#     {
#       "id": "export-config-schema",
#       "name": "export_config_schema",
#       "anchor": "function-export-config-schema",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Configuration Loading with File/Env/CLI Precedence

Implements three-level config composition:
1. **File level** (YAML/JSON): base configuration
2. **Environment level**: PLUGIN_UPDATER_* prefixed variables override file
3. **CLI level**: programmatic overrides win

Environment variables use double-underscore notation:
  PLUGIN_UPDATER_HTTP__USER_AGENT="Custom UA"  →  http.user_agent="Custom UA"
  PLUGIN_UPDATER_RESOLVERS__ORDER='["spiget","modrinth"]'  →  resolvers.order=[...]

JSON values are automatically parsed; strings are type-coerced when possible.
Every failure surfaces as ConfigurationError.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from PluginUpdater.api import ConfigurationError

from .models import UpdaterConfig

_LOGGER = logging.getLogger(__name__)

DEFAULT_ENV_PREFIX = "PLUGIN_UPDATER_"
# PLUGIN_UPDATER_CONFIG names the config file itself, not a setting
_RESERVED_ENV_KEYS = frozenset({"config"})

# ============================================================================
# Helpers
# ============================================================================


def _read_file(path: str) -> dict[str, Any]:
    """
    Read YAML or JSON config file.

    Args:
        path: File path (suffix determines format: .yaml/.yml or .json)

    Returns:
        Parsed config dictionary

    Raises:
        ConfigurationError: If file cannot be read or parsed
    """
    p = Path(path)
    if not p.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    suffix = p.suffix.lower()

    if suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    elif suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    else:
        raise ConfigurationError(f"Unsupported file format: {suffix}. Use .yaml or .json")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping at top level")
    return data


def _assign_nested(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    """
    Assign value to nested dict using dot notation.

    Example:
        _assign_nested(data, "http.user_agent", "MyUA")
        → data["http"]["user_agent"] = "MyUA"
    """
    keys = dotted_key.split(".")
    current = data

    for key in keys[:-1]:
        if not isinstance(current.get(key), dict):
            current[key] = {}
        current = current[key]

    current[keys[-1]] = value


def _coerce_env_value(value: str) -> Any:
    """
    Attempt to coerce environment variable string to appropriate type.

    Tries JSON parsing first (handles lists, dicts, bools, numbers).
    Falls back to string if JSON fails.
    """
    try:
        return json.loads(value)
    except (json.JSONDecodeError, ValueError):
        pass

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    return value


def _merge_env_overrides(
    data: dict[str, Any], env_prefix: str = DEFAULT_ENV_PREFIX
) -> dict[str, Any]:
    """
    Overlay environment variables onto config dict.

    Looks for prefixed variables and maps double-underscore notation to
    nested dicts.
    """
    for env_key, env_value in os.environ.items():
        if not env_key.startswith(env_prefix):
            continue

        relative_key = env_key[len(env_prefix) :].lower()
        if not relative_key or relative_key in _RESERVED_ENV_KEYS:
            continue
        dotted_key = relative_key.replace("__", ".")

        coerced_value = _coerce_env_value(env_value)
        _assign_nested(data, dotted_key, coerced_value)
        _LOGGER.debug(f"Environment override: {env_key} → {dotted_key} = {coerced_value!r}")

    return data


def _merge_cli_overrides(
    data: dict[str, Any], cli_overrides: Mapping[str, Any] | None
) -> dict[str, Any]:
    """
    Recursively merge CLI overrides into base config dict.

    Later values win (standard dict.update() semantics).
    """
    if not cli_overrides:
        return data

    for key, value in cli_overrides.items():
        if isinstance(value, Mapping) and isinstance(data.get(key), dict):
            data[key] = _merge_cli_overrides(data[key], value)
        else:
            data[key] = dict(value) if isinstance(value, Mapping) else value
        _LOGGER.debug(f"CLI override: {key} = {value!r}")

    return data


# ============================================================================
# Public API
# ============================================================================


def load_config(
    path: str | None = None,
    env_prefix: str = DEFAULT_ENV_PREFIX,
    cli_overrides: Mapping[str, Any] | None = None,
) -> UpdaterConfig:
    """
    Load UpdaterConfig from file, environment, and CLI with proper precedence.

    **Precedence:** file < environment < CLI

    Args:
        path: Path to YAML/JSON config file (optional)
        env_prefix: Environment variable prefix (default: PLUGIN_UPDATER_)
        cli_overrides: CLI overrides dict (optional)

    Returns:
        Validated UpdaterConfig instance

    Raises:
        ConfigurationError: If config is invalid or file cannot be read
    """
    data: dict[str, Any] = {}

    if path:
        data = _read_file(path)
        _LOGGER.info(f"Loaded config from {path}")

    data = _merge_env_overrides(data, env_prefix)
    data = _merge_cli_overrides(data, cli_overrides)

    try:
        config = UpdaterConfig.model_validate(data)
    except ValidationError as e:
        _LOGGER.error(f"Configuration validation failed: {e}")
        raise ConfigurationError(f"Invalid configuration: {e}") from e

    _LOGGER.debug(f"Configuration validated. Config hash: {config.config_hash()[:8]}...")
    return config


def validate_config_file(path: str) -> bool:
    """
    Validate a config file, used by the `validate-config` CLI command.

    Raises:
        ConfigurationError: If invalid
    """
    load_config(path=path)
    return True


def export_config_schema() -> dict[str, Any]:
    """Export JSON Schema for UpdaterConfig (Pydantic v2 format)."""
    return UpdaterConfig.model_json_schema()
