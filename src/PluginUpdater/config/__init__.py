"""
PluginUpdater Configuration Package

Public API for loading, validating, and introspecting PluginUpdater configuration.

Example:
    from PluginUpdater.config import load_config, UpdaterConfig

    # Load from file with env/CLI overrides
    config = load_config(
        path="plugin-updater.yaml",
        cli_overrides={"resolvers": {"order": ["spiget", "modrinth"]}}
    )
"""

from .loader import (
    DEFAULT_ENV_PREFIX,
    export_config_schema,
    load_config,
    validate_config_file,
)
from .models import (
    DownloadPolicy,
    HttpClientConfig,
    MatchingPolicy,
    ModrinthConfig,
    PaperConfig,
    ResolverCommonConfig,
    ResolversConfig,
    RunPolicy,
    SpigetConfig,
    UpdaterConfig,
)

__all__ = [
    # Models
    "UpdaterConfig",
    "ResolversConfig",
    "HttpClientConfig",
    "DownloadPolicy",
    "MatchingPolicy",
    "RunPolicy",
    "ResolverCommonConfig",
    "ModrinthConfig",
    "SpigetConfig",
    "PaperConfig",
    # Loading/validation
    "DEFAULT_ENV_PREFIX",
    "load_config",
    "validate_config_file",
    "export_config_schema",
]
