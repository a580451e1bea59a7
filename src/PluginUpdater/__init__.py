"""Public API for PluginUpdater.

Resolves the newest published builds of locally installed Bukkit-family
plugin jars and Paper server jars against Modrinth, Spiget and PaperMC, and
downloads replacements next to each other in an output directory.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any

__version__ = "1.0.0"

_EXPORT_MAP: dict[str, tuple[str, str]] = {
    "ArtifactDescriptor": (".api", "ArtifactDescriptor"),
    "ArtifactKind": (".api", "ArtifactKind"),
    "CancellationToken": (".core", "CancellationToken"),
    "LookupResult": (".api", "LookupResult"),
    "OutcomeStatus": (".api", "OutcomeStatus"),
    "ResolverPipeline": (".pipeline", "ResolverPipeline"),
    "RunReport": (".api", "RunReport"),
    "UpdateOutcome": (".api", "UpdateOutcome"),
    "UpdateRunner": (".runner", "UpdateRunner"),
    "UpdaterConfig": (".config", "UpdaterConfig"),
    "build_resolvers": (".resolvers", "build_resolvers"),
    "http_client": (".net", "http_client"),
    "ingest_paths": (".runner", "ingest_paths"),
    "load_config": (".config", "load_config"),
    "read_artifact": (".metadata", "read_artifact"),
}

__all__ = ["__version__", *sorted(_EXPORT_MAP)]


def __getattr__(name: str) -> Any:
    """Lazily import public exports so submodules load without cycles."""

    target = _EXPORT_MAP.get(name)
    if target is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    module = import_module(target[0], __name__)
    value = getattr(module, target[1])
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
