"""Public API types and exceptions for PluginUpdater."""

from .exceptions import (
    ConfigurationError,
    DownloadError,
    MetadataParseError,
    OperationCancelled,
    PluginUpdaterError,
    ProviderError,
)
from .types import (
    ArtifactDescriptor,
    ArtifactKind,
    IngestReport,
    LookupResult,
    OutcomeStatus,
    ProgressEvent,
    RunReport,
    UpdateOutcome,
)

__all__ = [
    "ArtifactDescriptor",
    "ArtifactKind",
    "ConfigurationError",
    "DownloadError",
    "IngestReport",
    "LookupResult",
    "MetadataParseError",
    "OperationCancelled",
    "OutcomeStatus",
    "PluginUpdaterError",
    "ProgressEvent",
    "ProviderError",
    "RunReport",
    "UpdateOutcome",
]
