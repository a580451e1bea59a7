"""
Canonical Exception Types for the Update Pipeline

Raised by the extractor, resolvers and downloader; the pipeline catches
them per resolver and folds their messages into the artifact's
UpdateOutcome. Only ConfigurationError escapes a run, and it does so before
any artifact is processed.
"""

from __future__ import annotations

from typing import Literal, Optional

#: Normalized reason codes carried by DownloadError
DownloadReason = Literal[
    "http-error",
    "conn-error",
    "html-redirect",
    "names-exhausted",
    "io-error",
]


class PluginUpdaterError(Exception):
    """Base class for all PluginUpdater errors."""


class MetadataParseError(PluginUpdaterError):
    """
    Raise when a local file is not a recognized artifact.

    Examples:
        - jar without an embedded ``plugin.yml``
        - runtime jar whose name does not follow ``paper-<mc>-<build>.jar``
        - unreadable or corrupt archive
    """


class ProviderError(PluginUpdaterError):
    """
    Raise when talking to one catalog fails (transport or payload decoding).

    Caught by the pipeline, recorded as ``"{provider}: {message}"`` and the
    next resolver is tried.
    """

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(message)


class DownloadError(PluginUpdaterError):
    """
    Raise when a resolved file cannot be fetched or stored.

    Common reasons:
        - "http-error": non-success status
        - "conn-error": transport failure
        - "html-redirect": server answered with an HTML page
        - "names-exhausted": no free destination name
        - "io-error": local write failure
    """

    def __init__(self, reason: DownloadReason, message: Optional[str] = None) -> None:
        """
        Initialize download failure.

        Args:
            reason: Normalized failure reason code
            message: Optional human-readable message
        """
        self.reason = reason
        super().__init__(message or f"Download failed: {reason}")


class ConfigurationError(PluginUpdaterError):
    """Raise when the run cannot start (bad config file, unusable output directory)."""


class OperationCancelled(PluginUpdaterError):
    """Raise when a cancellation token fires during network or disk work."""

    def __init__(self, message: str = "Cancelled") -> None:
        super().__init__(message)
