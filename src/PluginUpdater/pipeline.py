"""
Pipeline Orchestration

Resolves one artifact into exactly one UpdateOutcome:
1. Iterate resolvers in priority order
2. Resolver failure → record "{provider}: {message}", try the next one
3. Result without a download URL → record its note, try the next one
4. Downloadable result with the same version → AlreadyLatest, stop
5. Otherwise download → Updated, stop; download failure → record, continue
6. All resolvers exhausted → Failed with every recorded reason

Design:
- Resolvers are treated uniformly; only their order matters
- Cancellation is never folded into a resolver failure; it propagates
- Stage changes update descriptor.status and notify an optional callback
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import httpx

from PluginUpdater.api import (
    ArtifactDescriptor,
    LookupResult,
    OperationCancelled,
    OutcomeStatus,
    UpdateOutcome,
)
from PluginUpdater.config import DownloadPolicy
from PluginUpdater.core import CancellationToken, check_cancelled, is_same_version, short_message
from PluginUpdater.download_execution import download_artifact
from PluginUpdater.resolvers.base import Resolver

LOGGER = logging.getLogger(__name__)

#: Placeholder for resolved version and provider on failed outcomes
NOT_RESOLVED = "-"
ALREADY_LATEST_MESSAGE = "Already the latest version"
NO_SOURCE_MESSAGE = "No source found or automatic download is not supported"
FAILURE_SEPARATOR = " / "

StageCallback = Callable[[ArtifactDescriptor, str], None]


def failed_outcome(descriptor: ArtifactDescriptor, message: str) -> UpdateOutcome:
    """Build the FAILED outcome reported when no resolver succeeded."""

    return UpdateOutcome(
        artifact_name=descriptor.display_name,
        previous_version=descriptor.declared_version,
        resolved_version=NOT_RESOLVED,
        provider=NOT_RESOLVED,
        status=OutcomeStatus.FAILED,
        message=message,
    )


class ResolverPipeline:
    """
    Orchestrates the resolver fallback chain for single artifacts.

    Coordinates:
    - Resolvers (tried strictly in order)
    - Version comparison against the declared version
    - The download stage for the first usable newer build
    - Failure recording for the final outcome message
    """

    def __init__(
        self,
        resolvers: Sequence[Resolver],
        client: httpx.Client,
        *,
        output_dir: Path,
        download: Optional[DownloadPolicy] = None,
    ) -> None:
        self._resolvers = list(resolvers)
        self._client = client
        self._output_dir = Path(output_dir)
        self._download = download if download is not None else DownloadPolicy()

    @property
    def resolvers(self) -> List[Resolver]:
        return list(self._resolvers)

    def run(
        self,
        descriptor: ArtifactDescriptor,
        *,
        cancel: Optional[CancellationToken] = None,
        on_stage: Optional[StageCallback] = None,
    ) -> UpdateOutcome:
        """
        Run the fallback chain for ``descriptor``.

        Args:
            descriptor: Artifact to resolve; its ``status`` is updated in place.
            cancel: Optional token checked before each resolver.
            on_stage: Optional callback receiving ``(descriptor, stage)``.

        Returns:
            UpdateOutcome (updated, already-latest or failed)

        Raises:
            OperationCancelled: ``cancel`` fired while work was in progress.
        """
        errors: List[str] = []

        for resolver in self._resolvers:
            check_cancelled(cancel)
            self._set_stage(
                descriptor,
                f"resolving:{resolver.name}",
                f"Checking {resolver.display_name}...",
                on_stage,
            )

            try:
                lookup = resolver.try_resolve(descriptor, self._client, cancel=cancel)
            except OperationCancelled:
                raise
            except Exception as e:  # pylint: disable=broad-except
                LOGGER.warning(
                    f"Resolver '{resolver.name}' failed for {descriptor.display_name}: {e}",
                    exc_info=True,
                )
                errors.append(f"{resolver.display_name}: {short_message(str(e))}")
                continue

            if lookup is None:
                LOGGER.debug(f"Resolver '{resolver.name}' found nothing for {descriptor.display_name}")
                continue

            if not lookup.can_download:
                if lookup.note and lookup.note.strip():
                    errors.append(f"{resolver.display_name}: {lookup.note}")
                continue

            if is_same_version(descriptor.declared_version, lookup.latest_version_label):
                LOGGER.info(
                    f"{descriptor.display_name} {descriptor.declared_version} is current "
                    f"on {lookup.provider_name}"
                )
                self._set_stage(descriptor, "already-latest", "Already latest", on_stage)
                return UpdateOutcome(
                    artifact_name=descriptor.display_name,
                    previous_version=descriptor.declared_version,
                    resolved_version=lookup.latest_version_label,
                    provider=lookup.provider_name,
                    status=OutcomeStatus.ALREADY_LATEST,
                    message=ALREADY_LATEST_MESSAGE,
                )

            self._set_stage(
                descriptor,
                f"downloading:{resolver.name}",
                f"Downloading from {resolver.display_name}...",
                on_stage,
            )
            try:
                saved_path = self._download_lookup(lookup, descriptor, cancel)
            except OperationCancelled:
                raise
            except Exception as e:  # pylint: disable=broad-except
                LOGGER.warning(
                    f"Download via '{resolver.name}' failed for {descriptor.display_name}: {e}"
                )
                errors.append(f"{resolver.display_name}: {short_message(str(e))}")
                continue

            self._set_stage(descriptor, "updated", "Updated", on_stage)
            return UpdateOutcome(
                artifact_name=descriptor.display_name,
                previous_version=descriptor.declared_version,
                resolved_version=lookup.latest_version_label,
                provider=lookup.provider_name,
                status=OutcomeStatus.UPDATED,
                saved_path=str(saved_path),
                message=_updated_message(lookup),
            )

        message = FAILURE_SEPARATOR.join(errors) if errors else NO_SOURCE_MESSAGE
        LOGGER.warning(f"All resolvers exhausted for {descriptor.display_name}: {message}")
        self._set_stage(descriptor, "failed", "Failed", on_stage)
        return failed_outcome(descriptor, message)

    def _download_lookup(
        self,
        lookup: LookupResult,
        descriptor: ArtifactDescriptor,
        cancel: Optional[CancellationToken],
    ) -> Path:
        return download_artifact(
            self._client,
            lookup,
            descriptor,
            self._output_dir,
            cancel=cancel,
            chunk_size=self._download.chunk_size_bytes,
            delete_partial=self._download.delete_partial_on_error,
            max_name_probes=self._download.max_name_probes,
        )

    @staticmethod
    def _set_stage(
        descriptor: ArtifactDescriptor,
        stage: str,
        status: str,
        on_stage: Optional[StageCallback],
    ) -> None:
        descriptor.status = status
        if on_stage is not None:
            on_stage(descriptor, stage)


def _updated_message(lookup: LookupResult) -> str:
    if lookup.note and lookup.note.strip():
        return f"{lookup.project_display_name} ({lookup.note})"
    return lookup.project_display_name


__all__ = [
    "ALREADY_LATEST_MESSAGE",
    "NOT_RESOLVED",
    "NO_SOURCE_MESSAGE",
    "ResolverPipeline",
    "failed_outcome",
]
