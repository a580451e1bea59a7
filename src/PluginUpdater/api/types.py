"""
Canonical API Types for the PluginUpdater Pipeline

Provides the records passed between the metadata extractor, the catalog
resolvers, the resolution pipeline and the downloader.

Data Flow:
  read_artifact(path) → ArtifactDescriptor
  Resolver.try_resolve(descriptor) → LookupResult | None
  ResolverPipeline.run(descriptor) → UpdateOutcome
  ingest_paths(paths) → IngestReport
  UpdateRunner.run(descriptors) → ProgressEvent* + RunReport

Design Principles:
  - LookupResult, UpdateOutcome and ProgressEvent are frozen
  - ArtifactDescriptor.status is the only field mutated after ingestion
  - Enums carry stable string values for logs and JSON output
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

# ============================================================================
# STABLE TOKEN VOCABULARIES (Public Contract)
# ============================================================================


class ArtifactKind(str, Enum):
    """Hard partition between plugin jars and server runtime jars."""

    GENERIC_PLUGIN = "generic-plugin"
    SERVER_RUNTIME = "server-runtime"


class OutcomeStatus(str, Enum):
    """Final classification of one processed artifact."""

    UPDATED = "updated"
    ALREADY_LATEST = "already-latest"
    FAILED = "failed"


# ============================================================================
# CORE API PAYLOADS
# ============================================================================


@dataclass(slots=True)
class ArtifactDescriptor:
    """
    Identity of a local artifact.

    Created once at ingestion; ``status`` is updated by the pipeline as it
    progresses and is the only field that changes afterwards.
    """

    source_path: Path
    """Absolute or caller-relative path of the artifact file."""

    display_name: str
    """Declared plugin name (or a synthesized name for runtime jars)."""

    declared_version: str
    """Free-form version string, compared by normalized equality only."""

    homepage_url: str = ""
    """Declared website; may embed a direct catalog identifier."""

    kind: ArtifactKind = ArtifactKind.GENERIC_PLUGIN
    """Which family of resolvers may handle this artifact."""

    runtime_platform_version: Optional[str] = None
    """Minecraft version for server runtime jars (e.g. ``1.21.4``)."""

    runtime_build_number: Optional[int] = None
    """Build number for server runtime jars."""

    status: str = ""
    """Free-text status reflecting the last pipeline stage."""

    def __post_init__(self) -> None:
        self.source_path = Path(self.source_path)

    @property
    def file_name(self) -> str:
        return self.source_path.name

    @property
    def file_stem(self) -> str:
        return self.source_path.stem


@dataclass(frozen=True, slots=True)
class LookupResult:
    """
    Outcome of one resolver attempt that found a catalog project.

    A result without ``download_url`` means the project was found but cannot
    be fetched automatically; ``note`` explains why.
    """

    provider_name: str
    project_display_name: str
    latest_version_label: str
    download_url: Optional[str] = None
    suggested_file_name: Optional[str] = None
    note: Optional[str] = None

    @property
    def can_download(self) -> bool:
        return bool(self.download_url and self.download_url.strip())


@dataclass(frozen=True, slots=True)
class UpdateOutcome:
    """One row of the final report; exactly one per processed artifact."""

    artifact_name: str
    previous_version: str
    resolved_version: str
    provider: str
    status: OutcomeStatus
    saved_path: str = ""
    message: str = ""

    def __post_init__(self) -> None:
        """Validate outcome invariants."""
        if self.saved_path and self.status is not OutcomeStatus.UPDATED:
            raise ValueError(
                f"UpdateOutcome.saved_path is only set for updated artifacts, "
                f"got status={self.status.value!r}"
            )


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Progress notification emitted while a run advances."""

    index: int
    """Zero-based position of the artifact in the run."""

    total: int
    """Number of artifacts in the run."""

    artifact_name: str
    stage: str
    """Stage token: ``started``, a resolver/download stage, or ``completed``."""

    outcome: Optional[UpdateOutcome] = None
    """Set on the ``completed`` event."""


@dataclass(frozen=True, slots=True)
class RunReport:
    """Aggregated outcomes of a run, in input order."""

    outcomes: Sequence[UpdateOutcome] = field(default_factory=tuple)

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def updated(self) -> int:
        return self._count(OutcomeStatus.UPDATED)

    @property
    def already_latest(self) -> int:
        return self._count(OutcomeStatus.ALREADY_LATEST)

    @property
    def failed(self) -> int:
        return self._count(OutcomeStatus.FAILED)


@dataclass(frozen=True, slots=True)
class IngestReport:
    """Descriptors accepted from a set of input paths plus rejection counts."""

    descriptors: Sequence[ArtifactDescriptor] = field(default_factory=tuple)
    skipped: int = 0
    """Inputs that were missing or not ``.jar`` files."""

    duplicates: int = 0
    """Inputs already present (case-insensitive path comparison)."""
