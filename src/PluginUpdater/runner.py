"""Ingest local artifact files and drive update runs over them."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

import httpx

from PluginUpdater.api import (
    ArtifactDescriptor,
    ArtifactKind,
    ConfigurationError,
    IngestReport,
    MetadataParseError,
    OperationCancelled,
    ProgressEvent,
    RunReport,
    UpdateOutcome,
)
from PluginUpdater.config import UpdaterConfig
from PluginUpdater.core import (
    ARTIFACT_EXTENSION,
    UNKNOWN_VERSION,
    CancellationToken,
    short_message,
)
from PluginUpdater.metadata import read_artifact
from PluginUpdater.pipeline import ResolverPipeline, failed_outcome
from PluginUpdater.resolvers import build_resolvers
from PluginUpdater.resolvers.base import Resolver

LOGGER = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled"
ProgressListener = Callable[[ProgressEvent], None]
PathLike = Union[str, Path]


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


def _expand(paths: Iterable[PathLike]) -> List[Path]:
    expanded: List[Path] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            expanded.extend(
                sorted(
                    child
                    for child in path.iterdir()
                    if child.is_file() and child.suffix.lower() == ARTIFACT_EXTENSION
                )
            )
        else:
            expanded.append(path)
    return expanded


def _fallback_descriptor(path: Path, error: MetadataParseError) -> ArtifactDescriptor:
    return ArtifactDescriptor(
        source_path=path,
        display_name=path.stem,
        declared_version=UNKNOWN_VERSION,
        kind=ArtifactKind.GENERIC_PLUGIN,
        status=f"Parse failed: {short_message(str(error))}",
    )


def ingest_paths(
    paths: Iterable[PathLike],
    existing: Sequence[ArtifactDescriptor] = (),
) -> IngestReport:
    """
    Turn files and directories into descriptors.

    Directories contribute their top-level ``.jar`` files. Missing and
    non-jar inputs are counted as skipped; paths already present in
    ``existing`` or earlier in ``paths`` are counted as duplicates. A jar
    whose metadata cannot be read still yields a descriptor named after the
    file so it can be searched for by name.
    """
    seen = {str(descriptor.source_path).casefold() for descriptor in existing}
    descriptors: List[ArtifactDescriptor] = []
    skipped = 0
    duplicates = 0

    for path in _expand(paths):
        if not path.is_file() or path.suffix.lower() != ARTIFACT_EXTENSION:
            LOGGER.debug("Skipping unsupported input %s", path)
            skipped += 1
            continue

        key = str(path.resolve()).casefold()
        if key in seen or str(path).casefold() in seen:
            duplicates += 1
            continue
        seen.add(key)

        try:
            descriptor = read_artifact(path)
        except MetadataParseError as exc:
            LOGGER.warning("Could not read metadata from %s: %s", path.name, exc)
            descriptor = _fallback_descriptor(path, exc)
        descriptors.append(descriptor)

    LOGGER.info(
        "Ingested %d artifacts (duplicates=%d, skipped=%d)",
        len(descriptors),
        duplicates,
        skipped,
    )
    return IngestReport(descriptors=tuple(descriptors), skipped=skipped, duplicates=duplicates)


def ensure_output_directory(path: PathLike) -> Path:
    """Create ``path`` if needed and verify that it is a writable directory.

    Raises:
        ConfigurationError: The directory cannot be created or written to.
    """
    directory = Path(path).expanduser()
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(f"Cannot create output directory {directory}: {exc}") from exc
    if not directory.is_dir():
        raise ConfigurationError(f"Output path is not a directory: {directory}")
    if not os.access(directory, os.W_OK):
        raise ConfigurationError(f"Output directory is not writable: {directory}")
    return directory


# ---------------------------------------------------------------------------
# Run driver
# ---------------------------------------------------------------------------


class UpdateRunner:
    """Process a batch of descriptors and report one outcome per artifact.

    Artifacts run sequentially unless ``run.max_workers`` is above one, in
    which case independent artifacts share a thread pool. Providers for a
    single artifact always run in order.
    """

    def __init__(
        self,
        config: UpdaterConfig,
        client: httpx.Client,
        resolvers: Optional[Sequence[Resolver]] = None,
    ) -> None:
        self.config = config
        self.client = client
        self.resolvers = list(resolvers) if resolvers is not None else build_resolvers(config)
        self._listener_lock = threading.Lock()

    def run(
        self,
        descriptors: Sequence[ArtifactDescriptor],
        *,
        output_dir: Optional[PathLike] = None,
        cancel: Optional[CancellationToken] = None,
        listener: Optional[ProgressListener] = None,
    ) -> RunReport:
        """Resolve and download every descriptor.

        Raises:
            ConfigurationError: The output directory is unusable. Nothing has
                been processed when this is raised.
        """
        directory = ensure_output_directory(
            output_dir if output_dir is not None else self.config.download.output_dir
        )
        pipeline = ResolverPipeline(
            self.resolvers,
            self.client,
            output_dir=directory,
            download=self.config.download,
        )
        items = list(descriptors)
        total = len(items)
        LOGGER.info(
            "Starting run: %d artifacts → %s (workers=%d)",
            total,
            directory,
            self.config.run.max_workers,
        )

        def process(index: int) -> UpdateOutcome:
            return self._process_one(pipeline, items[index], index, total, cancel, listener)

        if self.config.run.max_workers > 1 and total > 1:
            with ThreadPoolExecutor(
                max_workers=self.config.run.max_workers,
                thread_name_prefix="plugin-updater",
            ) as executor:
                outcomes = list(executor.map(process, range(total)))
        else:
            outcomes = [process(index) for index in range(total)]

        report = RunReport(outcomes=tuple(outcomes))
        LOGGER.info(
            "Run finished: updated=%d already_latest=%d failed=%d",
            report.updated,
            report.already_latest,
            report.failed,
        )
        return report

    def _process_one(
        self,
        pipeline: ResolverPipeline,
        descriptor: ArtifactDescriptor,
        index: int,
        total: int,
        cancel: Optional[CancellationToken],
        listener: Optional[ProgressListener],
    ) -> UpdateOutcome:
        def emit(stage: str, outcome: Optional[UpdateOutcome] = None) -> None:
            self._emit(
                listener,
                ProgressEvent(
                    index=index,
                    total=total,
                    artifact_name=descriptor.display_name,
                    stage=stage,
                    outcome=outcome,
                ),
            )

        if cancel is not None and cancel.cancelled:
            outcome = self._cancelled(descriptor)
            emit("completed", outcome)
            return outcome

        emit("started")
        try:
            outcome = pipeline.run(
                descriptor,
                cancel=cancel,
                on_stage=lambda _descriptor, stage: emit(stage),
            )
        except OperationCancelled:
            outcome = self._cancelled(descriptor)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.exception("Unexpected error while processing %s", descriptor.display_name)
            descriptor.status = "Failed"
            outcome = failed_outcome(
                descriptor, f"Unexpected error: {short_message(str(exc))}"
            )

        emit("completed", outcome)
        return outcome

    @staticmethod
    def _cancelled(descriptor: ArtifactDescriptor) -> UpdateOutcome:
        descriptor.status = CANCELLED_MESSAGE
        return failed_outcome(descriptor, CANCELLED_MESSAGE)

    def _emit(self, listener: Optional[ProgressListener], event: ProgressEvent) -> None:
        if listener is None:
            return
        with self._listener_lock:
            listener(event)


__all__ = [
    "CANCELLED_MESSAGE",
    "UpdateRunner",
    "ensure_output_directory",
    "ingest_paths",
]
