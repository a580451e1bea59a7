# === NAVMAP v1 ===
# {
#   "module": "PluginUpdater.download_execution",
#   "purpose": "Download stage: fetch a resolved file into a collision-free path.",
#   "sections": [
#     {
#       "id": "build-unique-path",
#       "name": "build_unique_path",
#       "anchor": "function-build-unique-path",
#       "kind": "function"
#     },
#     {
#       "id": "resolve-file-name",
#       "name": "resolve_file_name",
#       "anchor": "function-resolve-file-name",
#       "kind": "function"
#     },
#     {
#       "id": "open-exclusive",
#       "name": "_open_exclusive",
#       "anchor": "function-open-exclusive",
#       "kind": "function"
#     },
#     {
#       "id": "cleanup-partial",
#       "name": "_cleanup_partial",
#       "anchor": "function-cleanup-partial",
#       "kind": "function"
#     },
#     {
#       "id": "download-artifact",
#       "name": "download_artifact",
#       "anchor": "function-download-artifact",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Download Execution Stage

Turns a downloadable LookupResult into a file on disk:

1. GET the download URL (redirects followed by the client)
2. Reject non-success statuses and HTML pages before touching the disk
3. Derive a safe file name (Content-Disposition → suggested → synthesized)
4. Claim a collision-free destination with exclusive create
5. Stream the body in chunks, honoring cancellation between chunks

Failures raise DownloadError with a normalized reason code. A partially
written file is removed on failure unless the caller opts out.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

import httpx

from PluginUpdater.api import (
    ArtifactDescriptor,
    DownloadError,
    LookupResult,
    OperationCancelled,
)
from PluginUpdater.core import (
    ARTIFACT_EXTENSION,
    CancellationToken,
    check_cancelled,
    ensure_extension,
    extract_filename_from_disposition,
    sanitize_filename,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_NAME_PROBES = 999
HTML_REDIRECT_MESSAGE = (
    "Redirected to an HTML distribution page; automatic download is not supported."
)


# ============================================================================
# Naming
# ============================================================================


def build_unique_path(
    directory: Path,
    file_name: str,
    max_probes: int = DEFAULT_MAX_NAME_PROBES,
) -> Path:
    """Return ``directory/file_name`` or the first free ``stem (i)suffix`` variant.

    Raises:
        DownloadError: ``names-exhausted`` when every probe is taken.
    """
    candidate = directory / file_name
    if not candidate.exists():
        return candidate

    stem = Path(file_name).stem
    suffix = Path(file_name).suffix
    for index in range(1, max_probes + 1):
        candidate = directory / f"{stem} ({index}){suffix}"
        if not candidate.exists():
            return candidate

    raise DownloadError(
        "names-exhausted",
        f"No free file name for {file_name} after {max_probes} attempts",
    )


def resolve_file_name(
    response: httpx.Response,
    lookup: LookupResult,
    descriptor: ArtifactDescriptor,
) -> str:
    """Pick, sanitize and extension-fix the destination file name."""

    file_name = extract_filename_from_disposition(response.headers.get("Content-Disposition"))
    if not file_name and lookup.suggested_file_name and lookup.suggested_file_name.strip():
        file_name = lookup.suggested_file_name.strip()
    if not file_name:
        file_name = f"{descriptor.display_name}-{lookup.latest_version_label}{ARTIFACT_EXTENSION}"
    return ensure_extension(sanitize_filename(file_name), ARTIFACT_EXTENSION)


def _open_exclusive(
    directory: Path,
    file_name: str,
    max_probes: int,
) -> Tuple[Path, BinaryIO]:
    """Claim a free destination; another writer taking the same name forces a re-probe."""

    for _ in range(max_probes + 1):
        destination = build_unique_path(directory, file_name, max_probes)
        try:
            return destination, open(destination, "xb")
        except FileExistsError:
            LOGGER.debug("Destination %s claimed concurrently; probing again", destination)
            continue
        except OSError as exc:
            raise DownloadError("io-error", f"Cannot create {destination.name}: {exc}") from exc

    raise DownloadError(
        "names-exhausted",
        f"No free file name for {file_name} after {max_probes} attempts",
    )


def _cleanup_partial(path: Optional[Path]) -> None:
    if path is None:
        return
    try:
        path.unlink(missing_ok=True)
        LOGGER.debug("Removed partial download %s", path)
    except OSError as exc:
        LOGGER.warning("Could not remove partial download %s: %s", path, exc)


# ============================================================================
# Download
# ============================================================================


def download_artifact(
    client: httpx.Client,
    lookup: LookupResult,
    descriptor: ArtifactDescriptor,
    output_dir: Path,
    *,
    cancel: Optional[CancellationToken] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    delete_partial: bool = True,
    max_name_probes: int = DEFAULT_MAX_NAME_PROBES,
) -> Path:
    """
    Download ``lookup.download_url`` into ``output_dir``.

    Args:
        client: HTTP client used for the transfer.
        lookup: Downloadable resolver result.
        descriptor: Artifact being replaced; used to synthesize a file name.
        output_dir: Existing destination directory.
        cancel: Optional token checked before the request and per chunk.
        chunk_size: Bytes per streamed chunk.
        delete_partial: Remove the destination when the transfer fails.
        max_name_probes: Number of ``name (i).jar`` variants to try.

    Returns:
        Path of the newly created file.

    Raises:
        DownloadError: On bad status, HTML response, transport failure,
            name exhaustion or local I/O failure.
        OperationCancelled: When ``cancel`` fires; the partial file is
            removed per ``delete_partial``.
    """
    if not lookup.can_download:
        raise DownloadError("http-error", "No download URL available")
    url = (lookup.download_url or "").strip()
    check_cancelled(cancel)

    destination: Optional[Path] = None
    completed = False
    bytes_written = 0
    t0 = time.monotonic_ns()
    try:
        with client.stream("GET", url) as response:
            if not response.is_success:
                raise DownloadError(
                    "http-error",
                    f"HTTP {response.status_code} while downloading {url}",
                )

            content_type = response.headers.get("Content-Type", "").lower()
            if "text/html" in content_type:
                raise DownloadError("html-redirect", HTML_REDIRECT_MESSAGE)

            file_name = resolve_file_name(response, lookup, descriptor)
            destination, handle = _open_exclusive(output_dir, file_name, max_name_probes)
            with handle:
                for chunk in response.iter_bytes(chunk_size=chunk_size):
                    check_cancelled(cancel)
                    if chunk:
                        handle.write(chunk)
                        bytes_written += len(chunk)
        completed = True
    except (DownloadError, OperationCancelled):
        raise
    except httpx.HTTPError as exc:
        raise DownloadError("conn-error", f"Download failed: {exc}") from exc
    except OSError as exc:
        raise DownloadError("io-error", f"Cannot write download: {exc}") from exc
    finally:
        if not completed and delete_partial:
            _cleanup_partial(destination)

    elapsed_ms = (time.monotonic_ns() - t0) // 1_000_000
    LOGGER.info(
        "Downloaded %s (%d bytes, %d ms) from %s",
        destination.name,
        bytes_written,
        elapsed_ms,
        lookup.provider_name,
    )
    return destination


__all__ = [
    "HTML_REDIRECT_MESSAGE",
    "build_unique_path",
    "download_artifact",
    "resolve_file_name",
]
