"""Read identity metadata out of local plugin and server runtime jars.

Plugin jars carry a ``plugin.yml`` whose top-level ``name``, ``version`` and
``website`` keys are enough to look the plugin up in a catalog. Only flat
``key: value`` lines are read; nested blocks (commands, permissions) are
skipped. Server runtime jars are identified by their file name alone.
"""

from __future__ import annotations

import logging
import re
import zipfile
import zlib
from pathlib import Path
from typing import Dict, Union

from PluginUpdater.api import ArtifactDescriptor, ArtifactKind, MetadataParseError
from PluginUpdater.core import UNKNOWN_VERSION

LOGGER = logging.getLogger(__name__)

PLUGIN_DESCRIPTOR_NAME = "plugin.yml"
RUNTIME_DISPLAY_NAME = "Paper"
RUNTIME_HOMEPAGE = "https://papermc.io"
PARSED_STATUS = "Parsed"

RUNTIME_FILENAME_RE = re.compile(
    r"^paper-(?P<mc>\d+\.\d+(?:\.\d+)?(?:-(?:pre|rc)\d+)?)-(?P<build>\d+)$",
    re.IGNORECASE,
)

PathLike = Union[str, Path]

# corrupt deflate data, encrypted entries and unsupported compression included
_ARCHIVE_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    RuntimeError,
    NotImplementedError,
    EOFError,
    OSError,
)


def _strip_matching_quotes(raw_value: str) -> str:
    value = raw_value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return value


def parse_flat_descriptor(text: str) -> Dict[str, str]:
    """Parse top-level ``key: value`` pairs; keys are matched case-insensitively."""

    result: Dict[str, str] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        if line.lstrip().startswith("#"):
            continue
        if line[0] in (" ", "\t"):
            continue
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        result[key.lower()] = _strip_matching_quotes(value)
    return result


def _get_or_default(metadata: Dict[str, str], key: str, fallback: str) -> str:
    value = metadata.get(key, "")
    return value.strip() if value.strip() else fallback


def _find_descriptor_entry(archive: zipfile.ZipFile) -> zipfile.ZipInfo | None:
    suffix = f"/{PLUGIN_DESCRIPTOR_NAME}"
    for info in archive.infolist():
        name = info.filename.lower()
        if name == PLUGIN_DESCRIPTOR_NAME or name.endswith(suffix):
            return info
    return None


def read_plugin_jar(path: PathLike) -> ArtifactDescriptor:
    """
    Build a descriptor from the ``plugin.yml`` embedded in a plugin jar.

    Args:
        path: Location of the jar file.

    Returns:
        ArtifactDescriptor with kind ``GENERIC_PLUGIN``.

    Raises:
        MetadataParseError: If the file is not a readable archive or has no
            ``plugin.yml``.
    """
    jar_path = Path(path)
    try:
        with zipfile.ZipFile(jar_path) as archive:
            entry = _find_descriptor_entry(archive)
            if entry is None:
                raise MetadataParseError(
                    f"{PLUGIN_DESCRIPTOR_NAME} not found; "
                    f"{jar_path.name} is probably not a Bukkit-family plugin jar"
                )
            raw = archive.read(entry)
    except MetadataParseError:
        raise
    except _ARCHIVE_ERRORS as exc:
        raise MetadataParseError(f"Cannot read {jar_path.name} as an archive: {exc}") from exc

    # utf-8-sig drops a leading BOM when present
    text = raw.decode("utf-8-sig", errors="replace")
    metadata = parse_flat_descriptor(text)

    descriptor = ArtifactDescriptor(
        source_path=jar_path,
        display_name=_get_or_default(metadata, "name", jar_path.stem),
        declared_version=_get_or_default(metadata, "version", UNKNOWN_VERSION),
        homepage_url=_get_or_default(metadata, "website", ""),
        kind=ArtifactKind.GENERIC_PLUGIN,
        status=PARSED_STATUS,
    )
    LOGGER.debug(
        "Read plugin descriptor %s (version=%s) from %s",
        descriptor.display_name,
        descriptor.declared_version,
        jar_path,
    )
    return descriptor


def read_runtime_jar(path: PathLike) -> ArtifactDescriptor:
    """
    Build a descriptor for a server runtime jar named ``paper-<mc>-<build>.jar``.

    Raises:
        MetadataParseError: If the file name does not follow the convention.
    """
    jar_path = Path(path)
    match = RUNTIME_FILENAME_RE.match(jar_path.stem)
    if match is None:
        raise MetadataParseError(
            f"{jar_path.name} does not follow the paper-<mcVersion>-<build>.jar naming"
        )

    minecraft_version = match.group("mc")
    build = int(match.group("build"))
    return ArtifactDescriptor(
        source_path=jar_path,
        display_name=RUNTIME_DISPLAY_NAME,
        declared_version=f"{minecraft_version}-{build}",
        homepage_url=RUNTIME_HOMEPAGE,
        kind=ArtifactKind.SERVER_RUNTIME,
        runtime_platform_version=minecraft_version,
        runtime_build_number=build,
        status=PARSED_STATUS,
    )


def is_runtime_file_name(path: PathLike) -> bool:
    return RUNTIME_FILENAME_RE.match(Path(path).stem) is not None


def read_artifact(path: PathLike) -> ArtifactDescriptor:
    """Dispatch to the runtime or plugin reader based on the file name."""

    if is_runtime_file_name(path):
        return read_runtime_jar(path)
    return read_plugin_jar(path)


__all__ = [
    "PLUGIN_DESCRIPTOR_NAME",
    "RUNTIME_FILENAME_RE",
    "is_runtime_file_name",
    "parse_flat_descriptor",
    "read_artifact",
    "read_plugin_jar",
    "read_runtime_jar",
]
