"""Derive catalog search strings from an artifact descriptor."""

from __future__ import annotations

import re

from PluginUpdater.api import ArtifactDescriptor
from PluginUpdater.core import dedupe_casefold

# Greedy: from the first version-looking group to the end of the stem,
# e.g. "CoolPlugin-1.2.3-SNAPSHOT" -> "CoolPlugin".
VERSION_SUFFIX_RE = re.compile(r"[-_ ]?v?\d+([._-]\d+)*.*$", re.IGNORECASE)


def strip_version_suffix(stem: str) -> str:
    return VERSION_SUFFIX_RE.sub("", stem, count=1)


def build_query_candidates(descriptor: ArtifactDescriptor) -> list[str]:
    """
    Return candidate search queries for ``descriptor``.

    Order is: declared name, file stem, file stem without its version suffix.
    Blank and case-insensitive duplicate candidates are dropped.
    """
    stem = descriptor.file_stem
    return dedupe_casefold(
        [
            descriptor.display_name,
            stem,
            strip_version_suffix(stem),
        ]
    )


__all__ = ["VERSION_SUFFIX_RE", "build_query_candidates", "strip_version_suffix"]
