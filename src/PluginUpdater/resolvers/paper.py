"""Resolver for Paper server runtime builds via the PaperMC Fill v3 API."""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional, Tuple
from urllib.parse import quote

import httpx

from PluginUpdater.api import ArtifactDescriptor, ArtifactKind, LookupResult
from PluginUpdater.config import PaperConfig
from PluginUpdater.core import UNKNOWN_VERSION, CancellationToken

from .base import ApiResolverBase, as_mapping, as_text
from .registry import register_resolver

LOGGER = logging.getLogger(__name__)

DEFAULT_SERVER_DOWNLOAD = "server:default"
SERVER_DOWNLOAD_PREFIX = "server:"

_DECLARED_VERSION_RE = re.compile(
    r"^(?P<mc>\d+\.\d+(?:\.\d+)?(?:-(?:pre|rc)\d+)?)-\d+$",
    re.IGNORECASE,
)

NO_PLATFORM_VERSION_NOTE = "Cannot determine the Minecraft version of this Paper jar."
NO_BUILD_NOTE = "No latest build was found on the PaperMC API."
NO_DOWNLOAD_NOTE = "The PaperMC API returned no usable download for the latest build."


def resolve_platform_version(descriptor: ArtifactDescriptor) -> Optional[str]:
    """Return the Minecraft version from the descriptor or its declared version."""

    if descriptor.runtime_platform_version and descriptor.runtime_platform_version.strip():
        return descriptor.runtime_platform_version.strip()
    match = _DECLARED_VERSION_RE.match(descriptor.declared_version.strip())
    return match.group("mc") if match else None


def select_download(downloads: Mapping[str, Any]) -> Optional[Tuple[str, Mapping[str, Any]]]:
    """Pick ``server:default``, else any ``server:*`` entry, else any entry with a URL."""

    entries = [
        (key, entry)
        for key, entry in downloads.items()
        if isinstance(entry, Mapping) and as_text(entry.get("url")).strip()
    ]
    for key, entry in entries:
        if key == DEFAULT_SERVER_DOWNLOAD:
            return key, entry
    for key, entry in entries:
        if key.lower().startswith(SERVER_DOWNLOAD_PREFIX):
            return key, entry
    return entries[0] if entries else None


@register_resolver("paper")
class PaperResolver(ApiResolverBase):
    """Resolve the newest build of a Paper server jar for its Minecraft version."""

    display_name = "PaperMC"
    target_kind = ArtifactKind.SERVER_RUNTIME
    config: PaperConfig

    @classmethod
    def default_config(cls) -> PaperConfig:
        return PaperConfig()

    def _note(self, project: str, label: str, note: str) -> LookupResult:
        return LookupResult(
            provider_name=self.display_name,
            project_display_name=project,
            latest_version_label=label,
            note=note,
        )

    def _resolve(
        self,
        descriptor: ArtifactDescriptor,
        client: httpx.Client,
        cancel: Optional[CancellationToken],
    ) -> Optional[LookupResult]:
        minecraft_version = resolve_platform_version(descriptor)
        if not minecraft_version:
            return self._note("Paper", UNKNOWN_VERSION, NO_PLATFORM_VERSION_NOTE)

        project_name = f"Paper {minecraft_version}"
        build = self._get_json(
            client,
            f"{self.base_url}/projects/{quote(self.config.project, safe='')}"
            f"/versions/{quote(minecraft_version, safe='')}/builds/latest",
            cancel=cancel,
        )
        if not isinstance(build, Mapping) or build.get("id") is None:
            return self._note(project_name, UNKNOWN_VERSION, NO_BUILD_NOTE)

        label = f"{minecraft_version}-{build['id']}"
        selected = select_download(as_mapping(build.get("downloads")))
        if selected is None:
            return self._note(project_name, label, NO_DOWNLOAD_NOTE)

        key, entry = selected
        file_name = as_text(entry.get("name")).strip()
        if not file_name:
            return self._note(project_name, label, NO_DOWNLOAD_NOTE)

        LOGGER.debug("Paper build %s selected download %s", label, key)
        return LookupResult(
            provider_name=self.display_name,
            project_display_name=project_name,
            latest_version_label=label,
            download_url=as_text(entry.get("url")).strip(),
            suggested_file_name=file_name,
        )


__all__ = ["PaperResolver", "resolve_platform_version", "select_download"]
