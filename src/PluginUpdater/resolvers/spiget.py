"""Resolver implementation for the Spiget (SpigotMC resources) API."""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional
from urllib.parse import quote, urlsplit

import httpx

from PluginUpdater.api import ArtifactDescriptor, ArtifactKind, LookupResult
from PluginUpdater.config import SpigetConfig
from PluginUpdater.core import (
    ARTIFACT_EXTENSION,
    UNKNOWN_VERSION,
    CancellationToken,
    check_cancelled,
    host_matches,
    path_segments,
)
from PluginUpdater.matching import score
from PluginUpdater.queries import build_query_candidates

from .base import ApiResolverBase, as_mapping, as_text
from .registry import register_resolver

LOGGER = logging.getLogger(__name__)

SPIGOT_DOMAIN = "spigotmc.org"
_RESOURCE_SLUG_ID_RE = re.compile(r"resources/[^/]*\.(\d+)", re.IGNORECASE)
_DIGITS_RE = re.compile(r"\d+")

EXISTING_RESOURCE = 1
PREMIUM_NOTE = "Premium resources cannot be downloaded automatically through the API."
EXTERNAL_NOTE = "Fetched from the external distribution URL."
EXTERNAL_UNSUPPORTED_NOTE = (
    "Resource is hosted externally; automatic download is not supported."
)


def extract_resource_id(website: str) -> Optional[int]:
    """Return the numeric resource id embedded in a spigotmc.org URL."""

    if not host_matches(website, SPIGOT_DOMAIN):
        return None

    path = urlsplit(website.strip()).path
    match = _RESOURCE_SLUG_ID_RE.search(path)
    if match:
        return int(match.group(1))

    segments = path_segments(website)
    lowered = [segment.lower() for segment in segments]
    if "resources" in lowered:
        index = lowered.index("resources")
        if index + 1 < len(segments):
            digits = _DIGITS_RE.search(segments[index + 1])
            if digits:
                return int(digits.group(0))
    return None


def _resource_id(resource: Mapping[str, Any]) -> Optional[int]:
    try:
        return int(resource.get("id"))
    except (TypeError, ValueError):
        return None


@register_resolver("spiget")
class SpigetResolver(ApiResolverBase):
    """Resolve plugins published as SpigotMC resources."""

    display_name = "Spiget"
    target_kind = ArtifactKind.GENERIC_PLUGIN
    config: SpigetConfig

    @classmethod
    def default_config(cls) -> SpigetConfig:
        return SpigetConfig()

    def _resolve(
        self,
        descriptor: ArtifactDescriptor,
        client: httpx.Client,
        cancel: Optional[CancellationToken],
    ) -> Optional[LookupResult]:
        resource_id = extract_resource_id(descriptor.homepage_url)
        if resource_id is not None:
            resource = self._get_json(client, f"{self.base_url}/resources/{resource_id}", cancel=cancel)
            if isinstance(resource, Mapping):
                lookup = self._lookup_from_resource(client, resource, cancel)
                if lookup is not None:
                    return lookup

        for query in build_query_candidates(descriptor):
            check_cancelled(cancel)
            resource = self._search_best_resource(client, query, descriptor.display_name, cancel)
            if resource is None:
                continue
            lookup = self._lookup_from_resource(client, resource, cancel)
            if lookup is not None:
                return lookup

        return None

    def _search_best_resource(
        self,
        client: httpx.Client,
        query: str,
        target_name: str,
        cancel: Optional[CancellationToken],
    ) -> Optional[Mapping[str, Any]]:
        data = self._get_json(
            client,
            f"{self.base_url}/search/resources/{quote(query, safe='')}",
            params={"size": self.config.search_limit},
            cancel=cancel,
        )
        if not isinstance(data, list) or not data:
            return None

        best: Optional[Mapping[str, Any]] = None
        best_score = -1
        for resource in data:
            if not isinstance(resource, Mapping):
                LOGGER.warning("Skipping malformed Spiget resource: %r", resource)
                continue
            if resource.get("existenceStatus") != EXISTING_RESOURCE:
                continue
            resource_score = score(
                target_name, as_text(resource.get("name")), as_text(resource.get("tag"))
            )
            if resource_score > best_score:
                best, best_score = resource, resource_score

        if best is None or not self._accepts(best_score):
            LOGGER.debug("No Spiget resource for %r (best score %s)", query, best_score)
            return None
        return best

    def _lookup_from_resource(
        self,
        client: httpx.Client,
        resource: Mapping[str, Any],
        cancel: Optional[CancellationToken],
    ) -> Optional[LookupResult]:
        resource_id = _resource_id(resource)
        if resource_id is None:
            LOGGER.warning("Spiget resource without a usable id: %r", resource.get("id"))
            return None
        name = as_text(resource.get("name"))

        if resource.get("premium") is True:
            return LookupResult(
                provider_name=self.display_name,
                project_display_name=name,
                latest_version_label=UNKNOWN_VERSION,
                note=PREMIUM_NOTE,
            )

        latest = self._get_json(
            client, f"{self.base_url}/resources/{resource_id}/versions/latest", cancel=cancel
        )
        if not isinstance(latest, Mapping):
            return None
        version_name = as_text(latest.get("name"))

        if resource.get("external") is True:
            external_url = as_text(as_mapping(resource.get("file")).get("externalUrl")).strip()
            if external_url.lower().endswith(ARTIFACT_EXTENSION):
                return LookupResult(
                    provider_name=self.display_name,
                    project_display_name=name,
                    latest_version_label=version_name,
                    download_url=external_url,
                    suggested_file_name=f"{name}-{version_name}{ARTIFACT_EXTENSION}",
                    note=EXTERNAL_NOTE,
                )
            return LookupResult(
                provider_name=self.display_name,
                project_display_name=name,
                latest_version_label=version_name,
                note=EXTERNAL_UNSUPPORTED_NOTE,
            )

        return LookupResult(
            provider_name=self.display_name,
            project_display_name=name,
            latest_version_label=version_name,
            download_url=f"{self.base_url}/resources/{resource_id}/download",
            suggested_file_name=f"{name}-{version_name}{ARTIFACT_EXTENSION}",
        )


__all__ = ["SpigetResolver", "extract_resource_id"]
