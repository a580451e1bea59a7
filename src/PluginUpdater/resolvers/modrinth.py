"""Resolver implementation for the Modrinth v2 API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence
from urllib.parse import quote

import httpx

from PluginUpdater.api import ArtifactDescriptor, ArtifactKind, LookupResult
from PluginUpdater.config import ModrinthConfig
from PluginUpdater.core import (
    ARTIFACT_EXTENSION,
    CancellationToken,
    check_cancelled,
    host_matches,
    path_segments,
)
from PluginUpdater.matching import category_bonus, score
from PluginUpdater.queries import build_query_candidates

from .base import ApiResolverBase, as_mapping, as_text
from .registry import register_resolver

LOGGER = logging.getLogger(__name__)

MODRINTH_DOMAIN = "modrinth.com"
_PROJECT_PATH_PREFIXES = ("plugin", "mod", "project")
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def extract_project_slug(website: str) -> Optional[str]:
    """Return the project id or slug embedded in a modrinth.com URL."""

    if not host_matches(website, MODRINTH_DOMAIN):
        return None
    segments = path_segments(website)
    if not segments:
        return None
    if len(segments) >= 2 and segments[0].lower() in _PROJECT_PATH_PREFIXES:
        return segments[1].strip() or None
    return segments[-1].strip() or None


def _parse_timestamp(value: Any) -> datetime:
    text = as_text(value).strip()
    if not text:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        LOGGER.debug("Unparseable Modrinth timestamp: %r", text)
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class _SearchHit:
    project_id: str
    slug: str
    title: str
    categories: Sequence[str]


def _select_file(files: Sequence[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    """Pick the primary file, else the first ``.jar``, else the first file."""

    for candidate in files:
        if candidate.get("primary") is True:
            return candidate
    for candidate in files:
        if as_text(candidate.get("filename")).lower().endswith(ARTIFACT_EXTENSION):
            return candidate
    return files[0] if files else None


@register_resolver("modrinth")
class ModrinthResolver(ApiResolverBase):
    """Resolve plugins through Modrinth's project search and version listing."""

    display_name = "Modrinth"
    target_kind = ArtifactKind.GENERIC_PLUGIN
    config: ModrinthConfig

    @classmethod
    def default_config(cls) -> ModrinthConfig:
        return ModrinthConfig()

    def _resolve(
        self,
        descriptor: ArtifactDescriptor,
        client: httpx.Client,
        cancel: Optional[CancellationToken],
    ) -> Optional[LookupResult]:
        website_project = extract_project_slug(descriptor.homepage_url)
        if website_project:
            lookup = self._latest_for_project(client, website_project, website_project, cancel)
            if lookup is not None:
                return lookup

        checked_projects: set[str] = set()
        for query in build_query_candidates(descriptor):
            check_cancelled(cancel)
            hit = self._search_best_project(client, query, descriptor.display_name, cancel)
            if hit is None:
                continue
            key = hit.project_id.lower()
            if key in checked_projects:
                continue
            checked_projects.add(key)

            lookup = self._latest_for_project(client, hit.project_id, hit.title, cancel)
            if lookup is not None:
                return lookup

        return None

    def _search_best_project(
        self,
        client: httpx.Client,
        query: str,
        target_name: str,
        cancel: Optional[CancellationToken],
    ) -> Optional[_SearchHit]:
        facets = json.dumps([[f"categories:{category}" for category in self.config.categories]])
        data = self._get_json(
            client,
            f"{self.base_url}/search",
            params={
                "query": query,
                "limit": self.config.search_limit,
                "index": "relevance",
                "facets": facets,
            },
            cancel=cancel,
        )
        hits = as_mapping(data).get("hits")
        if not isinstance(hits, list) or not hits:
            return None

        best: Optional[_SearchHit] = None
        best_score = -1
        for raw in hits:
            if not isinstance(raw, Mapping):
                LOGGER.warning("Skipping malformed Modrinth hit: %r", raw)
                continue
            categories = raw.get("categories")
            hit = _SearchHit(
                project_id=as_text(raw.get("project_id")),
                slug=as_text(raw.get("slug")),
                title=as_text(raw.get("title")),
                categories=categories if isinstance(categories, list) else [],
            )
            hit_score = score(target_name, hit.title, hit.slug) + category_bonus(
                hit.categories,
                known=self.config.categories,
                bonus=self.matching.category_bonus,
            )
            if hit_score > best_score:
                best, best_score = hit, hit_score

        if best is None or not best.project_id or not self._accepts(best_score):
            LOGGER.debug("No Modrinth project for %r (best score %s)", query, best_score)
            return None
        return best

    def _latest_for_project(
        self,
        client: httpx.Client,
        project_id_or_slug: str,
        display_name: str,
        cancel: Optional[CancellationToken],
    ) -> Optional[LookupResult]:
        data = self._get_json(
            client,
            f"{self.base_url}/project/{quote(project_id_or_slug, safe='')}/version",
            params={"loaders": json.dumps(list(self.config.loaders))},
            cancel=cancel,
        )
        if not isinstance(data, list) or not data:
            return None

        versions: List[Mapping[str, Any]] = [
            version
            for version in data
            if isinstance(version, Mapping)
            and isinstance(version.get("files"), list)
            and version["files"]
        ]
        if not versions:
            return None

        latest = max(versions, key=lambda version: _parse_timestamp(version.get("date_published")))
        files = [entry for entry in latest["files"] if isinstance(entry, Mapping)]
        selected = _select_file(files)
        if selected is None or not as_text(selected.get("url")).strip():
            return None

        return LookupResult(
            provider_name=self.display_name,
            project_display_name=display_name,
            latest_version_label=as_text(latest.get("version_number")),
            download_url=as_text(selected.get("url")),
            suggested_file_name=as_text(selected.get("filename")) or None,
        )


__all__ = ["ModrinthResolver", "extract_project_slug"]
