"""Shared resolver primitives and helpers."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

import httpx

from PluginUpdater.api import ArtifactDescriptor, ArtifactKind, LookupResult, ProviderError
from PluginUpdater.config import MatchingPolicy, ResolverCommonConfig, UpdaterConfig
from PluginUpdater.core import CancellationToken, check_cancelled

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Resolver protocol (what the pipeline relies on)
# ---------------------------------------------------------------------------


class Resolver(Protocol):
    """Protocol describing the minimal resolver interface."""

    name: str
    display_name: str

    def try_resolve(
        self,
        descriptor: ArtifactDescriptor,
        client: httpx.Client,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[LookupResult]: ...


# ---------------------------------------------------------------------------
# API helpers
# ---------------------------------------------------------------------------


class ApiResolverBase:
    """Shared helper for HTTP API based resolvers.

    Subclasses set ``name``, ``display_name`` and ``target_kind`` and
    implement :meth:`_resolve`. Descriptors of another kind are declined
    before any request is made.
    """

    name: str = "resolver"
    display_name: str = "Resolver"
    target_kind: ArtifactKind = ArtifactKind.GENERIC_PLUGIN

    def __init__(
        self,
        config: Optional[ResolverCommonConfig] = None,
        matching: Optional[MatchingPolicy] = None,
    ) -> None:
        self.config = config if config is not None else self.default_config()
        self.matching = matching if matching is not None else MatchingPolicy()

    @classmethod
    def default_config(cls) -> ResolverCommonConfig:
        return ResolverCommonConfig()

    @classmethod
    def from_config(
        cls,
        resolver_cfg: ResolverCommonConfig,
        root_cfg: UpdaterConfig,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> "ApiResolverBase":
        """Factory method to create resolver from Pydantic config."""
        if overrides:
            resolver_cfg = resolver_cfg.model_copy(update=dict(overrides))
        return cls(resolver_cfg, matching=root_cfg.matching)

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    def handles(self, descriptor: ArtifactDescriptor) -> bool:
        return descriptor.kind is self.target_kind

    def try_resolve(
        self,
        descriptor: ArtifactDescriptor,
        client: httpx.Client,
        *,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[LookupResult]:
        """Resolve ``descriptor`` to its latest catalog build, or ``None``.

        Raises:
            ProviderError: The catalog could not be reached or answered with
                an undecodable payload.
            OperationCancelled: ``cancel`` fired between requests.
        """
        if not self.handles(descriptor):
            LOGGER.debug(
                "Resolver %s declines %s (kind=%s)",
                self.name,
                descriptor.display_name,
                descriptor.kind.value,
            )
            return None
        return self._resolve(descriptor, client, cancel)

    def _resolve(
        self,
        descriptor: ArtifactDescriptor,
        client: httpx.Client,
        cancel: Optional[CancellationToken],
    ) -> Optional[LookupResult]:
        raise NotImplementedError

    def _get_json(
        self,
        client: httpx.Client,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> Optional[Any]:
        """GET ``url`` and decode JSON; ``None`` when the status is not a success."""
        check_cancelled(cancel)
        try:
            response = client.get(url, params=params)
        except httpx.TimeoutException as exc:
            raise ProviderError(self.display_name, f"request timed out: {exc}") from exc
        except httpx.TransportError as exc:
            raise ProviderError(self.display_name, f"connection error: {exc}") from exc
        except httpx.RequestError as exc:
            raise ProviderError(self.display_name, f"request error: {exc}") from exc

        try:
            if not response.is_success:
                LOGGER.debug(
                    "%s answered HTTP %s for %s", self.display_name, response.status_code, url
                )
                return None
            try:
                return response.json()
            except ValueError as exc:
                preview = response.text[:200]
                LOGGER.debug("%s returned invalid JSON: %r", self.display_name, preview)
                raise ProviderError(self.display_name, f"invalid JSON response: {exc}") from exc
        finally:
            response.close()

    def _accepts(self, match_score: int) -> bool:
        return match_score >= self.matching.min_score


def as_mapping(value: Any) -> Mapping[str, Any]:
    """Return ``value`` when it is a mapping, else an empty dict."""

    return value if isinstance(value, Mapping) else {}


def as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


__all__ = ["ApiResolverBase", "Resolver", "as_mapping", "as_text"]
