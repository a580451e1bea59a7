"""HTTP client construction for PluginUpdater."""

from .client import build_http_client, http_client

__all__ = ["build_http_client", "http_client"]
