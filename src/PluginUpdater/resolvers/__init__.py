"""Resolver subsystem public exports.

Importing this package registers every built-in resolver with the registry.
"""

from __future__ import annotations

from .base import ApiResolverBase, Resolver
from .modrinth import ModrinthResolver
from .paper import PaperResolver
from .registry import build_resolvers, get_registry, get_resolver_class, register_resolver
from .spiget import SpigetResolver

__all__ = [
    "ApiResolverBase",
    "ModrinthResolver",
    "PaperResolver",
    "Resolver",
    "SpigetResolver",
    "build_resolvers",
    "get_registry",
    "get_resolver_class",
    "register_resolver",
]
