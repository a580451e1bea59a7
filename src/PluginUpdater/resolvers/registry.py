# === NAVMAP v1 ===
# {
#   "module": "PluginUpdater.resolvers.registry",
#   "purpose": "Resolver registration and config-driven instantiation.",
#   "sections": [
#     {
#       "id": "register-resolver",
#       "name": "register_resolver",
#       "anchor": "function-register-resolver",
#       "kind": "function"
#     },
#     {
#       "id": "get-registry",
#       "name": "get_registry",
#       "anchor": "function-get-registry",
#       "kind": "function"
#     },
#     {
#       "id": "get-resolver-class",
#       "name": "get_resolver_class",
#       "anchor": "function-get-resolver-class",
#       "kind": "function"
#     },
#     {
#       "id": "build-resolvers",
#       "name": "build_resolvers",
#       "anchor": "function-build-resolvers",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Resolver Registry

Provides resolver registration and instantiation:
- @register_resolver(name) decorator for resolver registration
- Config-driven resolver instantiation honoring resolvers.order and enablement
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from PluginUpdater.config import UpdaterConfig

_LOGGER = logging.getLogger(__name__)

# ============================================================================
# Registry
# ============================================================================

_REGISTRY: Dict[str, Type[Any]] = {}


def register_resolver(name: str):
    """Decorator to register a resolver with the registry."""

    def deco(cls: Type[Any]) -> Type[Any]:
        if name in _REGISTRY:
            _LOGGER.warning(f"Overriding already-registered resolver: {name}")
        _REGISTRY[name] = cls
        cls.name = name
        _LOGGER.debug(f"Registered resolver: {name} → {cls.__name__}")
        return cls

    return deco


def get_registry() -> Dict[str, Type[Any]]:
    """Get the resolver registry (copy)."""
    return dict(_REGISTRY)


def get_resolver_class(name: str) -> Type[Any]:
    """Lookup resolver class by name."""
    registry = get_registry()
    if name not in registry:
        available = sorted(registry.keys())
        raise ValueError(f"Unknown resolver: {name!r}. Available: {available}")
    return registry[name]


# ============================================================================
# Builder
# ============================================================================


def build_resolvers(
    config: UpdaterConfig,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> List[Any]:
    """Build resolver instances from config with ordering and enablement.

    Unknown names in ``resolvers.order`` are logged and skipped.
    """
    resolvers: List[Any] = []
    overrides = overrides or {}

    for resolver_name in config.resolvers.order:
        resolver_cfg = getattr(config.resolvers, resolver_name, None)
        if resolver_cfg is None:
            _LOGGER.warning(f"Skipping resolver {resolver_name} (no config)")
            continue

        if not resolver_cfg.enabled:
            _LOGGER.debug(f"Skipping disabled resolver: {resolver_name}")
            continue

        try:
            resolver_cls = get_resolver_class(resolver_name)
        except ValueError as e:
            _LOGGER.warning(f"Resolver not available: {resolver_name}: {e}")
            continue

        resolvers.append(
            resolver_cls.from_config(resolver_cfg, config, overrides.get(resolver_name))
        )
        _LOGGER.debug(f"Built resolver: {resolver_name} ({resolver_cls.__name__})")

    _LOGGER.info(f"Built {len(resolvers)} resolvers in order: {[r.name for r in resolvers]}")
    return resolvers
