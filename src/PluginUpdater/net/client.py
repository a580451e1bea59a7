"""
HTTPX Client Factory.

Builds the single HTTP client owned by one update run:
- Explicit timeouts and pool limits
- Identifying User-Agent (also sent as Spiget-User-Agent)
- Compressed responses accepted
- Redirects followed (catalog download endpoints redirect to CDNs)
- Event hooks logging every request/response at DEBUG

Architecture:
1. build_http_client(config) → new httpx.Client
2. http_client(config) → context manager that closes it after the run
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator, Optional

import httpx

from PluginUpdater.config import UpdaterConfig

logger = logging.getLogger(__name__)


# ============================================================================
# Client Construction
# ============================================================================


def build_http_client(
    config: UpdaterConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build a new HTTPX client from config; the caller owns and closes it.

    ``transport`` replaces the network layer (tests pass ``httpx.MockTransport``).
    """
    cfg = config.http

    timeout = httpx.Timeout(cfg.timeout_read_s, connect=cfg.timeout_connect_s)
    limits = httpx.Limits(
        max_connections=cfg.max_connections,
        max_keepalive_connections=cfg.max_connections,
    )

    client = httpx.Client(
        timeout=timeout,
        limits=limits,
        verify=cfg.verify_tls,
        headers={
            "User-Agent": cfg.user_agent,
            "Spiget-User-Agent": cfg.user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip, deflate",
        },
        follow_redirects=True,
        transport=transport,
    )

    client.event_hooks["request"] = [_on_request]
    client.event_hooks["response"] = [_on_response]

    logger.debug(f"HTTPX client created: user_agent={cfg.user_agent!r}")
    return client


@contextmanager
def http_client(
    config: UpdaterConfig,
    transport: Optional[httpx.BaseTransport] = None,
) -> Iterator[httpx.Client]:
    """Yield a client built from ``config`` and close it when the block exits."""
    client = build_http_client(config, transport)
    try:
        yield client
    finally:
        client.close()
        logger.debug("HTTPX client closed")


# ============================================================================
# Event Hooks (Logging)
# ============================================================================


def _on_request(request: httpx.Request) -> None:
    """Hook: capture request start time."""
    request.extensions["t0_perf"] = time.perf_counter()


def _on_response(response: httpx.Response) -> None:
    """Hook: log status and elapsed time."""
    req = response.request
    t0 = req.extensions.get("t0_perf", time.perf_counter())
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(
        "%s %s -> %s (%.1f ms)",
        req.method,
        req.url,
        response.status_code,
        elapsed_ms,
    )
