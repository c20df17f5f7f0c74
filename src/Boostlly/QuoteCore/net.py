"""HTTPX client factory for quote providers.

The client is built explicitly by whoever composes the application and handed
to the providers; there is no module-level singleton. Tests pass an
``httpx.MockTransport`` through ``transport``.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config.models import HttpSettings

LOGGER = logging.getLogger(__name__)


def build_http_client(
    settings: Optional[HttpSettings] = None,
    *,
    transport: Optional[httpx.BaseTransport] = None,
) -> httpx.Client:
    """Build an ``httpx.Client`` with explicit timeouts and pool limits."""
    cfg = settings or HttpSettings()
    timeout = httpx.Timeout(cfg.timeout_read_s, connect=cfg.timeout_connect_s)
    limits = httpx.Limits(
        max_connections=cfg.max_connections,
        max_keepalive_connections=cfg.max_connections,
    )
    LOGGER.debug(f"Creating HTTPX client (connect={cfg.timeout_connect_s}s, read={cfg.timeout_read_s}s)")
    return httpx.Client(
        timeout=timeout,
        limits=limits,
        headers={"User-Agent": cfg.user_agent, "Accept": "application/json"},
        follow_redirects=True,
        verify=cfg.verify_tls,
        transport=transport,
    )


__all__ = ("build_http_client",)
