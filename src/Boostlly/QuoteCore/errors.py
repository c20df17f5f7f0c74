"""Error taxonomy for QuoteCore.

Responsibilities
----------------
- Define the exceptions providers raise on network, timeout and payload
  failures so the fetch orchestrator can record them against a source's
  circuit breaker.
- Define :class:`StorageError` for key-value persistence failures, which the
  vault and orchestrator catch and log.
- Provide :func:`log_provider_failure` so every swallowed provider failure is
  logged with the same fields.

None of these escape the consumer-facing calls on
:class:`~Boostlly.QuoteCore.fetcher.QuoteFetcher`; they exist for the seams
below it.
"""

from __future__ import annotations

import logging
from typing import Any

__all__ = (
    "QuoteCoreError",
    "ProviderError",
    "ProviderTimeoutError",
    "ProviderPayloadError",
    "UnsupportedOperationError",
    "StorageError",
    "log_provider_failure",
)

LOGGER = logging.getLogger(__name__)


class QuoteCoreError(Exception):
    """Base class for QuoteCore errors."""


class ProviderError(QuoteCoreError):
    """Raised when a remote source fails (transport error or non-2xx response)."""

    def __init__(
        self,
        message: str,
        *,
        source: str,
        url: str | None = None,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.source = source
        self.url = url
        self.status = status
        self.details = details or {}


class ProviderTimeoutError(ProviderError):
    """Raised when a provider call exceeds its per-source timeout."""


class ProviderPayloadError(ProviderError):
    """Raised when a provider answers with a body that cannot be turned into a quote."""


class UnsupportedOperationError(ProviderError, NotImplementedError):
    """Raised by providers for optional capabilities they do not offer."""


class StorageError(QuoteCoreError):
    """Raised by key-value stores when a read or write fails."""

    def __init__(self, message: str, *, key: str | None = None):
        super().__init__(message)
        self.key = key


def log_provider_failure(source: str, error: BaseException, *, operation: str = "random") -> None:
    """Log a provider failure that is about to be absorbed by a fallback."""
    status = getattr(error, "status", None)
    url = getattr(error, "url", None)
    LOGGER.warning(
        f"Provider {source} failed during {operation}: {error.__class__.__name__}: {error}",
        extra={
            "quote_source": source,
            "operation": operation,
            "http_status": status,
            "url": url,
        },
    )
