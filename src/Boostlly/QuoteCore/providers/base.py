# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.providers.base",
#   "purpose": "Provider protocol and the shared HTTP provider implementation",
#   "sections": [
#     {"id": "quoteprovider", "name": "QuoteProvider", "anchor": "class-quoteprovider", "kind": "class"},
#     {"id": "normalize-quote", "name": "normalize_quote", "anchor": "function-normalize-quote", "kind": "function"},
#     {"id": "httpquoteprovider", "name": "HttpQuoteProvider", "anchor": "class-httpquoteprovider", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Provider abstraction for remote quote sources.

Every remote source implements :class:`QuoteProvider`. The contract is strict:
a provider either returns a real quote or raises a
:class:`~Boostlly.QuoteCore.errors.ProviderError`. It never substitutes a local
quote of its own, because the orchestrator must see the failure to record it
against the source's circuit breaker.

``search``, ``get_by_category`` and ``get_by_author`` are optional
capabilities; providers without the endpoint raise
:class:`~Boostlly.QuoteCore.errors.UnsupportedOperationError`.

:class:`HttpQuoteProvider` supplies the HTTP plumbing (timeouts, tenacity
retries on transient transport errors, status and JSON checks) and a generic
health check; concrete providers only map endpoints and payloads.
"""

from __future__ import annotations

import abc
import hashlib
import logging
import time
from typing import Any, Callable, ClassVar, Iterable, List, Mapping, Optional, Protocol, runtime_checkable

import httpx
import tenacity

from ..config.models import RetryPolicy
from ..errors import (
    ProviderError,
    ProviderPayloadError,
    ProviderTimeoutError,
    UnsupportedOperationError,
)
from ..types import HealthReport, Quote, Source

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class QuoteProvider(Protocol):
    """Capability set of a remote quote source."""

    @property
    def name(self) -> Source:
        ...

    def random(self) -> Quote:
        ...

    def search(self, query: str) -> List[Quote]:
        ...

    def get_by_category(self, category: str) -> List[Quote]:
        ...

    def get_by_author(self, author: str) -> List[Quote]:
        ...

    def health_check(self) -> HealthReport:
        ...


def _stable_id(source: Source, text: str, author: str) -> str:
    digest = hashlib.sha1(f"{text.strip()}|{author.strip()}".encode("utf-8")).hexdigest()[:12]
    return f"{source.name.lower()}-{digest}"


def normalize_quote(
    source: Source,
    *,
    text: Any,
    author: Any = None,
    quote_id: Any = None,
    category: Any = None,
    tags: Optional[Iterable[Any]] = None,
) -> Quote:
    """Build a :class:`Quote` from loosely typed payload fields.

    Missing ids get a stable content hash, the category falls back to the first
    tag and then ``"general"``, and the author defaults to ``"Unknown"``.

    Raises:
        ProviderPayloadError: If ``text`` is missing or blank.
    """
    clean_text = str(text or "").strip()
    if not clean_text:
        raise ProviderPayloadError(f"{source.value} returned a quote without text", source=source.value)
    clean_author = str(author or "").strip() or "Unknown"
    tag_list = tuple(str(t).strip() for t in (tags or ()) if str(t).strip())
    clean_category = str(category or "").strip() or (tag_list[0] if tag_list else "general")
    ident = str(quote_id).strip() if quote_id not in (None, "") else _stable_id(source, clean_text, clean_author)
    return Quote(
        id=ident,
        text=clean_text,
        author=clean_author,
        category=clean_category,
        tags=tag_list,
        source=source.value,
    )


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, httpx.TransportError) and not isinstance(exc, httpx.TimeoutException)


class HttpQuoteProvider(abc.ABC):
    """Base class for providers backed by a JSON HTTP API.

    Args:
        client: Shared ``httpx.Client`` (owned by the caller).
        base_url: Override for :attr:`default_base_url`.
        timeout_s: Per-request timeout.
        retry: Retry policy for transient transport errors.
        api_key: Credential for sources that need one.
    """

    source: ClassVar[Source]
    default_base_url: ClassVar[str]
    health_path: ClassVar[str] = "/"

    def __init__(
        self,
        client: httpx.Client,
        *,
        base_url: Optional[str] = None,
        timeout_s: float = 8.0,
        retry: Optional[RetryPolicy] = None,
        api_key: Optional[str] = None,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.client = client
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.timeout_s = timeout_s
        self.retry = retry or RetryPolicy()
        self.api_key = api_key
        self._timer = timer

    @property
    def name(self) -> Source:
        return self.source

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self.base_url!r})"

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _headers(self) -> Mapping[str, str]:
        return {}

    def _retrying(self) -> tenacity.Retrying:
        return tenacity.Retrying(
            stop=tenacity.stop_after_attempt(self.retry.max_attempts),
            wait=tenacity.wait_random_exponential(
                multiplier=self.retry.base_delay_ms / 1000.0,
                max=self.retry.max_delay_ms / 1000.0,
            ),
            retry=tenacity.retry_if_exception(_is_transient),
            before_sleep=tenacity.before_sleep_log(LOGGER, logging.DEBUG),
            reraise=True,
        )

    def _get_json(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        name = self.source.value
        try:
            for attempt in self._retrying():
                with attempt:
                    response = self.client.get(
                        url, params=params, headers=self._headers(), timeout=self.timeout_s
                    )
        except httpx.TimeoutException as exc:
            raise ProviderTimeoutError(f"{name} timed out after {self.timeout_s}s", source=name, url=url) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{name} request failed: {exc}", source=name, url=url) from exc

        if response.status_code >= 400:
            raise ProviderError(
                f"{name} answered HTTP {response.status_code}",
                source=name,
                url=url,
                status=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderPayloadError(f"{name} returned invalid JSON", source=name, url=url) from exc

    def _quote(self, **fields: Any) -> Quote:
        return normalize_quote(self.source, **fields)

    def _payload_error(self, message: str) -> ProviderPayloadError:
        return ProviderPayloadError(f"{self.source.value}: {message}", source=self.source.value)

    def _unsupported(self, operation: str) -> UnsupportedOperationError:
        return UnsupportedOperationError(
            f"{self.source.value} does not support {operation}", source=self.source.value
        )

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @abc.abstractmethod
    def random(self) -> Quote:
        """Fetch one quote."""

    def search(self, query: str) -> List[Quote]:
        raise self._unsupported("search")

    def get_by_category(self, category: str) -> List[Quote]:
        raise self._unsupported("category lookup")

    def get_by_author(self, author: str) -> List[Quote]:
        raise self._unsupported("author lookup")

    def health_check(self) -> HealthReport:
        """Time one request; healthy under 1s, degraded under 3s, otherwise down."""
        started = self._timer()
        try:
            self._get_json(self.health_path)
        except ProviderError as exc:
            elapsed_ms = (self._timer() - started) * 1000.0
            return HealthReport("down", elapsed_ms, error=str(exc))
        return HealthReport.from_latency((self._timer() - started) * 1000.0)


__all__ = (
    "HttpQuoteProvider",
    "QuoteProvider",
    "normalize_quote",
)
