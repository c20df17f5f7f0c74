# === NAVMAP v1 ===
# {
#   "module": "Boostlly.QuoteCore.fetcher",
#   "purpose": "Fetch orchestrator: providers, breakers, fallback chain, vault and cache",
#   "sections": [
#     {"id": "attemptresult", "name": "AttemptResult", "anchor": "class-attemptresult", "kind": "class"},
#     {"id": "quotefetcher", "name": "QuoteFetcher", "anchor": "class-quotefetcher", "kind": "class"},
#     {"id": "build-fetcher", "name": "build_fetcher", "anchor": "function-build-fetcher", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Quote Fetch Orchestrator

Delivers the one guarantee QuoteCore makes: a caller asking for a quote always
gets a valid :class:`~Boostlly.QuoteCore.types.Quote`, within a bounded time,
even when every remote source is down.

Flow for a single request:
- Pick a primary source (weighted roulette) and its day-rotated fallback chain
- Skip sources whose request budget is spent or whose circuit breaker is open
- Call the provider on a worker thread, bounded by the source's timeout from
  the moment the call starts (a call that never gets a worker is skipped)
- Record success/failure (timeouts count as failures) on the breaker
- When the chain is exhausted, answer from the local vault

Storage keys (see :mod:`Boostlly.QuoteCore.storage`) hold the last loaded
quote list, the enrichment cache of remote quotes, the last enrichment date,
the daily quote and the caller's timezone preference. Storage is best-effort:
read and write failures are logged and the call proceeds without them.

Consumer calls (:meth:`QuoteFetcher.get_quote`,
:meth:`QuoteFetcher.get_daily_quote`, :meth:`QuoteFetcher.load_quotes`) never
raise.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from .breakers import CircuitBreakerRegistry
from .cache import SmartCache
from .config.models import QuoteCoreConfig
from .dates import date_key, now_in, weekday_index
from .errors import (
    ProviderPayloadError,
    ProviderTimeoutError,
    UnsupportedOperationError,
    log_provider_failure,
)
from .providers import build_providers
from .providers.base import QuoteProvider
from .ratelimit import SourceRateLimiter
from .selection import pick_quote
from .sources import SourceSelector
from .statistics import SourceStatistics
from .storage import (
    DAILY_QUOTE_DATE_KEY,
    DAILY_QUOTE_KEY,
    LAST_FETCH_KEY,
    QUOTES_CACHE_KEY,
    QUOTES_KEY,
    SETTINGS_KEY,
    TIMEZONE_KEY,
    KeyValueStore,
)
from .types import LOCAL_SOURCE, REMOTE_SOURCES, HealthReport, Quote, Source
from .vault import EMPTY_VAULT_QUOTE, LocalVault

LOGGER = logging.getLogger(__name__)

ProviderCall = Callable[[QuoteProvider], Any]


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of one provider call attempt."""

    source: Source
    outcome: str  # success|empty|rate_limited|breaker_open|missing|unsupported|timeout|error|skipped
    value: Any = None
    elapsed_ms: float = 0.0
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome == "success"


def _random_quote(provider: QuoteProvider) -> Quote:
    quote = provider.random()
    if not isinstance(quote, Quote):
        raise ProviderPayloadError(
            f"{provider.name} returned {type(quote).__name__}, not a Quote", source=str(provider.name)
        )
    return quote


def _quotes_from(raw: Any) -> List[Quote]:
    quotes: List[Quote] = []
    for item in raw if isinstance(raw, list) else []:
        try:
            quotes.append(Quote.from_dict(item))
        except (KeyError, TypeError, ValueError):
            LOGGER.debug(f"Skipping malformed stored quote {item!r}")
    return quotes


class QuoteFetcher:
    """
    Composes providers, breakers, source selection, the vault and the cache.

    Attributes:
        providers: Provider per remote source (missing sources are skipped)
        storage: Injected key-value store
        config: QuoteCoreConfig with breaker, cache, fetch and source settings
        breakers: Circuit breaker registry (one record per remote source)
        rate_limiter: Per-source request budgets
        selector: Primary source / fallback chain policy
        vault: Local fallback vault
        cache: Smart cache for search and category lookups
        statistics: Per-source call statistics
    """

    def __init__(
        self,
        providers: Mapping[Source, QuoteProvider],
        storage: KeyValueStore,
        *,
        config: Optional[QuoteCoreConfig] = None,
        breakers: Optional[CircuitBreakerRegistry] = None,
        rate_limiter: Optional[SourceRateLimiter] = None,
        selector: Optional[SourceSelector] = None,
        vault: Optional[LocalVault] = None,
        cache: Optional[SmartCache] = None,
        statistics: Optional[SourceStatistics] = None,
        clock: Callable[[], float] = time.time,
        timer: Callable[[], float] = time.perf_counter,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.config = config or QuoteCoreConfig()
        self.providers: Dict[Source, QuoteProvider] = dict(providers)
        self.storage = storage
        self.breakers = breakers or CircuitBreakerRegistry(
            self.config.breakers.to_breaker_config(), now=clock
        )
        self.breakers.initialize(REMOTE_SOURCES)
        self.rate_limiter = rate_limiter or SourceRateLimiter.from_config(self.config)
        self.rate_limiter.initialize(REMOTE_SOURCES)
        self.selector = selector or SourceSelector(self.config.weights(), rng=rng)
        self.vault = vault or LocalVault(
            history_store=storage,
            clock=clock,
            timezone=self.config.fetch.timezone,
            history_days=self.config.vault.history_days,
            history_limit=self.config.vault.history_limit,
        )
        self._owns_cache = cache is None
        self.cache = cache if cache is not None else SmartCache.from_settings(self.config.cache, clock=clock)
        self.statistics = statistics or SourceStatistics()
        self._clock = clock
        self._timer = timer
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._calls = ThreadPoolExecutor(
            max_workers=self.config.fetch.max_workers, thread_name_prefix="quote-provider"
        )
        self._background = ThreadPoolExecutor(max_workers=1, thread_name_prefix="quote-enrichment")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        self._background.shutdown(wait=False, cancel_futures=True)
        self._calls.shutdown(wait=False, cancel_futures=True)
        if self._owns_cache:
            self.cache.close()

    def __enter__(self) -> "QuoteFetcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Storage helpers (best-effort)
    # ------------------------------------------------------------------

    def _storage_get(self, key: str) -> Any:
        try:
            return self.storage.get(key)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.warning(f"Storage read failed for {key!r}: {exc}")
            return None

    def _storage_set(self, key: str, value: Any) -> bool:
        try:
            self.storage.set(key, value)
            return True
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.warning(f"Storage write failed for {key!r}: {exc}")
            return False

    def timezone_preference(self) -> str:
        """Configured zone, else stored ``settings.timezone``, else ``quoteTimezone``, else local."""
        if self.config.fetch.timezone:
            return self.config.fetch.timezone
        settings = self._storage_get(SETTINGS_KEY)
        if isinstance(settings, dict) and settings.get("timezone"):
            zone = str(settings["timezone"])
            return "utc" if zone.upper() == "UTC" else zone
        legacy = self._storage_get(TIMEZONE_KEY)
        if isinstance(legacy, str) and legacy.strip():
            return legacy.strip()
        return "local"

    def cached_remote_quotes(self) -> List[Quote]:
        """Remote quotes collected by daily enrichment."""
        return _quotes_from(self._storage_get(QUOTES_CACHE_KEY))

    # ------------------------------------------------------------------
    # Provider attempts
    # ------------------------------------------------------------------

    def _attempt(self, source: Source, call: ProviderCall, operation: str) -> AttemptResult:
        provider = self.providers.get(source)
        if provider is None:
            return AttemptResult(source, "missing")
        if not self.rate_limiter.try_acquire(source):
            return AttemptResult(source, "rate_limited")
        if self.breakers.is_open(source):
            LOGGER.debug(f"Skipping {source.value}: circuit open")
            return AttemptResult(source, "breaker_open")

        timeout_s = self.config.source_settings(source).timeout_s
        running = threading.Event()
        marks: Dict[str, float] = {}

        def _run(target: QuoteProvider) -> Any:
            marks["started"] = self._timer()
            running.set()
            return call(target)

        def _elapsed_ms() -> float:
            return (self._timer() - marks.get("started", queued)) * 1000.0

        queued = self._timer()
        try:
            future = self._calls.submit(_run, provider)
        except RuntimeError as exc:
            return AttemptResult(source, "skipped", reason=str(exc))

        # The timeout runs from the moment a worker picks the call up; a call
        # still queued behind busy workers after timeout_s is withdrawn unrun.
        if not running.wait(timeout_s) and future.cancel():
            LOGGER.debug(f"Skipping {source.value}: no free provider worker within {timeout_s}s")
            return AttemptResult(source, "skipped", reason="no free provider worker")

        try:
            value = future.result(timeout=timeout_s)
        except FuturesTimeoutError:
            elapsed_ms = _elapsed_ms()
            error = ProviderTimeoutError(
                f"{source.value} exceeded {timeout_s}s during {operation}", source=source.value
            )
            self._record_failure(source, error, elapsed_ms, operation)
            return AttemptResult(source, "timeout", elapsed_ms=elapsed_ms, reason=str(error))
        except UnsupportedOperationError as exc:
            return AttemptResult(source, "unsupported", reason=str(exc))
        except Exception as exc:  # pylint: disable=broad-except
            elapsed_ms = _elapsed_ms()
            self._record_failure(source, exc, elapsed_ms, operation)
            return AttemptResult(source, "error", elapsed_ms=elapsed_ms, reason=str(exc))

        elapsed_ms = _elapsed_ms()
        self.breakers.record_success(source)
        self.statistics.record_success(source.value, elapsed_ms)
        if value is None or value == []:
            return AttemptResult(source, "empty", elapsed_ms=elapsed_ms)
        return AttemptResult(source, "success", value=value, elapsed_ms=elapsed_ms)

    def _record_failure(self, source: Source, error: BaseException, elapsed_ms: float, operation: str) -> None:
        self.breakers.record_failure(source)
        self.statistics.record_failure(source.value, elapsed_ms, error.__class__.__name__)
        log_provider_failure(source.value, error, operation=operation)

    def _attempt_order(self, timezone: str) -> List[Source]:
        return self.selector.attempt_order(weekday_index(now_in(timezone, self._clock)))

    def _local(self, category: Optional[str] = None) -> Quote:
        return self.vault.get_random_fallback_quote(
            category, self.storage, timezone=self.timezone_preference()
        )

    # ------------------------------------------------------------------
    # Loading & enrichment
    # ------------------------------------------------------------------

    def fetch_quotes(self) -> List[Quote]:
        """Primary source once, plus a local quote; local only when the primary fails or is open."""
        try:
            primary = self.selector.select_primary_source()
            result = self._attempt(primary, _random_quote, "random")
            if result.ok:
                return [result.value, self._local()]
            LOGGER.info(f"Primary source {primary.value} unavailable ({result.outcome}); using local vault")
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("fetch_quotes failed; using local vault")
        return [self._local()]

    def load_quotes(self) -> List[Quote]:
        """Stored quote list when caching is on, else a fresh fetch plus background enrichment."""
        try:
            if self.config.fetch.cache_enabled:
                cached = _quotes_from(self._storage_get(QUOTES_KEY))
                if cached:
                    return cached
            quotes = self.fetch_quotes()
            self._storage_set(QUOTES_KEY, [q.to_dict() for q in quotes])
            self.start_enrichment()
            return quotes
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("load_quotes failed; using local vault")
            return [self._local()]

    def start_enrichment(self) -> Optional[Future]:
        """Run :meth:`maybe_fetch_one_daily` in the background; returns its future."""
        try:
            future = self._background.submit(self.maybe_fetch_one_daily)
        except RuntimeError as exc:
            LOGGER.debug(f"Enrichment not scheduled: {exc}")
            return None
        future.add_done_callback(_log_enrichment_outcome)
        return future

    def maybe_fetch_one_daily(self) -> Optional[Quote]:
        """At most once per day, add one new remote quote to the enrichment cache.

        Returns the quote that was added, or ``None``.
        """
        today: Optional[str] = None
        try:
            timezone = self.timezone_preference()
            today = date_key(now_in(timezone, self._clock))
            if self._storage_get(LAST_FETCH_KEY) == today:
                return None

            fetched: Optional[Quote] = None
            for source in self._attempt_order(timezone):
                if not source.is_remote:
                    continue
                result = self._attempt(source, _random_quote, "daily")
                if result.ok:
                    fetched = result.value
                    break
            if fetched is None:
                LOGGER.info("Daily enrichment found no reachable source")
                return None
            return self._remember_remote_quote(fetched)
        except Exception as exc:  # pylint: disable=broad-except
            LOGGER.debug(f"Daily enrichment failed: {exc}", exc_info=True)
            return None
        finally:
            if today is not None and self._storage_get(LAST_FETCH_KEY) != today:
                self._storage_set(LAST_FETCH_KEY, today)

    def _remember_remote_quote(self, quote: Quote) -> Optional[Quote]:
        with self._lock:
            cached = self.cached_remote_quotes()
            if any(quote.is_same_as(existing) for existing in cached):
                LOGGER.debug(f"Daily quote {quote.id} already cached")
                return None
            cached.append(quote)
            cached = cached[-self.config.fetch.max_cache_size :]
            self._storage_set(QUOTES_CACHE_KEY, [q.to_dict() for q in cached])
        LOGGER.info(f"Cached daily quote {quote.id} from {quote.source}")
        return quote

    # ------------------------------------------------------------------
    # Consumer surface
    # ------------------------------------------------------------------

    def get_quote(self, category: Optional[str] = None) -> Quote:
        """Next quote: primary then fallback chain, local vault when all fail."""
        try:
            for source in self._attempt_order(self.timezone_preference()):
                if category:
                    quote = self._category_quote(source, category)
                else:
                    result = self._attempt(source, _random_quote, "random")
                    quote = result.value if result.ok else None
                if quote is not None:
                    return quote
            LOGGER.info("All remote sources unavailable; using local vault")
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("get_quote failed; using local vault")
        return self._local(category)

    def _category_quote(self, source: Source, category: str) -> Optional[Quote]:
        key = f"category:{source.value}:{category.strip().lower()}"
        cached = _quotes_from(self.cache.get(key))
        if not cached:
            result = self._attempt(source, lambda p: p.get_by_category(category), "category")
            if not result.ok:
                return None
            cached = [q for q in result.value if isinstance(q, Quote)]
            self.cache.set(
                key,
                [q.to_dict() for q in cached],
                ttl_s=self.config.cache.search_ttl_s,
                tags=(source.value, "category"),
            )
        return self._rng.choice(cached) if cached else None

    def get_daily_quote(self, force: bool = False) -> Quote:
        """Today's quote; stable for the day once chosen."""
        today = None
        try:
            timezone = self.timezone_preference()
            today = date_key(now_in(timezone, self._clock))
            if not force and self._storage_get(DAILY_QUOTE_DATE_KEY) == today:
                stored = _quotes_from([self._storage_get(DAILY_QUOTE_KEY)])
                if stored:
                    return stored[0]

            quote: Optional[Quote] = None
            for source in self._attempt_order(timezone):
                result = self._attempt(source, _random_quote, "daily")
                if result.ok:
                    quote = result.value
                    break
            if quote is None:
                quote = self.local_daily_quote(today)

            self._storage_set(DAILY_QUOTE_KEY, quote.to_dict())
            self._storage_set(DAILY_QUOTE_DATE_KEY, today)
            return quote
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("get_daily_quote failed; using local vault")
            return self.local_daily_quote(today or date_key(now_in(None, self._clock)))

    def local_daily_quote(self, day: str) -> Quote:
        """Deterministic vault pick for ``day``; identical for every caller."""
        if not self.vault.quotes:
            return EMPTY_VAULT_QUOTE
        return pick_quote(self.vault.quotes, day).with_source(LOCAL_SOURCE)

    def search_quotes(self, query: str, limit: int = 20) -> List[Quote]:
        """Substring search over cached quotes and the vault, topped up from providers."""
        needle = (query or "").strip().lower()
        if not needle:
            return []
        results: List[Quote] = []

        def _add(candidates: List[Quote]) -> None:
            for q in candidates:
                if len(results) >= limit:
                    return
                if not any(q.is_same_as(existing) for existing in results):
                    results.append(q)

        try:
            _add([q for q in self.cached_remote_quotes() if needle in q.text.lower() or needle in q.author.lower()])
            _add(self.vault.search(needle))
            for source in self.providers:
                if len(results) >= limit:
                    break
                _add(self._remote_search(source, needle))
        except Exception:  # pylint: disable=broad-except
            LOGGER.exception("search_quotes failed")
        return results

    def _remote_search(self, source: Source, needle: str) -> List[Quote]:
        key = f"search:{source.value}:{needle}"
        cached = self.cache.get(key)
        if cached is not None:
            return _quotes_from(cached)
        result = self._attempt(source, lambda p: p.search(needle), "search")
        if result.outcome not in ("success", "empty"):
            return []
        quotes = [q for q in (result.value or []) if isinstance(q, Quote)]
        self.cache.set(
            key,
            [q.to_dict() for q in quotes],
            ttl_s=self.config.cache.search_ttl_s,
            tags=(source.value, "search"),
        )
        return quotes

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def health_check_all(self) -> Dict[Source, HealthReport]:
        """Health of every configured provider; breakers are not touched."""
        reports: Dict[Source, HealthReport] = {}
        for source, provider in self.providers.items():
            timeout_s = self.config.source_settings(source).timeout_s
            try:
                reports[source] = self._calls.submit(provider.health_check).result(timeout=timeout_s)
            except FuturesTimeoutError:
                reports[source] = HealthReport("down", timeout_s * 1000.0, error="timeout")
            except Exception as exc:  # pylint: disable=broad-except
                reports[source] = HealthReport("down", 0.0, error=str(exc))
        return reports


def _log_enrichment_outcome(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        LOGGER.debug(f"Background enrichment failed: {exc}")


def build_fetcher(
    config: QuoteCoreConfig,
    storage: KeyValueStore,
    client: Any,
    **kwargs: Any,
) -> QuoteFetcher:
    """Wire a fetcher with providers built from ``config`` around ``client``."""
    return QuoteFetcher(build_providers(config, client), storage, config=config, **kwargs)


__all__ = (
    "AttemptResult",
    "QuoteFetcher",
    "build_fetcher",
)
