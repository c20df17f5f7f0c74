"""
Boostlly QuoteCore

Resilient quote delivery: weighted remote sources behind per-source circuit
breakers, a day-rotated fallback chain, a bundled offline vault with 7-day
non-repetition, and a bounded smart cache. Consumer calls always return a
:class:`Quote`.

Example:
    from Boostlly.QuoteCore import InMemoryStore, build_fetcher, build_http_client, load_config

    config = load_config()
    with build_http_client(config.http) as client:
        with build_fetcher(config, InMemoryStore(), client) as fetcher:
            quote = fetcher.get_daily_quote()
"""

from .breakers import BreakerConfig, BreakerSnapshot, CircuitBreakerRegistry
from .cache import CacheStats, SmartCache
from .config import QuoteCoreConfig, load_config
from .errors import (
    ProviderError,
    ProviderPayloadError,
    ProviderTimeoutError,
    QuoteCoreError,
    StorageError,
    UnsupportedOperationError,
)
from .fetcher import AttemptResult, QuoteFetcher, build_fetcher
from .net import build_http_client
from .providers import QuoteProvider, build_providers
from .ratelimit import RateLimitPolicy, SourceRateLimiter
from .selection import djb2_hash, mulberry32, pick, pick_quote, seeded_shuffle
from .sources import WEEKLY_SCHEDULE, SourceSelector
from .statistics import SourceStatistics
from .storage import InMemoryStore, KeyValueStore, SQLiteStore
from .types import LOCAL_SOURCE, NO_QUOTES, HealthReport, HistoryEntry, Quote, Source
from .vault import LocalVault

__all__ = [
    "LOCAL_SOURCE",
    "NO_QUOTES",
    "WEEKLY_SCHEDULE",
    "AttemptResult",
    "BreakerConfig",
    "BreakerSnapshot",
    "CacheStats",
    "CircuitBreakerRegistry",
    "HealthReport",
    "HistoryEntry",
    "InMemoryStore",
    "KeyValueStore",
    "LocalVault",
    "ProviderError",
    "ProviderPayloadError",
    "ProviderTimeoutError",
    "Quote",
    "QuoteCoreConfig",
    "QuoteCoreError",
    "QuoteFetcher",
    "QuoteProvider",
    "RateLimitPolicy",
    "SQLiteStore",
    "SmartCache",
    "Source",
    "SourceRateLimiter",
    "SourceSelector",
    "SourceStatistics",
    "StorageError",
    "UnsupportedOperationError",
    "build_fetcher",
    "build_http_client",
    "build_providers",
    "djb2_hash",
    "load_config",
    "mulberry32",
    "pick",
    "pick_quote",
    "seeded_shuffle",
]
