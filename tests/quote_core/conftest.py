"""Shared fixtures for the QuoteCore suite."""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

import pytest

from Boostlly.QuoteCore.cache import SmartCache
from Boostlly.QuoteCore.config import FetchSettings, QuoteCoreConfig
from Boostlly.QuoteCore.fetcher import QuoteFetcher
from Boostlly.QuoteCore.ratelimit import SourceRateLimiter
from Boostlly.QuoteCore.storage import InMemoryStore
from tests.fixtures.quote_fakes import FakeClock, FakeProvider, StubRandom


@pytest.fixture
def clock() -> FakeClock:
    """Wall clock frozen at Monday 2024-01-15 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def utc_config() -> QuoteCoreConfig:
    """Default configuration with date keys computed in UTC."""
    return QuoteCoreConfig(fetch=FetchSettings(timezone="utc"))


@pytest.fixture
def make_fetcher(clock, store, utc_config):
    """
    Factory for fetchers wired to the fake clock and a sweeper-less cache.

    The stub random source draws 0.0, so ZenQuotes is always the primary.
    Request budgets are off unless a test passes its own ``rate_limiter``.
    """
    created: List[QuoteFetcher] = []

    def _make(
        providers: Optional[Iterable[FakeProvider]] = None,
        *,
        config: Optional[QuoteCoreConfig] = None,
        storage: Any = None,
        rng: Any = None,
        cache: Optional[SmartCache] = None,
        **kwargs: Any,
    ) -> QuoteFetcher:
        kwargs.setdefault("rate_limiter", SourceRateLimiter(enabled=False))
        if cache is None:
            cache = SmartCache(clock=clock, start_sweeper=False)
        fetcher = QuoteFetcher(
            {p.name: p for p in providers or ()},
            storage if storage is not None else store,
            config=config or utc_config,
            cache=cache,
            clock=clock,
            rng=rng or StubRandom(0.0),
            **kwargs,
        )
        created.append(fetcher)
        return fetcher

    yield _make
    for fetcher in created:
        fetcher.close()
