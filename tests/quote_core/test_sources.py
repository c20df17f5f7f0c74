"""Tests for weighted primary selection, the weekly schedule and fallback chains."""

from __future__ import annotations

import logging
import random
from collections import Counter

import pytest

from Boostlly.QuoteCore.sources import (
    DEFAULT_SOURCE_WEIGHTS,
    FALLBACK_ORDER,
    WEEKLY_SCHEDULE,
    SourceSelector,
    scheduled_source,
)
from Boostlly.QuoteCore.types import Source
from tests.fixtures.quote_fakes import StubRandom

# ============================================================================
# Primary source
# ============================================================================


class TestPrimarySelection:
    @pytest.mark.parametrize(
        "draw, expected",
        [
            (0.0, Source.ZENQUOTES),
            (0.3, Source.QUOTABLE),
            (0.5, Source.FAVQS),
            (0.7, Source.QUOTEGARDEN),
            (0.8, Source.STOIC),
            (0.95, Source.PROGRAMMING),
        ],
    )
    def test_roulette_walk(self, draw, expected):
        selector = SourceSelector(rng=StubRandom(draw))
        assert selector.select_primary_source() is expected

    def test_zero_weight_sources_never_win(self):
        selector = SourceSelector(rng=random.Random(1234))
        picks = Counter(selector.select_primary_source() for _ in range(2000))
        assert picks[Source.THEY_SAID_SO] == 0
        assert picks[Source.DUMMYJSON] == 0
        assert picks[Source.ZENQUOTES] > picks[Source.PROGRAMMING]

    def test_all_zero_weights_default_to_first(self, caplog):
        with caplog.at_level(logging.WARNING, logger="Boostlly.QuoteCore.sources"):
            selector = SourceSelector({s: 0.0 for s in DEFAULT_SOURCE_WEIGHTS}, rng=StubRandom(0.42))
        assert selector.select_primary_source() is Source.ZENQUOTES
        assert "weights sum to" in caplog.text

    def test_short_weights_run_off_the_end(self):
        selector = SourceSelector({Source.STOIC: 0.1}, rng=StubRandom(0.9))
        assert selector.select_primary_source() is Source.ZENQUOTES

    def test_primary_is_never_local(self):
        selector = SourceSelector(rng=random.Random(7))
        assert all(selector.select_primary_source().is_remote for _ in range(500))


# ============================================================================
# Schedule & fallback chain
# ============================================================================


class TestFallbackChain:
    def test_schedule_covers_the_week(self):
        assert [a.day for a in WEEKLY_SCHEDULE] == list(range(7))
        assert scheduled_source(0) is Source.DUMMYJSON
        assert scheduled_source(1) is Source.ZENQUOTES
        assert scheduled_source(6) is Source.PROGRAMMING

    def test_monday_chain_rotates_to_zenquotes(self):
        chain = SourceSelector().get_fallback_chain(Source.QUOTABLE, 1)
        assert chain == [
            Source.ZENQUOTES,
            Source.FAVQS,
            Source.QUOTEGARDEN,
            Source.STOIC,
            Source.PROGRAMMING,
            Source.THEY_SAID_SO,
            Source.DUMMYJSON,
        ]

    def test_primary_removed_from_chain(self):
        chain = SourceSelector().get_fallback_chain(Source.ZENQUOTES, 1)
        assert chain[0] is Source.QUOTABLE
        assert Source.ZENQUOTES not in chain

    @pytest.mark.parametrize("weekday", range(7))
    def test_chain_shape_every_day(self, weekday):
        primary = Source.STOIC
        chain = SourceSelector().get_fallback_chain(primary, weekday)
        assert len(chain) == len(FALLBACK_ORDER) - 1
        assert primary not in chain
        assert Source.LOCAL not in chain
        assert len(set(chain)) == len(chain)

    @pytest.mark.parametrize("weekday", [0, 2, 3, 5, 6])
    def test_chain_starts_with_scheduled_source(self, weekday):
        chain = SourceSelector().get_fallback_chain(Source.STOIC, weekday)
        assert chain[0] is scheduled_source(weekday)

    def test_string_primary_is_accepted(self):
        chain = SourceSelector().get_fallback_chain("Stoic Quotes", 4)
        assert Source.STOIC not in chain

    def test_attempt_order_puts_primary_first(self):
        order = SourceSelector(rng=StubRandom(0.0)).attempt_order(1)
        assert order[0] is Source.ZENQUOTES
        assert order.count(Source.ZENQUOTES) == 1
        assert len(order) == len(FALLBACK_ORDER)
