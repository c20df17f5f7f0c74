# === NAVMAP v1 ===
# {
#   "module": "tests.quote_core.test_providers",
#   "purpose": "Provider payload mapping and HTTP failure handling over httpx.MockTransport",
#   "sections": [
#     {"id": "test-http-plumbing", "name": "TestHttpPlumbing", "kind": "class"},
#     {"id": "test-payloads", "name": "TestPayloads", "kind": "class"},
#     {"id": "test-capabilities", "name": "TestCapabilities", "kind": "class"},
#     {"id": "test-health", "name": "TestHealth", "kind": "class"},
#     {"id": "test-build-providers", "name": "TestBuildProviders", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Hermetic provider tests.

Every provider runs against an ``httpx.MockTransport``; no request leaves the
process. Retries are disabled unless a test exercises them.
"""

from __future__ import annotations

import httpx
import pytest

from Boostlly.QuoteCore.config import QuoteCoreConfig, RetryPolicy
from Boostlly.QuoteCore.errors import (
    ProviderError,
    ProviderPayloadError,
    ProviderTimeoutError,
    UnsupportedOperationError,
)
from Boostlly.QuoteCore.net import build_http_client
from Boostlly.QuoteCore.providers import (
    PROVIDER_CLASSES,
    DummyJsonProvider,
    FavQsProvider,
    ProgrammingQuotesProvider,
    QuotableProvider,
    QuoteGardenProvider,
    QuoteProvider,
    StoicQuotesProvider,
    TheySaidSoProvider,
    ZenQuotesProvider,
    build_providers,
    normalize_quote,
)
from Boostlly.QuoteCore.providers.dummyjson import categorize
from Boostlly.QuoteCore.types import Source
from tests.fixtures.quote_fakes import json_transport, ticking_timer

NO_RETRY = RetryPolicy(max_attempts=1)


def _client(routes, seen=None) -> httpx.Client:
    return build_http_client(transport=json_transport(routes, seen=seen))


# ============================================================================
# Normalization
# ============================================================================


class TestNormalizeQuote:
    def test_missing_id_gets_stable_hash(self):
        a = normalize_quote(Source.STOIC, text="Text", author="Seneca")
        b = normalize_quote(Source.STOIC, text=" Text ", author="Seneca")
        assert a.id == b.id
        assert a.id.startswith("stoic-")

    def test_defaults(self):
        quote = normalize_quote(Source.QUOTABLE, text="Text", tags=["wisdom", " "])
        assert quote.author == "Unknown"
        assert quote.tags == ("wisdom",)
        assert quote.category == "wisdom"
        assert quote.source == "Quotable"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_text_rejected(self, text):
        with pytest.raises(ProviderPayloadError):
            normalize_quote(Source.ZENQUOTES, text=text)


# ============================================================================
# HTTP plumbing
# ============================================================================


class TestHttpPlumbing:
    def test_http_error_status(self):
        client = _client({"/api/random": httpx.Response(503)})
        provider = ZenQuotesProvider(client, retry=NO_RETRY)
        with pytest.raises(ProviderError) as exc_info:
            provider.random()
        assert exc_info.value.status == 503
        assert exc_info.value.source == "ZenQuotes"

    def test_invalid_json(self):
        client = _client({"/api/random": httpx.Response(200, content=b"<html>")})
        with pytest.raises(ProviderPayloadError):
            ZenQuotesProvider(client, retry=NO_RETRY).random()

    def test_timeout_maps_to_provider_timeout(self):
        def boom(request):
            raise httpx.ReadTimeout("slow", request=request)

        client = _client({"/quote": boom})
        with pytest.raises(ProviderTimeoutError):
            StoicQuotesProvider(client, base_url="https://stoic.test", retry=NO_RETRY).random()

    def test_transient_transport_error_is_retried(self):
        attempts = []

        def flaky(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("reset", request=request)
            return httpx.Response(200, json={"text": "Calm", "author": "Marcus Aurelius"})

        client = _client({"/quote": flaky})
        retry = RetryPolicy(max_attempts=2, base_delay_ms=0, max_delay_ms=0)
        quote = StoicQuotesProvider(client, base_url="https://stoic.test", retry=retry).random()
        assert quote.author == "Marcus Aurelius"
        assert len(attempts) == 2

    def test_transport_error_without_retry(self):
        def down(request):
            raise httpx.ConnectError("refused", request=request)

        client = _client({"/quote": down})
        with pytest.raises(ProviderError):
            StoicQuotesProvider(client, base_url="https://stoic.test", retry=NO_RETRY).random()

    def test_base_url_override(self):
        seen = []
        client = _client({"/v9/random": [{"q": "Q", "a": "A"}]}, seen=seen)
        ZenQuotesProvider(client, base_url="https://mirror.test/v9/", retry=NO_RETRY).random()
        assert str(seen[0].url) == "https://mirror.test/v9/random"


# ============================================================================
# Payload mapping
# ============================================================================


class TestPayloads:
    def test_zenquotes(self):
        client = _client({"/api/random": [{"q": "Less is more.", "a": "Mies"}]})
        quote = ZenQuotesProvider(client, retry=NO_RETRY).random()
        assert quote.text == "Less is more."
        assert quote.source == "ZenQuotes"
        assert quote.id.startswith("zenquotes-")

    def test_zenquotes_rate_limit_notice(self):
        client = _client({"/api/random": [{"q": "Too many requests", "a": "zenquotes.io"}]})
        with pytest.raises(ProviderPayloadError):
            ZenQuotesProvider(client, retry=NO_RETRY).random()

    def test_quotable(self):
        body = {"_id": "abc123", "content": "Stay hungry.", "author": "Steve Jobs", "tags": ["Wisdom"]}
        quote = QuotableProvider(_client({"/random": body}), retry=NO_RETRY).random()
        assert quote.id == "abc123"
        assert quote.category == "Wisdom"
        assert quote.tags == ("Wisdom",)

    def test_favqs_qotd(self):
        body = {"quote": {"id": 7, "body": "Be curious.", "author": "Ada", "tags": ["curiosity"]}}
        quote = FavQsProvider(_client({"/api/qotd": body}), retry=NO_RETRY).random()
        assert quote.id == "favqs-7"
        assert quote.source == "FavQs"

    def test_quotegarden_accepts_single_object(self):
        body = {"data": {"_id": "g1", "quoteText": "Grow.", "quoteAuthor": "Gardener", "quoteGenre": "Growth"}}
        quote = QuoteGardenProvider(_client({"/api/v3/quotes/random": body}), retry=NO_RETRY).random()
        assert quote.id == "g1"
        assert quote.category == "growth"

    def test_quotegarden_empty_list(self):
        client = _client({"/api/v3/quotes/random": {"data": []}})
        with pytest.raises(ProviderPayloadError):
            QuoteGardenProvider(client, retry=NO_RETRY).random()

    def test_stoic(self):
        quote = StoicQuotesProvider(_client({"/api/quote": {"text": "Endure.", "author": ""}}), retry=NO_RETRY).random()
        assert quote.author == "Unknown Stoic"
        assert "stoicism" in quote.tags

    def test_programming(self):
        body = {"id": 42, "en": "Talk is cheap. Show me the code.", "author": "Linus Torvalds"}
        quote = ProgrammingQuotesProvider(_client({"/api/random": body}), retry=NO_RETRY).random()
        assert quote.id == "programming-42"
        assert quote.category == "🎯 Programming"

    def test_dummyjson(self):
        body = {"id": 3, "quote": "Courage is grace under pressure.", "author": "Hemingway"}
        quote = DummyJsonProvider(_client({"/quotes/random": body}), retry=NO_RETRY).random()
        assert quote.id == "dummyjson-3"
        assert quote.category == "courage"

    def test_theysaidso(self):
        body = {"contents": {"quotes": [{"id": "t1", "quote": "Keep on.", "author": "Anon", "category": "inspire"}]}}
        quote = TheySaidSoProvider(_client({"/qod": body}), retry=NO_RETRY).random()
        assert quote.id == "t1"
        assert quote.category == "inspire"

    def test_theysaidso_missing_contents(self):
        with pytest.raises(ProviderPayloadError):
            TheySaidSoProvider(_client({"/qod": {"error": "quota"}}), retry=NO_RETRY).random()

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("Success comes to those who wait", "success"),
            ("Love conquers all", "love"),
            ("Nothing matches here", "wisdom"),
        ],
    )
    def test_dummyjson_categorize(self, text, expected):
        assert categorize(text) == expected


# ============================================================================
# Optional capabilities
# ============================================================================


class TestCapabilities:
    def test_quotable_search_sends_query(self):
        seen = []
        body = {"results": [{"_id": "s1", "content": "Search me", "author": "Finder"}]}
        client = _client({"/search/quotes": body}, seen=seen)
        results = QuotableProvider(client, retry=NO_RETRY).search("wisdom")
        assert [q.id for q in results] == ["s1"]
        assert seen[0].url.params["query"] == "wisdom"

    def test_quotable_author_slug(self):
        seen = []
        client = _client({"/quotes": {"results": []}}, seen=seen)
        assert QuotableProvider(client, retry=NO_RETRY).get_by_author("Albert Einstein") == []
        assert seen[0].url.params["author"] == "albert-einstein"

    def test_stoic_has_no_search(self):
        provider = StoicQuotesProvider(_client({}), retry=NO_RETRY)
        with pytest.raises(UnsupportedOperationError):
            provider.search("virtue")
        with pytest.raises(NotImplementedError):
            provider.get_by_category("virtue")

    def test_favqs_filters_need_api_key(self):
        with pytest.raises(UnsupportedOperationError):
            FavQsProvider(_client({}), retry=NO_RETRY).search("hope")

    def test_favqs_filters_with_api_key(self):
        seen = []
        body = {
            "quotes": [
                {"id": 1, "body": "Hope is a waking dream.", "author": "Aristotle"},
                {"id": 0, "body": "No quotes found", "author": ""},
            ]
        }
        client = _client({"/api/quotes": body}, seen=seen)
        results = FavQsProvider(client, api_key="secret", retry=NO_RETRY).get_by_category("hope")
        assert [q.id for q in results] == ["favqs-1"]
        assert seen[0].headers["Authorization"] == 'Token token="secret"'
        assert seen[0].url.params["type"] == "tag"

    def test_dummyjson_search_filters_locally(self):
        body = {
            "quotes": [
                {"id": 1, "quote": "Life is short.", "author": "Seneca"},
                {"id": 2, "quote": "Know thyself.", "author": "Socrates"},
            ]
        }
        results = DummyJsonProvider(_client({"/quotes": body}), retry=NO_RETRY).search("socrates")
        assert [q.id for q in results] == ["dummyjson-2"]


# ============================================================================
# Health
# ============================================================================


class TestHealth:
    def test_healthy(self):
        client = _client({"/api/quote": {"text": "Ok", "author": "Zeno"}})
        provider = StoicQuotesProvider(client, retry=NO_RETRY, timer=ticking_timer(10.0, 10.2))
        report = provider.health_check()
        assert report.status == "healthy"
        assert report.response_time_ms == pytest.approx(200.0)

    def test_degraded(self):
        client = _client({"/api/quote": {"text": "Ok", "author": "Zeno"}})
        provider = StoicQuotesProvider(client, retry=NO_RETRY, timer=ticking_timer(0.0, 2.0))
        assert provider.health_check().status == "degraded"

    def test_down_never_raises(self):
        client = _client({"/api/quote": httpx.Response(500)})
        report = StoicQuotesProvider(client, retry=NO_RETRY).health_check()
        assert report.status == "down"
        assert "500" in report.error


# ============================================================================
# Wiring
# ============================================================================


class TestBuildProviders:
    def test_every_remote_source_has_a_provider(self):
        assert set(PROVIDER_CLASSES) == {s for s in Source if s.is_remote}

    def test_disabled_sources_are_skipped(self):
        config = QuoteCoreConfig(sources={"stoic": {"enabled": False}, "favqs": {"api_key": "k", "timeout_s": 2}})
        with _client({}) as client:
            providers = build_providers(config, client)
        assert Source.STOIC not in providers
        assert providers[Source.FAVQS].api_key == "k"
        assert providers[Source.FAVQS].timeout_s == 2
        assert all(isinstance(p, QuoteProvider) for p in providers.values())
        assert all(source is p.name for source, p in providers.items())
