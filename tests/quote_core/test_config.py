# === NAVMAP v1 ===
# {
#   "module": "tests.quote_core.test_config",
#   "purpose": "Configuration models and file/env/CLI precedence",
#   "sections": [
#     {"id": "test-models", "name": "TestModels", "kind": "class"},
#     {"id": "test-loader", "name": "TestLoader", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Tests for QuoteCore configuration.

Precedence is file < environment < CLI. Environment access goes through the
``environ`` argument so the tests never touch the real process environment.
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from Boostlly.QuoteCore.config import (
    QuoteCoreConfig,
    SourceSettings,
    export_config_schema,
    load_config,
    validate_config_file,
)
from Boostlly.QuoteCore.sources import DEFAULT_SOURCE_WEIGHTS
from Boostlly.QuoteCore.types import Source


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "quotes.yaml"
    path.write_text(
        "fetch:\n"
        "  timezone: Europe/Berlin\n"
        "  max_cache_size: 50\n"
        "breakers:\n"
        "  failure_threshold: 4\n"
        "sources:\n"
        "  stoic:\n"
        "    enabled: false\n",
        encoding="utf-8",
    )
    return path


# ============================================================================
# Models
# ============================================================================


class TestModels:
    def test_defaults(self):
        config = QuoteCoreConfig()
        assert config.breakers.failure_threshold == 3
        assert config.breakers.reset_timeout_ms == 60_000
        assert config.fetch.cache_enabled is True
        assert config.fetch.max_cache_size == 100
        assert config.weights() == DEFAULT_SOURCE_WEIGHTS

    def test_source_names_are_normalized(self):
        config = QuoteCoreConfig(sources={"zenquotes": SourceSettings(weight=0.5)})
        assert "ZenQuotes" in config.sources
        assert config.weights()[Source.ZENQUOTES] == 0.5

    def test_disabled_source_weighs_nothing(self):
        config = QuoteCoreConfig(sources={"Quotable": {"enabled": False}})
        assert Source.QUOTABLE not in config.enabled_sources()
        assert config.weights()[Source.QUOTABLE] == 0.0

    @pytest.mark.parametrize("name", ["NotASource", "Local"])
    def test_unknown_or_local_source_rejected(self, name):
        with pytest.raises(ValidationError):
            QuoteCoreConfig(sources={name: {}})

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            QuoteCoreConfig.model_validate({"fetch": {"surprise": 1}})

    def test_invalid_threshold(self):
        with pytest.raises(ValidationError):
            QuoteCoreConfig.model_validate({"breakers": {"failure_threshold": 0}})

    def test_rate_limits_default_on(self):
        config = QuoteCoreConfig()
        assert config.rate_limits.enabled is True
        assert config.source_settings(Source.QUOTABLE).rate_capacity is None

    @pytest.mark.parametrize("field", ["rate_capacity", "rate_refill_per_min"])
    def test_rate_budget_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            SourceSettings(**{field: 0})

    def test_breaker_config_conversion(self):
        config = QuoteCoreConfig.model_validate({"breakers": {"failure_threshold": 5, "reset_timeout_ms": 10}})
        breaker = config.breakers.to_breaker_config()
        assert (breaker.failure_threshold, breaker.reset_timeout_ms) == (5, 10)

    def test_config_hash_is_stable(self):
        assert QuoteCoreConfig().config_hash() == QuoteCoreConfig().config_hash()
        changed = QuoteCoreConfig.model_validate({"fetch": {"max_cache_size": 5}})
        assert changed.config_hash() != QuoteCoreConfig().config_hash()


# ============================================================================
# Loader
# ============================================================================


class TestLoader:
    def test_no_file_gives_defaults(self):
        assert load_config(environ={}) == QuoteCoreConfig()

    def test_file_values(self, config_file):
        config = load_config(path=str(config_file), environ={})
        assert config.fetch.timezone == "Europe/Berlin"
        assert config.breakers.failure_threshold == 4
        assert Source.STOIC not in config.enabled_sources()

    def test_env_overrides_file(self, config_file):
        environ = {
            "BOOSTLLY_FETCH__TIMEZONE": "utc",
            "BOOSTLLY_BREAKERS__FAILURE_THRESHOLD": "6",
            "BOOSTLLY_SOURCES__ZENQUOTES__ENABLED": "false",
            "UNRELATED": "ignored",
        }
        config = load_config(path=str(config_file), environ=environ)
        assert config.fetch.timezone == "utc"
        assert config.breakers.failure_threshold == 6
        assert config.fetch.max_cache_size == 50
        assert Source.ZENQUOTES not in config.enabled_sources()

    def test_cli_overrides_env(self, config_file):
        config = load_config(
            path=str(config_file),
            environ={"BOOSTLLY_FETCH__TIMEZONE": "utc"},
            cli_overrides={"fetch": {"timezone": "Asia/Tokyo"}},
        )
        assert config.fetch.timezone == "Asia/Tokyo"
        assert config.fetch.max_cache_size == 50

    def test_source_keys_merge_across_layers(self, tmp_path):
        path = tmp_path / "quotes.yaml"
        path.write_text("sources:\n  ZenQuotes:\n    weight: 0.5\n", encoding="utf-8")
        config = load_config(path=str(path), environ={"BOOSTLLY_SOURCES__ZENQUOTES__TIMEOUT_S": "3"})
        settings = config.source_settings(Source.ZENQUOTES)
        assert settings.weight == 0.5
        assert settings.timeout_s == 3.0

    def test_cli_source_override_keeps_file_settings(self, config_file):
        config = load_config(
            path=str(config_file), environ={}, cli_overrides={"sources": {"STOIC": {"weight": 0.3}}}
        )
        settings = config.source_settings(Source.STOIC)
        assert settings.enabled is False
        assert settings.weight == 0.3

    def test_multi_word_source_from_env(self):
        environ = {
            "BOOSTLLY_SOURCES__THEY_SAID_SO__WEIGHT": "0.1",
            "BOOSTLLY_SOURCES__THEY_SAID_SO__RATE_CAPACITY": "1",
        }
        config = load_config(environ=environ)
        assert config.weights()[Source.THEY_SAID_SO] == 0.1
        assert config.source_settings(Source.THEY_SAID_SO).rate_capacity == 1

    def test_reserved_env_keys_are_not_overrides(self):
        environ = {"BOOSTLLY_CONFIG": "/tmp/nowhere.yaml", "BOOSTLLY_STORE": "/tmp/state.sqlite"}
        assert load_config(environ=environ) == QuoteCoreConfig()

    def test_json_file(self, tmp_path):
        path = tmp_path / "quotes.json"
        path.write_text(json.dumps({"cache": {"max_items": 10}}), encoding="utf-8")
        assert load_config(path=str(path), environ={}).cache.max_items == 10

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_config(path=str(tmp_path / "absent.yaml"), environ={})

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "quotes.toml"
        path.write_text("x = 1", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported"):
            load_config(path=str(path), environ={})

    def test_validate_config_file(self, config_file):
        assert validate_config_file(str(config_file)) is True

    def test_schema_export(self):
        schema = export_config_schema()
        assert "breakers" in schema["properties"]
        assert "sources" in schema["properties"]
