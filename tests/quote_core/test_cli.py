"""CLI smoke tests; every command runs offline against in-memory or temp stores."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from Boostlly.QuoteCore.cli import app, make_fetcher
from Boostlly.QuoteCore.config import QuoteCoreConfig
from Boostlly.QuoteCore.storage import DAILY_QUOTE_DATE_KEY, InMemoryStore, SQLiteStore
from Boostlly.QuoteCore.vault import LocalVault


@pytest.fixture
def runner(monkeypatch) -> CliRunner:
    for name in ("BOOSTLLY_CONFIG", "BOOSTLLY_STORE"):
        monkeypatch.delenv(name, raising=False)
    return CliRunner()


class TestQuoteCommands:
    def test_today_offline(self, runner):
        result = runner.invoke(app, ["today", "--offline"])
        assert result.exit_code == 0, result.output
        assert "Quote of the day" in result.output

    def test_today_persists_to_store(self, runner, tmp_path):
        db = tmp_path / "state.sqlite"
        result = runner.invoke(app, ["--store", str(db), "today", "--offline"])
        assert result.exit_code == 0, result.output

        store = SQLiteStore(db)
        try:
            assert store.get(DAILY_QUOTE_DATE_KEY)
        finally:
            store.close()

    def test_quote_with_category(self, runner):
        result = runner.invoke(app, ["quote", "--category", "love", "--offline"])
        assert result.exit_code == 0, result.output

    def test_search_offline(self, runner):
        result = runner.invoke(app, ["search", "life", "--limit", "2", "--offline"])
        assert result.exit_code == 0, result.output
        assert "result(s)" in result.output

    def test_sources_for_monday(self, runner):
        result = runner.invoke(app, ["sources", "--weekday", "1"])
        assert result.exit_code == 0, result.output
        assert "Monday" in result.output
        assert "/30s" in result.output

    def test_offline_fetcher_has_no_providers(self):
        fetcher = make_fetcher(QuoteCoreConfig(), InMemoryStore(), None)
        try:
            assert fetcher.providers == {}
            assert fetcher.get_quote().source == "Local"
        finally:
            fetcher.close()


class TestVaultCommands:
    def test_stats(self, runner):
        result = runner.invoke(app, ["vault", "stats"])
        assert result.exit_code == 0, result.output
        assert "Vault:" in result.output

    def test_categories(self, runner):
        result = runner.invoke(app, ["vault", "categories"])
        assert result.exit_code == 0
        assert "💪 Motivation" in result.output

    def test_duplicates_exit_code(self, runner):
        result = runner.invoke(app, ["vault", "duplicates"])
        expected = 1 if LocalVault().find_duplicates() else 0
        assert result.exit_code == expected


class TestConfigCommands:
    def test_show_raw(self, runner, tmp_path):
        path = tmp_path / "quotes.yaml"
        path.write_text("fetch:\n  timezone: utc\n", encoding="utf-8")
        result = runner.invoke(app, ["--config", str(path), "config", "show", "--raw"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["fetch"]["timezone"] == "utc"

    def test_validate(self, runner, tmp_path):
        good = tmp_path / "good.yaml"
        good.write_text("breakers:\n  failure_threshold: 2\n", encoding="utf-8")
        bad = tmp_path / "bad.yaml"
        bad.write_text("breakers:\n  failure_threshold: 0\n", encoding="utf-8")

        assert runner.invoke(app, ["config", "validate", str(good)]).exit_code == 0
        assert runner.invoke(app, ["config", "validate", str(bad)]).exit_code == 1

    def test_schema_to_file(self, runner, tmp_path):
        out = tmp_path / "schema.json"
        result = runner.invoke(app, ["config", "schema", "--output", str(out)])
        assert result.exit_code == 0, result.output
        assert "properties" in json.loads(out.read_text())

    def test_missing_config_file_fails(self, runner, tmp_path):
        result = runner.invoke(app, ["--config", str(tmp_path / "absent.yaml"), "today", "--offline"])
        assert result.exit_code == 1
