"""Stoic Quotes provider (https://stoic-quotes.com)."""

from __future__ import annotations

from ..types import Quote, Source
from .base import HttpQuoteProvider


class StoicQuotesProvider(HttpQuoteProvider):
    source = Source.STOIC
    default_base_url = "https://stoic-quotes.com/api"
    health_path = "/quote"

    def random(self) -> Quote:
        payload = self._get_json("/quote")
        if not isinstance(payload, dict):
            raise self._payload_error("expected an object")
        return self._quote(
            text=payload.get("text") or payload.get("quote"),
            author=payload.get("author") or "Unknown Stoic",
            category="🧠 Wisdom",
            tags=("stoicism", "philosophy", "wisdom"),
        )
