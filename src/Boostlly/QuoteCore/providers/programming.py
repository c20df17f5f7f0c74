"""Programming Quotes provider (https://programming-quotesapi.vercel.app)."""

from __future__ import annotations

from ..types import Quote, Source
from .base import HttpQuoteProvider


class ProgrammingQuotesProvider(HttpQuoteProvider):
    source = Source.PROGRAMMING
    default_base_url = "https://programming-quotesapi.vercel.app/api"
    health_path = "/random"

    def random(self) -> Quote:
        payload = self._get_json("/random")
        if not isinstance(payload, dict):
            raise self._payload_error("expected an object")
        raw_id = payload.get("id")
        return self._quote(
            text=payload.get("quote") or payload.get("en") or payload.get("text"),
            author=payload.get("author"),
            quote_id=f"programming-{raw_id}" if raw_id is not None else None,
            category="🎯 Programming",
            tags=("programming", "technology"),
        )
