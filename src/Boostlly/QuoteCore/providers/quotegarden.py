"""QuoteGarden provider (https://quote-garden.onrender.com)."""

from __future__ import annotations

from typing import Any, List, Mapping

from ..types import Quote, Source
from .base import HttpQuoteProvider


class QuoteGardenProvider(HttpQuoteProvider):
    source = Source.QUOTEGARDEN
    default_base_url = "https://quote-garden.onrender.com/api/v3"
    health_path = "/quotes/random"

    def _from_item(self, item: Mapping[str, Any]) -> Quote:
        genre = str(item.get("quoteGenre") or "general").lower()
        return self._quote(
            text=item.get("quoteText"),
            author=item.get("quoteAuthor"),
            quote_id=item.get("_id"),
            category=genre,
            tags=(genre,),
        )

    def _items(self, payload: Any) -> List[Quote]:
        data = payload.get("data") if isinstance(payload, dict) else None
        if isinstance(data, dict):
            data = [data]
        if not isinstance(data, list):
            raise self._payload_error("expected {'data': [...]}")
        return [self._from_item(item) for item in data if isinstance(item, dict)]

    def random(self) -> Quote:
        quotes = self._items(self._get_json("/quotes/random"))
        if not quotes:
            raise self._payload_error("empty data")
        return quotes[0]

    def search(self, query: str) -> List[Quote]:
        return self._items(self._get_json("/quotes", {"query": query, "limit": 10}))

    def get_by_category(self, category: str) -> List[Quote]:
        return self._items(self._get_json("/quotes", {"genre": category.lower(), "limit": 10}))

    def get_by_author(self, author: str) -> List[Quote]:
        return self._items(self._get_json("/quotes", {"author": author, "limit": 10}))
