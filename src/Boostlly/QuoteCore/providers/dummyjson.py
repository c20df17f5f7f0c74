"""DummyJSON provider (https://dummyjson.com/quotes)."""

from __future__ import annotations

from typing import Any, List, Mapping

from ..types import Quote, Source
from .base import HttpQuoteProvider

# Keyword → tag, first match wins.
_KEYWORD_CATEGORIES = (
    (("success", "achieve", "win"), "success"),
    (("love", "heart", "kind"), "love"),
    (("learn", "knowledge", "grow"), "learning"),
    (("courage", "fear", "brave"), "courage"),
    (("happy", "happiness", "joy"), "happiness"),
    (("life", "live", "living"), "life"),
)


def categorize(text: str) -> str:
    lowered = text.lower()
    for keywords, category in _KEYWORD_CATEGORIES:
        if any(k in lowered for k in keywords):
            return category
    return "wisdom"


class DummyJsonProvider(HttpQuoteProvider):
    source = Source.DUMMYJSON
    default_base_url = "https://dummyjson.com"
    health_path = "/quotes/random"

    def _from_item(self, item: Mapping[str, Any]) -> Quote:
        text = str(item.get("quote") or "")
        raw_id = item.get("id")
        category = categorize(text)
        return self._quote(
            text=text,
            author=item.get("author"),
            quote_id=f"dummyjson-{raw_id}" if raw_id is not None else None,
            category=category,
            tags=(category,),
        )

    def random(self) -> Quote:
        payload = self._get_json("/quotes/random")
        if not isinstance(payload, dict):
            raise self._payload_error("expected an object")
        return self._from_item(payload)

    def _all(self) -> List[Quote]:
        payload = self._get_json("/quotes", {"limit": 0})
        items = payload.get("quotes") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise self._payload_error("expected {'quotes': [...]}")
        return [self._from_item(item) for item in items if isinstance(item, dict)]

    def search(self, query: str) -> List[Quote]:
        needle = query.strip().lower()
        return [q for q in self._all() if needle in q.text.lower() or needle in q.author.lower()]

    def get_by_author(self, author: str) -> List[Quote]:
        needle = author.strip().lower()
        return [q for q in self._all() if needle in q.author.lower()]
