"""Quotable provider (https://api.quotable.io)."""

from __future__ import annotations

from typing import Any, List, Mapping

from ..types import Quote, Source
from .base import HttpQuoteProvider

_PAGE_LIMIT = 10


class QuotableProvider(HttpQuoteProvider):
    source = Source.QUOTABLE
    default_base_url = "https://api.quotable.io"
    health_path = "/random"

    def _from_item(self, item: Mapping[str, Any]) -> Quote:
        return self._quote(
            text=item.get("content"),
            author=item.get("author"),
            quote_id=item.get("_id"),
            tags=item.get("tags") or (),
        )

    def _results(self, payload: Any) -> List[Quote]:
        if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
            raise self._payload_error("expected an object with 'results'")
        return [self._from_item(item) for item in payload["results"] if isinstance(item, dict)]

    def random(self) -> Quote:
        payload = self._get_json("/random")
        if not isinstance(payload, dict):
            raise self._payload_error("expected an object")
        return self._from_item(payload)

    def search(self, query: str) -> List[Quote]:
        return self._results(self._get_json("/search/quotes", {"query": query, "limit": _PAGE_LIMIT}))

    def get_by_category(self, category: str) -> List[Quote]:
        return self._results(self._get_json("/quotes", {"tags": category.lower(), "limit": _PAGE_LIMIT}))

    def get_by_author(self, author: str) -> List[Quote]:
        slug = "-".join(author.lower().split())
        return self._results(self._get_json("/quotes", {"author": slug, "limit": _PAGE_LIMIT}))
