"""FavQs provider (https://favqs.com).

The quote of the day endpoint is public. Filtered listings need an API token,
sent as ``Authorization: Token token="<key>"``; without one the optional
capabilities are unsupported.
"""

from __future__ import annotations

from typing import Any, List, Mapping

from ..types import Quote, Source
from .base import HttpQuoteProvider


class FavQsProvider(HttpQuoteProvider):
    source = Source.FAVQS
    default_base_url = "https://favqs.com/api"
    health_path = "/qotd"

    def _headers(self) -> Mapping[str, str]:
        if self.api_key:
            return {"Authorization": f'Token token="{self.api_key}"'}
        return {}

    def _from_item(self, item: Mapping[str, Any]) -> Quote:
        return self._quote(
            text=item.get("body"),
            author=item.get("author"),
            quote_id=f"favqs-{item['id']}" if item.get("id") is not None else None,
            tags=item.get("tags") or (),
        )

    def random(self) -> Quote:
        payload = self._get_json("/qotd")
        item = payload.get("quote") if isinstance(payload, dict) else None
        if not isinstance(item, dict):
            raise self._payload_error("expected {'quote': {...}}")
        return self._from_item(item)

    def _filtered(self, operation: str, params: Mapping[str, str]) -> List[Quote]:
        if not self.api_key:
            raise self._unsupported(f"{operation} without an API key")
        payload = self._get_json("/quotes", params)
        items = payload.get("quotes") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise self._payload_error("expected {'quotes': [...]}")
        # FavQs signals "nothing found" with a placeholder entry.
        return [
            self._from_item(item)
            for item in items
            if isinstance(item, dict) and item.get("body") != "No quotes found"
        ]

    def search(self, query: str) -> List[Quote]:
        return self._filtered("search", {"filter": query})

    def get_by_category(self, category: str) -> List[Quote]:
        return self._filtered("category lookup", {"filter": category, "type": "tag"})

    def get_by_author(self, author: str) -> List[Quote]:
        return self._filtered("author lookup", {"filter": author, "type": "author"})
