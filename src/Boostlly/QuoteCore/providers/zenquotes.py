"""ZenQuotes provider (https://zenquotes.io).

The API answers with a one-element list ``[{"q": text, "a": author}]``. When
the free tier is rate limited it still answers 200 but with a notice quote
attributed to ``zenquotes.io``; that is treated as a payload failure.
"""

from __future__ import annotations

from typing import Any, List

from ..types import Quote, Source
from .base import HttpQuoteProvider

_NOTICE_AUTHOR = "zenquotes.io"


class ZenQuotesProvider(HttpQuoteProvider):
    source = Source.ZENQUOTES
    default_base_url = "https://zenquotes.io/api"
    health_path = "/today"

    def _parse(self, payload: Any) -> List[Quote]:
        if not isinstance(payload, list) or not payload:
            raise self._payload_error("expected a non-empty list")
        quotes = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            if str(item.get("a", "")).strip().lower() == _NOTICE_AUTHOR:
                raise self._payload_error(f"service notice: {item.get('q')}")
            quotes.append(self._quote(text=item.get("q"), author=item.get("a"), category="inspiration"))
        if not quotes:
            raise self._payload_error("no quotes in response")
        return quotes

    def random(self) -> Quote:
        return self._parse(self._get_json("/random"))[0]

    def get_by_author(self, author: str) -> List[Quote]:
        needle = author.strip().lower()
        return [q for q in self._parse(self._get_json("/quotes")) if needle in q.author.lower()]
